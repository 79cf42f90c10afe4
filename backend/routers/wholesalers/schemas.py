from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional, Literal
import uuid
from routers.auth.schemas import PHONE_PATTERN

GST_PATTERN = r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$"
TIME_PATTERN = r"^(0?[1-9]|1[0-2]):[0-5][0-9] (AM|PM)$"
IFSC_PATTERN = r"^[A-Z]{4}0[A-Z0-9]{6}$"

BusinessType = Literal["Proprietorship", "Partnership", "Private Limited", "LLP", "Other"]
ApmcRegion = Literal["Mumbai APMC", "Delhi APMC", "Pune APMC"]


class WholesalerSignup(BaseModel):
    phone_number: str = Field(..., pattern=PHONE_PATTERN)
    otp: Optional[str] = None


class OpeningHours(BaseModel):
    open: str = Field(..., pattern=TIME_PATTERN, examples=["08:00 AM"])
    close: str = Field(..., pattern=TIME_PATTERN, examples=["08:00 PM"])


class BusinessHours(BaseModel):
    mon_to_sat: OpeningHours
    sunday: OpeningHours


class BusinessAddress(BaseModel):
    shop_number: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = Field(None, pattern=r"^\d{6}$")


class Location(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class KycProfileRequest(BaseModel):
    """Step 1: business identity"""
    wholesaler_id: uuid.UUID
    full_name: str = Field(..., min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    business_name: str = Field(..., min_length=2, max_length=200)
    business_type: BusinessType
    gst_number: str = Field(..., pattern=GST_PATTERN)
    apmc_region: ApmcRegion
    business_hours: BusinessHours
    business_address: Optional[BusinessAddress] = None
    location: Optional[Location] = None


class KycAccountRequest(BaseModel):
    """Step 3: payout details, either a UPI id or a bank account"""
    wholesaler_id: uuid.UUID
    upi_id: Optional[str] = Field(None, pattern=r"^[A-Za-z0-9._-]{2,256}@[a-zA-Z]{2,64}$")
    account_holder_name: Optional[str] = Field(None, min_length=2, max_length=100)
    account_number: Optional[str] = Field(None, pattern=r"^\d{9,18}$")
    ifsc_code: Optional[str] = Field(None, pattern=IFSC_PATTERN)
    bank_name: Optional[str] = Field(None, min_length=2, max_length=100)

    @model_validator(mode="after")
    def check_single_payout_method(self):
        bank_fields = [self.account_holder_name, self.account_number, self.ifsc_code, self.bank_name]
        has_bank = any(bank_fields)
        if self.upi_id and has_bank:
            raise ValueError("Provide either a UPI id or bank details, not both")
        if not self.upi_id and not has_bank:
            raise ValueError("A UPI id or bank details are required")
        if has_bank and not all(bank_fields):
            raise ValueError("Account holder name, account number, IFSC code and bank name are all required")
        return self


class ShopProfileResponse(BaseModel):
    id: str
    wholesaler_id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    business_name: Optional[str] = None
    business_type: Optional[str] = None
    gst_number: Optional[str] = None
    apmc_region: Optional[str] = None
    business_address: Optional[dict] = None
    location: Optional[dict] = None
    business_hours: Optional[dict] = None
    is_shop_open: bool = True
    business_certificate: Optional[str] = None
    id_proof: Optional[str] = None
    business_registration: Optional[str] = None
    upi_id: Optional[str] = None
    account_holder_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc_code: Optional[str] = None
    bank_name: Optional[str] = None
    kyc_status: str
    is_wholesaler_verified: bool

    class Config:
        from_attributes = True
