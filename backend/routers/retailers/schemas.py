from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from routers.auth.schemas import PHONE_PATTERN

RETAILER_NAME_PATTERN = r"^[a-zA-Z\s]{2,50}$"


class RetailerSignup(BaseModel):
    name: str = Field(..., pattern=RETAILER_NAME_PATTERN, description="2-50 letters and spaces")
    phone_number: str = Field(..., pattern=PHONE_PATTERN)
    email: EmailStr
    otp: Optional[str] = None
    address: Optional[str] = Field(None, max_length=500)
