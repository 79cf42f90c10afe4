from pydantic import BaseModel, Field
from typing import Optional

PHONE_PATTERN = r"^\d{10}$"


# Request schemas
class OtpRequest(BaseModel):
    phone_number: str = Field(..., pattern=PHONE_PATTERN, description="10-digit phone number")


class LoginRequest(BaseModel):
    phone_number: str = Field(..., pattern=PHONE_PATTERN)
    otp: Optional[str] = None
