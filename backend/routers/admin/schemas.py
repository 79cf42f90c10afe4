from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime
import uuid
from routers.products.schemas import CATEGORY_NAME_PATTERN


class VerifyWholesalerRequest(BaseModel):
    wholesaler_id: uuid.UUID


class KycDecision(BaseModel):
    kyc_status: Literal["Completed", "Rejected"]


class ProductDecision(BaseModel):
    approval_status: Literal["Verified", "Rejected"]


# Category Schemas
class CategoryCreate(BaseModel):
    name: str = Field(..., pattern=CATEGORY_NAME_PATTERN)
    description: Optional[str] = Field(None, max_length=500)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, pattern=CATEGORY_NAME_PATTERN)
    description: Optional[str] = Field(None, max_length=500)


class CategoryResponse(BaseModel):
    id: str
    name: str
    description: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
