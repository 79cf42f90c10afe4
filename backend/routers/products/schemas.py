from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal
from datetime import datetime

PRODUCT_NAME_PATTERN = r"^[a-zA-Z0-9\s]{2,100}$"
CATEGORY_NAME_PATTERN = r"^[a-zA-Z0-9\s]{2,50}$"

PriceUnit = Literal["per kg", "per dozen", "per piece"]
GstCategory = Literal["exempted", "applicable"]


class ProductFilterItem(BaseModel):
    key: str = Field(..., min_length=1, max_length=100)
    value: str = Field(..., min_length=1, max_length=255)


class ProductCreate(BaseModel):
    product_name: str = Field(..., pattern=PRODUCT_NAME_PATTERN)
    category_name: str = Field(..., pattern=CATEGORY_NAME_PATTERN)
    product_description: str = ""
    price_unit: PriceUnit
    price_before_gst: float = Field(..., ge=0)
    gst_category: GstCategory
    gst_percent: Optional[float] = Field(None, ge=0, le=100)
    stock: int = Field(..., ge=0)
    minimum_required: int = Field(..., ge=0)
    filters: List[ProductFilterItem] = []

    @model_validator(mode="after")
    def check_gst_percent(self):
        if self.gst_category == "applicable":
            if self.gst_percent is None:
                raise ValueError("GST percent must be between 0 and 100 for applicable GST")
        else:
            self.gst_percent = 0.0
        return self


class ProductUpdate(BaseModel):
    product_name: Optional[str] = Field(None, pattern=PRODUCT_NAME_PATTERN)
    category_name: Optional[str] = Field(None, pattern=CATEGORY_NAME_PATTERN)
    product_description: Optional[str] = None
    price_unit: Optional[PriceUnit] = None
    price_before_gst: Optional[float] = Field(None, ge=0)
    gst_category: Optional[GstCategory] = None
    gst_percent: Optional[float] = Field(None, ge=0, le=100)
    stock: Optional[int] = Field(None, ge=0)
    minimum_required: Optional[int] = Field(None, ge=0)
    filters: Optional[List[ProductFilterItem]] = None

    @model_validator(mode="after")
    def check_gst_percent(self):
        if self.gst_category == "applicable" and self.gst_percent is None:
            raise ValueError("GST percent must be between 0 and 100 for applicable GST")
        if self.gst_category == "exempted":
            self.gst_percent = 0.0
        return self


class ProductResponse(BaseModel):
    id: str
    wholesaler_id: str
    product_name: str
    category_name: str
    product_description: str = ""
    product_image: str
    price_before_gst: float
    gst_category: str
    gst_percent: float
    price_after_gst: float
    price_unit: str
    last_price_update: datetime
    stock: int
    minimum_required: int
    filters: List[ProductFilterItem] = []
    approval_status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    products: List[ProductResponse]
    page: int
    limit: int
    total: int
