from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime, timezone
import uuid

PaymentMethod = Literal["cod", "online", "upi", "card"]


class OrderLineCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    retailer_id: uuid.UUID
    products: List[OrderLineCreate] = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1)
    order_total: float = Field(..., ge=0)
    payment_method: PaymentMethod = "cod"
    delivery_date: Optional[datetime] = None
    notes: Optional[str] = None
    vehicle_number: Optional[str] = Field(None, max_length=20)

    @field_validator("delivery_date")
    @classmethod
    def to_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # timestamps are stored as naive UTC
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class OrderStatusUpdate(BaseModel):
    status: str
    cancellation_reason: Optional[str] = None
    notes: Optional[str] = None


class OrderItemResponse(BaseModel):
    product_id: Optional[str] = None
    product_name: str
    quantity: int
    unit_price: float
    total: float
    product: Optional[dict] = None


class OrderResponse(BaseModel):
    id: str
    retailer_id: str
    wholesaler_id: str
    retailer: Optional[dict] = None
    items: List[OrderItemResponse]
    status: str
    payment_status: str
    payment_method: str
    delivery_address: str
    delivery_date: Optional[datetime] = None
    vehicle_number: Optional[str] = None
    order_total: float
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    page: int
    limit: int
    total: int
