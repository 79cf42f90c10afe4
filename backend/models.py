from sqlalchemy import (
    Boolean,
    String,
    Text,
    DateTime,
    CheckConstraint,
    UniqueConstraint,
    Index,
    JSON,
    text,
    ForeignKey,
    Float,
    Integer
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.ext.declarative import declarative_base
from datetime import datetime
from enum import Enum
from typing import Optional, List
import uuid

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (tests run on SQLite)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class Role(str, Enum):
    RETAILER = "Retailer"
    WHOLESALER = "Wholesaler"


class KycStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


class ApprovalStatus(str, Enum):
    PENDING = "Pending"
    VERIFIED = "Verified"
    REJECTED = "Rejected"


class GstCategory(str, Enum):
    EXEMPTED = "exempted"
    APPLICABLE = "applicable"


class PriceUnit(str, Enum):
    PER_KG = "per kg"
    PER_DOZEN = "per dozen"
    PER_PIECE = "per piece"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    COD = "cod"
    ONLINE = "online"
    UPI = "upi"
    CARD = "card"


class Account(Base):
    """
    Identity record for retailers and wholesalers, created by OTP-backed signup
    """
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("role IN ('Retailer', 'Wholesaler')", name="account_role_check"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name: Mapped[Optional[str]] = mapped_column(String(100))
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True)
    phone_number: Mapped[str] = mapped_column(String(10), unique=True, index=True, nullable=False)

    role: Mapped[str] = mapped_column(String(20), default=Role.RETAILER.value, nullable=False)

    is_phone_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_shop_detail: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class PhoneOtp(Base):
    """
    Latest OTP issued for a phone number; replaced on every request
    """
    __tablename__ = "phone_otps"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    phone_number: Mapped[str] = mapped_column(String(10), unique=True, index=True, nullable=False)
    otp: Mapped[str] = mapped_column(String(6), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class RetailerProfile(Base):
    """
    Retailer display details used when presenting orders
    """
    __tablename__ = "retailer_profiles"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    retailer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )

    name: Mapped[Optional[str]] = mapped_column(String(100))
    phone_number: Mapped[Optional[str]] = mapped_column(String(10))
    address: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class ShopProfile(Base):
    """
    Wholesaler business, KYC and payout details. Created empty at signup and
    filled by the three KYC steps.
    """
    __tablename__ = "shop_profiles"
    __table_args__ = (
        UniqueConstraint("gst_number", name="shop_profiles_gst_number_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    wholesaler_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )

    # Business identity
    full_name: Mapped[Optional[str]] = mapped_column(String(100))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone_number: Mapped[Optional[str]] = mapped_column(String(10))
    business_name: Mapped[Optional[str]] = mapped_column(String(200))
    business_type: Mapped[Optional[str]] = mapped_column(String(50))
    gst_number: Mapped[Optional[str]] = mapped_column(String(15))
    apmc_region: Mapped[Optional[str]] = mapped_column(String(100))

    # Location
    business_address: Mapped[Optional[dict]] = mapped_column(JSONDocument)  # shop_number, street, city, state, pincode
    location: Mapped[Optional[dict]] = mapped_column(JSONDocument)  # latitude, longitude
    business_hours: Mapped[Optional[dict]] = mapped_column(JSONDocument)  # mon_to_sat / sunday open-close
    is_shop_open: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # KYC documents (public URLs from storage)
    business_certificate: Mapped[Optional[str]] = mapped_column(String(500))
    id_proof: Mapped[Optional[str]] = mapped_column(String(500))
    business_registration: Mapped[Optional[str]] = mapped_column(String(500))

    # Payout details: UPI or bank, never both
    upi_id: Mapped[Optional[str]] = mapped_column(String(100))
    account_holder_name: Mapped[Optional[str]] = mapped_column(String(100))
    account_number: Mapped[Optional[str]] = mapped_column(String(30))
    ifsc_code: Mapped[Optional[str]] = mapped_column(String(11))
    bank_name: Mapped[Optional[str]] = mapped_column(String(100))

    kyc_status: Mapped[str] = mapped_column(String(20), default=KycStatus.PENDING.value, nullable=False)
    is_wholesaler_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class Category(Base):
    """
    Product categories managed by admins. Products reference them by name.
    """
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(String(500), default="", nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class Product(Base):
    """
    Products listed by wholesalers. price_after_gst is derived from
    price_before_gst, gst_category and gst_percent on every write.
    """
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("wholesaler_id", "product_name", name="unique_wholesaler_product_name"),
        CheckConstraint("price_before_gst >= 0", name="price_before_gst_non_negative_check"),
        CheckConstraint("gst_percent >= 0 AND gst_percent <= 100", name="gst_percent_range_check"),
        CheckConstraint("stock >= 0", name="stock_non_negative_check"),
        CheckConstraint("minimum_required >= 0", name="minimum_required_non_negative_check"),
        Index("products_product_name_idx", "product_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    wholesaler_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False
    )

    product_name: Mapped[str] = mapped_column(String(100), nullable=False)
    category_name: Mapped[str] = mapped_column(String(50), nullable=False)
    product_description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    product_image: Mapped[str] = mapped_column(String(500), nullable=False)

    # Pricing
    price_before_gst: Mapped[float] = mapped_column(Float, nullable=False)
    gst_category: Mapped[str] = mapped_column(String(20), default=GstCategory.EXEMPTED.value, nullable=False)
    gst_percent: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    price_after_gst: Mapped[float] = mapped_column(Float, nullable=False)
    price_unit: Mapped[str] = mapped_column(String(20), nullable=False)
    last_price_update: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    # Inventory
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    minimum_required: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    approval_status: Mapped[str] = mapped_column(String(20), default=ApprovalStatus.PENDING.value, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    filters: Mapped[List["ProductFilter"]] = relationship(
        "ProductFilter",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProductFilter.position"
    )


class ProductFilter(Base):
    """
    Free-form key/value attributes of a product (e.g. variety=Alphonso)
    """
    __tablename__ = "product_filters"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[str] = mapped_column(String(255), nullable=False)


class Order(Base):
    """
    Orders between one retailer and one wholesaler
    """
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("order_total >= 0", name="order_total_non_negative_check"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Order participants
    retailer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    wholesaler_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    status: Mapped[str] = mapped_column(String(20), default=OrderStatus.PENDING.value, nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), default=PaymentStatus.PENDING.value, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(20), default=PaymentMethod.COD.value, nullable=False)

    # Delivery details
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False)
    delivery_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    vehicle_number: Mapped[Optional[str]] = mapped_column(String(20))

    order_total: Mapped[float] = mapped_column(Float, nullable=False)

    notes: Mapped[Optional[str]] = mapped_column(Text)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.position"
    )


class OrderItem(Base):
    """
    One line of an order. unit_price and total are snapshots taken when the
    order was created and never change afterwards.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="order_item_quantity_positive_check"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="SET NULL")
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    product_name: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    total: Mapped[float] = mapped_column(Float, nullable=False)
