from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import ValidationError
from models import Product, Category, GstCategory
from utils.errors import ValidationFailed, InvalidReference, NotFound, Forbidden
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
import json
import uuid
import logging

logger = logging.getLogger(__name__)

PRICE_VALIDITY_DAYS = 7
PRICE_EXPIRY_WARNING_DAYS = 3


def calculate_price_after_gst(price_before_gst: float, gst_category: str, gst_percent: float) -> float:
    """
    Derive the GST-inclusive price. Exempted products and a zero rate keep the base price.
    """
    if gst_category == GstCategory.EXEMPTED.value or not gst_percent:
        return price_before_gst
    return price_before_gst + (price_before_gst * gst_percent / 100)


def validation_message(error: ValidationError) -> str:
    """First pydantic error as a readable sentence"""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "__root__")
    message = first.get("msg", "Invalid value")
    return f"{field}: {message}" if field else message


def parse_json_list(raw: Optional[str], field_name: str) -> List[Dict[str, Any]]:
    """Parse a multipart/query JSON field holding a list of {key, value} objects"""
    if raw is None or raw == "":
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        raise ValidationFailed(f"Invalid {field_name} format")
    if not isinstance(parsed, list):
        raise ValidationFailed(f"{field_name.capitalize()} must be an array of key-value pairs")
    for item in parsed:
        if (
            not isinstance(item, dict)
            or not isinstance(item.get("key"), str)
            or not isinstance(item.get("value"), str)
            or not item["key"]
            or not item["value"]
        ):
            raise ValidationFailed("Each filter must have a key and value as strings")
    return parsed


async def ensure_category_exists(db: AsyncSession, category_name: str):
    result = await db.execute(select(Category.id).where(Category.name == category_name))
    if not result.first():
        raise InvalidReference("Category name does not exist")


async def name_taken(
    db: AsyncSession,
    wholesaler_id: uuid.UUID,
    product_name: str,
    exclude_id: Optional[uuid.UUID] = None
) -> bool:
    query = select(Product.id).where(
        Product.wholesaler_id == wholesaler_id,
        Product.product_name == product_name
    )
    if exclude_id is not None:
        query = query.where(Product.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def load_product(db: AsyncSession, product_id: uuid.UUID) -> Optional[Product]:
    """Fetch a product with fresh column values and filters"""
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_owned_product(db: AsyncSession, product_id: uuid.UUID, wholesaler_id: uuid.UUID, action: str) -> Product:
    product = await load_product(db, product_id)
    if not product:
        raise NotFound("Product not found")
    if product.wholesaler_id != wholesaler_id:
        logger.warning(f"Wholesaler {wholesaler_id} tried to {action} product {product_id}")
        raise Forbidden(f"Unauthorized: You can only {action} your own products")
    return product


def product_to_dict(product: Product) -> Dict[str, Any]:
    """Convert Product model to dict with string UUIDs"""
    return {
        'id': str(product.id),
        'wholesaler_id': str(product.wholesaler_id),
        'product_name': product.product_name,
        'category_name': product.category_name,
        'product_description': product.product_description,
        'product_image': product.product_image,
        'price_before_gst': product.price_before_gst,
        'gst_category': product.gst_category,
        'gst_percent': product.gst_percent,
        'price_after_gst': product.price_after_gst,
        'price_unit': product.price_unit,
        'last_price_update': product.last_price_update,
        'stock': product.stock,
        'minimum_required': product.minimum_required,
        'filters': [{'key': f.key, 'value': f.value} for f in product.filters],
        'approval_status': product.approval_status,
        'created_at': product.created_at,
        'updated_at': product.updated_at
    }


def price_gap(own_price: float, min_price: float) -> Dict[str, Optional[float]]:
    difference = own_price - min_price
    return {
        'min_price': min_price,
        'price_difference': difference,
        # undefined against a free competing listing
        'percentage_difference': (difference / min_price) * 100 if min_price else None
    }


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


def expiring_price_window(now: datetime) -> Tuple[datetime, datetime]:
    """Prices last updated between 7 and 3 days ago (whole days) are about to expire"""
    return (
        start_of_day(now - timedelta(days=PRICE_VALIDITY_DAYS)),
        end_of_day(now - timedelta(days=PRICE_EXPIRY_WARNING_DAYS))
    )


def expired_price_cutoff(now: datetime) -> datetime:
    return start_of_day(now - timedelta(days=PRICE_VALIDITY_DAYS))


def days_since(moment: datetime, now: datetime) -> int:
    return (now - moment) // timedelta(days=1)


def price_expiry_info(product: Product, now: datetime) -> Dict[str, Any]:
    elapsed = days_since(product.last_price_update, now)
    return {
        'product': product_to_dict(product),
        'last_price_update': product.last_price_update,
        'days_since_update': elapsed,
        'days_remaining': PRICE_VALIDITY_DAYS - elapsed,
        'expiry_date': product.last_price_update + timedelta(days=PRICE_VALIDITY_DAYS)
    }
