from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models import Order, Product, RetailerProfile, OrderStatus
from typing import Any, Dict, Iterable, List, Optional, Tuple
from datetime import datetime
import uuid
import logging

logger = logging.getLogger(__name__)

ORDER_STATUS_TRANSITIONS = {
    OrderStatus.PENDING.value: {
        OrderStatus.CONFIRMED.value,
        OrderStatus.REJECTED.value,
        OrderStatus.CANCELLED.value,
    },
    OrderStatus.CONFIRMED.value: {
        OrderStatus.DISPATCHED.value,
        OrderStatus.CANCELLED.value,
    },
    OrderStatus.DISPATCHED.value: {
        OrderStatus.DELIVERED.value,
        OrderStatus.CANCELLED.value,
    },
    OrderStatus.DELIVERED.value: set(),
    OrderStatus.CANCELLED.value: set(),
    OrderStatus.REJECTED.value: set(),
}

# Targets a wholesaler may request; orders are only ever created as pending
UPDATABLE_STATUSES = {
    OrderStatus.CONFIRMED.value,
    OrderStatus.DISPATCHED.value,
    OrderStatus.DELIVERED.value,
    OrderStatus.CANCELLED.value,
    OrderStatus.REJECTED.value,
}


def can_transition(current_status: str, target_status: str) -> bool:
    if target_status not in UPDATABLE_STATUSES:
        return False
    return target_status in ORDER_STATUS_TRANSITIONS.get(current_status, set())


def price_lines(lines: Iterable[Tuple[float, int]]) -> Tuple[List[float], float]:
    """
    Line totals and their running sum for (unit_price, quantity) pairs,
    accumulated in order so the result is reproducible by the client.
    """
    line_totals = []
    calculated_total = 0
    for unit_price, quantity in lines:
        line_total = unit_price * quantity
        line_totals.append(line_total)
        calculated_total += line_total
    return line_totals, calculated_total


def totals_match(calculated_total: float, declared_total: float) -> bool:
    return calculated_total == declared_total


def parse_date_filter(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO date or datetime; unparseable values are ignored"""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.info(f"Ignoring invalid date filter: {value}")
        return None


async def load_order(db: AsyncSession, order_id: uuid.UUID) -> Optional[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def retailer_to_dict(profile: Optional[RetailerProfile]) -> Optional[Dict[str, Any]]:
    if profile is None:
        return None
    return {
        'id': str(profile.retailer_id),
        'name': profile.name,
        'phone_number': profile.phone_number,
        'address': profile.address
    }


def order_to_dict(
    order: Order,
    retailer: Optional[RetailerProfile] = None,
    products: Optional[Dict[uuid.UUID, Product]] = None
) -> Dict[str, Any]:
    """Order with retailer display fields and each line's current product details"""
    products = products or {}
    items = []
    for item in order.items:
        product = products.get(item.product_id)
        items.append({
            'product_id': str(item.product_id) if item.product_id else None,
            'product_name': item.product_name,
            'quantity': item.quantity,
            'unit_price': item.unit_price,
            'total': item.total,
            'product': {
                'product_name': product.product_name,
                'product_image': product.product_image,
                'price_after_gst': product.price_after_gst
            } if product else None
        })

    return {
        'id': str(order.id),
        'retailer_id': str(order.retailer_id),
        'wholesaler_id': str(order.wholesaler_id),
        'retailer': retailer_to_dict(retailer),
        'items': items,
        'status': order.status,
        'payment_status': order.payment_status,
        'payment_method': order.payment_method,
        'delivery_address': order.delivery_address,
        'delivery_date': order.delivery_date,
        'vehicle_number': order.vehicle_number,
        'order_total': order.order_total,
        'notes': order.notes,
        'cancellation_reason': order.cancellation_reason,
        'created_at': order.created_at,
        'updated_at': order.updated_at
    }


async def present_orders(db: AsyncSession, orders: List[Order]) -> List[Dict[str, Any]]:
    """Join orders with retailer profiles and current product details (read only)"""
    if not orders:
        return []

    retailer_ids = {order.retailer_id for order in orders}
    result = await db.execute(
        select(RetailerProfile).where(RetailerProfile.retailer_id.in_(list(retailer_ids)))
    )
    retailers = {profile.retailer_id: profile for profile in result.scalars().all()}

    product_ids = {item.product_id for order in orders for item in order.items if item.product_id}
    products = {}
    if product_ids:
        result = await db.execute(select(Product).where(Product.id.in_(list(product_ids))))
        products = {product.id: product for product in result.scalars().all()}

    return [order_to_dict(order, retailers.get(order.retailer_id), products) for order in orders]
