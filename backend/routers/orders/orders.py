from fastapi import APIRouter, Depends, HTTPException, status, BackgroundTasks, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from config import get_db
from models import Account, Order, OrderItem, Product, RetailerProfile, OrderStatus, PaymentStatus
from dependencies.rbac import require_order_access
from routers.auth.auth import require_active_account
from routers.auth.helpers import principal_id
from utils.errors import InvalidReference, TotalMismatch, InvalidTransition, NotFound, Forbidden, Internal
from utils.notifications import (
    send_email,
    send_sms,
    get_order_placed_email,
    get_order_placed_sms,
    get_order_status_sms
)
from utils.response_helpers import api_response, safe_model_validate, safe_model_validate_list
from .schemas import OrderCreate, OrderStatusUpdate, OrderResponse, OrderListResponse
from .helpers import (
    can_transition,
    price_lines,
    totals_match,
    parse_date_filter,
    load_order,
    present_orders
)
from typing import Optional
import uuid
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wholesaler/order", tags=["Orders"])


async def send_order_notifications(order_data: dict, retailer: RetailerProfile, account: Account, background_tasks: BackgroundTasks, db: AsyncSession):
    """Queue SMS and email to the retailer for a new order"""
    try:
        result = await db.execute(select(Account.email).where(Account.id == retailer.retailer_id))
        retailer_email = result.scalar_one_or_none()

        if retailer.phone_number:
            background_tasks.add_task(send_sms, retailer.phone_number, get_order_placed_sms(order_data))

        if retailer_email:
            subject, body = get_order_placed_email(order_data, account.name)
            background_tasks.add_task(send_email, retailer_email, subject, body)

    except Exception as e:
        logger.error(f"Failed to queue order notifications: {str(e)}")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(require_order_access),
    account: Account = Depends(require_active_account),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an order for a retailer. Every line is priced from the product's
    stored price_after_gst and the declared order_total must match the sum exactly.
    """
    try:
        result = await db.execute(
            select(RetailerProfile).where(RetailerProfile.retailer_id == order_data.retailer_id)
        )
        retailer = result.scalar_one_or_none()
        if not retailer:
            raise InvalidReference("Retailer not found")

        product_ids = {line.product_id for line in order_data.products}
        result = await db.execute(select(Product).where(Product.id.in_(list(product_ids))))
        products = {product.id: product for product in result.scalars().all()}

        for line in order_data.products:
            if line.product_id not in products:
                raise InvalidReference(f"Product {line.product_id} not found")

        line_totals, calculated_total = price_lines(
            (products[line.product_id].price_after_gst, line.quantity)
            for line in order_data.products
        )

        if not totals_match(calculated_total, order_data.order_total):
            raise TotalMismatch(
                f"Order total mismatch: calculated {calculated_total}, received {order_data.order_total}"
            )

        order = Order(
            retailer_id=retailer.retailer_id,
            wholesaler_id=account.id,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=order_data.payment_method,
            delivery_address=order_data.delivery_address,
            delivery_date=order_data.delivery_date,
            vehicle_number=order_data.vehicle_number,
            order_total=calculated_total,
            notes=order_data.notes,
            items=[
                OrderItem(
                    position=position,
                    product_id=line.product_id,
                    product_name=products[line.product_id].product_name,
                    quantity=line.quantity,
                    unit_price=products[line.product_id].price_after_gst,
                    total=line_total
                )
                for position, (line, line_total) in enumerate(zip(order_data.products, line_totals))
            ]
        )
        db.add(order)
        await db.commit()

        order = await load_order(db, order.id)
        presented = (await present_orders(db, [order]))[0]

        logger.info(f"Order {order.id} created by wholesaler {account.id} for retailer {retailer.retailer_id}")
        await send_order_notifications(presented, retailer, account, background_tasks, db)

        return api_response(
            status.HTTP_201_CREATED,
            "Order created successfully",
            safe_model_validate(OrderResponse, presented)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating order: {str(e)}")
        await db.rollback()
        raise Internal("Failed to create order")


@router.get("")
async def get_all_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(require_order_access),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's orders, newest first"""
    try:
        wholesaler_id = principal_id(current_user)

        total_result = await db.execute(
            select(func.count(Order.id)).where(Order.wholesaler_id == wholesaler_id)
        )
        total = total_result.scalar()

        offset = (page - 1) * limit
        result = await db.execute(
            select(Order)
            .where(Order.wholesaler_id == wholesaler_id)
            .order_by(Order.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        orders = await present_orders(db, list(result.scalars().all()))

        return api_response(
            status.HTTP_200_OK,
            "Orders retrieved successfully",
            safe_model_validate(OrderListResponse, {
                "orders": orders,
                "page": page,
                "limit": limit,
                "total": total
            })
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting orders: {str(e)}")
        raise Internal("Failed to retrieve orders")


@router.get("/search/filter")
async def search_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    retailer_id: Optional[uuid.UUID] = Query(None),
    from_date: Optional[str] = Query(None),
    to_date: Optional[str] = Query(None),
    min_total: Optional[float] = Query(None, ge=0),
    max_total: Optional[float] = Query(None, ge=0),
    payment_method: Optional[str] = Query(None),
    vehicle_number: Optional[str] = Query(None),
    current_user: dict = Depends(require_order_access),
    db: AsyncSession = Depends(get_db)
):
    """Search the caller's orders; all supplied filters must match"""
    try:
        conditions = [Order.wholesaler_id == principal_id(current_user)]

        if status_filter:
            conditions.append(func.lower(Order.status) == status_filter.lower())
        if retailer_id:
            conditions.append(Order.retailer_id == retailer_id)

        created_from = parse_date_filter(from_date)
        if created_from:
            conditions.append(Order.created_at >= created_from)
        created_to = parse_date_filter(to_date)
        if created_to:
            conditions.append(Order.created_at <= created_to)

        if min_total is not None:
            conditions.append(Order.order_total >= min_total)
        if max_total is not None:
            conditions.append(Order.order_total <= max_total)

        if payment_method:
            conditions.append(func.lower(Order.payment_method) == payment_method.lower())
        if vehicle_number:
            conditions.append(Order.vehicle_number.ilike(f"%{vehicle_number}%"))

        result = await db.execute(
            select(Order).where(*conditions).order_by(Order.created_at.desc())
        )
        orders = await present_orders(db, list(result.scalars().all()))

        return api_response(
            status.HTTP_200_OK,
            "Orders retrieved successfully",
            {"orders": safe_model_validate_list(OrderResponse, orders)}
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error searching orders: {str(e)}")
        raise Internal("Failed to search orders")


@router.get("/{order_id}")
async def get_order(
    order_id: uuid.UUID,
    current_user: dict = Depends(require_order_access),
    db: AsyncSession = Depends(get_db)
):
    try:
        order = await load_order(db, order_id)
        if not order:
            raise NotFound("Order not found")
        if order.wholesaler_id != principal_id(current_user):
            raise Forbidden("You can only view your own orders")

        presented = (await present_orders(db, [order]))[0]
        return api_response(
            status.HTTP_200_OK,
            "Order retrieved successfully",
            safe_model_validate(OrderResponse, presented)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting order {order_id}: {str(e)}")
        raise Internal("Failed to retrieve order")


@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: uuid.UUID,
    status_update: OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(require_order_access),
    account: Account = Depends(require_active_account),
    db: AsyncSession = Depends(get_db)
):
    """Move an order along confirmed, dispatched and delivered, or end it as cancelled or rejected"""
    try:
        order = await load_order(db, order_id)
        if not order:
            raise NotFound("Order not found")

        if order.wholesaler_id != account.id:
            logger.warning(f"Wholesaler {account.id} tried to update order {order_id}")
            raise Forbidden("You can only update your own orders")

        target_status = status_update.status.strip().lower()
        if not can_transition(order.status, target_status):
            raise InvalidTransition(f"Cannot change order status from {order.status} to {status_update.status}")

        previous_status = order.status
        order.status = target_status
        if status_update.cancellation_reason:
            order.cancellation_reason = status_update.cancellation_reason
        if status_update.notes:
            order.notes = status_update.notes

        await db.commit()

        order = await load_order(db, order_id)
        presented = (await present_orders(db, [order]))[0]

        logger.info(f"Order {order_id} moved from {previous_status} to {target_status}")
        retailer = presented.get("retailer")
        if retailer and retailer.get("phone_number"):
            background_tasks.add_task(
                send_sms,
                retailer["phone_number"],
                get_order_status_sms(order.id, target_status, order.cancellation_reason)
            )

        return api_response(
            status.HTTP_200_OK,
            "Order status updated successfully",
            safe_model_validate(OrderResponse, presented)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating order {order_id} status: {str(e)}")
        await db.rollback()
        raise Internal("Failed to update order status")
