from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func, or_
from sqlalchemy.exc import IntegrityError
from pydantic import ValidationError
from config import get_db
from models import Account, Product, ProductFilter, ApprovalStatus, KycStatus
from dependencies.rbac import require_product_access
from routers.auth.auth import require_active_account
from routers.auth.helpers import principal_id
from routers.wholesalers.helpers import find_profile
from utils.errors import ValidationFailed, Forbidden, Conflict, Internal
from utils.response_helpers import api_response, safe_model_validate
from utils.storage import storage_helpers
from .schemas import ProductCreate, ProductUpdate, ProductListResponse
from .helpers import (
    calculate_price_after_gst,
    validation_message,
    parse_json_list,
    ensure_category_exists,
    name_taken,
    load_product,
    get_owned_product,
    product_to_dict,
    price_gap,
    expiring_price_window,
    expired_price_cutoff,
    price_expiry_info
)
from typing import Optional
from datetime import datetime
import uuid
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wholesaler/product", tags=["Products"])


def build_filters(items) -> list:
    return [
        ProductFilter(position=position, key=item.key, value=item.value)
        for position, item in enumerate(items)
    ]


async def list_own_products(db: AsyncSession, wholesaler_id: uuid.UUID, approval_status: str = None):
    query = select(Product).where(Product.wholesaler_id == wholesaler_id)
    if approval_status:
        query = query.where(Product.approval_status == approval_status)
    result = await db.execute(query.order_by(Product.created_at.desc()))
    return [product_to_dict(product) for product in result.scalars().all()]


# =================
# PRODUCT CRUD
# =================

@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_product(
    product_name: Optional[str] = Form(None),
    category_name: Optional[str] = Form(None),
    product_description: Optional[str] = Form(None),
    price_unit: Optional[str] = Form(None),
    price_before_gst: Optional[str] = Form(None),
    gst_category: Optional[str] = Form(None),
    gst_percent: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    minimum_required: Optional[str] = Form(None),
    filters: Optional[str] = Form(None),
    product_image: Optional[UploadFile] = File(None),
    current_user: dict = Depends(require_product_access),
    account: Account = Depends(require_active_account),
    db: AsyncSession = Depends(get_db)
):
    """Create a product. Requires completed KYC; new products wait for admin approval."""
    try:
        raw = {
            "product_name": product_name,
            "category_name": category_name,
            "product_description": product_description,
            "price_unit": price_unit,
            "price_before_gst": price_before_gst,
            "gst_category": gst_category,
            "gst_percent": gst_percent if gst_percent != "" else None,
            "stock": stock,
            "minimum_required": minimum_required,
            "filters": parse_json_list(filters, "filters"),
        }
        try:
            product_data = ProductCreate.model_validate({k: v for k, v in raw.items() if v is not None})
        except ValidationError as e:
            raise ValidationFailed(validation_message(e))

        if product_image is None or not product_image.filename:
            raise ValidationFailed("Product image is required")

        await ensure_category_exists(db, product_data.category_name)

        shop_profile = await find_profile(db, account.id)
        if not shop_profile or shop_profile.kyc_status != KycStatus.COMPLETED.value:
            logger.warning(f"Wholesaler {account.id} tried to create a product without completed KYC")
            raise Forbidden("KYC must be completed to create a product")

        if await name_taken(db, account.id, product_data.product_name):
            raise Conflict("Product already exists")

        image_url = await storage_helpers.upload_file(product_image, f"product-images/{account.id}")

        product = Product(
            wholesaler_id=account.id,
            product_name=product_data.product_name,
            category_name=product_data.category_name,
            product_description=product_data.product_description,
            product_image=image_url,
            price_before_gst=product_data.price_before_gst,
            gst_category=product_data.gst_category,
            gst_percent=product_data.gst_percent,
            price_after_gst=calculate_price_after_gst(
                product_data.price_before_gst,
                product_data.gst_category,
                product_data.gst_percent
            ),
            price_unit=product_data.price_unit,
            last_price_update=datetime.utcnow(),
            stock=product_data.stock,
            minimum_required=product_data.minimum_required,
            approval_status=ApprovalStatus.PENDING.value,
            filters=build_filters(product_data.filters)
        )
        db.add(product)
        await db.commit()

        product = await load_product(db, product.id)
        logger.info(f"Product {product.id} created by wholesaler {account.id}")
        return api_response(status.HTTP_201_CREATED, "Product created successfully", product_to_dict(product))

    except HTTPException:
        raise
    except IntegrityError:
        await db.rollback()
        raise Conflict("Product already exists")
    except Exception as e:
        logger.error(f"Error creating product: {str(e)}")
        await db.rollback()
        raise Internal("Failed to create product")


@router.get("")
async def get_all_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(require_product_access),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's products, newest first"""
    try:
        wholesaler_id = principal_id(current_user)

        total_result = await db.execute(
            select(func.count(Product.id)).where(Product.wholesaler_id == wholesaler_id)
        )
        total = total_result.scalar()

        offset = (page - 1) * limit
        result = await db.execute(
            select(Product)
            .where(Product.wholesaler_id == wholesaler_id)
            .order_by(Product.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        products = [product_to_dict(product) for product in result.scalars().all()]

        return api_response(
            status.HTTP_200_OK,
            "Products retrieved successfully",
            safe_model_validate(ProductListResponse, {
                "products": products,
                "page": page,
                "limit": limit,
                "total": total
            })
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting products: {str(e)}")
        raise Internal("Failed to retrieve products")


@router.get("/pending")
async def get_pending_products(
    current_user: dict = Depends(require_product_access),
    db: AsyncSession = Depends(get_db)
):
    try:
        products = await list_own_products(db, principal_id(current_user), ApprovalStatus.PENDING.value)
        return api_response(status.HTTP_200_OK, "Pending products retrieved successfully", {"products": products})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting pending products: {str(e)}")
        raise Internal("Failed to retrieve pending products")


@router.get("/verified")
async def get_verified_products(
    current_user: dict = Depends(require_product_access),
    db: AsyncSession = Depends(get_db)
):
    try:
        products = await list_own_products(db, principal_id(current_user), ApprovalStatus.VERIFIED.value)
        return api_response(status.HTTP_200_OK, "Verified products retrieved successfully", {"products": products})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting verified products: {str(e)}")
        raise Internal("Failed to retrieve verified products")


@router.get("/rejected")
async def get_rejected_products(
    current_user: dict = Depends(require_product_access),
    db: AsyncSession = Depends(get_db)
):
    try:
        products = await list_own_products(db, principal_id(current_user), ApprovalStatus.REJECTED.value)
        return api_response(status.HTTP_200_OK, "Rejected products retrieved successfully", {"products": products})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting rejected products: {str(e)}")
        raise Internal("Failed to retrieve rejected products")


# =================
# CATALOG INSIGHTS
# =================

@router.get("/out-of-stock")
async def get_out_of_stock_products(
    current_user: dict = Depends(require_product_access),
    db: AsyncSession = Depends(get_db)
):
    """Products whose stock has fallen to or below their minimum required level"""
    try:
        result = await db.execute(
            select(Product).where(
                Product.wholesaler_id == principal_id(current_user),
                Product.stock <= Product.minimum_required
            ).order_by(Product.product_name)
        )
        products = [product_to_dict(product) for product in result.scalars().all()]
        return api_response(
            status.HTTP_200_OK,
            "Out of stock products retrieved successfully",
            {"out_of_stock_products": products, "total_products": len(products)}
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting out of stock products: {str(e)}")
        raise Internal("Failed to retrieve out of stock products")


@router.get("/high-price")
async def get_high_price_products(
    search_query: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(require_product_access),
    db: AsyncSession = Depends(get_db)
):
    """Own products priced above the cheapest same-named listing of another wholesaler"""
    try:
        wholesaler_id = principal_id(current_user)

        query = select(Product).where(Product.wholesaler_id == wholesaler_id)
        if search_query and len(search_query) >= 2:
            pattern = f"%{search_query}%"
            query = query.where(or_(
                Product.product_name.ilike(pattern),
                Product.product_description.ilike(pattern)
            ))
        result = await db.execute(query.order_by(Product.created_at.desc()).limit(limit))
        own_products = result.scalars().all()

        high_price_products = []
        for product in own_products:
            min_result = await db.execute(
                select(func.min(Product.price_before_gst)).where(
                    Product.product_name == product.product_name,
                    Product.wholesaler_id != wholesaler_id
                )
            )
            min_price = min_result.scalar()
            if min_price is None or product.price_before_gst <= min_price:
                continue

            high_price_products.append({
                "product": product_to_dict(product),
                **price_gap(product.price_before_gst, min_price)
            })

        return api_response(
            status.HTTP_200_OK,
            "High price products retrieved successfully",
            {"high_price_products": high_price_products, "total_products": len(high_price_products)}
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting high price products: {str(e)}")
        raise Internal("Failed to retrieve high price products")


@router.get("/expiring-prices")
async def get_expiring_price_products(
    current_user: dict = Depends(require_product_access),
    db: AsyncSession = Depends(get_db)
):
    """Products whose price was last set 3 to 7 days ago"""
    try:
        now = datetime.utcnow()
        window_start, window_end = expiring_price_window(now)

        result = await db.execute(
            select(Product).where(
                Product.wholesaler_id == principal_id(current_user),
                Product.last_price_update >= window_start,
                Product.last_price_update <= window_end
            ).order_by(Product.last_price_update)
        )
        expiring = [price_expiry_info(product, now) for product in result.scalars().all()]
        for item in expiring:
            item.pop("days_since_update")

        return api_response(
            status.HTTP_200_OK,
            "Expiring price products retrieved successfully",
            {"expiring_products": expiring, "total_products": len(expiring)}
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting expiring price products: {str(e)}")
        raise Internal("Failed to retrieve expiring price products")


@router.get("/expired-prices")
async def get_expired_price_products(
    current_user: dict = Depends(require_product_access),
    db: AsyncSession = Depends(get_db)
):
    """Products whose price is older than the validity window"""
    try:
        now = datetime.utcnow()

        result = await db.execute(
            select(Product).where(
                Product.wholesaler_id == principal_id(current_user),
                Product.last_price_update < expired_price_cutoff(now)
            ).order_by(Product.last_price_update)
        )
        expired = [price_expiry_info(product, now) for product in result.scalars().all()]
        for item in expired:
            item.pop("days_remaining")

        return api_response(
            status.HTTP_200_OK,
            "Expired price products retrieved successfully",
            {"expired_products": expired, "total_products": len(expired)}
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting expired price products: {str(e)}")
        raise Internal("Failed to retrieve expired price products")


@router.get("/combined-search")
async def combined_search_and_filter(
    search_query: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    in_stock: Optional[str] = Query(None),
    custom_filters: Optional[str] = Query(None, description='JSON list, e.g. [{"key": "variety", "value": "Alphonso"}]'),
    limit: int = Query(10, ge=1, le=100),
    current_user: dict = Depends(require_product_access),
    db: AsyncSession = Depends(get_db)
):
    try:
        conditions = [Product.wholesaler_id == principal_id(current_user)]

        if search_query and len(search_query) >= 2:
            pattern = f"%{search_query}%"
            conditions.append(or_(
                Product.product_name.ilike(pattern),
                Product.product_description.ilike(pattern),
                Product.category_name.ilike(pattern)
            ))

        if category:
            conditions.append(Product.category_name == category)

        if min_price is not None:
            conditions.append(Product.price_before_gst >= min_price)
        if max_price is not None:
            conditions.append(Product.price_before_gst <= max_price)

        if in_stock == "true":
            conditions.append(Product.stock > 0)
        elif in_stock == "false":
            conditions.append(Product.stock == 0)

        for item in parse_json_list(custom_filters, "custom filters"):
            conditions.append(Product.filters.any(and_(
                ProductFilter.key == item["key"],
                ProductFilter.value == item["value"]
            )))

        total_result = await db.execute(select(func.count(Product.id)).where(*conditions))
        total = total_result.scalar()

        result = await db.execute(
            select(Product)
            .where(*conditions)
            .order_by(Product.created_at.desc())
            .limit(limit)
        )
        products = [product_to_dict(product) for product in result.scalars().all()]

        return api_response(
            status.HTTP_200_OK,
            "Results retrieved",
            {"results": products, "total_results": total, "has_more": total > len(products)}
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error in combined search: {str(e)}")
        raise Internal("Failed to perform search and filter")


@router.put("/{product_id}")
async def update_product(
    product_id: uuid.UUID,
    product_name: Optional[str] = Form(None),
    category_name: Optional[str] = Form(None),
    product_description: Optional[str] = Form(None),
    price_unit: Optional[str] = Form(None),
    price_before_gst: Optional[str] = Form(None),
    gst_category: Optional[str] = Form(None),
    gst_percent: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    minimum_required: Optional[str] = Form(None),
    filters: Optional[str] = Form(None),
    product_image: Optional[UploadFile] = File(None),
    current_user: dict = Depends(require_product_access),
    db: AsyncSession = Depends(get_db)
):
    """Update a product. Price is re-derived whenever price or GST inputs change."""
    try:
        wholesaler_id = principal_id(current_user)
        product = await get_owned_product(db, product_id, wholesaler_id, "update")

        raw = {
            "product_name": product_name or None,
            "category_name": category_name or None,
            "product_description": product_description,
            "price_unit": price_unit or None,
            "price_before_gst": price_before_gst or None,
            "gst_category": gst_category or None,
            "gst_percent": gst_percent or None,
            "stock": stock or None,
            "minimum_required": minimum_required or None,
            "filters": parse_json_list(filters, "filters") if filters else None,
        }
        try:
            updates = ProductUpdate.model_validate({k: v for k, v in raw.items() if v is not None})
        except ValidationError as e:
            raise ValidationFailed(validation_message(e))

        if updates.category_name is not None:
            await ensure_category_exists(db, updates.category_name)
            product.category_name = updates.category_name

        if updates.product_name is not None and updates.product_name != product.product_name:
            if await name_taken(db, wholesaler_id, updates.product_name, exclude_id=product.id):
                raise Conflict("Product already exists")
            product.product_name = updates.product_name

        if updates.product_description is not None:
            product.product_description = updates.product_description
        if updates.price_unit is not None:
            product.price_unit = updates.price_unit
        if updates.stock is not None:
            product.stock = updates.stock
        if updates.minimum_required is not None:
            product.minimum_required = updates.minimum_required
        if updates.filters is not None:
            product.filters = build_filters(updates.filters)

        new_category = updates.gst_category or product.gst_category
        new_percent = updates.gst_percent if updates.gst_percent is not None else product.gst_percent
        if new_category == "exempted":
            new_percent = 0.0
        new_price = updates.price_before_gst if updates.price_before_gst is not None else product.price_before_gst

        if (new_price, new_category, new_percent) != (product.price_before_gst, product.gst_category, product.gst_percent):
            product.price_before_gst = new_price
            product.gst_category = new_category
            product.gst_percent = new_percent
            product.last_price_update = datetime.utcnow()
        product.price_after_gst = calculate_price_after_gst(new_price, new_category, new_percent)

        if product_image is not None and product_image.filename:
            product.product_image = await storage_helpers.upload_file(product_image, f"product-images/{wholesaler_id}")

        await db.commit()

        product = await load_product(db, product_id)
        return api_response(status.HTTP_200_OK, "Product updated successfully", product_to_dict(product))

    except HTTPException:
        raise
    except IntegrityError:
        await db.rollback()
        raise Conflict("Product already exists")
    except Exception as e:
        logger.error(f"Error updating product {product_id}: {str(e)}")
        await db.rollback()
        raise Internal("Failed to update product")


@router.delete("/{product_id}")
async def delete_product(
    product_id: uuid.UUID,
    current_user: dict = Depends(require_product_access),
    db: AsyncSession = Depends(get_db)
):
    try:
        product = await get_owned_product(db, product_id, principal_id(current_user), "delete")

        await db.delete(product)
        await db.commit()

        logger.info(f"Product {product_id} deleted")
        return api_response(status.HTTP_200_OK, "Product deleted successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting product {product_id}: {str(e)}")
        await db.rollback()
        raise Internal("Failed to delete product")
