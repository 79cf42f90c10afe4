from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from config import get_db
from models import Account, ShopProfile, Product, Category, Role
from dependencies.rbac import require_admin
from routers.auth.helpers import auth_helpers
from routers.products.helpers import load_product, product_to_dict
from routers.wholesalers.helpers import find_profile
from routers.wholesalers.schemas import ShopProfileResponse
from utils.errors import NotFound, Conflict, ValidationFailed, Internal
from utils.response_helpers import api_response, account_to_dict, category_to_dict, safe_model_validate
from .schemas import (
    VerifyWholesalerRequest,
    KycDecision,
    ProductDecision,
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse
)
import uuid
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def category_to_response(category: Category) -> CategoryResponse:
    """Helper function to convert Category model to CategoryResponse"""
    return CategoryResponse.model_validate(category_to_dict(category))


# =================
# VERIFICATION
# =================

@router.post("/verify-wholesaler")
async def verify_wholesaler(
    verify_data: VerifyWholesalerRequest,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_admin)
):
    """Approve a wholesaler: marks the shop verified and activates the account together"""
    try:
        result = await db.execute(
            select(Account).where(
                Account.id == verify_data.wholesaler_id,
                Account.role == Role.WHOLESALER.value
            )
        )
        wholesaler = result.scalar_one_or_none()
        if not wholesaler:
            raise NotFound("Wholesaler not found")

        shop_profile = await find_profile(db, wholesaler.id)
        if not shop_profile:
            raise ValidationFailed("Shop profile not found")

        if shop_profile.is_wholesaler_verified:
            raise Conflict("Wholesaler already verified")

        shop_profile.is_wholesaler_verified = True
        wholesaler.is_active = True
        await db.commit()
        await db.refresh(wholesaler)
        await db.refresh(shop_profile)

        logger.info(f"Wholesaler {wholesaler.id} verified")
        return api_response(
            status.HTTP_200_OK,
            "Wholesaler verified successfully",
            {
                "wholesaler": account_to_dict(wholesaler),
                "shop_profile": safe_model_validate(ShopProfileResponse, shop_profile).model_dump(),
                "token": auth_helpers.create_access_token(wholesaler)
            }
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error verifying wholesaler: {str(e)}")
        await db.rollback()
        raise Internal("Failed to verify wholesaler")


@router.patch("/wholesaler/{wholesaler_id}/kyc-verify")
async def verify_kyc(
    wholesaler_id: uuid.UUID,
    decision: KycDecision,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_admin)
):
    try:
        shop_profile = await find_profile(db, wholesaler_id)
        if not shop_profile:
            raise NotFound("Shop profile not found")

        shop_profile.kyc_status = decision.kyc_status
        await db.commit()
        await db.refresh(shop_profile)

        logger.info(f"KYC for wholesaler {wholesaler_id} marked {decision.kyc_status}")
        return api_response(
            status.HTTP_200_OK,
            f"KYC {decision.kyc_status.lower()} successfully",
            safe_model_validate(ShopProfileResponse, shop_profile)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error verifying KYC: {str(e)}")
        await db.rollback()
        raise Internal("Failed to verify KYC")


@router.patch("/product/{product_id}/verify")
async def verify_product(
    product_id: uuid.UUID,
    decision: ProductDecision,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_admin)
):
    try:
        product = await load_product(db, product_id)
        if not product:
            raise NotFound("Product not found")

        product.approval_status = decision.approval_status
        await db.commit()

        product = await load_product(db, product_id)
        logger.info(f"Product {product_id} marked {decision.approval_status}")
        return api_response(
            status.HTTP_200_OK,
            f"Product {decision.approval_status.lower()} successfully",
            product_to_dict(product)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error verifying product: {str(e)}")
        await db.rollback()
        raise Internal("Failed to verify product")


@router.get("/wholesalers")
async def view_all_wholesalers(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_admin)
):
    """Shop profiles with the owning account's contact details"""
    try:
        total_result = await db.execute(select(func.count(ShopProfile.id)))
        total = total_result.scalar()

        offset = (page - 1) * limit
        result = await db.execute(
            select(ShopProfile, Account)
            .join(Account, Account.id == ShopProfile.wholesaler_id)
            .order_by(ShopProfile.created_at.desc())
            .offset(offset)
            .limit(limit)
        )

        wholesalers = []
        for shop_profile, account in result.all():
            profile = safe_model_validate(ShopProfileResponse, shop_profile).model_dump()
            profile["wholesaler"] = {
                "id": str(account.id),
                "name": account.name,
                "email": account.email,
                "phone_number": account.phone_number,
                "is_active": account.is_active
            }
            wholesalers.append(profile)

        return api_response(
            status.HTTP_200_OK,
            "All wholesalers retrieved successfully",
            {"wholesalers": wholesalers, "page": page, "limit": limit, "total": total}
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing wholesalers: {str(e)}")
        raise Internal("Failed to retrieve wholesalers")


# =================
# CATEGORIES
# =================

@router.post("/category/create", status_code=status.HTTP_201_CREATED)
async def create_category(
    category_data: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_admin)
):
    try:
        result = await db.execute(select(Category).where(Category.name == category_data.name))
        if result.scalar_one_or_none():
            raise Conflict("Category name already exists")

        category = Category(name=category_data.name, description=category_data.description or "")
        db.add(category)
        await db.commit()
        await db.refresh(category)

        return api_response(status.HTTP_201_CREATED, "Category created successfully", category_to_response(category))

    except HTTPException:
        raise
    except IntegrityError:
        await db.rollback()
        raise Conflict("Category name already exists")
    except Exception as e:
        logger.error(f"Error creating category: {str(e)}")
        await db.rollback()
        raise Internal("Failed to create category")


@router.get("/category")
async def get_all_categories(
    db: AsyncSession = Depends(get_db)
):
    """Public: all categories sorted by name"""
    try:
        result = await db.execute(select(Category).order_by(Category.name))
        categories = [category_to_response(category) for category in result.scalars().all()]

        return api_response(
            status.HTTP_200_OK,
            "Categories retrieved successfully",
            {"categories": [category.model_dump(mode="json") for category in categories]}
        )

    except Exception as e:
        logger.error(f"Error getting categories: {str(e)}")
        raise Internal("Failed to retrieve categories")


@router.put("/category/{category_id}")
async def update_category(
    category_id: uuid.UUID,
    category_data: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_admin)
):
    try:
        result = await db.execute(select(Category).where(Category.id == category_id))
        category = result.scalar_one_or_none()
        if not category:
            raise NotFound("Category not found")

        if category_data.name and category_data.name != category.name:
            existing = await db.execute(select(Category.id).where(Category.name == category_data.name))
            if existing.first():
                raise Conflict("Category name already exists")
            category.name = category_data.name

        if category_data.description is not None:
            category.description = category_data.description

        await db.commit()
        await db.refresh(category)

        return api_response(status.HTTP_200_OK, "Category updated successfully", category_to_response(category))

    except HTTPException:
        raise
    except IntegrityError:
        await db.rollback()
        raise Conflict("Category name already exists")
    except Exception as e:
        logger.error(f"Error updating category: {str(e)}")
        await db.rollback()
        raise Internal("Failed to update category")


@router.delete("/category/{category_id}")
async def delete_category(
    category_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_admin)
):
    try:
        result = await db.execute(select(Category).where(Category.id == category_id))
        category = result.scalar_one_or_none()
        if not category:
            raise NotFound("Category not found")

        await db.delete(category)
        await db.commit()

        return api_response(status.HTTP_200_OK, "Category deleted successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting category: {str(e)}")
        await db.rollback()
        raise Internal("Failed to delete category")
