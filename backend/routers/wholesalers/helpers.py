from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models import Account, ShopProfile, Role, KycStatus
from utils.errors import NotFound, Forbidden, Conflict
from typing import Optional, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)


async def find_profile(db: AsyncSession, wholesaler_id: uuid.UUID) -> Optional[ShopProfile]:
    result = await db.execute(
        select(ShopProfile).where(ShopProfile.wholesaler_id == wholesaler_id)
    )
    return result.scalar_one_or_none()


async def load_kyc_target(db: AsyncSession, wholesaler_id: uuid.UUID) -> Tuple[Account, ShopProfile]:
    """
    Resolve the wholesaler and shop profile a KYC step writes to.
    A submitted profile can only be edited again once an admin rejects it.
    """
    result = await db.execute(
        select(Account).where(
            Account.id == wholesaler_id,
            Account.role == Role.WHOLESALER.value
        )
    )
    wholesaler = result.scalar_one_or_none()

    if not wholesaler:
        raise NotFound("Wholesaler not found")

    if not wholesaler.is_phone_verified:
        raise Forbidden("Phone number not verified")

    shop_profile = await find_profile(db, wholesaler_id)

    if wholesaler.has_shop_detail and (
        shop_profile is None or shop_profile.kyc_status != KycStatus.REJECTED.value
    ):
        raise Conflict("Shop profile already created")

    if shop_profile is None:
        shop_profile = ShopProfile(wholesaler_id=wholesaler_id, phone_number=wholesaler.phone_number)
        db.add(shop_profile)
        await db.flush()

    return wholesaler, shop_profile


async def ensure_gst_available(db: AsyncSession, gst_number: str, wholesaler_id: uuid.UUID):
    result = await db.execute(
        select(ShopProfile.id).where(
            ShopProfile.gst_number == gst_number,
            ShopProfile.wholesaler_id != wholesaler_id
        )
    )
    if result.first():
        raise Conflict("GST number already exists")


def has_business_details(shop_profile: ShopProfile) -> bool:
    return bool(shop_profile.business_name and shop_profile.gst_number and shop_profile.apmc_region)


def has_kyc_documents(shop_profile: ShopProfile) -> bool:
    return bool(shop_profile.business_certificate and shop_profile.id_proof)
