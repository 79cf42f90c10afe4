from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from config import get_db
from models import Account, ShopProfile, Role, KycStatus
from routers.auth.helpers import verify_phone_otp, consume_otp
from utils.errors import Forbidden, Conflict, ValidationFailed, Internal
from utils.response_helpers import api_response, account_to_dict, safe_model_validate
from utils.storage import storage_helpers, DOCUMENT_TYPES
from .schemas import WholesalerSignup, KycProfileRequest, KycAccountRequest, ShopProfileResponse
from .helpers import (
    find_profile,
    load_kyc_target,
    ensure_gst_available,
    has_business_details,
    has_kyc_documents
)
from typing import Optional
import uuid
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wholesaler", tags=["Wholesaler Onboarding"])


@router.post("/auth/signup", status_code=status.HTTP_201_CREATED)
async def signup_wholesaler(
    signup_data: WholesalerSignup,
    db: AsyncSession = Depends(get_db)
):
    try:
        await verify_phone_otp(db, signup_data.phone_number, signup_data.otp)

        result = await db.execute(
            select(Account).where(Account.phone_number == signup_data.phone_number)
        )
        wholesaler = result.scalar_one_or_none()

        if wholesaler:
            if wholesaler.role != Role.WHOLESALER.value:
                raise Forbidden("Phone number registered with a different role")
            if wholesaler.has_shop_detail:
                raise Conflict("Wholesaler already exists with profile")

            if not await find_profile(db, wholesaler.id):
                db.add(ShopProfile(wholesaler_id=wholesaler.id, phone_number=wholesaler.phone_number))
            await consume_otp(db, signup_data.phone_number)
            await db.commit()

            return api_response(
                status.HTTP_200_OK,
                "Wholesaler profile not created, please create profile",
                {"wholesaler_id": str(wholesaler.id)}
            )

        wholesaler = Account(
            phone_number=signup_data.phone_number,
            role=Role.WHOLESALER.value,
            is_phone_verified=True,
            is_active=False
        )
        db.add(wholesaler)
        await db.flush()

        db.add(ShopProfile(wholesaler_id=wholesaler.id, phone_number=wholesaler.phone_number))
        await consume_otp(db, signup_data.phone_number)

        await db.commit()
        await db.refresh(wholesaler)

        logger.info(f"Wholesaler {wholesaler.id} signed up")
        return api_response(
            status.HTTP_201_CREATED,
            "Wholesaler signed up successfully, please create shop profile",
            {"wholesaler": account_to_dict(wholesaler), "wholesaler_id": str(wholesaler.id)}
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error signing up wholesaler: {str(e)}")
        await db.rollback()
        raise Internal("Failed to sign up wholesaler")


@router.post("/auth/kyc/profile")
async def submit_kyc_profile(
    profile_data: KycProfileRequest,
    db: AsyncSession = Depends(get_db)
):
    """KYC step 1: business identity, hours and location"""
    try:
        wholesaler, shop_profile = await load_kyc_target(db, profile_data.wholesaler_id)
        await ensure_gst_available(db, profile_data.gst_number, wholesaler.id)

        shop_profile.full_name = profile_data.full_name
        shop_profile.email = profile_data.email
        shop_profile.business_name = profile_data.business_name
        shop_profile.business_type = profile_data.business_type
        shop_profile.gst_number = profile_data.gst_number
        shop_profile.apmc_region = profile_data.apmc_region
        shop_profile.business_hours = profile_data.business_hours.model_dump()
        if profile_data.business_address:
            shop_profile.business_address = profile_data.business_address.model_dump()
        if profile_data.location:
            shop_profile.location = profile_data.location.model_dump()

        if not wholesaler.name:
            wholesaler.name = profile_data.full_name

        await db.commit()
        await db.refresh(shop_profile)

        return api_response(
            status.HTTP_200_OK,
            "Business profile saved, please upload KYC documents",
            safe_model_validate(ShopProfileResponse, shop_profile)
        )

    except HTTPException:
        raise
    except IntegrityError:
        await db.rollback()
        raise Conflict("GST number already exists")
    except Exception as e:
        logger.error(f"Error saving KYC profile: {str(e)}")
        await db.rollback()
        raise Internal("Failed to save business profile")


@router.post("/auth/kyc/documents")
async def submit_kyc_documents(
    wholesaler_id: uuid.UUID = Form(...),
    business_certificate: UploadFile = File(...),
    id_proof: UploadFile = File(...),
    business_registration: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db)
):
    """KYC step 2: business certificate, id proof and optional registration (image or PDF)"""
    try:
        wholesaler, shop_profile = await load_kyc_target(db, wholesaler_id)

        if not has_business_details(shop_profile):
            raise ValidationFailed("Complete the business profile step first")

        folder = f"kyc/{wholesaler.id}"
        shop_profile.business_certificate = await storage_helpers.upload_file(
            business_certificate, f"{folder}/business-certificates", DOCUMENT_TYPES
        )
        shop_profile.id_proof = await storage_helpers.upload_file(
            id_proof, f"{folder}/id-proofs", DOCUMENT_TYPES
        )
        if business_registration is not None and business_registration.filename:
            shop_profile.business_registration = await storage_helpers.upload_file(
                business_registration, f"{folder}/business-registrations", DOCUMENT_TYPES
            )

        await db.commit()
        await db.refresh(shop_profile)

        return api_response(
            status.HTTP_200_OK,
            "KYC documents uploaded, please add payout account details",
            safe_model_validate(ShopProfileResponse, shop_profile)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error uploading KYC documents: {str(e)}")
        await db.rollback()
        raise Internal("Failed to upload KYC documents")


@router.post("/auth/kyc/account", status_code=status.HTTP_201_CREATED)
async def submit_kyc_account(
    account_data: KycAccountRequest,
    db: AsyncSession = Depends(get_db)
):
    """KYC step 3: payout details. Completes the shop profile and queues it for admin review."""
    try:
        wholesaler, shop_profile = await load_kyc_target(db, account_data.wholesaler_id)

        if not has_kyc_documents(shop_profile):
            raise ValidationFailed("Upload KYC documents first")

        if account_data.upi_id:
            shop_profile.upi_id = account_data.upi_id
            shop_profile.account_holder_name = None
            shop_profile.account_number = None
            shop_profile.ifsc_code = None
            shop_profile.bank_name = None
        else:
            shop_profile.upi_id = None
            shop_profile.account_holder_name = account_data.account_holder_name
            shop_profile.account_number = account_data.account_number
            shop_profile.ifsc_code = account_data.ifsc_code
            shop_profile.bank_name = account_data.bank_name

        shop_profile.kyc_status = KycStatus.PENDING.value
        wholesaler.has_shop_detail = True

        await db.commit()
        await db.refresh(shop_profile)

        logger.info(f"Wholesaler {wholesaler.id} submitted KYC for review")
        return api_response(
            status.HTTP_201_CREATED,
            "KYC verification and shop profile updated successfully, awaiting admin verification",
            safe_model_validate(ShopProfileResponse, shop_profile)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error saving KYC account details: {str(e)}")
        await db.rollback()
        raise Internal("Failed to update KYC verification and shop profile")
