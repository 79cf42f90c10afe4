from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from config import (
    JWT_SECRET_KEY,
    JWT_ALGORITHM,
    JWT_ACCESS_TOKEN_EXPIRE_DAYS,
    OTP_EXPIRY_SECONDS
)
from models import Account, PhoneOtp, Role
from routers.wholesalers.helpers import find_profile
from utils.errors import Unauthorized, Forbidden, ValidationFailed, InvalidOtp, OtpExpired, Internal
from utils.response_helpers import account_to_dict, convert_uuids_to_strings
from datetime import datetime, timedelta
from typing import Optional
import secrets
import uuid
import jwt
import logging

logger = logging.getLogger(__name__)


class AuthHelpers:
    """Helper functions for token issuance and verification"""

    def create_access_token(self, account: Account) -> str:
        if not JWT_SECRET_KEY:
            logger.error("JWT_SECRET_KEY is not set, refusing to issue a token")
            raise Internal("Token signing is not configured")

        now = datetime.utcnow()
        payload = {
            "sub": str(account.id),
            "id": str(account.id),
            "name": account.name,
            "phone_number": account.phone_number,
            "email": account.email,
            "role": account.role,
            "is_active": account.is_active,
            "iat": now,
            "exp": now + timedelta(days=JWT_ACCESS_TOKEN_EXPIRE_DAYS),
        }
        return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)

    def verify_token(self, token: str) -> dict:
        """
        Verify JWT token locally and return its claims as the principal
        """
        if not JWT_SECRET_KEY:
            logger.error("JWT_SECRET_KEY is not set, refusing to verify tokens")
            raise Unauthorized("Token verification is not configured")

        try:
            payload = jwt.decode(
                token,
                JWT_SECRET_KEY,
                algorithms=[JWT_ALGORITHM],
                options={
                    "verify_exp": True,
                    "verify_iat": True,
                    "verify_signature": True,
                    "verify_aud": False
                }
            )
        except jwt.ExpiredSignatureError:
            logger.warning("JWT token expired")
            raise Unauthorized("Token expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid JWT token: {str(e)}")
            raise Unauthorized("Invalid token")

        if not payload.get("id") or not payload.get("role"):
            raise Unauthorized("Invalid token: missing user ID or role")

        return payload


auth_helpers = AuthHelpers()


def principal_id(current_user: dict) -> uuid.UUID:
    try:
        return uuid.UUID(str(current_user["id"]))
    except (KeyError, ValueError):
        raise Unauthorized("Invalid token: malformed user ID")


def generate_otp() -> str:
    """Six random digits, never starting with 0"""
    return str(100000 + secrets.randbelow(900000))


def is_otp_expired(issued_at: datetime, now: Optional[datetime] = None) -> bool:
    """An OTP stays valid for OTP_EXPIRY_SECONDS after issue, boundary included"""
    now = now or datetime.utcnow()
    return (now - issued_at).total_seconds() > OTP_EXPIRY_SECONDS


async def verify_phone_otp(
    db: AsyncSession,
    phone_number: str,
    otp: Optional[str],
    now: Optional[datetime] = None
) -> PhoneOtp:
    """
    Check a submitted OTP against the latest one issued for the phone number.
    Missing OTP is a validation error, a wrong OTP is rejected as InvalidOtp
    and an old one as OtpExpired.
    """
    if not otp:
        raise ValidationFailed("Phone number and OTP are required")

    result = await db.execute(
        select(PhoneOtp).where(PhoneOtp.phone_number == phone_number)
    )
    otp_record = result.scalar_one_or_none()

    if not otp_record:
        raise ValidationFailed("OTP not found for this phone number")

    if otp_record.otp != otp:
        logger.warning(f"Invalid OTP submitted for {phone_number}")
        raise InvalidOtp("Invalid OTP")

    if is_otp_expired(otp_record.issued_at, now):
        raise OtpExpired("OTP has expired")

    return otp_record


async def consume_otp(db: AsyncSession, phone_number: str):
    """Delete the OTP record; the caller commits"""
    await db.execute(delete(PhoneOtp).where(PhoneOtp.phone_number == phone_number))


class RetailerOnboarding:
    role = Role.RETAILER

    async def complete_login(self, db: AsyncSession, account: Account) -> dict:
        if not account.is_active:
            raise Forbidden("Retailer account is not active")
        return {"user": account_to_dict(account)}


class WholesalerOnboarding:
    role = Role.WHOLESALER

    async def complete_login(self, db: AsyncSession, account: Account) -> dict:
        if not account.is_active:
            raise Forbidden("Wholesaler account is not active")

        if not account.has_shop_detail:
            raise ValidationFailed("Shop profile not created")

        shop_profile = await find_profile(db, account.id)
        if not shop_profile:
            raise ValidationFailed("Shop profile not found")

        if not shop_profile.is_wholesaler_verified:
            raise Forbidden("Wholesaler not verified by admin")

        return {
            "user": account_to_dict(account),
            "shop_profile": convert_uuids_to_strings(shop_profile)
        }


LOGIN_FLOWS = {
    Role.RETAILER: RetailerOnboarding(),
    Role.WHOLESALER: WholesalerOnboarding(),
}


def login_flow_for(role: str):
    try:
        return LOGIN_FLOWS[Role(role)]
    except ValueError:
        raise Forbidden("Invalid user role")
