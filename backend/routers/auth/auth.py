from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from config import get_db
from models import Account
from .schemas import LoginRequest
from .helpers import (
    auth_helpers,
    verify_phone_otp,
    consume_otp,
    login_flow_for,
    principal_id
)
from utils.errors import Unauthorized, Forbidden, NotFound, Internal
from utils.response_helpers import api_response
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
):
    """Get current user from JWT token. The claims are trusted as the principal."""
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Authentication required")

    current_user = auth_helpers.verify_token(credentials.credentials)
    request.state.current_user = current_user
    return current_user


async def require_active_account(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Account:
    """Re-read the caller's account for mutations that must not run on stale claims"""
    account_id = principal_id(current_user)

    result = await db.execute(select(Account).where(Account.id == account_id))
    account = result.scalar_one_or_none()

    if not account:
        logger.warning(f"Token presented for missing account {account_id}")
        raise Unauthorized("Account no longer exists")

    if not account.is_active:
        logger.warning(f"Inactive account {account_id} attempted a write")
        raise Forbidden("Account is not active")

    if account.role != current_user["role"]:
        raise Forbidden("Account role has changed, please log in again")

    return account


@router.post("/login")
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    try:
        await verify_phone_otp(db, login_data.phone_number, login_data.otp)

        result = await db.execute(
            select(Account).where(Account.phone_number == login_data.phone_number)
        )
        account = result.scalar_one_or_none()

        if not account:
            raise NotFound("User not found")

        if not account.is_phone_verified:
            raise Forbidden("Phone number not verified")

        flow = login_flow_for(account.role)
        data = await flow.complete_login(db, account)
        data["token"] = auth_helpers.create_access_token(account)

        await consume_otp(db, login_data.phone_number)
        await db.commit()

        logger.info(f"{account.role} {account.id} logged in")
        return api_response(
            status.HTTP_200_OK,
            f"{account.role} logged in successfully",
            data
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login failed: {str(e)}")
        await db.rollback()
        raise Internal("Failed to log in")
