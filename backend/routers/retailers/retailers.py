from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from config import get_db
from models import Account, RetailerProfile, Role
from routers.auth.helpers import auth_helpers, verify_phone_otp, consume_otp
from utils.errors import Forbidden, Conflict, Internal
from utils.response_helpers import api_response, account_to_dict
from .schemas import RetailerSignup
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/retailer", tags=["Retailer"])


@router.post("/auth/signup", status_code=status.HTTP_201_CREATED)
async def signup_retailer(
    signup_data: RetailerSignup,
    db: AsyncSession = Depends(get_db)
):
    try:
        await verify_phone_otp(db, signup_data.phone_number, signup_data.otp)

        result = await db.execute(
            select(Account).where(Account.phone_number == signup_data.phone_number)
        )
        existing_account = result.scalar_one_or_none()

        if existing_account:
            if existing_account.role != Role.RETAILER.value:
                raise Forbidden("Phone number registered with a different role")
            raise Conflict("Retailer already exists")

        result = await db.execute(
            select(Account).where(Account.email == signup_data.email)
        )
        if result.scalar_one_or_none():
            raise Conflict("Email already exists")

        account = Account(
            name=signup_data.name,
            phone_number=signup_data.phone_number,
            email=signup_data.email,
            role=Role.RETAILER.value,
            is_phone_verified=True,
            is_active=True
        )
        db.add(account)
        await db.flush()

        db.add(RetailerProfile(
            retailer_id=account.id,
            name=signup_data.name,
            phone_number=signup_data.phone_number,
            address=signup_data.address
        ))
        await consume_otp(db, signup_data.phone_number)

        await db.commit()
        await db.refresh(account)

        logger.info(f"Retailer {account.id} signed up")
        return api_response(
            status.HTTP_201_CREATED,
            "Retailer signed up successfully",
            {
                "user": account_to_dict(account),
                "token": auth_helpers.create_access_token(account)
            }
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error signing up retailer: {str(e)}")
        await db.rollback()
        raise Internal("Failed to sign up retailer")
