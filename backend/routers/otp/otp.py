from fastapi import APIRouter, Depends, HTTPException, status, BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from config import get_db, ENVIRONMENT
from models import PhoneOtp
from routers.auth.schemas import OtpRequest
from routers.auth.helpers import generate_otp
from utils.errors import Internal
from utils.notifications import send_sms, get_otp_sms
from utils.response_helpers import api_response
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/otp", tags=["OTP"])


@router.post("")
async def send_phone_otp(
    otp_request: OtpRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db)
):
    """Issue a fresh OTP for the phone number, replacing any earlier one"""
    try:
        otp = generate_otp()

        result = await db.execute(
            select(PhoneOtp).where(PhoneOtp.phone_number == otp_request.phone_number)
        )
        otp_record = result.scalar_one_or_none()

        if otp_record:
            otp_record.otp = otp
            otp_record.issued_at = datetime.utcnow()
        else:
            db.add(PhoneOtp(phone_number=otp_request.phone_number, otp=otp))

        await db.commit()

        background_tasks.add_task(send_sms, otp_request.phone_number, get_otp_sms(otp))

        if ENVIRONMENT == "dev":
            logger.info(f"OTP for {otp_request.phone_number}: {otp}")
            return api_response(status.HTTP_200_OK, "OTP sent", {"otp": otp})

        return api_response(status.HTTP_200_OK, "OTP sent")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error sending OTP: {str(e)}")
        await db.rollback()
        raise Internal("Failed to send OTP")
