from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.auth import MessageResponse
from app.schemas.payment import PaymentResponse
from app.services.payment_service import payment_service

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.get("/mine", response_model=List[PaymentResponse])
async def my_payments(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Payment history of the caller, newest first"""
    return await payment_service.get_user_payments(db, current_user.id)


@router.post("/{payment_id}/send-confirmation-email", response_model=MessageResponse)
async def resend_confirmation_email(
    payment_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    sent = await payment_service.resend_confirmation_email(db, payment_id, current_user.id)
    if not sent:
        return MessageResponse(message="Confirmation email could not be sent", success=False)
    return MessageResponse(message="Confirmation email sent")
