"""
Admin payment corrections

Payments change after the gateway callback only through these endpoints.
Status and detail edits touch the payment row alone; enrollments are not
created or removed here.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.database import get_db
from app.models.payment import PaymentStatus
from app.models.user import User
from app.modules.auth.dependencies import get_current_admin
from app.schemas.payment import (
    AdminPaymentResponse,
    PaymentDetailsUpdate,
    PaymentListResponse,
    PaymentStatusUpdate,
)
from app.services.payment_service import payment_service

router = APIRouter(prefix="/payments", tags=["Admin - Payments"])


@router.get("", response_model=PaymentListResponse)
async def list_payments(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    status: Optional[PaymentStatus] = Query(None),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    payments, total = await payment_service.list_payments(db, status=status, page=page, page_size=page_size)
    return PaymentListResponse(
        payments=[AdminPaymentResponse.model_validate(p) for p in payments],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.patch("/{payment_id}/status", response_model=AdminPaymentResponse)
async def update_payment_status(
    payment_id: str,
    update: PaymentStatusUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await payment_service.update_payment_status(db, payment_id, update.status)


@router.patch("/{payment_id}", response_model=AdminPaymentResponse)
async def update_payment_details(
    payment_id: str,
    update: PaymentDetailsUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await payment_service.update_payment_details(db, payment_id, update)
