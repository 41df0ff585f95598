"""
bKash API - make-payment, the gateway callback and token refresh

Responses keep the bKash-style ``statusCode``/``statusMessage`` envelope
the storefront already consumes.
"""

import asyncio
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import PaymentGatewayError
from app.core.logging_config import logger
from app.core.rate_limiter import payment_rate_limit
from app.models.payment import PaymentPurpose
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.payment import BkashCallbackRequest, MakePaymentRequest
from app.services.bkash_client import bkash_client
from app.services.payment_service import (
    OUTCOME_ALREADY_PROCESSED,
    OUTCOME_FAILED,
    OUTCOME_NOT_FOUND,
    OUTCOME_SUCCESSFUL,
    payment_service,
)

router = APIRouter(prefix="/bkash", tags=["bKash"])

_refresh_tasks: set[asyncio.Task] = set()


async def _refresh_token_quietly() -> None:
    try:
        await bkash_client.get_id_token(force_refresh=True)
    except PaymentGatewayError as e:
        logger.error(f"[bKash] Background token refresh failed: {e.message}")


def _start_token_refresh() -> None:
    task = asyncio.create_task(_refresh_token_quietly())
    _refresh_tasks.add(task)
    task.add_done_callback(_refresh_tasks.discard)


@router.post("/make-payment")
@payment_rate_limit()
async def make_payment(
    request: Request,
    payload: MakePaymentRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Open a bKash checkout for the caller; the amount must equal the resolved price"""
    if payload.user_id and str(payload.user_id) != str(current_user.id):
        return {"statusCode": 403, "statusMessage": "Cannot create a payment for another user"}
    return await payment_service.make_payment(db, payload)


@router.post("/callback")
async def callback(payload: BkashCallbackRequest, db: AsyncSession = Depends(get_db)):
    result = await payment_service.handle_callback(db, payload.paymentID, payload.status)

    if result.outcome == OUTCOME_NOT_FOUND:
        return {"statusCode": 404, "statusMessage": "Payment record not found"}

    if result.outcome in (OUTCOME_SUCCESSFUL, OUTCOME_ALREADY_PROCESSED):
        return {
            "statusCode": 200,
            "statusMessage": (
                "Payment processed successfully"
                if result.outcome == OUTCOME_SUCCESSFUL
                else "Payment already processed"
            ),
            "paymentID": payload.paymentID,
            "transactionStatus": "Completed",
        }

    if result.outcome == OUTCOME_FAILED and payload.status == "success":
        return {
            "statusCode": 400,
            "statusMessage": "Payment execution failed",
            "error": result.gateway_response,
        }

    if result.outcome == OUTCOME_FAILED:
        return {"statusCode": 200, "statusMessage": f"Payment {payload.status}", "paymentID": payload.paymentID}

    return {
        "statusCode": 200,
        "statusMessage": "Callback processed",
        "paymentID": payload.paymentID,
        "status": payload.status,
    }


@router.get("/callback")
async def callback_redirect(
    paymentID: Optional[str] = None,
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
):
    """Browser return from bKash; lands on the success page only if the payment really went through"""
    if not paymentID:
        return RedirectResponse(settings.get_site_url("/dashboard/payments"))

    result = await payment_service.handle_callback(db, paymentID, status)

    suffix = ""
    if result.payment is not None and result.payment.purpose == PaymentPurpose.WORKSHOP:
        suffix = "&type=workshop"

    if result.is_successful:
        return RedirectResponse(settings.get_site_url(f"/success?paymentID={paymentID}{suffix}"))
    if status in ("success", "failure", "cancel"):
        return RedirectResponse(settings.get_site_url(f"/cancel?paymentID={paymentID}{suffix}"))
    return RedirectResponse(settings.get_site_url("/dashboard/payments"))


@router.post("/refresh-token")
async def refresh_token():
    _start_token_refresh()
    return {"statusCode": 200, "statusMessage": "Token refresh initiated in background"}


@router.get("/cron/refresh-token")
async def cron_refresh_token(secret: Optional[str] = Query(None)):
    """Scheduled refresh; guarded by CRON_SECRET when one is configured"""
    if settings.CRON_SECRET and secret != settings.CRON_SECRET:
        return JSONResponse(
            status_code=401,
            content={"statusCode": 401, "statusMessage": "Unauthorized"},
        )

    _start_token_refresh()
    return {
        "statusCode": 200,
        "statusMessage": "Token refresh initiated in background",
        "timestamp": datetime.utcnow().isoformat(),
    }
