"""
Payment Service - bKash checkout records and confirmation

Handles:
- Server-side amount resolution (pricing rules plus coupon discount)
- The make-payment handshake with bKash and its wire response
- Gateway callbacks: execute, confirm, enroll, record coupon usage
- Confirmation emails, scheduled only after the payment and the
  enrollment are both committed
- Free enrollments and admin corrections

Confirmation is idempotent per bKash payment id. A payment that is
already ``successful`` is never executed, enrolled or emailed again.
"""

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Union

from sqlalchemy import select, func, update
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    CourseNotFoundError,
    InvalidCouponError,
    PaymentGatewayError,
    PaymentNotFoundError,
    WorkshopNotFoundError,
)
from app.core.logging_config import logger, set_payment_id
from app.models.course import Course, UserCourse
from app.models.payment import Payment, PaymentChannel, PaymentPurpose, PaymentStatus
from app.models.user import User
from app.models.workshop import Workshop, UserWorkshop
from app.schemas.payment import MakePaymentRequest, PaymentDetailsUpdate
from app.services.bkash_client import BkashClient, BKASH_SUCCESS, bkash_client, is_completed
from app.services.coupon_service import CouponQuote, CouponService, coupon_service
from app.services.email_service import (
    EmailService,
    email_service,
    format_workshop_date,
    format_workshop_time,
)
from app.services.pricing_service import PricingService, pricing_service


# bKash-style status codes used on the make-payment wire response
STATUS_OK = 200
STATUS_INVALID_INPUT = 2065
STATUS_NOT_FOUND = 404
STATUS_FAILED = 500

MSG_MIN_AFTER_DISCOUNT = "ডিসকাউন্টের পরিমাণের কারণে পেমেন্টের ন্যূনতম পরিমাণ ১ টাকা হতে হবে"

# Callback outcomes
OUTCOME_SUCCESSFUL = "successful"
OUTCOME_FAILED = "failed"
OUTCOME_ALREADY_PROCESSED = "already_processed"
OUTCOME_NOT_FOUND = "not_found"
OUTCOME_IGNORED = "ignored"

Purchasable = Union[Workshop, Course]


@dataclass
class CallbackResult:
    outcome: str
    payment: Optional[Payment] = None
    gateway_response: Optional[Dict[str, Any]] = None

    @property
    def is_successful(self) -> bool:
        return self.outcome in (OUTCOME_SUCCESSFUL, OUTCOME_ALREADY_PROCESSED)


def generate_order_id() -> str:
    """Short merchant invoice number sent to bKash"""
    return uuid.uuid4().hex[:10]


def _wire(status_code: int, message: str, **extra) -> Dict[str, Any]:
    return {"statusCode": status_code, "statusMessage": message, **extra}


class PaymentService:
    """Payment records and the bKash confirmation pipeline"""

    def __init__(
        self,
        gateway: Optional[BkashClient] = None,
        pricing: Optional[PricingService] = None,
        coupons: Optional[CouponService] = None,
        emails: Optional[EmailService] = None,
    ):
        self.gateway = gateway or bkash_client
        self.pricing = pricing or pricing_service
        self.coupons = coupons or coupon_service
        self.emails = emails or email_service
        self._background_tasks: set[asyncio.Task] = set()

    # ==================== PRICING ====================

    async def get_item(self, db: AsyncSession, purpose: PaymentPurpose, item_id: str) -> Purchasable:
        if purpose == PaymentPurpose.WORKSHOP:
            workshop = await db.get(Workshop, str(item_id))
            if workshop is None:
                raise WorkshopNotFoundError(item_id)
            return workshop
        if purpose == PaymentPurpose.COURSE:
            course = await db.get(Course, str(item_id))
            if course is None:
                raise CourseNotFoundError(item_id)
            return course
        raise ValueError(f"Unsupported payment purpose: {purpose}")

    async def base_price(self, db: AsyncSession, item: Purchasable) -> float:
        """Price before coupons. Workshops fall back to the regular price if pricing fails."""
        if isinstance(item, Workshop):
            pricing, _ = await self.pricing.get_pricing_or_regular(db, item)
            return pricing.current_price
        return item.current_price

    async def quote(
        self,
        db: AsyncSession,
        item: Purchasable,
        purpose: PaymentPurpose,
        coupon_code: Optional[str] = None
    ) -> CouponQuote:
        base = await self.base_price(db, item)
        return await self.coupons.quote(db, coupon_code, purpose, item.id, base)

    # ==================== RECORDS ====================

    async def create_payment_record(
        self,
        db: AsyncSession,
        user_id: str,
        purpose: PaymentPurpose,
        item_id: Optional[str],
        amount: float,
        channel: PaymentChannel = PaymentChannel.BKASH,
        quote: Optional[CouponQuote] = None,
        payer_phone: Optional[str] = None,
    ) -> Payment:
        payment = Payment(
            user_id=user_id,
            purpose=purpose,
            course_id=item_id if purpose == PaymentPurpose.COURSE else None,
            workshop_id=item_id if purpose == PaymentPurpose.WORKSHOP else None,
            amount=amount,
            currency=settings.PAYMENT_CURRENCY,
            payment_channel=channel,
            status=PaymentStatus.PENDING,
            is_verified=False,
            transaction_id=generate_order_id(),
            payer_phone=payer_phone,
        )
        if quote is not None and quote.coupon is not None:
            payment.coupon_id = quote.coupon.id
            payment.coupon_code = quote.coupon.code
            payment.discount_amount = quote.discount_amount

        db.add(payment)
        await db.flush()
        logger.info(f"[Payment] Created {purpose.value} payment {payment.transaction_id} for user {user_id}: {amount:.2f}")
        return payment

    async def find_by_bkash_id(self, db: AsyncSession, bkash_payment_id: str) -> Optional[Payment]:
        result = await db.execute(
            select(Payment).where(Payment.bkash_payment_id == bkash_payment_id)
        )
        return result.scalar_one_or_none()

    async def get_user_payments(self, db: AsyncSession, user_id: str) -> list[Payment]:
        result = await db.execute(
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc())
        )
        return list(result.scalars().all())

    # ==================== MAKE PAYMENT ====================

    async def make_payment(self, db: AsyncSession, request: MakePaymentRequest) -> Dict[str, Any]:
        """
        Open a bKash checkout session.

        Returns the bKash-style wire dict. ``statusCode`` 200 carries
        ``data.bkashURL``; anything else carries ``statusMessage``.
        """
        if not request.amount or not request.email or not request.name or not request.user_id:
            return _wire(STATUS_INVALID_INPUT, "amount, email, name, user_id required")

        if not request.course_id and not request.workshop_id:
            return _wire(STATUS_INVALID_INPUT, "course_id or workshop_id required")

        if request.amount < 1:
            return _wire(STATUS_INVALID_INPUT, "minimum amount 1")

        user = await db.get(User, request.user_id)
        if user is None:
            logger.warning(f"[Payment] make-payment for unknown user {request.user_id}")
            return _wire(STATUS_NOT_FOUND, "User not found")

        if request.course_id:
            purpose, item_id = PaymentPurpose.COURSE, request.course_id
        else:
            purpose, item_id = PaymentPurpose.WORKSHOP, request.workshop_id

        try:
            item = await self.get_item(db, purpose, item_id)
            quote = await self.quote(db, item, purpose, request.coupon_code)
        except (WorkshopNotFoundError, CourseNotFoundError):
            return _wire(STATUS_NOT_FOUND, f"{purpose.value.capitalize()} not found")
        except InvalidCouponError as e:
            return _wire(STATUS_INVALID_INPUT, e.message)

        if quote.final_amount < 1:
            return _wire(STATUS_INVALID_INPUT, MSG_MIN_AFTER_DISCOUNT)

        if abs(quote.final_amount - float(request.amount)) >= 0.01:
            logger.warning(
                f"[Payment] Amount mismatch for {purpose.value} {item_id}: "
                f"client sent {request.amount}, server resolved {quote.final_amount}"
            )
            return _wire(
                STATUS_INVALID_INPUT,
                "amount does not match the current price",
                expectedAmount=quote.final_amount,
            )

        payment = await self.create_payment_record(
            db,
            user_id=user.id,
            purpose=purpose,
            item_id=item.id,
            amount=quote.final_amount,
            quote=quote,
            payer_phone=request.phone,
        )

        try:
            response = await self.gateway.create_payment(
                amount=quote.final_amount,
                payer_reference=request.phone or "user",
                merchant_invoice_number=payment.transaction_id,
                callback_url=settings.get_bkash_callback_url(),
            )
        except PaymentGatewayError as e:
            payment.status = PaymentStatus.FAILED
            await db.commit()
            return _wire(STATUS_FAILED, "Payment Failed", error=e.message)

        payment.gateway_response = response
        if response.get("statusCode") != BKASH_SUCCESS:
            payment.status = PaymentStatus.FAILED
            await db.commit()
            logger.log_payment_event("create", payment_id=payment.transaction_id, status="failed",
                                     gateway_status=response.get("statusCode"))
            return _wire(
                STATUS_FAILED,
                response.get("statusMessage") or "Payment Failed",
                error=response,
            )

        payment.bkash_payment_id = response.get("paymentID")
        payment.bkash_url = response.get("bkashURL")
        await db.commit()

        return _wire(
            STATUS_OK,
            "Payment created successfully",
            url=payment.bkash_url,
            data={
                "paymentID": payment.bkash_payment_id,
                "bkashURL": payment.bkash_url,
                "orderID": payment.transaction_id,
            },
        )

    # ==================== CONFIRMATION ====================

    async def handle_callback(self, db: AsyncSession, bkash_payment_id: str, status: Optional[str]) -> CallbackResult:
        """Apply a gateway callback to the matching payment"""
        set_payment_id(bkash_payment_id)
        payment = await self.find_by_bkash_id(db, bkash_payment_id)
        if payment is None:
            logger.error(f"[Payment] No payment record for bKash payment {bkash_payment_id}")
            return CallbackResult(OUTCOME_NOT_FOUND)

        if payment.status == PaymentStatus.SUCCESSFUL:
            logger.info(f"[Payment] Duplicate callback for {bkash_payment_id}, already successful")
            return CallbackResult(OUTCOME_ALREADY_PROCESSED, payment)

        if status == "success":
            try:
                response = await self.gateway.execute_payment(bkash_payment_id)
            except PaymentGatewayError as e:
                failed = await self.process_failed_payment(db, payment, {"error": e.message})
                return CallbackResult(OUTCOME_FAILED if failed else OUTCOME_ALREADY_PROCESSED, payment)

            if is_completed(response):
                confirmed = await self.process_successful_payment(db, payment, response)
                outcome = OUTCOME_SUCCESSFUL if confirmed else OUTCOME_ALREADY_PROCESSED
                return CallbackResult(outcome, payment, response)

            failed = await self.process_failed_payment(db, payment, response)
            outcome = OUTCOME_FAILED if failed else OUTCOME_ALREADY_PROCESSED
            return CallbackResult(outcome, payment, response)

        if status in ("failure", "cancel"):
            failed = await self.process_failed_payment(db, payment)
            return CallbackResult(OUTCOME_FAILED if failed else OUTCOME_ALREADY_PROCESSED, payment)

        return CallbackResult(OUTCOME_IGNORED, payment)

    async def is_enrolled(self, db: AsyncSession, user_id: str, purpose: PaymentPurpose, item_id: str) -> bool:
        if purpose == PaymentPurpose.WORKSHOP:
            query = select(UserWorkshop.id).where(
                UserWorkshop.user_id == user_id, UserWorkshop.workshop_id == item_id
            )
        else:
            query = select(UserCourse.id).where(
                UserCourse.user_id == user_id, UserCourse.course_id == item_id
            )
        return (await db.execute(query)).scalar_one_or_none() is not None

    async def enroll_user(self, db: AsyncSession, payment: Payment) -> bool:
        """Create the enrollment for a payment; returns False if it already existed"""
        if payment.purpose == PaymentPurpose.WORKSHOP and payment.workshop_id:
            if await self.is_enrolled(db, payment.user_id, payment.purpose, payment.workshop_id):
                return False
            db.add(UserWorkshop(user_id=payment.user_id, workshop_id=payment.workshop_id, payment_id=payment.id))
            return True

        if payment.purpose == PaymentPurpose.COURSE and payment.course_id:
            if await self.is_enrolled(db, payment.user_id, payment.purpose, payment.course_id):
                return False
            db.add(UserCourse(user_id=payment.user_id, course_id=payment.course_id, payment_id=payment.id))
            return True

        return False

    async def process_successful_payment(
        self,
        db: AsyncSession,
        payment: Payment,
        execute_response: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Mark a payment successful, enroll the buyer, record coupon usage.

        Returns True only for the call that performed the transition; the
        confirmation email is scheduled by that call alone.
        """
        await db.refresh(payment)
        if payment.status == PaymentStatus.SUCCESSFUL:
            return False

        bkash_payment_id = payment.bkash_payment_id
        payment.status = PaymentStatus.SUCCESSFUL
        payment.is_verified = True
        payment.paid_at = datetime.utcnow()
        if execute_response:
            payment.trx_id = execute_response.get("trxID") or payment.trx_id
            payment.gateway_response = execute_response

        try:
            await self.enroll_user(db, payment)
            await self.coupons.record_usage(db, payment)
            await db.commit()
        except IntegrityError:
            # A concurrent request committed first. A payment flushed in this
            # transaction (free enrollment) is gone after the rollback.
            await db.rollback()
            if sa_inspect(payment).persistent:
                await db.refresh(payment)
            logger.warning(f"[Payment] Concurrent confirmation of {bkash_payment_id}, skipping")
            return False

        logger.log_payment_event(
            "confirmed",
            payment_id=payment.bkash_payment_id,
            amount=float(payment.amount),
            status=PaymentStatus.SUCCESSFUL.value,
            purpose=payment.purpose.value,
        )

        email = await self.prepare_confirmation_email(db, payment)
        if email is not None:
            self.schedule_confirmation_email(*email)
        return True

    async def process_failed_payment(
        self,
        db: AsyncSession,
        payment: Payment,
        gateway_response: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Mark a payment failed; a successful payment is left untouched.

        The status guard runs in the UPDATE itself, so a concurrent callback
        that already committed the success wins over this session's stale copy.
        Returns False when the row was not downgraded.
        """
        values = {"status": PaymentStatus.FAILED, "updated_at": datetime.utcnow()}
        if gateway_response is not None:
            values["gateway_response"] = gateway_response
        result = await db.execute(
            update(Payment)
            .where(Payment.id == payment.id, Payment.status != PaymentStatus.SUCCESSFUL)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        await db.refresh(payment)
        if result.rowcount == 0:
            logger.warning(
                f"[Payment] Not failing {payment.bkash_payment_id}: already {payment.status.value}"
            )
            return False
        logger.log_payment_event(
            "failed",
            payment_id=payment.bkash_payment_id,
            amount=float(payment.amount),
            status=PaymentStatus.FAILED.value,
        )
        return True

    async def enroll_free(self, db: AsyncSession, user: User, purpose: PaymentPurpose, item: Purchasable) -> Payment:
        """Enroll directly into a free workshop or course, recording a zero payment"""
        payment = await self.create_payment_record(
            db,
            user_id=user.id,
            purpose=purpose,
            item_id=item.id,
            amount=0,
            channel=PaymentChannel.FREE,
        )
        await self.process_successful_payment(db, payment)
        return payment

    # ==================== EMAIL ====================

    async def prepare_confirmation_email(self, db: AsyncSession, payment: Payment) -> Optional[Tuple[str, Dict[str, Any]]]:
        """Template name and arguments for a payment's confirmation email"""
        user = await db.get(User, payment.user_id)
        if user is None:
            return None

        if payment.purpose == PaymentPurpose.WORKSHOP and payment.workshop_id:
            workshop = await db.get(Workshop, payment.workshop_id)
            if workshop is None:
                return None
            return "workshop", {
                "full_name": user.display_name,
                "email": user.email,
                "workshop_title": workshop.title,
                "workshop_date": format_workshop_date(workshop.start_time),
                "workshop_time": format_workshop_time(workshop.start_time, workshop.end_time),
                "speaker_name": workshop.speaker_name or "TBA",
                "amount": float(payment.amount),
                "group_link": workshop.group_link,
            }

        if payment.purpose == PaymentPurpose.COURSE and payment.course_id:
            course = await db.get(Course, payment.course_id)
            if course is None:
                return None
            return "course", {
                "full_name": user.display_name,
                "email": user.email,
                "course_title": course.title,
                "course_type": course.type.value,
                "course_duration": course.duration or "N/A",
                "amount": float(payment.amount),
            }

        return None

    async def send_confirmation_email(self, kind: str, kwargs: Dict[str, Any]) -> bool:
        if kind == "workshop":
            return await self.emails.send_workshop_payment_confirmation(**kwargs)
        if kind == "course":
            return await self.emails.send_course_payment_confirmation(**kwargs)
        raise ValueError(f"Unknown confirmation email: {kind}")

    def schedule_confirmation_email(self, kind: str, kwargs: Dict[str, Any]) -> asyncio.Task:
        """Send in the background so the send gate never delays the callback"""
        task = asyncio.create_task(self.send_confirmation_email(kind, kwargs))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def resend_confirmation_email(self, db: AsyncSession, payment_id: str, user_id: str) -> bool:
        payment = await db.get(Payment, payment_id)
        if payment is None or str(payment.user_id) != str(user_id):
            raise PaymentNotFoundError(payment_id)
        if payment.status != PaymentStatus.SUCCESSFUL:
            return False
        email = await self.prepare_confirmation_email(db, payment)
        if email is None:
            return False
        return await self.send_confirmation_email(*email)

    # ==================== ADMIN ====================

    async def list_payments(
        self,
        db: AsyncSession,
        status: Optional[PaymentStatus] = None,
        page: int = 1,
        page_size: int = 50
    ) -> Tuple[list[Payment], int]:
        query = select(Payment)
        count_query = select(func.count(Payment.id))
        if status is not None:
            query = query.where(Payment.status == status)
            count_query = count_query.where(Payment.status == status)

        total = (await db.execute(count_query)).scalar() or 0
        result = await db.execute(
            query.order_by(Payment.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def update_payment_status(self, db: AsyncSession, payment_id: str, status: PaymentStatus) -> Payment:
        payment = await db.get(Payment, payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        previous = payment.status
        payment.status = status
        await db.commit()
        logger.info(f"[Payment/Admin] {payment.transaction_id}: {previous.value} -> {status.value}")
        return payment

    async def update_payment_details(self, db: AsyncSession, payment_id: str, data: PaymentDetailsUpdate) -> Payment:
        payment = await db.get(Payment, payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(payment, field, value)
        await db.commit()
        logger.info(f"[Payment/Admin] Updated {payment.transaction_id}: {', '.join(changes) or 'no changes'}")
        return payment


payment_service = PaymentService()
