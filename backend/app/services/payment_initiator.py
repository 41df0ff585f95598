"""
Payment Initiator - turns a checkout into a bKash redirect

The amount sent to the gateway is always resolved on the server (pricing
rules plus coupon), never taken from the client. The make-payment answer
is normalized here into ``PaymentRedirect`` or ``PaymentFailure``.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PaymentGatewayError
from app.core.logging_config import logger
from app.models.course import Course
from app.models.payment import PaymentPurpose
from app.models.user import User
from app.models.workshop import Workshop
from app.schemas.payment import MakePaymentRequest
from app.schemas.workshop import CheckoutResponse
from app.services.payment_service import MSG_MIN_AFTER_DISCOUNT, PaymentService, payment_service


MSG_GENERIC_FAILURE = "পেমেন্ট শুরু করা যায়নি! সাপোর্টে যোগাযোগ করুন"
MSG_ENROLLED_FREE = "এনরোলমেন্ট সম্পন্ন হয়েছে"
MSG_ALREADY_ENROLLED = "আপনি ইতিমধ্যে এনরোল করেছেন"


@dataclass(frozen=True)
class PaymentRedirect:
    url: str
    amount: float = 0.0
    discount_amount: float = 0.0


@dataclass(frozen=True)
class PaymentFailure:
    message: str


PaymentResult = Union[PaymentRedirect, PaymentFailure]


def _failure_message(data: Dict[str, Any]) -> str:
    for key in ("statusMessage", "error"):
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
        if isinstance(value, dict) and value.get("statusMessage"):
            return value["statusMessage"]
    return MSG_GENERIC_FAILURE


def parse_gateway_response(data: Any) -> PaymentResult:
    """Normalize a make-payment answer; both the current and the legacy shape redirect"""
    if not isinstance(data, dict):
        return PaymentFailure(MSG_GENERIC_FAILURE)

    if data.get("statusCode") == 200:
        if data.get("url"):
            return PaymentRedirect(url=data["url"])
        nested = data.get("data")
        if isinstance(nested, dict) and nested.get("bkashURL"):
            logger.info("[Payment] make-payment answered with the legacy data.bkashURL shape")
            return PaymentRedirect(url=nested["bkashURL"])

    return PaymentFailure(_failure_message(data))


class PaymentInitiator:
    def __init__(self, payments: Optional[PaymentService] = None):
        self.payments = payments or payment_service

    async def initiate(
        self,
        db: AsyncSession,
        user: User,
        item: Union[Workshop, Course],
        phone: Optional[str] = None,
        coupon_code: Optional[str] = None,
    ) -> PaymentResult:
        purpose = PaymentPurpose.WORKSHOP if isinstance(item, Workshop) else PaymentPurpose.COURSE
        quote = await self.payments.quote(db, item, purpose, coupon_code)

        if quote.final_amount < 1:
            return PaymentFailure(MSG_MIN_AFTER_DISCOUNT)

        request = MakePaymentRequest(
            user_id=str(user.id),
            workshop_id=str(item.id) if purpose == PaymentPurpose.WORKSHOP else None,
            course_id=str(item.id) if purpose == PaymentPurpose.COURSE else None,
            amount=quote.final_amount,
            email=user.email,
            name=user.display_name,
            phone=phone or user.phone,
            coupon_code=coupon_code,
        )
        result = parse_gateway_response(await self.payments.make_payment(db, request))

        if isinstance(result, PaymentRedirect):
            return PaymentRedirect(
                url=result.url,
                amount=quote.final_amount,
                discount_amount=quote.discount_amount,
            )

        logger.warning(f"[Payment] Checkout for user {user.id} failed: {result.message}")
        return result

    async def checkout(
        self,
        db: AsyncSession,
        user: User,
        item: Union[Workshop, Course],
        phone: Optional[str] = None,
        coupon_code: Optional[str] = None,
    ) -> CheckoutResponse:
        """Enroll directly when free, otherwise hand over to bKash"""
        purpose = PaymentPurpose.WORKSHOP if isinstance(item, Workshop) else PaymentPurpose.COURSE
        if await self.payments.is_enrolled(db, user.id, purpose, item.id):
            return CheckoutResponse(status="already_enrolled", message=MSG_ALREADY_ENROLLED)

        if await self.payments.base_price(db, item) == 0:
            await self.payments.enroll_free(db, user, purpose, item)
            return CheckoutResponse(status="enrolled", message=MSG_ENROLLED_FREE)

        result = await self.initiate(db, user, item, phone=phone, coupon_code=coupon_code)
        if isinstance(result, PaymentFailure):
            raise PaymentGatewayError(result.message)

        return CheckoutResponse(
            status="redirect",
            redirect_url=result.url,
            amount=result.amount,
            discount_amount=result.discount_amount,
        )


payment_initiator = PaymentInitiator()
