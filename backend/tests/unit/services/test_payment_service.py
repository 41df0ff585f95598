"""
Unit Tests for the bKash payment pipeline
Tests for: make-payment validation, callback confirmation, idempotency, admin corrections
"""
import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy import select, func

from app.core.exceptions import PaymentGatewayError, PaymentNotFoundError
from app.models.coupon import Coupon, CouponUsage, DiscountType
from app.models.course import UserCourse
from app.models.payment import Payment, PaymentChannel, PaymentPurpose, PaymentStatus
from app.models.workshop import UserWorkshop
from app.schemas.payment import MakePaymentRequest, PaymentDetailsUpdate
from app.services.email_service import EmailService
from app.services.payment_service import (
    MSG_MIN_AFTER_DISCOUNT,
    OUTCOME_ALREADY_PROCESSED,
    OUTCOME_FAILED,
    OUTCOME_IGNORED,
    OUTCOME_NOT_FOUND,
    OUTCOME_SUCCESSFUL,
    STATUS_FAILED,
    STATUS_INVALID_INPUT,
    STATUS_NOT_FOUND,
    STATUS_OK,
    PaymentService,
)
from app.services.send_gate import SendGate
from conftest import TestSessionLocal
from mocks.fakes import FakeClock, FakeGateway, FakeTransport


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def service(transport):
    emails = EmailService(transport=transport, gate=SendGate(0, FakeClock()))
    return PaymentService(gateway=FakeGateway(), emails=emails)


def request_for(user, workshop=None, course=None, **overrides) -> MakePaymentRequest:
    fields = {
        "user_id": str(user.id),
        "workshop_id": str(workshop.id) if workshop else None,
        "course_id": str(course.id) if course else None,
        "amount": 150,
        "email": user.email,
        "name": user.name,
        "phone": "+8801711000000",
    }
    fields.update(overrides)
    return MakePaymentRequest(**fields)


async def count(db, column) -> int:
    return (await db.execute(select(func.count(column)))).scalar()


class TestMakePayment:
    """Input checks and the create handshake"""

    async def test_missing_fields(self, service, db_session, test_user, workshop):
        response = await service.make_payment(db_session, request_for(test_user, workshop, email=None))

        assert response["statusCode"] == STATUS_INVALID_INPUT
        assert service.gateway.create_calls == []

    async def test_missing_item(self, service, db_session, test_user):
        response = await service.make_payment(db_session, request_for(test_user))

        assert response["statusCode"] == STATUS_INVALID_INPUT

    async def test_amount_below_one(self, service, db_session, test_user, workshop):
        response = await service.make_payment(db_session, request_for(test_user, workshop, amount=0.5))

        assert response["statusCode"] == STATUS_INVALID_INPUT
        assert response["statusMessage"] == "minimum amount 1"

    async def test_unknown_user(self, service, db_session, test_user, workshop):
        response = await service.make_payment(
            db_session, request_for(test_user, workshop, user_id="00000000-0000-0000-0000-000000000000")
        )

        assert response == {"statusCode": STATUS_NOT_FOUND, "statusMessage": "User not found"}

    async def test_unknown_workshop(self, service, db_session, test_user):
        response = await service.make_payment(
            db_session, request_for(test_user, workshop_id="00000000-0000-0000-0000-000000000000")
        )

        assert response["statusCode"] == STATUS_NOT_FOUND
        assert response["statusMessage"] == "Workshop not found"

    async def test_amount_must_match_resolved_price(self, service, db_session, test_user, workshop):
        response = await service.make_payment(db_session, request_for(test_user, workshop, amount=200))

        assert response["statusCode"] == STATUS_INVALID_INPUT
        assert response["expectedAmount"] == 150
        assert service.gateway.create_calls == []
        assert await count(db_session, Payment.id) == 0

    async def test_success_returns_redirect(self, service, db_session, test_user, workshop):
        response = await service.make_payment(db_session, request_for(test_user, workshop))

        assert response["statusCode"] == STATUS_OK
        assert response["url"] == response["data"]["bkashURL"]
        assert response["data"]["paymentID"] == service.gateway.payment_id

        payment = await service.find_by_bkash_id(db_session, service.gateway.payment_id)
        assert payment.status == PaymentStatus.PENDING
        assert payment.amount == 150
        assert payment.workshop_id == workshop.id
        assert payment.course_id is None
        assert response["data"]["orderID"] == payment.transaction_id

        call = service.gateway.create_calls[0]
        assert call["amount"] == 150
        assert call["merchant_invoice_number"] == payment.transaction_id
        assert call["callback_url"].endswith("/api/v1/bkash/callback")

    async def test_course_payment(self, service, db_session, test_user, course):
        response = await service.make_payment(db_session, request_for(test_user, course=course, amount=999))

        assert response["statusCode"] == STATUS_OK
        payment = await service.find_by_bkash_id(db_session, service.gateway.payment_id)
        assert payment.purpose == PaymentPurpose.COURSE
        assert payment.workshop_id is None

    async def test_gateway_rejection_marks_failed(self, service, db_session, test_user, workshop):
        service.gateway.create_response = {"statusCode": "2023", "statusMessage": "Insufficient Balance"}

        response = await service.make_payment(db_session, request_for(test_user, workshop))

        assert response["statusCode"] == STATUS_FAILED
        assert response["statusMessage"] == "Insufficient Balance"
        payment = (await db_session.execute(select(Payment))).scalar_one()
        assert payment.status == PaymentStatus.FAILED

    async def test_gateway_unreachable(self, service, db_session, test_user, workshop):
        service.gateway.create_error = PaymentGatewayError("Could not reach bKash")

        response = await service.make_payment(db_session, request_for(test_user, workshop))

        assert response["statusCode"] == STATUS_FAILED
        assert response["error"] == "Could not reach bKash"

    async def test_coupon_discount_applied(self, service, db_session, test_user, workshop):
        db_session.add(Coupon(code="SAVE20", discount_type=DiscountType.PERCENTAGE, discount_value=20))
        await db_session.commit()

        response = await service.make_payment(
            db_session, request_for(test_user, workshop, amount=120, coupon_code="save20")
        )

        assert response["statusCode"] == STATUS_OK
        payment = await service.find_by_bkash_id(db_session, service.gateway.payment_id)
        assert payment.amount == 120
        assert payment.discount_amount == 30
        assert payment.coupon_code == "SAVE20"

    async def test_discount_below_one_taka(self, service, db_session, test_user, workshop):
        db_session.add(Coupon(code="FULL", discount_type=DiscountType.PERCENTAGE, discount_value=100))
        await db_session.commit()

        response = await service.make_payment(
            db_session, request_for(test_user, workshop, amount=1, coupon_code="FULL")
        )

        assert response["statusCode"] == STATUS_INVALID_INPUT
        assert response["statusMessage"] == MSG_MIN_AFTER_DISCOUNT

    async def test_invalid_coupon(self, service, db_session, test_user, workshop):
        response = await service.make_payment(
            db_session, request_for(test_user, workshop, coupon_code="GHOST")
        )

        assert response["statusCode"] == STATUS_INVALID_INPUT


class TestHandleCallback:
    """Confirmation runs once per bKash payment id"""

    async def open_checkout(self, service, db, user, workshop, **overrides) -> str:
        response = await service.make_payment(db, request_for(user, workshop, **overrides))
        assert response["statusCode"] == STATUS_OK
        return response["data"]["paymentID"]

    async def test_unknown_payment(self, service, db_session):
        result = await service.handle_callback(db_session, "TR-missing", "success")

        assert result.outcome == OUTCOME_NOT_FOUND
        assert service.gateway.execute_calls == []

    async def test_success_enrolls_and_emails(self, service, transport, db_session, test_user, workshop):
        payment_id = await self.open_checkout(service, db_session, test_user, workshop)

        result = await service.handle_callback(db_session, payment_id, "success")
        await asyncio.gather(*service._background_tasks)

        assert result.outcome == OUTCOME_SUCCESSFUL
        assert result.payment.status == PaymentStatus.SUCCESSFUL
        assert result.payment.is_verified is True
        assert result.payment.trx_id == "BFD90JRLST"
        assert result.payment.paid_at is not None
        assert await count(db_session, UserWorkshop.id) == 1
        assert len(transport.sent) == 1
        assert transport.sent[0]["To"] == test_user.email

    async def test_duplicate_callbacks_confirm_once(self, service, db_session, test_user, workshop):
        service.schedule_confirmation_email = MagicMock()
        payment_id = await self.open_checkout(service, db_session, test_user, workshop)

        first = await service.handle_callback(db_session, payment_id, "success")
        second = await service.handle_callback(db_session, payment_id, "success")

        assert first.outcome == OUTCOME_SUCCESSFUL
        assert second.outcome == OUTCOME_ALREADY_PROCESSED
        assert second.is_successful is True
        assert service.gateway.execute_calls == [payment_id]
        assert await count(db_session, UserWorkshop.id) == 1
        service.schedule_confirmation_email.assert_called_once()
        kind, kwargs = service.schedule_confirmation_email.call_args.args
        assert kind == "workshop"
        assert kwargs["workshop_title"] == workshop.title

    async def test_coupon_usage_recorded_once(self, service, db_session, test_user, workshop):
        service.schedule_confirmation_email = MagicMock()
        db_session.add(Coupon(code="SAVE20", discount_type=DiscountType.PERCENTAGE, discount_value=20))
        await db_session.commit()
        payment_id = await self.open_checkout(
            service, db_session, test_user, workshop, amount=120, coupon_code="SAVE20"
        )

        await service.handle_callback(db_session, payment_id, "success")
        await service.handle_callback(db_session, payment_id, "success")

        usage = (await db_session.execute(select(CouponUsage))).scalar_one()
        assert usage.discount_amount == 30
        assert usage.final_amount == 120

    async def test_incomplete_execution_fails(self, service, db_session, test_user, workshop):
        service.schedule_confirmation_email = MagicMock()
        service.gateway.execute_response = {
            "statusCode": "2056",
            "statusMessage": "Invalid Payment State",
        }
        payment_id = await self.open_checkout(service, db_session, test_user, workshop)

        result = await service.handle_callback(db_session, payment_id, "success")

        assert result.outcome == OUTCOME_FAILED
        assert result.payment.status == PaymentStatus.FAILED
        assert await count(db_session, UserWorkshop.id) == 0
        service.schedule_confirmation_email.assert_not_called()

    async def test_execution_error_fails(self, service, db_session, test_user, workshop):
        service.gateway.execute_error = PaymentGatewayError("Could not reach bKash")
        payment_id = await self.open_checkout(service, db_session, test_user, workshop)

        result = await service.handle_callback(db_session, payment_id, "success")

        assert result.outcome == OUTCOME_FAILED
        assert result.payment.gateway_response == {"error": "Could not reach bKash"}

    @pytest.mark.parametrize("status", ["failure", "cancel"])
    async def test_payer_abort(self, service, db_session, test_user, workshop, status):
        payment_id = await self.open_checkout(service, db_session, test_user, workshop)

        result = await service.handle_callback(db_session, payment_id, status)

        assert result.outcome == OUTCOME_FAILED
        assert result.payment.status == PaymentStatus.FAILED
        assert service.gateway.execute_calls == []

    async def test_unknown_status_ignored(self, service, db_session, test_user, workshop):
        payment_id = await self.open_checkout(service, db_session, test_user, workshop)

        result = await service.handle_callback(db_session, payment_id, "pending")

        assert result.outcome == OUTCOME_IGNORED
        assert result.payment.status == PaymentStatus.PENDING

    async def test_cancel_after_success_keeps_success(self, service, db_session, test_user, workshop):
        service.schedule_confirmation_email = MagicMock()
        payment_id = await self.open_checkout(service, db_session, test_user, workshop)

        await service.handle_callback(db_session, payment_id, "success")
        result = await service.handle_callback(db_session, payment_id, "cancel")

        assert result.outcome == OUTCOME_ALREADY_PROCESSED
        assert result.payment.status == PaymentStatus.SUCCESSFUL

    async def test_late_failure_does_not_downgrade_concurrent_success(
        self, service, db_session, test_user, workshop
    ):
        service.schedule_confirmation_email = MagicMock()
        payment_id = await self.open_checkout(service, db_session, test_user, workshop)

        async def execute_confirmed_elsewhere(bkash_payment_id):
            # Another callback for the same payment commits first
            async with TestSessionLocal() as other:
                payment = await service.find_by_bkash_id(other, bkash_payment_id)
                await service.process_successful_payment(other, payment, {"trxID": "BFD90JRLST"})
            return {"statusCode": "2117", "statusMessage": "Payment already executed"}

        service.gateway.execute_payment = execute_confirmed_elsewhere

        result = await service.handle_callback(db_session, payment_id, "success")

        assert result.outcome == OUTCOME_ALREADY_PROCESSED
        assert result.payment.status == PaymentStatus.SUCCESSFUL
        stored = await db_session.execute(
            select(Payment.status).where(Payment.bkash_payment_id == payment_id)
        )
        assert stored.scalar_one() == PaymentStatus.SUCCESSFUL
        assert await count(db_session, UserWorkshop.id) == 1
        service.schedule_confirmation_email.assert_called_once()


class TestEnrollment:
    async def test_free_enrollment(self, service, db_session, test_user, free_workshop):
        service.schedule_confirmation_email = MagicMock()

        payment = await service.enroll_free(db_session, test_user, PaymentPurpose.WORKSHOP, free_workshop)

        assert payment.payment_channel == PaymentChannel.FREE
        assert payment.amount == 0
        assert payment.status == PaymentStatus.SUCCESSFUL
        assert await service.is_enrolled(db_session, test_user.id, PaymentPurpose.WORKSHOP, free_workshop.id)
        service.schedule_confirmation_email.assert_called_once()

    async def test_concurrent_free_enrollment_is_not_an_error(
        self, service, db_session, test_user, free_workshop
    ):
        service.schedule_confirmation_email = MagicMock()
        db_session.add(UserWorkshop(user_id=test_user.id, workshop_id=free_workshop.id))
        await db_session.commit()
        # The other request enrolled after this one checked
        service.is_enrolled = AsyncMock(return_value=False)

        await service.enroll_free(db_session, test_user, PaymentPurpose.WORKSHOP, free_workshop)

        assert await count(db_session, UserWorkshop.id) == 1
        assert await count(db_session, Payment.id) == 0
        service.schedule_confirmation_email.assert_not_called()

    async def test_course_confirmation_enrolls_course(self, service, db_session, test_user, course):
        service.schedule_confirmation_email = MagicMock()
        response = await service.make_payment(db_session, request_for(test_user, course=course, amount=999))

        await service.handle_callback(db_session, response["data"]["paymentID"], "success")

        assert await count(db_session, UserCourse.id) == 1
        kind, kwargs = service.schedule_confirmation_email.call_args.args
        assert kind == "course"
        assert kwargs["course_type"] == "recorded"


class TestResendConfirmation:
    async def test_other_users_payment_is_hidden(self, service, db_session, test_user, admin_user, workshop):
        response = await service.make_payment(db_session, request_for(test_user, workshop))
        payment = await service.find_by_bkash_id(db_session, response["data"]["paymentID"])

        with pytest.raises(PaymentNotFoundError):
            await service.resend_confirmation_email(db_session, payment.id, admin_user.id)

    async def test_pending_payment_not_resent(self, service, transport, db_session, test_user, workshop):
        response = await service.make_payment(db_session, request_for(test_user, workshop))
        payment = await service.find_by_bkash_id(db_session, response["data"]["paymentID"])

        assert await service.resend_confirmation_email(db_session, payment.id, test_user.id) is False
        assert transport.sent == []


class TestAdminCorrections:
    async def test_status_update(self, service, db_session, test_user, workshop):
        response = await service.make_payment(db_session, request_for(test_user, workshop))
        payment = await service.find_by_bkash_id(db_session, response["data"]["paymentID"])

        updated = await service.update_payment_status(db_session, payment.id, PaymentStatus.REFUNDED)

        assert updated.status == PaymentStatus.REFUNDED
        assert await count(db_session, UserWorkshop.id) == 0

    async def test_details_update_leaves_unset_fields(self, service, db_session, test_user, workshop):
        response = await service.make_payment(db_session, request_for(test_user, workshop))
        payment = await service.find_by_bkash_id(db_session, response["data"]["paymentID"])

        updated = await service.update_payment_details(
            db_session, payment.id, PaymentDetailsUpdate(trx_id="MANUAL123", is_verified=True)
        )

        assert updated.trx_id == "MANUAL123"
        assert updated.is_verified is True
        assert updated.amount == 150
        assert updated.status == PaymentStatus.PENDING

    async def test_missing_payment(self, service, db_session):
        with pytest.raises(PaymentNotFoundError):
            await service.update_payment_status(
                db_session, "00000000-0000-0000-0000-000000000000", PaymentStatus.FAILED
            )

    async def test_list_filters_by_status(self, service, db_session, test_user, workshop):
        await service.make_payment(db_session, request_for(test_user, workshop))

        pending, total = await service.list_payments(db_session, status=PaymentStatus.PENDING)
        failed, failed_total = await service.list_payments(db_session, status=PaymentStatus.FAILED)

        assert total == 1 and len(pending) == 1
        assert failed_total == 0 and failed == []
