"""
Unit Tests for checkout initiation and gateway answer parsing
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from app.core.exceptions import PaymentGatewayError
from app.models.payment import PaymentPurpose
from app.services.payment_initiator import (
    MSG_ALREADY_ENROLLED,
    MSG_GENERIC_FAILURE,
    PaymentFailure,
    PaymentInitiator,
    PaymentRedirect,
    parse_gateway_response,
)
from app.services.payment_service import MSG_MIN_AFTER_DISCOUNT, PaymentService
from mocks.fakes import FakeGateway


BKASH_URL = "https://sandbox.payment.bkash.com/?paymentId=TR0011abc123"


class TestParseGatewayResponse:
    """Both answer shapes normalize into one result type"""

    def test_current_shape_redirects_to_exact_url(self):
        result = parse_gateway_response({"statusCode": 200, "url": BKASH_URL})

        assert result == PaymentRedirect(url=BKASH_URL)

    def test_legacy_shape_redirects(self):
        result = parse_gateway_response({"statusCode": 200, "data": {"bkashURL": BKASH_URL}})

        assert isinstance(result, PaymentRedirect)
        assert result.url == BKASH_URL

    def test_current_shape_wins_over_legacy(self):
        result = parse_gateway_response({
            "statusCode": 200,
            "url": BKASH_URL,
            "data": {"bkashURL": "https://other.example"},
        })

        assert result.url == BKASH_URL

    def test_ok_without_url_fails(self):
        result = parse_gateway_response({"statusCode": 200, "data": {}})

        assert isinstance(result, PaymentFailure)

    def test_status_message_surfaces(self):
        result = parse_gateway_response({"statusCode": 2065, "statusMessage": "minimum amount 1"})

        assert result == PaymentFailure("minimum amount 1")

    def test_nested_error_message(self):
        result = parse_gateway_response({
            "statusCode": 500,
            "error": {"statusCode": "2023", "statusMessage": "Insufficient Balance"},
        })

        assert result.message == "Insufficient Balance"

    def test_generic_message_when_nothing_usable(self):
        assert parse_gateway_response({"statusCode": 500}) == PaymentFailure(MSG_GENERIC_FAILURE)
        assert parse_gateway_response(None) == PaymentFailure(MSG_GENERIC_FAILURE)


class TestInitiate:
    async def test_server_price_is_sent(self, db_session, test_user, workshop):
        gateway = FakeGateway()
        initiator = PaymentInitiator(PaymentService(gateway=gateway))

        result = await initiator.initiate(db_session, test_user, workshop)

        assert isinstance(result, PaymentRedirect)
        assert result.url == f"https://sandbox.payment.bkash.com/?paymentId={gateway.payment_id}"
        assert result.amount == 150
        assert gateway.create_calls[0]["amount"] == 150

    async def test_gateway_failure_message(self, db_session, test_user, workshop):
        gateway = FakeGateway()
        gateway.create_response = {"statusCode": "2001", "statusMessage": "Invalid App Key"}
        initiator = PaymentInitiator(PaymentService(gateway=gateway))

        result = await initiator.initiate(db_session, test_user, workshop)

        assert result == PaymentFailure("Invalid App Key")

    async def test_discount_to_zero_never_reaches_gateway(self, db_session, test_user, workshop):
        payments = MagicMock()
        quote = MagicMock(final_amount=0.0, discount_amount=150.0)
        payments.quote = AsyncMock(return_value=quote)
        payments.make_payment = AsyncMock()

        result = await PaymentInitiator(payments).initiate(db_session, test_user, workshop, coupon_code="FULL")

        assert result == PaymentFailure(MSG_MIN_AFTER_DISCOUNT)
        payments.make_payment.assert_not_called()


class TestCheckout:
    async def test_free_workshop_enrolls_without_gateway(self, db_session, test_user, free_workshop):
        gateway = FakeGateway()
        service = PaymentService(gateway=gateway)
        service.schedule_confirmation_email = MagicMock()

        response = await PaymentInitiator(service).checkout(db_session, test_user, free_workshop)

        assert response.status == "enrolled"
        assert gateway.create_calls == []
        assert await service.is_enrolled(db_session, test_user.id, PaymentPurpose.WORKSHOP, free_workshop.id)

    async def test_already_enrolled(self, db_session, test_user, free_workshop):
        gateway = FakeGateway()
        service = PaymentService(gateway=gateway)
        service.schedule_confirmation_email = MagicMock()
        initiator = PaymentInitiator(service)
        await initiator.checkout(db_session, test_user, free_workshop)

        response = await initiator.checkout(db_session, test_user, free_workshop)

        assert response.status == "already_enrolled"
        assert response.message == MSG_ALREADY_ENROLLED

    async def test_paid_workshop_redirects(self, db_session, test_user, workshop):
        initiator = PaymentInitiator(PaymentService(gateway=FakeGateway()))

        response = await initiator.checkout(db_session, test_user, workshop)

        assert response.status == "redirect"
        assert response.redirect_url.startswith("https://sandbox.payment.bkash.com/")
        assert response.amount == 150

    async def test_failure_raises_gateway_error(self, db_session, test_user, workshop):
        gateway = FakeGateway()
        gateway.create_error = PaymentGatewayError("Could not reach bKash")
        initiator = PaymentInitiator(PaymentService(gateway=gateway))

        with pytest.raises(PaymentGatewayError) as exc_info:
            await initiator.checkout(db_session, test_user, workshop)

        assert exc_info.value.message == "Payment Failed"
