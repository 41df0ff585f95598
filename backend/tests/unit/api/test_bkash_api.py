"""
API Tests for make-payment, the bKash callback and token refresh
"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy import select, func

from app.api.v1.endpoints import bkash as bkash_endpoints
from app.models.payment import PaymentStatus
from app.models.workshop import UserWorkshop
from app.services.payment_service import payment_service


@pytest.fixture(autouse=True)
def no_confirmation_email(monkeypatch):
    monkeypatch.setattr(payment_service, "schedule_confirmation_email", MagicMock())


@pytest.fixture
def token_refresh(monkeypatch):
    refresh = AsyncMock(return_value="id-token")
    monkeypatch.setattr(bkash_endpoints.bkash_client, "get_id_token", refresh)
    return refresh


def make_payment_body(user, workshop, amount=150):
    return {
        "user_id": str(user.id),
        "workshop_id": str(workshop.id),
        "amount": amount,
        "email": user.email,
        "name": user.name,
        "phone": "01711000000",
    }


async def open_checkout(client, user, workshop, headers) -> str:
    response = await client.post(
        "/api/v1/bkash/make-payment", json=make_payment_body(user, workshop), headers=headers
    )
    return response.json()["data"]["paymentID"]


class TestMakePayment:
    async def test_success(self, client, test_user, workshop, auth_headers, gateway):
        response = await client.post(
            "/api/v1/bkash/make-payment", json=make_payment_body(test_user, workshop), headers=auth_headers
        )

        data = response.json()
        assert data["statusCode"] == 200
        assert data["url"] == data["data"]["bkashURL"]

    async def test_requires_login(self, client, test_user, workshop, gateway):
        response = await client.post("/api/v1/bkash/make-payment", json=make_payment_body(test_user, workshop))

        assert response.status_code == 401

    async def test_cannot_pay_for_another_user(self, client, admin_user, workshop, auth_headers, gateway):
        response = await client.post(
            "/api/v1/bkash/make-payment", json=make_payment_body(admin_user, workshop), headers=auth_headers
        )

        assert response.json()["statusCode"] == 403
        assert gateway.create_calls == []

    async def test_missing_fields(self, client, auth_headers, gateway):
        response = await client.post("/api/v1/bkash/make-payment", json={}, headers=auth_headers)

        assert response.json()["statusCode"] == 2065

    async def test_client_amount_checked(self, client, test_user, workshop, auth_headers, gateway):
        response = await client.post(
            "/api/v1/bkash/make-payment",
            json=make_payment_body(test_user, workshop, amount=1),
            headers=auth_headers,
        )

        data = response.json()
        assert data["statusCode"] == 2065
        assert data["expectedAmount"] == 150


class TestCallback:
    async def test_success_then_duplicate(self, client, db_session, test_user, workshop, auth_headers, gateway):
        payment_id = await open_checkout(client, test_user, workshop, auth_headers)

        first = await client.post("/api/v1/bkash/callback", json={"paymentID": payment_id, "status": "success"})
        second = await client.post("/api/v1/bkash/callback", json={"paymentID": payment_id, "status": "success"})

        assert first.json()["statusMessage"] == "Payment processed successfully"
        assert first.json()["transactionStatus"] == "Completed"
        assert second.json()["statusMessage"] == "Payment already processed"
        assert len(gateway.execute_calls) == 1
        enrollments = await db_session.execute(select(func.count(UserWorkshop.id)))
        assert enrollments.scalar() == 1
        payment_service.schedule_confirmation_email.assert_called_once()

    async def test_unknown_payment(self, client, gateway):
        response = await client.post("/api/v1/bkash/callback", json={"paymentID": "TR-missing", "status": "success"})

        assert response.json()["statusCode"] == 404

    async def test_execution_failed(self, client, test_user, workshop, auth_headers, gateway):
        gateway.execute_response = {"statusCode": "2056", "statusMessage": "Invalid Payment State"}
        payment_id = await open_checkout(client, test_user, workshop, auth_headers)

        response = await client.post("/api/v1/bkash/callback", json={"paymentID": payment_id, "status": "success"})

        data = response.json()
        assert data["statusCode"] == 400
        assert data["error"]["statusMessage"] == "Invalid Payment State"

    async def test_cancel(self, client, db_session, test_user, workshop, auth_headers, gateway):
        payment_id = await open_checkout(client, test_user, workshop, auth_headers)

        response = await client.post("/api/v1/bkash/callback", json={"paymentID": payment_id, "status": "cancel"})

        assert response.json()["statusMessage"] == "Payment cancel"
        payment = await payment_service.find_by_bkash_id(db_session, payment_id)
        assert payment.status == PaymentStatus.FAILED


class TestCallbackRedirect:
    async def test_success_lands_on_success_page(self, client, test_user, workshop, auth_headers, gateway):
        payment_id = await open_checkout(client, test_user, workshop, auth_headers)

        response = await client.get(f"/api/v1/bkash/callback?paymentID={payment_id}&status=success")

        assert response.status_code == 307
        assert response.headers["location"] == (
            f"http://skilltori.test/success?paymentID={payment_id}&type=workshop"
        )

    async def test_failed_execution_lands_on_cancel_page(self, client, test_user, workshop, auth_headers, gateway):
        gateway.execute_response = {"statusCode": "2056", "statusMessage": "Invalid Payment State"}
        payment_id = await open_checkout(client, test_user, workshop, auth_headers)

        response = await client.get(f"/api/v1/bkash/callback?paymentID={payment_id}&status=success")

        assert response.headers["location"].startswith("http://skilltori.test/cancel?paymentID=")

    async def test_missing_payment_id(self, client):
        response = await client.get("/api/v1/bkash/callback")

        assert response.headers["location"] == "http://skilltori.test/dashboard/payments"


class TestTokenRefresh:
    async def test_cron_requires_secret(self, client, token_refresh):
        response = await client.get("/api/v1/bkash/cron/refresh-token?secret=wrong")

        assert response.status_code == 401
        token_refresh.assert_not_called()

    async def test_cron_with_secret(self, client, token_refresh):
        response = await client.get("/api/v1/bkash/cron/refresh-token?secret=cron-secret")

        assert response.status_code == 200
        assert response.json()["statusCode"] == 200

    async def test_manual_refresh(self, client, token_refresh):
        response = await client.post("/api/v1/bkash/refresh-token")

        assert response.json()["statusMessage"] == "Token refresh initiated in background"
