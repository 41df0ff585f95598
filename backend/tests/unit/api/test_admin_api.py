"""
API Tests for admin payment corrections, coupons and the SMTP test message
"""
import pytest

from app.models.payment import Payment, PaymentPurpose, PaymentStatus


@pytest.fixture
async def payment(db_session, test_user, workshop) -> Payment:
    payment = Payment(
        user_id=test_user.id,
        purpose=PaymentPurpose.WORKSHOP,
        workshop_id=workshop.id,
        amount=150,
        transaction_id="a1b2c3d4e5",
        bkash_payment_id="TR0011abc123",
    )
    db_session.add(payment)
    await db_session.commit()
    await db_session.refresh(payment)
    return payment


class TestAdminPayments:
    async def test_students_are_forbidden(self, client, auth_headers):
        response = await client.get("/api/v1/admin/payments", headers=auth_headers)

        assert response.status_code == 403

    async def test_list(self, client, admin_auth_headers, payment):
        response = await client.get("/api/v1/admin/payments", headers=admin_auth_headers)

        data = response.json()
        assert data["total"] == 1
        assert data["payments"][0]["transaction_id"] == "a1b2c3d4e5"
        assert data["payments"][0]["status"] == "pending"

    async def test_filter_by_status(self, client, admin_auth_headers, payment):
        response = await client.get("/api/v1/admin/payments?status=successful", headers=admin_auth_headers)

        assert response.json()["total"] == 0

    async def test_status_correction(self, client, admin_auth_headers, payment):
        response = await client.patch(
            f"/api/v1/admin/payments/{payment.id}/status",
            json={"status": "successful"},
            headers=admin_auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "successful"

    async def test_detail_correction(self, client, admin_auth_headers, payment):
        response = await client.patch(
            f"/api/v1/admin/payments/{payment.id}",
            json={"trx_id": "MANUAL123", "payment_channel": "manual"},
            headers=admin_auth_headers,
        )

        data = response.json()
        assert data["trx_id"] == "MANUAL123"
        assert data["payment_channel"] == "manual"
        assert data["amount"] == 150

    async def test_unknown_payment(self, client, admin_auth_headers):
        response = await client.patch(
            "/api/v1/admin/payments/00000000-0000-0000-0000-000000000000/status",
            json={"status": "failed"},
            headers=admin_auth_headers,
        )

        assert response.status_code == 404


class TestAdminCoupons:
    async def test_create_and_deactivate(self, client, admin_auth_headers):
        created = await client.post("/api/v1/admin/coupons", json={
            "code": "eid25",
            "discount_type": "percentage",
            "discount_value": 25,
        }, headers=admin_auth_headers)

        coupon_id = created.json()["id"]
        deactivated = await client.post(
            f"/api/v1/admin/coupons/{coupon_id}/deactivate", headers=admin_auth_headers
        )

        assert created.status_code == 201
        assert created.json()["code"] == "EID25"
        assert deactivated.json()["is_active"] is False

    async def test_duplicate_code(self, client, admin_auth_headers):
        body = {"code": "EID25", "discount_type": "amount", "discount_value": 50}
        await client.post("/api/v1/admin/coupons", json=body, headers=admin_auth_headers)

        response = await client.post("/api/v1/admin/coupons", json=body, headers=admin_auth_headers)

        assert response.status_code == 400


class TestAdminEmail:
    async def test_test_email_reports_fallback(self, client, admin_auth_headers, admin_user):
        response = await client.post("/api/v1/admin/test-email", json={}, headers=admin_auth_headers)

        data = response.json()
        assert data["success"] is True
        assert data["to_email"] == admin_user.email
        assert data["fallback_mode"] is True
