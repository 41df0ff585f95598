"""
API Tests for authentication endpoints
"""
import pytest

from app.core.config import settings
from app.core.security import create_email_verification_token, create_password_reset_token
from conftest import TEST_PASSWORD


def signup_body(**overrides):
    body = {
        "email": "student@example.com",
        "password": "secret123",
        "confirm_password": "secret123",
        "name": "Sadia Islam",
        "phone": "01711000000",
    }
    body.update(overrides)
    return body


class TestSignup:
    async def test_signup_requires_confirmation(self, client):
        response = await client.post("/api/v1/auth/signup", json=signup_body())

        data = response.json()
        assert response.status_code == 201
        assert data["requires_email_verification"] is True
        assert data["access_token"] is None
        assert data["user"]["phone"] == "+8801711000000"

    async def test_signup_without_confirmation(self, client, monkeypatch):
        monkeypatch.setattr(settings, "REQUIRE_EMAIL_VERIFICATION", False)

        response = await client.post("/api/v1/auth/signup", json=signup_body())

        assert response.json()["access_token"]

    async def test_password_mismatch(self, client):
        response = await client.post("/api/v1/auth/signup", json=signup_body(confirm_password="other123"))

        assert response.status_code == 400

    async def test_duplicate_email(self, client, test_user):
        response = await client.post("/api/v1/auth/signup", json=signup_body(email=test_user.email))

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_ACCOUNT"

    async def test_invalid_email(self, client):
        response = await client.post("/api/v1/auth/signup", json=signup_body(email="not-an-email"))

        assert response.status_code == 422


class TestLogin:
    async def test_login(self, client, test_user):
        response = await client.post("/api/v1/auth/login", json={
            "email": test_user.email,
            "password": TEST_PASSWORD,
        })

        data = response.json()
        assert response.status_code == 200
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == test_user.email

    async def test_unverified_login(self, client):
        await client.post("/api/v1/auth/signup", json=signup_body())

        response = await client.post("/api/v1/auth/login", json={
            "email": "student@example.com",
            "password": "secret123",
        })

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "EMAIL_NOT_VERIFIED"


class TestProfile:
    async def test_me(self, client, test_user, auth_headers):
        response = await client.get("/api/v1/auth/me", headers=auth_headers)

        assert response.json()["id"] == test_user.id

    async def test_me_without_token(self, client):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401

    async def test_update_profile(self, client, auth_headers):
        response = await client.patch("/api/v1/auth/me", json={
            "university": "BUET",
            "phone": "01911000000",
        }, headers=auth_headers)

        data = response.json()
        assert data["university"] == "BUET"
        assert data["phone"] == "+8801911000000"


class TestEmailLinks:
    async def test_verify_email(self, client):
        signup = await client.post("/api/v1/auth/signup", json=signup_body())
        user = signup.json()["user"]
        token = create_email_verification_token(user["id"], user["email"])

        response = await client.post("/api/v1/auth/verify-email", json={"token": token})
        login = await client.post("/api/v1/auth/login", json={
            "email": "student@example.com",
            "password": "secret123",
        })

        assert response.status_code == 200
        assert login.status_code == 200

    async def test_forgot_password_same_answer_for_unknown_email(self, client, test_user):
        known = await client.post("/api/v1/auth/forgot-password", json={"email": test_user.email})
        unknown = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})

        assert known.json() == unknown.json()

    async def test_reset_password(self, client, test_user):
        token = create_password_reset_token(str(test_user.id), test_user.email)

        response = await client.post("/api/v1/auth/reset-password", json={
            "token": token,
            "new_password": "brand-new-pass",
            "confirm_password": "brand-new-pass",
        })
        login = await client.post("/api/v1/auth/login", json={
            "email": test_user.email,
            "password": "brand-new-pass",
        })

        assert response.status_code == 200
        assert login.status_code == 200
