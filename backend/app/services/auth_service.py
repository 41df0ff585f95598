"""
Auth Service - accounts, sessions and email confirmation

Password checks happen in the callers (``EnrollmentGate`` and the auth
endpoints) before anything here is called. Errors carry a user-facing
message that the API returns verbatim.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import HTTPException
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError,
    DuplicateAccountError,
    EmailNotVerifiedError,
    UserNotFoundError,
    ValidationError,
)
from app.core.logging_config import logger, set_user_id
from app.core.security import (
    TOKEN_TYPE_EMAIL_VERIFICATION,
    TOKEN_TYPE_PASSWORD_RESET,
    create_access_token,
    create_email_verification_token,
    create_password_reset_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from app.models.user import User
from app.services.email_service import EmailService, email_service


PROFILE_FIELDS = ("name", "phone", "university", "department", "academic_year", "academic_session")


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Prefix the country code unless the number already carries it"""
    if not phone:
        return phone
    digits = "".join(ch for ch in phone.strip() if ch.isdigit() or ch == "+")
    if not digits:
        return None
    code = settings.PHONE_COUNTRY_CODE
    if digits.startswith("+"):
        return digits
    if digits.startswith(code.lstrip("+")):
        return f"+{digits}"
    return f"{code}{digits}"


class AuthService:
    def __init__(self, emails: Optional[EmailService] = None):
        self.emails = emails or email_service
        self._background_tasks: set[asyncio.Task] = set()

    def _schedule(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    def issue_token(self, user: User) -> str:
        return create_access_token({"sub": str(user.id), "email": user.email})

    async def sign_up(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        profile: Optional[Dict[str, Any]] = None,
    ) -> User:
        """Create an account and queue the verification email"""
        if await self.get_by_email(db, email):
            logger.log_auth_event("signup", success=False, user_email=email, reason="Email already registered")
            raise DuplicateAccountError(email)

        fields = {k: v for k, v in (profile or {}).items() if k in PROFILE_FIELDS and v is not None}
        if "phone" in fields:
            fields["phone"] = normalize_phone(fields["phone"])

        user = User(
            email=email.strip().lower(),
            hashed_password=get_password_hash(password),
            is_verified=not settings.REQUIRE_EMAIL_VERIFICATION,
            **fields,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise DuplicateAccountError(email)
        await db.refresh(user)

        logger.log_auth_event("signup", success=True, user_email=user.email)

        if not user.is_verified:
            token = create_email_verification_token(str(user.id), user.email)
            self._schedule(self.emails.send_verification_email(user.email, user.display_name, token))
            logger.info(f"[Auth] Verification email queued for {user.email}")

        return user

    async def sign_in(self, db: AsyncSession, email: str, password: str) -> tuple[User, str]:
        """Check credentials and return the user with a fresh access token"""
        user = await self.get_by_email(db, email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.log_auth_event("login", success=False, user_email=email, reason="Invalid credentials")
            raise AuthenticationError("Invalid login credentials")

        if not user.is_active:
            logger.log_auth_event("login", success=False, user_email=email, reason="Inactive account")
            raise AuthenticationError("Account is disabled")

        if settings.REQUIRE_EMAIL_VERIFICATION and not user.is_verified:
            logger.log_auth_event("login", success=False, user_email=email, reason="Email not verified")
            raise EmailNotVerifiedError(user.email)

        user.last_login = datetime.utcnow()
        await db.commit()

        set_user_id(str(user.id))
        logger.log_auth_event("login", success=True, user_email=user.email)
        return user, self.issue_token(user)

    async def upsert_profile(self, db: AsyncSession, user: User, profile: Dict[str, Any]) -> User:
        """Merge non-empty profile fields into the user row"""
        changed = []
        for field in PROFILE_FIELDS:
            value = profile.get(field)
            if value in (None, ""):
                continue
            if field == "phone":
                value = normalize_phone(value)
            if getattr(user, field) != value:
                setattr(user, field, value)
                changed.append(field)

        if changed:
            await db.commit()
            await db.refresh(user)
            logger.info(f"[Auth] Profile of {user.email} updated: {', '.join(changed)}")
        return user

    async def verify_email(self, db: AsyncSession, token: str) -> User:
        try:
            payload = decode_token(token, expected_type=TOKEN_TYPE_EMAIL_VERIFICATION)
        except HTTPException:
            raise ValidationError("Invalid or expired verification link", field="token")

        user = await db.get(User, payload.get("sub"))
        if user is None or user.email != payload.get("email"):
            raise UserNotFoundError(payload.get("sub"))

        if not user.is_verified:
            user.is_verified = True
            await db.commit()
            logger.log_auth_event("verify_email", success=True, user_email=user.email)
        return user

    async def request_password_reset(self, db: AsyncSession, email: str) -> None:
        """Queue a reset link; unknown addresses are ignored silently"""
        user = await self.get_by_email(db, email)
        if user is None:
            logger.info(f"[Auth] Password reset requested for unknown email {email}")
            return

        token = create_password_reset_token(str(user.id), user.email)
        reset_url = settings.get_site_url(f"/reset-password?token={token}")
        self._schedule(self.emails.send_password_reset_email(user.email, reset_url))
        logger.log_auth_event("password_reset_requested", success=True, user_email=user.email)

    async def reset_password(self, db: AsyncSession, token: str, new_password: str) -> User:
        try:
            payload = decode_token(token, expected_type=TOKEN_TYPE_PASSWORD_RESET)
        except HTTPException:
            raise ValidationError("Invalid or expired reset link", field="token")

        user = await db.get(User, payload.get("sub"))
        if user is None:
            raise UserNotFoundError(payload.get("sub"))

        user.hashed_password = get_password_hash(new_password)
        await db.commit()
        logger.log_auth_event("password_reset", success=True, user_email=user.email)
        return user


auth_service = AuthService()
