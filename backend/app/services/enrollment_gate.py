"""
Enrollment Gate - decides between the payment step and an inline auth form

States: anonymous -> authenticating -> authenticated.

A visitor with a valid session goes straight to payment. Anonymous visitors
sign up (standard or academic form, picked by workshop category) or log in.
After signup an immediate sign-in is attempted; if it fails because the email
is still unconfirmed, the profile is kept and the visitor is sent to confirm
the email instead of to payment.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError, PasswordMismatchError, ValidationError
from app.core.logging_config import logger
from app.models.user import User
from app.models.workshop import Workshop
from app.schemas.workshop import EnrollmentLogin, EnrollmentSignup
from app.services.auth_service import AuthService, auth_service


MSG_SIGNUP_DONE = "সাইনআপ সম্পন্ন হয়েছে"
MSG_LOGIN_DONE = "লগইন সফল হয়েছে"
MSG_VERIFY_EMAIL = "একাউন্ট তৈরি হয়েছে। দয়া করে ইমেইল নিশ্চিত করুন।"
MSG_REQUIRED_FIELD = "এই তথ্যটি প্রয়োজন"

STANDARD_FIELDS = ["email", "phone", "password", "confirm_password"]
ACADEMIC_FIELDS = ["university", "department", "academic_year", "academic_session"]


class GateState(str, enum.Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class SignupMode(str, enum.Enum):
    STANDARD = "standard"
    ACADEMIC = "academic"


class NextStep(str, enum.Enum):
    SIGNUP = "signup"
    PAYMENT = "payment"
    VERIFY_EMAIL = "verify_email"


@dataclass
class GateOutcome:
    state: GateState
    next_step: NextStep
    signup_mode: SignupMode
    workshop_slug: str
    required_fields: List[str] = field(default_factory=list)
    access_token: Optional[str] = None
    message: Optional[str] = None
    user: Optional[User] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "next_step": self.next_step.value,
            "signup_mode": self.signup_mode.value,
            "workshop_slug": self.workshop_slug,
            "required_fields": self.required_fields,
            "access_token": self.access_token,
            "message": self.message,
        }


def signup_mode_for(workshop: Workshop) -> SignupMode:
    return SignupMode.ACADEMIC if workshop.is_academic else SignupMode.STANDARD


def required_fields_for(mode: SignupMode) -> List[str]:
    if mode == SignupMode.ACADEMIC:
        return STANDARD_FIELDS + ACADEMIC_FIELDS
    return list(STANDARD_FIELDS)


def check_signup_form(form: EnrollmentSignup, mode: SignupMode) -> None:
    """Local validation; raises before any account is touched"""
    if form.password != form.confirm_password:
        raise PasswordMismatchError()

    if mode == SignupMode.ACADEMIC:
        for name in ACADEMIC_FIELDS:
            value = getattr(form, name)
            if value is None or not value.strip():
                raise ValidationError(MSG_REQUIRED_FIELD, field=name)


class EnrollmentGate:
    def __init__(self, auth: Optional[AuthService] = None):
        self.auth = auth or auth_service

    def describe(self, workshop: Workshop, user: Optional[User]) -> GateOutcome:
        """Initial gate state for a visitor"""
        mode = signup_mode_for(workshop)
        if user is not None:
            return GateOutcome(
                state=GateState.AUTHENTICATED,
                next_step=NextStep.PAYMENT,
                signup_mode=mode,
                workshop_slug=workshop.slug,
                user=user,
            )
        return GateOutcome(
            state=GateState.ANONYMOUS,
            next_step=NextStep.SIGNUP,
            signup_mode=mode,
            workshop_slug=workshop.slug,
            required_fields=required_fields_for(mode),
        )

    async def signup(self, db: AsyncSession, workshop: Workshop, form: EnrollmentSignup) -> GateOutcome:
        mode = signup_mode_for(workshop)
        check_signup_form(form, mode)

        profile = form.model_dump(exclude={"email", "password", "confirm_password"})
        if mode == SignupMode.STANDARD:
            for name in ACADEMIC_FIELDS:
                profile.pop(name, None)

        user = await self.auth.sign_up(db, form.email, form.password, profile)

        try:
            user, token = await self.auth.sign_in(db, form.email, form.password)
        except AuthenticationError as e:
            logger.info(f"[Enrollment] Sign-in after signup failed for {form.email}: {e.message}")
            await self.auth.upsert_profile(db, user, profile)
            return GateOutcome(
                state=GateState.AUTHENTICATING,
                next_step=NextStep.VERIFY_EMAIL,
                signup_mode=mode,
                workshop_slug=workshop.slug,
                message=MSG_VERIFY_EMAIL,
                user=user,
            )

        await self.auth.upsert_profile(db, user, profile)
        return GateOutcome(
            state=GateState.AUTHENTICATED,
            next_step=NextStep.PAYMENT,
            signup_mode=mode,
            workshop_slug=workshop.slug,
            access_token=token,
            message=MSG_SIGNUP_DONE,
            user=user,
        )

    async def login(self, db: AsyncSession, workshop: Workshop, form: EnrollmentLogin) -> GateOutcome:
        """Existing account; auth errors propagate with the provider message"""
        user, token = await self.auth.sign_in(db, form.email, form.password)
        return GateOutcome(
            state=GateState.AUTHENTICATED,
            next_step=NextStep.PAYMENT,
            signup_mode=signup_mode_for(workshop),
            workshop_slug=workshop.slug,
            access_token=token,
            message=MSG_LOGIN_DONE,
            user=user,
        )


enrollment_gate = EnrollmentGate()
