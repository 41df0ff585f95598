from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.config import settings
from app.core.exceptions import PasswordMismatchError
from app.core.rate_limiter import auth_rate_limit, strict_rate_limit
from app.models.user import User
from app.schemas.auth import (
    UserSignup,
    UserLogin,
    LoginResponse,
    SignupResponse,
    UserResponse,
    ProfileUpdate,
    VerifyEmailRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    MessageResponse,
)
from app.modules.auth.dependencies import get_current_user
from app.services.auth_service import auth_service


router = APIRouter()


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
@strict_rate_limit()
async def signup(
    request: Request,
    user_data: UserSignup,
    db: AsyncSession = Depends(get_db)
):
    """Create an account (rate limited: 3/min)"""
    if user_data.password != user_data.confirm_password:
        raise PasswordMismatchError()

    profile = user_data.model_dump(exclude={"email", "password", "confirm_password"})
    user = await auth_service.sign_up(db, user_data.email, user_data.password, profile)

    if user.is_verified:
        return SignupResponse(
            message="Account created",
            user=UserResponse.model_validate(user),
            access_token=auth_service.issue_token(user),
            requires_email_verification=False,
        )

    return SignupResponse(
        message="Account created. Please confirm your email before logging in.",
        user=UserResponse.model_validate(user),
        requires_email_verification=True,
    )


@router.post("/login", response_model=LoginResponse)
@auth_rate_limit()
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login user (rate limited: 5/min)"""
    user, token = await auth_service.sign_in(db, credentials.email, credentials.password)
    return LoginResponse(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_me(
    profile: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await auth_service.upsert_profile(db, current_user, profile.model_dump(exclude_unset=True))


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(
    payload: VerifyEmailRequest,
    db: AsyncSession = Depends(get_db)
):
    """Confirm an email address with the token from the verification mail"""
    await auth_service.verify_email(db, payload.token)
    return MessageResponse(message="Email verified successfully! You can now log in.")


@router.post("/forgot-password", response_model=MessageResponse)
@strict_rate_limit()
async def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    """Always answers the same way so addresses cannot be probed"""
    await auth_service.request_password_reset(db, payload.email)
    return MessageResponse(
        message="If an account with that email exists, a password reset link has been sent."
    )


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    payload: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    if payload.new_password != payload.confirm_password:
        raise PasswordMismatchError()
    await auth_service.reset_password(db, payload.token, payload.new_password)
    return MessageResponse(message=f"Password updated. You can now log in at {settings.get_site_url('/login')}")
