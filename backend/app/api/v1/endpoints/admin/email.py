from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr
from typing import Optional

from app.models.user import User
from app.modules.auth.dependencies import get_current_admin
from app.services.email_service import email_service

router = APIRouter(tags=["Admin - Email"])


class TestEmailRequest(BaseModel):
    to_email: Optional[EmailStr] = None


@router.post("/test-email")
async def send_test_email(
    payload: TestEmailRequest,
    admin: User = Depends(get_current_admin)
):
    """Send a diagnostic message and report the transport state"""
    to_email = payload.to_email or admin.email
    sent = await email_service.send_test_email(to_email)
    return {
        "success": sent,
        "to_email": to_email,
        "configured": email_service.is_configured,
        "fallback_mode": email_service.fallback_mode,
        "smtp_host": email_service.transport.host,
        "smtp_port": email_service.transport.port,
    }
