"""
Admin API endpoints for Skilltori.
All endpoints require the admin role.
"""
from fastapi import APIRouter

from app.api.v1.endpoints.admin import payments, coupons, email

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

admin_router.include_router(payments.router)
admin_router.include_router(coupons.router)
admin_router.include_router(email.router)
