from app.services.pricing_service import PricingService, pricing_service
from app.services.email_service import EmailService, email_service
from app.services.bkash_client import BkashClient, bkash_client
from app.services.coupon_service import CouponService, coupon_service
from app.services.payment_service import PaymentService, payment_service
from app.services.payment_initiator import PaymentInitiator, payment_initiator
from app.services.auth_service import AuthService, auth_service
from app.services.enrollment_gate import EnrollmentGate, enrollment_gate

__all__ = [
    "PricingService",
    "pricing_service",
    "EmailService",
    "email_service",
    "BkashClient",
    "bkash_client",
    "CouponService",
    "coupon_service",
    "PaymentService",
    "payment_service",
    "PaymentInitiator",
    "payment_initiator",
    "AuthService",
    "auth_service",
    "EnrollmentGate",
    "enrollment_gate",
]
