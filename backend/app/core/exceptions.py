"""
Custom Exceptions for Skilltori
===============================

Domain errors raised by services. The API layer converts them to JSON
responses through the handler registered in ``app.main``; services never
build HTTP responses themselves.

Usage:
    from app.core.exceptions import WorkshopNotFoundError, PasswordMismatchError

    if not workshop:
        raise WorkshopNotFoundError(slug)

    if password != confirm_password:
        raise PasswordMismatchError()
"""

from typing import Optional, Any, Dict


class SkilltoriError(Exception):
    """Base exception for all Skilltori errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(SkilltoriError):
    """Sign-in or token check failed. The message is shown to the user as-is."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class EmailNotVerifiedError(AuthenticationError):
    """Account exists but the email address was never confirmed"""

    def __init__(self, email: str):
        super().__init__("Email not confirmed. Please check your inbox.")
        self.code = "EMAIL_NOT_VERIFIED"
        self.details = {"email": email}


class AuthorizationError(SkilltoriError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(SkilltoriError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": str(resource_id)}
        )


class WorkshopNotFoundError(ResourceNotFoundError):
    def __init__(self, workshop_id: str):
        super().__init__("Workshop", workshop_id)


class CourseNotFoundError(ResourceNotFoundError):
    def __init__(self, course_id: str):
        super().__init__("Course", course_id)


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class PaymentNotFoundError(ResourceNotFoundError):
    def __init__(self, payment_id: str):
        super().__init__("Payment", payment_id)


class JobNotFoundError(ResourceNotFoundError):
    def __init__(self, job_id: str):
        super().__init__("Job", job_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(SkilltoriError):
    """Input validation failed before any backend call"""

    status_code = 400

    def __init__(self, message: str, field: str = None):
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field} if field else {}
        )


class PasswordMismatchError(ValidationError):
    """Password and confirmation differ"""

    def __init__(self):
        super().__init__(
            "পাসওয়ার্ড মেলেনি। অনুগ্রহ করে মিলিয়ে দেখুন।",
            field="confirm_password",
        )
        self.code = "PASSWORD_MISMATCH"


class InvalidCouponError(ValidationError):
    """Coupon code unknown, expired or not applicable"""

    def __init__(self, message: str = "Invalid coupon"):
        super().__init__(message, field="coupon_code")
        self.code = "INVALID_COUPON"


# ============================================
# Data Store Errors
# ============================================

class DuplicateRecordError(SkilltoriError):
    """Unique constraint violation, reported to the user with a specific message"""

    status_code = 409

    def __init__(self, message: str, code: str = "DUPLICATE_RECORD"):
        super().__init__(message, code=code)


class DuplicateAccountError(DuplicateRecordError):
    def __init__(self, email: str):
        super().__init__("An account with this email already exists", code="DUPLICATE_ACCOUNT")
        self.details = {"email": email}


class DuplicateApplicationError(DuplicateRecordError):
    """Second application with the same email"""

    def __init__(self, message: str):
        super().__init__(message, code="DUPLICATE_APPLICATION")


class DataStoreError(SkilltoriError):
    """Any other database failure; the message is prefixed for the user"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(f"Database error: {message}", code="DATABASE_ERROR")


# ============================================
# Payment Errors
# ============================================

class PaymentError(SkilltoriError):
    """Payment operation failed"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, code="PAYMENT_ERROR")


class PaymentGatewayError(PaymentError):
    """bKash rejected a request or could not be reached"""

    status_code = 502

    def __init__(self, message: str, gateway_status: str = None):
        super().__init__(message)
        self.code = "PAYMENT_GATEWAY_ERROR"
        if gateway_status:
            self.details = {"gateway_status": gateway_status}


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: SkilltoriError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
