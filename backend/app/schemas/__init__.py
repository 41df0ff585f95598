# Pydantic schemas
from app.schemas.auth import (
    UserSignup,
    UserLogin,
    UserResponse,
    LoginResponse,
    SignupResponse,
    ProfileUpdate,
)
from app.schemas.workshop import (
    WorkshopCreate,
    WorkshopResponse,
    WorkshopPricingResponse,
    EnrollmentSignup,
    EnrollmentLogin,
    EnrollmentGateResponse,
    CheckoutRequest,
    CheckoutResponse,
)
from app.schemas.course import CourseCreate, CourseResponse
from app.schemas.payment import (
    MakePaymentRequest,
    BkashCallbackRequest,
    PaymentResponse,
    AdminPaymentResponse,
    PaymentStatusUpdate,
    PaymentDetailsUpdate,
)
from app.schemas.coupon import CouponCreate, CouponResponse, CouponValidateRequest, CouponValidateResponse
from app.schemas.career import (
    JobResponse,
    JobApplicationCreate,
    CampusAmbassadorCreate,
    ApplicationResult,
)
