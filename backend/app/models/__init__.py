# Re-export all models for convenient imports
from app.models.user import User, UserRole
from app.models.workshop import Workshop, WorkshopCategory, WorkshopStatus, UserWorkshop
from app.models.course import Course, CourseType, CourseStatus, UserCourse
from app.models.payment import Payment, PaymentStatus, PaymentPurpose, PaymentChannel
from app.models.coupon import Coupon, CouponUsage, DiscountType, CouponScope
from app.models.career import Job, JobApplication, CampusAmbassador

__all__ = [
    # User
    "User",
    "UserRole",
    # Workshops
    "Workshop",
    "WorkshopCategory",
    "WorkshopStatus",
    "UserWorkshop",
    # Courses
    "Course",
    "CourseType",
    "CourseStatus",
    "UserCourse",
    # Payments
    "Payment",
    "PaymentStatus",
    "PaymentPurpose",
    "PaymentChannel",
    # Coupons
    "Coupon",
    "CouponUsage",
    "DiscountType",
    "CouponScope",
    # Careers
    "Job",
    "JobApplication",
    "CampusAmbassador",
]
