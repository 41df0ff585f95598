# API endpoints
from . import auth, workshops, courses, bkash, payments, coupons, careers, dashboard, health

__all__ = ["auth", "workshops", "courses", "bkash", "payments", "coupons", "careers", "dashboard", "health"]
