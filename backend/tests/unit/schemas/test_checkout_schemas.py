"""
Unit Tests for workshop, coupon, career and payment schemas
"""
import pytest
from datetime import datetime, timedelta
from pydantic import ValidationError

from app.models.coupon import CouponScope, DiscountType
from app.models.payment import PaymentStatus
from app.schemas.career import JobApplicationCreate
from app.schemas.coupon import CouponCreate
from app.schemas.payment import MakePaymentRequest, PaymentDetailsUpdate
from app.schemas.workshop import EnrollmentSignup, WorkshopCreate


class TestWorkshopCreate:
    def test_valid(self):
        workshop = WorkshopCreate(title="SPSS Basics", slug="spss-basics", price_regular=200, price_offer=150)

        assert workshop.price_offer == 150

    def test_offer_above_regular_rejected(self):
        with pytest.raises(ValidationError):
            WorkshopCreate(title="SPSS Basics", slug="spss-basics", price_regular=200, price_offer=250)

    def test_end_before_start_rejected(self):
        start = datetime(2025, 3, 8, 14, 0)
        with pytest.raises(ValidationError):
            WorkshopCreate(
                title="SPSS Basics",
                slug="spss-basics",
                price_regular=200,
                start_time=start,
                end_time=start - timedelta(hours=1),
            )

    def test_slug_format(self):
        with pytest.raises(ValidationError):
            WorkshopCreate(title="SPSS Basics", slug="SPSS Basics", price_regular=200)


class TestEnrollmentSignup:
    def test_short_password_rejected(self):
        with pytest.raises(ValidationError):
            EnrollmentSignup(email="a@example.com", password="123", confirm_password="123", phone="01711000000")

    def test_academic_fields_optional_at_schema_level(self):
        form = EnrollmentSignup(
            email="a@example.com", password="secret123", confirm_password="secret123", phone="01711000000"
        )

        assert form.university is None


class TestCouponCreate:
    def test_code_upper_cased(self):
        coupon = CouponCreate(code=" eid25 ", discount_type=DiscountType.PERCENTAGE, discount_value=25)

        assert coupon.code == "EID25"
        assert coupon.applies_to == CouponScope.ANY

    def test_percentage_over_hundred_rejected(self):
        with pytest.raises(ValidationError):
            CouponCreate(code="TOOMUCH", discount_type=DiscountType.PERCENTAGE, discount_value=120)

    def test_fixed_amount_over_hundred_allowed(self):
        coupon = CouponCreate(code="FLAT500", discount_type=DiscountType.AMOUNT, discount_value=500)

        assert coupon.discount_value == 500


class TestMakePaymentRequest:
    def test_all_fields_optional(self):
        """Missing fields are reported with statusCode 2065, not by the schema"""
        request = MakePaymentRequest()

        assert request.amount is None
        assert request.user_id is None


class TestPaymentDetailsUpdate:
    def test_only_set_fields_dumped(self):
        update = PaymentDetailsUpdate(trx_id="MANUAL123", status=PaymentStatus.SUCCESSFUL)

        assert update.model_dump(exclude_unset=True) == {
            "trx_id": "MANUAL123",
            "status": PaymentStatus.SUCCESSFUL,
        }

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            PaymentDetailsUpdate(amount=-1)


class TestJobApplicationCreate:
    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            JobApplicationCreate(full_name="Nusrat", email="not-an-email", phone="01811000000")
