"""Tests for coupon arithmetic and coupon application."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from sunyield.client.errors import ApiError, ErrorKind
from sunyield.domains.coupons import AppliedCoupon, CouponApplier, discount_of, payable_amount
from sunyield.models import Coupon, CouponValidation, DiscountType
from sunyield.shared.notifications import NotificationLevel, Notifier


class TestPayableAmount:
    def test_subtracts_discount(self):
        assert payable_amount(5000, 1500) == 3500

    def test_never_negative(self):
        assert payable_amount(100, 250) == 0

    def test_negative_discount_ignored(self):
        assert payable_amount(100, -20) == 100

    def test_rounds_to_paise(self):
        assert payable_amount(999.999, 0.333) == 999.67

    def test_discount_of_none(self):
        assert discount_of(None) == 0.0
        assert discount_of(AppliedCoupon("SUN", 40.0, 400.0)) == 40.0


class TestCouponDiscount:
    def test_percentage_capped_by_max(self):
        coupon = Coupon(
            code="SUN10", discount_type=DiscountType.PERCENTAGE, discount_value=10, max_discount=300
        )
        assert coupon.calculate_discount(1000) == 100
        assert coupon.calculate_discount(5000) == 300

    def test_fixed_never_exceeds_amount(self):
        coupon = Coupon(code="FLAT500", discount_type=DiscountType.FIXED, discount_value=500)
        assert coupon.calculate_discount(2000) == 500
        assert coupon.calculate_discount(300) == 300

    def test_zero_amount(self):
        coupon = Coupon(code="FLAT500", discount_value=500)
        assert coupon.calculate_discount(0) == 0

    def test_validity_window_and_usage(self):
        now = datetime(2026, 6, 1, tzinfo=UTC)
        coupon = Coupon(
            code="SUMMER",
            valid_from=now - timedelta(days=1),
            valid_until=now + timedelta(days=1),
            max_usage=2,
            current_usage=1,
        )
        assert coupon.is_valid(now)
        assert not coupon.is_valid(now + timedelta(days=2))
        assert not coupon.model_copy(update={"current_usage": 2}).is_valid(now)
        assert not coupon.model_copy(update={"is_active": False}).is_valid(now)


class TestCouponApplier:
    @pytest.mark.asyncio
    async def test_empty_code_makes_no_request(self):
        api = AsyncMock()
        notifier = Notifier()
        applier = CouponApplier(api, notifier)

        assert await applier.apply("   ", 1000) is None
        api.validate.assert_not_awaited()
        assert notifier.errors() == ["Please enter a coupon code"]

    @pytest.mark.asyncio
    async def test_valid_coupon(self):
        api = AsyncMock()
        api.validate.return_value = CouponValidation(valid=True, discount=1500)
        notifier = Notifier()

        applied = await CouponApplier(api, notifier).apply(" sun30 ", 5000)

        api.validate.assert_awaited_once_with("sun30", 5000)
        assert applied == AppliedCoupon(code="SUN30", discount=1500, quoted_amount=5000)
        assert notifier.last.level == NotificationLevel.SUCCESS
        assert notifier.last.message == "Coupon applied! ₹1,500 discount"

    @pytest.mark.asyncio
    async def test_rejected_coupon(self):
        api = AsyncMock()
        api.validate.return_value = CouponValidation(valid=False, message="Coupon expired")
        notifier = Notifier()

        assert await CouponApplier(api, notifier).apply("OLD", 5000) is None
        assert notifier.errors() == ["Coupon expired"]

    @pytest.mark.asyncio
    async def test_rejected_without_message(self):
        api = AsyncMock()
        api.validate.return_value = CouponValidation(valid=False)
        notifier = Notifier()

        await CouponApplier(api, notifier).apply("OLD", 5000)
        assert notifier.errors() == ["Invalid or expired coupon code"]

    @pytest.mark.asyncio
    async def test_request_failure(self):
        api = AsyncMock()
        api.validate.side_effect = ApiError("Service unavailable", 503, ErrorKind.UNEXPECTED)
        notifier = Notifier()
        applier = CouponApplier(api, notifier)

        assert await applier.apply("SUN", 5000) is None
        assert notifier.errors() == ["Service unavailable"]
        assert applier.loading is False
