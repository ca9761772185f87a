"""Tests for the pure coupon validation and discount rules."""

from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.models.coupon_models import CouponType
from app.services.coupon_services import coupon_rules
from app.utils.dates import utcnow


def make_coupon(**overrides):
    now = utcnow()
    fields = dict(
        is_active=True,
        type=CouponType.percentage,
        value=Decimal("10"),
        min_purchase=Decimal("0"),
        max_discount=None,
        usage_limit=None,
        used_count=0,
        valid_from=now - timedelta(days=1),
        valid_until=now + timedelta(days=1),
        usages=[],
        applicable_product_ids=[],
        applicable_category_ids=[],
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestValidate:
    def test_valid_coupon_has_no_errors(self):
        result = coupon_rules.validate(make_coupon(), user_id=1, cart_total=Decimal("50"))
        assert result.valid is True
        assert result.errors == []

    def test_inactive(self):
        result = coupon_rules.validate(make_coupon(is_active=False), 1, Decimal("50"))
        assert result.errors == ["Coupon is not active"]

    def test_expired_coupon_always_reports_expiry(self):
        coupon = make_coupon(valid_until=utcnow() - timedelta(seconds=1))
        result = coupon_rules.validate(coupon, 1, Decimal("50"))
        assert not result.valid
        assert "Coupon has expired" in result.errors

    def test_not_yet_valid(self):
        coupon = make_coupon(valid_from=utcnow() + timedelta(hours=1))
        result = coupon_rules.validate(coupon, 1, Decimal("50"))
        assert result.errors == ["Coupon is not yet valid"]

    def test_usage_limit_reached(self):
        coupon = make_coupon(usage_limit=3, used_count=3)
        result = coupon_rules.validate(coupon, 1, Decimal("50"))
        assert result.errors == ["Coupon usage limit reached"]

    def test_minimum_purchase_message_has_two_decimals(self):
        coupon = make_coupon(min_purchase=Decimal("100"))
        result = coupon_rules.validate(coupon, 1, Decimal("99.99"))
        assert result.errors == ["Minimum purchase amount is $100.00"]

    def test_prior_redemption_rejects_that_user_only(self):
        coupon = make_coupon(usages=[SimpleNamespace(user_id=7)])
        assert coupon_rules.validate(coupon, 7, Decimal("50")).errors == ["You have already used this coupon"]
        assert coupon_rules.validate(coupon, 8, Decimal("50")).valid

    def test_product_allow_list_needs_an_intersection(self):
        coupon = make_coupon(applicable_product_ids=[1, 2])
        assert coupon_rules.validate(coupon, 1, Decimal("50"), product_ids=[2, 9]).valid
        result = coupon_rules.validate(coupon, 1, Decimal("50"), product_ids=[9])
        assert result.errors == ["Coupon not applicable to any products in your cart"]

    def test_category_allow_list_needs_an_intersection(self):
        coupon = make_coupon(applicable_category_ids=[5])
        result = coupon_rules.validate(coupon, 1, Decimal("50"), category_ids=[])
        assert result.errors == ["Coupon not applicable to product categories in your cart"]

    def test_empty_allow_lists_mean_everything(self):
        result = coupon_rules.validate(make_coupon(), 1, Decimal("50"), product_ids=[42], category_ids=[42])
        assert result.valid

    def test_every_failure_is_collected_in_order(self):
        coupon = make_coupon(
            is_active=False,
            valid_until=utcnow() - timedelta(days=1),
            usage_limit=1,
            used_count=1,
            min_purchase=Decimal("500"),
            usages=[SimpleNamespace(user_id=1)],
        )
        result = coupon_rules.validate(coupon, 1, Decimal("10"))
        assert result.errors == [
            "Coupon is not active",
            "Coupon has expired",
            "Coupon usage limit reached",
            "Minimum purchase amount is $500.00",
            "You have already used this coupon",
        ]

    def test_naive_dates_are_treated_as_utc(self):
        naive_past = (utcnow() - timedelta(days=1)).replace(tzinfo=None)
        coupon = make_coupon(valid_until=naive_past)
        assert coupon_rules.is_expired(coupon)


class TestCalculateDiscount:
    def test_fixed_amount(self):
        coupon = make_coupon(type=CouponType.fixed, value=Decimal("50"), min_purchase=Decimal("100"))
        discount = coupon_rules.calculate_discount(coupon, Decimal("200"))
        assert discount == Decimal("50.00")
        assert Decimal("200") - discount == Decimal("150.00")

    def test_percentage_capped_by_max_discount(self):
        coupon = make_coupon(value=Decimal("20"), max_discount=Decimal("30"))
        assert coupon_rules.calculate_discount(coupon, Decimal("200")) == Decimal("30.00")

    def test_percentage_under_cap(self):
        coupon = make_coupon(value=Decimal("20"), max_discount=Decimal("100"))
        assert coupon_rules.calculate_discount(coupon, Decimal("200")) == Decimal("40.00")

    def test_fixed_discount_never_exceeds_cart(self):
        coupon = make_coupon(type=CouponType.fixed, value=Decimal("80"))
        assert coupon_rules.calculate_discount(coupon, Decimal("25")) == Decimal("25.00")

    def test_rounds_to_cents(self):
        coupon = make_coupon(value=Decimal("15"))
        assert coupon_rules.calculate_discount(coupon, Decimal("19.99")) == Decimal("3.00")

    @pytest.mark.parametrize("cart_total", ["0", "0.01", "10", "99.99", "100000"])
    def test_discount_stays_within_cart_and_cap(self, cart_total):
        cart_total = Decimal(cart_total)
        percentage = make_coupon(value=Decimal("100"), max_discount=Decimal("75"))
        fixed = make_coupon(type=CouponType.fixed, value=Decimal("60"))

        pct_discount = coupon_rules.calculate_discount(percentage, cart_total)
        fixed_discount = coupon_rules.calculate_discount(fixed, cart_total)

        assert Decimal(0) <= pct_discount <= min(cart_total, Decimal("75"))
        assert Decimal(0) <= fixed_discount <= cart_total

    def test_accepts_floats(self):
        coupon = make_coupon(type=CouponType.fixed, value=10)
        assert coupon_rules.calculate_discount(coupon, 59.9) == Decimal("10.00")
