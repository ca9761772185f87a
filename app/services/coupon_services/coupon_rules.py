"""
Coupon validation and discount rules.

Everything here is a pure function of a coupon snapshot and the cart context,
so it can run against ORM rows or plain objects and never touches the session.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from app.models.coupon_models import CouponType
from app.utils.dates import as_utc, utcnow

CENT = Decimal("0.01")


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value if value is not None else 0))


def is_expired(coupon, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return now > as_utc(coupon.valid_until)


def is_not_yet_valid(coupon, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    valid_from = as_utc(coupon.valid_from)
    return valid_from is not None and now < valid_from


def is_usage_limit_reached(coupon) -> bool:
    return coupon.usage_limit is not None and (coupon.used_count or 0) >= coupon.usage_limit


def has_user_redeemed(coupon, user_id) -> bool:
    return any(usage.user_id == user_id for usage in coupon.usages)


def _intersects(allowed: Iterable[int], requested: Iterable[int]) -> bool:
    allowed = set(allowed)
    return any(item in allowed for item in requested)


def validate(
    coupon,
    user_id,
    cart_total,
    product_ids: Iterable[int] = (),
    category_ids: Iterable[int] = (),
    now: Optional[datetime] = None,
) -> ValidationResult:
    """Run every rule and collect all failures; nothing short-circuits."""
    now = now or utcnow()
    cart_total = to_decimal(cart_total)
    min_purchase = to_decimal(coupon.min_purchase)
    errors = []

    if not coupon.is_active:
        errors.append("Coupon is not active")

    if is_expired(coupon, now):
        errors.append("Coupon has expired")

    if is_not_yet_valid(coupon, now):
        errors.append("Coupon is not yet valid")

    if is_usage_limit_reached(coupon):
        errors.append("Coupon usage limit reached")

    if cart_total < min_purchase:
        errors.append(f"Minimum purchase amount is ${min_purchase:.2f}")

    if user_id is not None and has_user_redeemed(coupon, user_id):
        errors.append("You have already used this coupon")

    allowed_products = coupon.applicable_product_ids
    if allowed_products and not _intersects(allowed_products, product_ids or ()):
        errors.append("Coupon not applicable to any products in your cart")

    allowed_categories = coupon.applicable_category_ids
    if allowed_categories and not _intersects(allowed_categories, category_ids or ()):
        errors.append("Coupon not applicable to product categories in your cart")

    return ValidationResult(valid=not errors, errors=errors)


def calculate_discount(coupon, cart_total) -> Decimal:
    """
    Percentage coupons take ``value`` percent of the cart, capped by
    ``max_discount``; fixed coupons take ``value``. The result always lies in
    ``[0, cart_total]``.
    """
    cart_total = to_decimal(cart_total)
    value = to_decimal(coupon.value)

    if coupon.type == CouponType.percentage:
        discount = cart_total * value / Decimal(100)
        if coupon.max_discount is not None:
            discount = min(discount, to_decimal(coupon.max_discount))
    else:
        discount = value

    discount = max(Decimal(0), min(discount, cart_total))
    return discount.quantize(CENT, rounding=ROUND_HALF_UP)
