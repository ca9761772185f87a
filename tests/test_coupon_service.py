"""Tests for coupon CRUD, validation and redemption against a real database."""

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from app.core.exceptions import (
    BadRequestException,
    NotFoundException,
    ValidationFailedException,
)
from app.models.activity_models import UserActivity
from app.models.coupon_models import Coupon, CouponType, CouponUsage
from app.schemas.coupon_schemas import CouponCreate, CouponUpdate
from app.services.coupon_services import coupon_service
from app.utils.activity_helpers import as_actor
from app.utils.dates import utcnow


class TestCreateCoupon:
    async def test_create_normalizes_code_and_logs_activity(self, db, admin, category):
        payload = CouponCreate(
            code=" welcome ",
            value=Decimal("15"),
            valid_until=utcnow() + timedelta(days=10),
            applicable_categories=[category.id],
        )
        coupon = await coupon_service.create_coupon(db, payload, admin)

        assert coupon.code == "WELCOME"
        assert coupon.used_count == 0
        assert coupon.applicable_category_ids == [category.id]
        assert coupon.created_by == admin.id

        activity = (await db.execute(select(UserActivity))).scalars().all()
        assert any("created coupon 'WELCOME'" in a.message for a in activity)

    async def test_duplicate_code_is_rejected(self, db, admin, make_coupon):
        await make_coupon(code="DUP")
        payload = CouponCreate(code="dup", value=Decimal("5"), valid_until=utcnow() + timedelta(days=1))
        with pytest.raises(BadRequestException):
            await coupon_service.create_coupon(db, payload, admin)

    async def test_unknown_product_ids_are_rejected(self, db, admin):
        payload = CouponCreate(
            code="GHOST",
            value=Decimal("5"),
            valid_until=utcnow() + timedelta(days=1),
            applicable_products=[999],
        )
        with pytest.raises(BadRequestException) as exc:
            await coupon_service.create_coupon(db, payload, admin)
        assert "999" in exc.value.detail


class TestValidateCoupon:
    async def test_fixed_coupon_discount_and_final_amount(self, db, customer, make_coupon):
        await make_coupon(code="FIFTY", type=CouponType.fixed, value=Decimal("50"), min_purchase=Decimal("100"))

        applied = await coupon_service.validate_coupon(db, "fifty", customer.id, Decimal("200"))

        assert applied["code"] == "FIFTY"
        assert applied["discount"] == Decimal("50.00")
        assert applied["final_amount"] == Decimal("150.00")

    async def test_percentage_coupon_is_capped(self, db, customer, make_coupon):
        await make_coupon(code="PCT20", value=Decimal("20"), max_discount=Decimal("30"))
        applied = await coupon_service.validate_coupon(db, "PCT20", customer.id, Decimal("200"))
        assert applied["discount"] == Decimal("30.00")

    async def test_unknown_code(self, db, customer):
        with pytest.raises(NotFoundException) as exc:
            await coupon_service.validate_coupon(db, "NOPE", customer.id, Decimal("10"))
        assert exc.value.detail == "Invalid coupon code"

    async def test_failure_surfaces_first_error_and_full_list(self, db, customer, make_coupon):
        await make_coupon(code="OLD", is_active=False, valid_until=utcnow() - timedelta(hours=1))

        with pytest.raises(ValidationFailedException) as exc:
            await coupon_service.validate_coupon(db, "OLD", customer.id, Decimal("10"))

        assert exc.value.status_code == 400
        assert exc.value.detail["message"] == "Coupon is not active"
        assert exc.value.errors == ["Coupon is not active", "Coupon has expired"]

    async def test_validation_does_not_consume_the_coupon(self, db, customer, make_coupon):
        coupon = await make_coupon(code="ONCE", usage_limit=1)
        await coupon_service.validate_coupon(db, "ONCE", customer.id, Decimal("10"))
        await coupon_service.validate_coupon(db, "ONCE", customer.id, Decimal("10"))

        refreshed = await coupon_service.get_coupon(db, coupon.id)
        assert refreshed.used_count == 0
        assert refreshed.usages == []


class TestRedeemCoupon:
    async def test_redeem_records_usage(self, db, admin, customer, make_coupon):
        coupon = await make_coupon(code="THANKS", type=CouponType.fixed, value=Decimal("5"))

        redemption = await coupon_service.redeem_coupon(db, coupon.id, customer.id, Decimal("40"), order_id=12, current_user=admin)

        assert redemption["used_count"] == 1
        assert redemption["discount"] == Decimal("5.00")
        refreshed = await coupon_service.get_coupon(db, coupon.id)
        assert [u.user_id for u in refreshed.usages] == [customer.id]
        assert refreshed.usages[0].order_id == 12

    async def test_same_user_cannot_redeem_twice(self, db, customer, make_coupon):
        coupon = await make_coupon(code="SOLO")
        coupon_id, user_id = coupon.id, customer.id
        await coupon_service.redeem_coupon(db, coupon_id, user_id, Decimal("40"))

        with pytest.raises(ValidationFailedException) as exc:
            await coupon_service.redeem_coupon(db, coupon_id, user_id, Decimal("40"))
        assert exc.value.errors == [coupon_service.ALREADY_USED]

        # and validate now rejects that user
        with pytest.raises(ValidationFailedException):
            await coupon_service.validate_coupon(db, "SOLO", user_id, Decimal("40"))

    async def test_limit_reached(self, db, customer, other_customer, make_coupon):
        coupon = await make_coupon(code="ONE", usage_limit=1)
        await coupon_service.redeem_coupon(db, coupon.id, customer.id, Decimal("40"))

        with pytest.raises(ValidationFailedException) as exc:
            await coupon_service.redeem_coupon(db, coupon.id, other_customer.id, Decimal("40"))
        assert exc.value.errors == [coupon_service.LIMIT_REACHED]

    async def test_concurrent_redemptions_respect_the_limit(
        self, db, session_factory, customer, other_customer, make_coupon
    ):
        coupon = await make_coupon(code="LAST", usage_limit=1)

        async def redeem(user_id):
            async with session_factory() as session:
                return await coupon_service.redeem_coupon(session, coupon.id, user_id, Decimal("40"))

        outcomes = await asyncio.gather(
            redeem(customer.id), redeem(other_customer.id), return_exceptions=True
        )

        successes = [o for o in outcomes if isinstance(o, dict)]
        failures = [o for o in outcomes if isinstance(o, ValidationFailedException)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert failures[0].errors == [coupon_service.LIMIT_REACHED]

        async with session_factory() as session:
            stored = (await session.execute(select(Coupon).where(Coupon.id == coupon.id))).scalars().one()
            usages = (await session.execute(select(CouponUsage))).scalars().all()
        assert stored.used_count == 1
        assert len(usages) == 1

    async def test_concurrent_redemptions_by_an_admin(
        self, session_factory, admin, customer, other_customer, make_coupon
    ):
        coupon = await make_coupon(code="PAIR", usage_limit=2)
        coupon_id = coupon.id

        async def redeem(user_id):
            async with session_factory() as session:
                return await coupon_service.redeem_coupon(
                    session, coupon_id, user_id, Decimal("40"), current_user=admin
                )

        outcomes = await asyncio.gather(
            redeem(customer.id), redeem(other_customer.id), return_exceptions=True
        )

        assert all(isinstance(o, dict) for o in outcomes), outcomes
        assert sorted(o["used_count"] for o in outcomes) == [1, 2]
        async with session_factory() as session:
            activity = (await session.execute(select(UserActivity))).scalars().all()
        assert len(activity) == 2
        assert all(a.message.startswith("Admin redeemed coupon 'PAIR'") for a in activity)

    async def test_actor_snapshot_outlives_a_rejected_redemption(self, db, admin, customer, make_coupon):
        coupon = await make_coupon(code="ONCE")
        coupon_id, user_id = coupon.id, customer.id
        # the rollback below expires every row in the session, admin included
        actor = as_actor(admin)
        await coupon_service.redeem_coupon(db, coupon_id, user_id, Decimal("40"), current_user=actor)

        with pytest.raises(ValidationFailedException):
            await coupon_service.redeem_coupon(db, coupon_id, user_id, Decimal("40"), current_user=actor)

        updated = await coupon_service.update_coupon(db, coupon_id, CouponUpdate(description="Once only"), actor)
        assert updated.description == "Once only"


class TestUpdateAndDelete:
    async def test_usage_limit_cannot_drop_below_used_count(self, db, customer, make_coupon):
        coupon = await make_coupon(code="BUSY")
        await coupon_service.redeem_coupon(db, coupon.id, customer.id, Decimal("40"))

        with pytest.raises(BadRequestException):
            await coupon_service.update_coupon(db, coupon.id, CouponUpdate(usage_limit=0), None)

    async def test_partial_update(self, db, admin, make_coupon):
        coupon = await make_coupon(code="EDIT", max_discount=Decimal("10"))

        updated = await coupon_service.update_coupon(
            db, coupon.id, CouponUpdate(description="Spring", max_discount=None), admin
        )

        assert updated.description == "Spring"
        assert updated.max_discount is None
        assert updated.value == Decimal("20")

    async def test_percentage_over_100_is_rejected(self, db, admin, make_coupon):
        coupon = await make_coupon(code="BIG", type=CouponType.fixed, value=Decimal("150"))
        with pytest.raises(BadRequestException):
            await coupon_service.update_coupon(db, coupon.id, CouponUpdate(type=CouponType.percentage), admin)

    def test_blank_code_is_rejected_on_update(self):
        with pytest.raises(ValidationError):
            CouponUpdate(code="   ")
        assert CouponUpdate(code=" spring ").code == "SPRING"

    async def test_delete(self, db, admin, make_coupon):
        coupon = await make_coupon(code="GONE")
        await coupon_service.delete_coupon(db, coupon.id, admin)
        with pytest.raises(NotFoundException):
            await coupon_service.get_coupon(db, coupon.id)


class TestAnalytics:
    async def test_counts_and_savings(self, db, customer, other_customer, make_coupon):
        active = await make_coupon(code="A", type=CouponType.fixed, value=Decimal("5"))
        await make_coupon(code="B", valid_until=utcnow() - timedelta(days=1))
        await coupon_service.redeem_coupon(db, active.id, customer.id, Decimal("40"))
        await coupon_service.redeem_coupon(db, active.id, other_customer.id, Decimal("40"))

        stats = await coupon_service.get_coupon_analytics(db)

        assert stats["total_coupons"] == 2
        assert stats["active_coupons"] == 1
        assert stats["expired_coupons"] == 1
        assert stats["total_usage"] == 2
        assert stats["total_savings"] == Decimal("10.00")
        assert stats["top_coupons"][0]["code"] == "A"
