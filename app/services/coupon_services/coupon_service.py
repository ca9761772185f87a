# app/services/coupon_services/coupon_service.py
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    BadRequestException,
    NotFoundException,
    ValidationFailedException,
)
from app.models.coupon_models import Coupon, CouponType, CouponUsage
from app.models.product_models import Category, Product
from app.models.user_models import User
from app.schemas.coupon_schemas import CouponCreate, CouponUpdate
from app.services.coupon_services import coupon_rules
from app.utils.activity_helpers import actor_id, as_actor, log_actor_activity
from app.utils.concurrency import retry_versioned_write
from app.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

ALREADY_USED = "You have already used this coupon"
LIMIT_REACHED = "Coupon usage limit reached"
# fields an update may explicitly clear
NULLABLE_FIELDS = {"max_discount", "usage_limit"}


# -----------------------
# HELPERS
# -----------------------
async def _load_by_ids(db: AsyncSession, model, ids: List[int], label: str):
    ids = list(dict.fromkeys(ids))
    if not ids:
        return []
    result = await db.execute(select(model).where(model.id.in_(ids)))
    rows = result.scalars().all()
    missing = sorted(set(ids) - {row.id for row in rows})
    if missing:
        raise BadRequestException(f"Unknown {label} ids: {missing}")
    return rows


async def _ensure_code_available(db: AsyncSession, code: str, exclude_id: Optional[int] = None):
    stmt = select(Coupon.id).where(Coupon.code == code)
    if exclude_id is not None:
        stmt = stmt.where(Coupon.id != exclude_id)
    if (await db.execute(stmt)).first():
        raise BadRequestException("Coupon code already exists")


async def _fetch_coupon(db: AsyncSession, coupon_id: int) -> Coupon:
    result = await db.execute(
        select(Coupon).where(Coupon.id == coupon_id).execution_options(populate_existing=True)
    )
    coupon = result.scalars().first()
    if not coupon:
        raise NotFoundException("Coupon not found")
    return coupon


def _check_value_rules(coupon_type, value, valid_from, valid_until):
    if coupon_type == CouponType.percentage and Decimal(value) > 100:
        raise BadRequestException("Percentage discount cannot exceed 100")
    if valid_from and valid_until and as_utc(valid_from) >= as_utc(valid_until):
        raise BadRequestException("valid_from must be before valid_until")


# -----------------------
# CREATE
# -----------------------
async def create_coupon(db: AsyncSession, payload: CouponCreate, current_user) -> Coupon:
    actor = as_actor(current_user)
    try:
        await _ensure_code_available(db, payload.code)

        data = payload.model_dump(
            exclude={"applicable_products", "applicable_categories", "allowed_users"},
            exclude_none=True,
        )
        coupon = Coupon(**data, used_count=0, created_by=actor_id(actor))
        coupon.applicable_products = await _load_by_ids(db, Product, payload.applicable_products, "product")
        coupon.applicable_categories = await _load_by_ids(db, Category, payload.applicable_categories, "category")
        coupon.allowed_users = await _load_by_ids(db, User, payload.allowed_users, "user")
        if coupon.valid_from is None:
            coupon.valid_from = utcnow()

        db.add(coupon)
        await db.flush()

        await log_actor_activity(db, actor, f"created coupon '{coupon.code}' (ID: {coupon.id})")

        await db.commit()
        return await _fetch_coupon(db, coupon.id)

    except HTTPException:
        await db.rollback()
        raise
    except IntegrityError:
        await db.rollback()
        raise BadRequestException("Coupon code already exists")
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error creating coupon: {e}")


# -----------------------
# READ
# -----------------------
async def get_all_coupons(
    db: AsyncSession,
    search: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[int, List[Coupon]]:
    filters = []
    now = utcnow()

    if search:
        filters.append(Coupon.code.ilike(f"%{search}%"))

    if status == "active":
        filters.append(and_(Coupon.is_active == True, Coupon.valid_until >= now))
    elif status == "expired":
        filters.append(Coupon.valid_until < now)
    elif status == "inactive":
        filters.append(Coupon.is_active == False)

    total = (await db.execute(select(func.count(Coupon.id)).where(*filters))).scalar() or 0

    result = await db.execute(
        select(Coupon)
        .where(*filters)
        .order_by(Coupon.created_at.desc(), Coupon.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return total, result.scalars().all()


async def get_coupon(db: AsyncSession, coupon_id: int) -> Coupon:
    return await _fetch_coupon(db, coupon_id)


# -----------------------
# UPDATE
# -----------------------
async def update_coupon(db: AsyncSession, coupon_id: int, payload: CouponUpdate, current_user) -> Coupon:
    update_data = payload.model_dump(exclude_unset=True)
    relation_fields = {
        "applicable_products": (Product, "product"),
        "applicable_categories": (Category, "category"),
        "allowed_users": (User, "user"),
    }
    actor = as_actor(current_user)

    async def apply_update() -> Coupon:
        coupon = await _fetch_coupon(db, coupon_id)

        if update_data.get("code") and update_data["code"] != coupon.code:
            await _ensure_code_available(db, update_data["code"], exclude_id=coupon.id)

        def merged(key):
            value = update_data.get(key)
            return getattr(coupon, key) if value is None else value

        _check_value_rules(merged("type"), merged("value"), merged("valid_from"), merged("valid_until"))
        new_limit = update_data.get("usage_limit")
        if new_limit is not None and new_limit < coupon.used_count:
            raise BadRequestException("usage_limit cannot be lower than the current used_count")

        changes = []
        for key, value in update_data.items():
            if key in relation_fields:
                model, label = relation_fields[key]
                setattr(coupon, key, await _load_by_ids(db, model, value or [], label))
                changes.append(key)
                continue
            if value is None and key not in NULLABLE_FIELDS:
                continue
            if getattr(coupon, key) != value:
                setattr(coupon, key, value)
                changes.append(key)

        if changes:
            await log_actor_activity(
                db, actor, f"updated coupon '{coupon.code}' (ID: {coupon.id}): {', '.join(changes)}"
            )
        await db.commit()
        return coupon

    try:
        await retry_versioned_write(db, apply_update, f"coupon {coupon_id}")
        return await _fetch_coupon(db, coupon_id)
    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error updating coupon: {e}")


# -----------------------
# DELETE
# -----------------------
async def delete_coupon(db: AsyncSession, coupon_id: int, current_user) -> None:
    try:
        coupon = await _fetch_coupon(db, coupon_id)
        code = coupon.code
        await db.delete(coupon)
        await log_actor_activity(db, current_user, f"deleted coupon '{code}' (ID: {coupon_id})")
        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error deleting coupon: {e}")


# -----------------------
# VALIDATE / APPLY
# -----------------------
async def validate_coupon(
    db: AsyncSession,
    code: str,
    user_id: Optional[int],
    cart_total,
    product_ids: Optional[List[int]] = None,
    category_ids: Optional[List[int]] = None,
) -> dict:
    """
    Check ``code`` against the cart and return the discount it would give.
    Read-only: nothing is recorded until the order is redeemed.
    """
    result = await db.execute(select(Coupon).where(Coupon.code == code.strip().upper()))
    coupon = result.scalars().first()
    if not coupon:
        raise NotFoundException("Invalid coupon code")

    validation = coupon_rules.validate(coupon, user_id, cart_total, product_ids or [], category_ids or [])
    if not validation.valid:
        logger.debug("Coupon %s rejected for user %s: %s", coupon.code, user_id, validation.errors)
        raise ValidationFailedException(validation.errors)

    cart_total = coupon_rules.to_decimal(cart_total)
    discount = coupon_rules.calculate_discount(coupon, cart_total)
    return {
        "coupon_id": coupon.id,
        "code": coupon.code,
        "type": coupon.type,
        "value": coupon.value,
        "discount": discount,
        "final_amount": cart_total - discount,
    }


# -----------------------
# REDEEM
# -----------------------
async def redeem_coupon(
    db: AsyncSession,
    coupon_id: int,
    user_id: int,
    order_amount,
    order_id: Optional[int] = None,
    current_user=None,
) -> dict:
    """
    Record one redemption of a confirmed order. The usage-limit check and the
    ``used_count`` increment commit as one versioned write, so concurrent
    redemptions can never push the count past ``usage_limit``.
    """
    order_amount = coupon_rules.to_decimal(order_amount)
    actor = as_actor(current_user)

    async def apply_redemption() -> dict:
        coupon = await _fetch_coupon(db, coupon_id)

        errors = []
        if coupon_rules.is_usage_limit_reached(coupon):
            errors.append(LIMIT_REACHED)
        if coupon_rules.has_user_redeemed(coupon, user_id):
            errors.append(ALREADY_USED)
        if errors:
            raise ValidationFailedException(errors)

        discount = coupon_rules.calculate_discount(coupon, order_amount)
        coupon.used_count = (coupon.used_count or 0) + 1
        coupon.usages.append(
            CouponUsage(
                user_id=user_id,
                used_at=utcnow(),
                order_amount=order_amount,
                discount_amount=discount,
                order_id=order_id,
            )
        )
        await log_actor_activity(
            db, actor, f"redeemed coupon '{coupon.code}' for user {user_id} (discount {discount})"
        )
        await db.commit()
        return {
            "coupon_id": coupon.id,
            "user_id": user_id,
            "discount": discount,
            "used_count": coupon.used_count,
        }

    try:
        return await retry_versioned_write(db, apply_redemption, f"coupon {coupon_id}")
    except HTTPException:
        await db.rollback()
        raise
    except IntegrityError:
        # another session recorded this user's usage first
        await db.rollback()
        raise ValidationFailedException([ALREADY_USED])
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error redeeming coupon: {e}")


# -----------------------
# ANALYTICS
# -----------------------
async def get_coupon_analytics(db: AsyncSession) -> dict:
    now = utcnow()
    result = await db.execute(select(Coupon))
    coupons = result.scalars().all()

    savings = (await db.execute(select(func.coalesce(func.sum(CouponUsage.discount_amount), 0)))).scalar()

    top = sorted(coupons, key=lambda c: c.used_count or 0, reverse=True)[:10]
    return {
        "total_coupons": len(coupons),
        "active_coupons": sum(1 for c in coupons if c.is_active and not coupon_rules.is_expired(c, now)),
        "expired_coupons": sum(1 for c in coupons if coupon_rules.is_expired(c, now)),
        "total_usage": sum(c.used_count or 0 for c in coupons),
        "total_savings": coupon_rules.to_decimal(savings).quantize(coupon_rules.CENT),
        "top_coupons": [
            {"code": c.code, "used_count": c.used_count, "type": c.type, "value": c.value}
            for c in top
        ],
    }
