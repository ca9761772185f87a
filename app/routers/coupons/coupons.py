# app/routers/coupons/coupons.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.db import get_db
from app.schemas.coupon_schemas import (
    CouponAnalyticsResponse,
    CouponApplicationResponse,
    CouponCreate,
    CouponListResponse,
    CouponOut,
    CouponRedeemRequest,
    CouponRedemptionResponse,
    CouponResponse,
    CouponUpdate,
    CouponValidateRequest,
    MessageResponse,
)
from app.services.coupon_services import coupon_service
from app.utils.check_roles import require_role
from app.utils.get_user import get_current_user
from app.utils.pagination import page_count

router = APIRouter(prefix="/coupons", tags=["Coupons"])


# -----------------------------------------------------------
# CHECKOUT
# -----------------------------------------------------------
@router.post("/validate", response_model=CouponApplicationResponse)
async def validate_coupon_route(
    data: CouponValidateRequest,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    """
    Check a code against the caller's cart and return the discount it gives.
    Nothing is recorded; redemption happens when the order is confirmed.
    """
    applied = await coupon_service.validate_coupon(
        db, data.code, current_user.id, data.cart_total, data.product_ids, data.category_ids
    )
    return {"message": "Coupon applied successfully", "data": applied}


@router.post("/{coupon_id}/redeem", response_model=CouponRedemptionResponse)
@require_role(["admin"])
async def redeem_coupon_route(
    coupon_id: int,
    data: CouponRedeemRequest,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    redemption = await coupon_service.redeem_coupon(
        db, coupon_id, data.user_id, data.order_amount, data.order_id, _user
    )
    return {"message": "Coupon redeemed successfully", "data": redemption}


# -----------------------------------------------------------
# ADMIN
# -----------------------------------------------------------
@router.post("", response_model=CouponResponse, status_code=status.HTTP_201_CREATED)
@require_role(["admin"])
async def create_coupon_route(
    payload: CouponCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    coupon = await coupon_service.create_coupon(db, payload, _user)
    return {"message": "Coupon created successfully", "data": CouponOut.model_validate(coupon)}


@router.get("", response_model=CouponListResponse)
@require_role(["admin"])
async def list_coupons(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None, pattern="^(active|expired|inactive)$"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    """
    /coupons?status=active&search=SUMMER
    """
    total, coupons = await coupon_service.get_all_coupons(db, search, status, page, page_size)
    return {
        "message": "Coupons fetched successfully",
        "total": total,
        "page": page,
        "pages": page_count(total, page_size),
        "data": [CouponOut.model_validate(c) for c in coupons],
    }


@router.get("/analytics", response_model=CouponAnalyticsResponse)
@require_role(["admin"])
async def coupon_analytics(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return {"message": "Coupon analytics fetched successfully", "data": await coupon_service.get_coupon_analytics(db)}


@router.get("/{coupon_id}", response_model=CouponResponse)
@require_role(["admin"])
async def get_coupon_route(coupon_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    coupon = await coupon_service.get_coupon(db, coupon_id)
    return {"message": "Coupon fetched successfully", "data": CouponOut.model_validate(coupon)}


@router.put("/{coupon_id}", response_model=CouponResponse)
@require_role(["admin"])
async def update_coupon_route(
    coupon_id: int,
    payload: CouponUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    coupon = await coupon_service.update_coupon(db, coupon_id, payload, _user)
    return {"message": "Coupon updated successfully", "data": CouponOut.model_validate(coupon)}


@router.delete("/{coupon_id}", response_model=MessageResponse)
@require_role(["admin"])
async def delete_coupon_route(coupon_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    await coupon_service.delete_coupon(db, coupon_id, _user)
    return {"message": "Coupon deleted successfully"}
