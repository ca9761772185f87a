from fastapi import APIRouter

from .coupons import router as coupons_router

router = APIRouter()

router.include_router(coupons_router)
