# app/routers/__init__.py

from .auth import router as auth_router
from .inventory import router as inventory_router
from .coupons import router as coupons_router

__all__ = [
    "auth_router",
    "inventory_router",
    "coupons_router",
]
