# app/routers/auth/__init__.py
# Login/logout, user administration and the activity log.
from fastapi import APIRouter

from .auth import router as session_router
from .users import router as users_router
from .activity_router import router as activity_router

router = APIRouter()

for child in (session_router, users_router, activity_router):
    router.include_router(child)
