# app/routers/auth/activity_router.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.activity_schemas import UserActivityListResponse, UserActivityOut
from app.services.auth_services.activity_service import get_user_activities
from app.utils.check_roles import require_role
from app.utils.get_user import get_current_user
from app.utils.pagination import page_count

router = APIRouter(prefix="/activities", tags=["Audit Trail"])


@router.get("/", response_model=UserActivityListResponse)
@require_role(["admin"])
async def audit_trail(
    user_id: Optional[int] = Query(None),
    username: Optional[str] = Query(None, description="Exact username"),
    search: Optional[str] = Query(None, description="Text inside the activity message"),
    since: Optional[datetime] = Query(None),
    until: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    total, activities = await get_user_activities(
        db, user_id, username, search, since, until, page, page_size
    )
    return {
        "message": "Activities fetched successfully",
        "total": total,
        "pages": page_count(total, page_size),
        "data": [UserActivityOut.model_validate(a) for a in activities],
    }
