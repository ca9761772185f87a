# app/services/auth_services/activity_service.py
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException
from app.models.activity_models import UserActivity
from app.utils.dates import as_utc


async def get_user_activities(
    db: AsyncSession,
    user_id: Optional[int] = None,
    username: Optional[str] = None,
    search: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[int, List[UserActivity]]:
    """
    Audit trail, newest first. ``search`` matches inside the message, so
    ``search="coupon 'SAVE20'"`` finds every action on that coupon.
    """
    since, until = as_utc(since), as_utc(until)
    if since and until and since > until:
        raise BadRequestException("since must not be after until")

    filters = []
    if user_id is not None:
        filters.append(UserActivity.user_id == user_id)
    if username:
        filters.append(UserActivity.username == username)
    if search:
        filters.append(UserActivity.message.ilike(f"%{search}%"))
    if since:
        filters.append(UserActivity.created_at >= since)
    if until:
        filters.append(UserActivity.created_at <= until)

    total = (await db.execute(select(func.count(UserActivity.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(UserActivity)
        .where(*filters)
        .order_by(UserActivity.created_at.desc(), UserActivity.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return total, result.scalars().all()
