# app/utils/activity_helpers.py
from dataclasses import dataclass
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.activity_models import UserActivity


@dataclass(frozen=True)
class Actor:
    """Detached copy of the acting user, still readable after a session rollback."""
    id: int
    username: str
    role: str


def as_actor(user) -> Optional[Actor]:
    """
    Snapshot ``user`` before any write that may roll back. A rollback expires
    every instance in the session, and reloading one lazily is not possible
    under asyncio.
    """
    if user is None or isinstance(user, Actor):
        return user
    return Actor(id=user.id, username=user.username, role=user.role)


def actor_id(actor: Optional[Actor]) -> Optional[int]:
    return actor.id if actor is not None else None


async def log_user_activity(
    db: AsyncSession,
    user_id: Optional[int] = None,
    username: Optional[str] = None,
    message: str = "",
):
    """
    Adds a user activity log to the session. The caller is responsible for the commit,
    so the activity row lands in the same transaction as the change it describes.
    """
    db.add(
        UserActivity(
            user_id=user_id,
            username=username,
            message=message
        )
    )


async def log_actor_activity(db: AsyncSession, actor, message: str):
    """Shortcut for services that receive the current user (or None for system calls)."""
    actor = as_actor(actor)
    if actor is None:
        return
    await log_user_activity(
        db,
        user_id=actor.id,
        username=actor.username,
        message=f"{actor.role.capitalize()} {message}",
    )
