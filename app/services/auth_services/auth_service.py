# app/services/auth_services/auth_service.py
from datetime import timedelta
from typing import Dict
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import update

from app.models.user_models import User, RefreshToken
from app.core.security import (
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token,
    REFRESH,
)
from app.core.config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    REFRESH_TOKEN_EXPIRE_DAYS,
    ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES,
)
from app.utils.activity_helpers import log_user_activity
from app.utils.dates import utcnow


async def authenticate_user(db: AsyncSession, username: str, password: str) -> User:
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalars().first()
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive.")
    return user


def _issue_access_token(user: User) -> str:
    expire_minutes = (
        ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES
        if user.role == "admin"
        else ACCESS_TOKEN_EXPIRE_MINUTES
    )
    return create_access_token(
        {"sub": user.username, "user_id": user.id, "role": user.role},
        token_version=user.token_version,
        expires_delta=timedelta(minutes=expire_minutes),
    )


async def create_tokens(db: AsyncSession, user: User):
    """
    Create new access and refresh tokens.
    Includes token_version to support immediate logout invalidation.
    """
    access_token = _issue_access_token(user)
    refresh_token = create_refresh_token(
        {"sub": user.username, "user_id": user.id},
        expires_delta=timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
    )

    db.add(RefreshToken(user_id=user.id, token=refresh_token))
    user.last_login = utcnow()
    await log_user_activity(db, user_id=user.id, username=user.username, message=f"{user.username} logged in")
    await db.commit()

    return access_token, refresh_token


async def refresh_access_token(db: AsyncSession, old_refresh_token: str) -> Dict:
    """
    Rotate refresh token: must find the DB record and ensure it is not revoked.
    Marks old token revoked and issues a new refresh token record.
    """
    try:
        decode_token(old_refresh_token, expected_type=REFRESH)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    result = await db.execute(
        select(RefreshToken).where(RefreshToken.token == old_refresh_token)
    )
    db_token = result.scalars().first()

    if not db_token or db_token.revoked:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or reused refresh token",
        )

    user = db_token.user
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive.")

    db_token.revoked = True
    new_refresh_token = create_refresh_token(
        {"sub": user.username, "user_id": user.id},
        expires_delta=timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
    )
    db.add(RefreshToken(user_id=user.id, token=new_refresh_token))
    await db.commit()

    return {
        "access_token": _issue_access_token(user),
        "refresh_token": new_refresh_token,
        "token_type": "bearer",
    }


async def logout_user(db: AsyncSession, user: User):
    user.token_version += 1

    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user.id)
        .values(revoked=True)
    )
    await log_user_activity(db, user_id=user.id, username=user.username, message=f"{user.username} logged out")
    await db.commit()

    return {"message": "Logged out successfully"}
