# app/utils/get_user.py
from typing import Optional

from fastapi import Request, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user_models import User
from app.core.db import get_db
from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.core.security import ACCESS, decode_token


def _extract_token(token: Optional[str], authorization: Optional[str]) -> str:
    if token:
        return token
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials.strip()
    raise UnauthorizedException("Missing access token")


async def get_current_user(
    request: Request,
    token: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the caller from a ``token`` header or ``Authorization: Bearer``.
    Its id and username are copied onto ``request.state`` for the request logger;
    a rollback later in the request expires the ORM instance itself.
    """
    try:
        payload = decode_token(_extract_token(token, authorization), expected_type=ACCESS)
    except ValueError as e:
        raise UnauthorizedException(str(e))

    user_id = payload.get("user_id")
    token_version = payload.get("token_version")
    if user_id is None or token_version is None:
        raise UnauthorizedException("Invalid token payload")

    user = await db.get(User, user_id)
    if not user:
        raise UnauthorizedException("User not found")
    if user.token_version != token_version:
        raise UnauthorizedException("Token invalidated. Please log in again.")
    if not user.is_active:
        raise ForbiddenException("User account is inactive.")

    request.state.user_id = user.id
    request.state.username = user.username
    return user
