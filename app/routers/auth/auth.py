# app/routers/auth/auth.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_db
from app.schemas.user_schemas import UserLogin, TokenResponse, RefreshRequest, MessageResponse
from app.services.auth_services.auth_service import (
    authenticate_user,
    create_tokens,
    refresh_access_token,
    logout_user,
)
from app.utils.get_user import get_current_user

router = APIRouter(prefix="/auth", tags=["Auth"])

@router.post("/login", response_model=TokenResponse)
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    user = await authenticate_user(db, data.username, data.password)
    access_token, refresh_token = await create_tokens(db, user)
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)

@router.post("/refresh", response_model=TokenResponse)
async def refresh_token_endpoint(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """
    Exchange a refresh token for a new access token; the old refresh token is revoked.
    """
    return TokenResponse(**await refresh_access_token(db, data.refresh_token))

@router.post("/logout", response_model=MessageResponse)
async def logout(db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)):
    """
    Invalidates every access and refresh token issued to the caller.
    """
    return await logout_user(db, current_user)
