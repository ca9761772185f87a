# app/core/security.py
from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
import uuid
from jose import jwt, JWTError
from app.core.config import JWT_SECRET, JWT_ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES, REFRESH_TOKEN_EXPIRE_DAYS

ACCESS = "access"
REFRESH = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def _encode(claims: Dict, token_type: str, lifetime: timedelta) -> str:
    issued_at = datetime.now(timezone.utc)
    payload = {**claims, "type": token_type, "iat": issued_at, "exp": issued_at + lifetime}
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def create_access_token(claims: Dict, token_version: int, expires_delta: Optional[timedelta] = None) -> str:
    """``token_version`` must match the user's row; logout bumps it."""
    return _encode(
        {**claims, "token_version": token_version},
        ACCESS,
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(claims: Dict, expires_delta: Optional[timedelta] = None) -> str:
    # jti keeps two tokens minted in the same second distinct
    return _encode(
        {**claims, "jti": uuid.uuid4().hex},
        REFRESH,
        expires_delta or timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_token(token: str, expected_type: Optional[str] = None) -> Dict:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise ValueError("Invalid or expired token")
    if expected_type and payload.get("type") != expected_type:
        raise ValueError("Invalid token type")
    return payload
