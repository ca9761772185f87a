# app/schemas/user_schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

class UserLogin(BaseModel):
    username: str
    password: str

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"

class RefreshRequest(BaseModel):
    refresh_token: str

class UserBase(BaseModel):
    username: str = Field(..., min_length=1, max_length=150)
    role: str

class UserCreate(UserBase):
    password: str

class UserUpdate(BaseModel):
    username: Optional[str] = Field(default=None, min_length=1, max_length=150)
    password: Optional[str] = None
    role: Optional[str] = None

class UserOut(UserBase):
    id: int
    is_active: bool
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class MessageResponse(BaseModel):
    message: str

class UserResponse(BaseModel):
    message: str
    data: Optional[UserOut] = None

class UsersListResponse(BaseModel):
    message: str
    data: List[UserOut]
