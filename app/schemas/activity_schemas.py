# app/schemas/activity_schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class UserActivityOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    message: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserActivityListResponse(BaseModel):
    message: str
    total: int
    pages: int
    data: List[UserActivityOut]
