from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from app.core.scope import AppRole


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    title: str
    message: str
    type: str
    related_id: Optional[str] = None
    is_read: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class BroadcastRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)
    target_role: Optional[AppRole] = None  # None sends to everyone in scope


class BroadcastResult(BaseModel):
    count: int


class NotificationStats(BaseModel):
    total: int = 0
    unread: int = 0
    today_sent: int = 0
