# Pydantic Schemas for in-app notifications

from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class NotificationResponse(BaseModel):
    id: str
    role: str
    category: str
    title: str
    message: str
    data: Optional[dict] = None
    read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
