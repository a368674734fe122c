"""Notification Schemas — inbox entries and read-flag updates."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    title: str
    message: str
    payload: dict
    is_read: bool
    created_at: datetime


class MarkReadRequest(BaseModel):
    is_read: bool = True


class UnreadCountResponse(BaseModel):
    count: int
