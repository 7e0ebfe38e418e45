"""Notification Schemas"""

from pydantic import BaseModel, ConfigDict
from typing import Optional, List, Dict
from datetime import datetime

from inventory_core.models.notification import NotificationType, NotificationPriority


class Notification(BaseModel):
    notification_id: int
    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    user_id: Optional[str] = None
    is_read: bool
    created_at: datetime
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: List[Notification]
    unread_count: int


class UnreadCount(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int


class CleanupResponse(BaseModel):
    deleted: int
    days_old: int


class SweepResponse(BaseModel):
    results: Dict[str, int]
