"""Notification API endpoints"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from inventory_core.api import deps
from inventory_core.core.config import InventoryPolicy
from inventory_core.services.alerts import AlertEngineService, NotificationService
from inventory_core.schemas.notification import (
    CleanupResponse, MarkAllReadResponse, Notification, NotificationListResponse,
    SweepResponse, UnreadCount
)

router = APIRouter()


def get_notification_service(
    db: Session = Depends(deps.get_db),
    policy: InventoryPolicy = Depends(deps.get_policy),
) -> NotificationService:
    return NotificationService(db, policy)


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    limit: int = Query(50, ge=1, le=500),
    unread_only: bool = Query(False),
    username: str = Depends(deps.get_current_username),
    service: NotificationService = Depends(get_notification_service),
):
    """List the caller's notifications, including ones addressed to everyone."""
    return NotificationListResponse(
        notifications=service.list_for_user(username, limit=limit, unread_only=unread_only),
        unread_count=service.unread_count(username),
    )


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    username: str = Depends(deps.get_current_username),
    service: NotificationService = Depends(get_notification_service),
):
    return UnreadCount(unread_count=service.unread_count(username))


@router.post("/{notification_id}/read", response_model=Notification)
async def mark_read(
    notification_id: int,
    service: NotificationService = Depends(get_notification_service),
):
    return service.mark_read(notification_id)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    username: str = Depends(deps.get_current_username),
    service: NotificationService = Depends(get_notification_service),
):
    return MarkAllReadResponse(updated=service.mark_all_read(username))


@router.post("/process", response_model=SweepResponse)
async def run_sweeps(
    db: Session = Depends(deps.get_db),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """Run the low stock, expiry and expired batch sweeps now."""
    return SweepResponse(results=AlertEngineService(db, policy).run_all())


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup(
    days_old: Optional[int] = Query(None, ge=0, description="Defaults to the retention window"),
    service: NotificationService = Depends(get_notification_service),
):
    """Delete read notifications older than the window."""
    if days_old is None:
        days_old = service.policy.notification_retention_days
    return CleanupResponse(deleted=service.cleanup(days_old), days_old=days_old)
