"""
Notification Service
Create, list and acknowledge alert notifications
"""
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from inventory_core.core.clock import Clock, utcnow
from inventory_core.core.config import InventoryPolicy
from inventory_core.core.database import unit_of_work
from inventory_core.core.exceptions import NotFoundError, ValidationError
from inventory_core.core.logging import get_logger
from inventory_core.models.notification import (
    Notification, NotificationPriority, NotificationType
)

logger = get_logger("alerts")


class NotificationService:
    """Notifications addressed to one user, or to everyone when user_id is NULL"""

    def __init__(self, db: Session, policy: Optional[InventoryPolicy] = None, clock: Clock = utcnow):
        self.db = db
        self.policy = policy or InventoryPolicy.from_settings()
        self.clock = clock

    def create(
        self,
        notification_type: str,
        title: str,
        message: str = "",
        priority: str = NotificationPriority.MEDIUM.value,
        entity_type: Optional[str] = None,
        entity_id=None,
        user_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> Notification:
        try:
            notification_type = NotificationType(notification_type).value
            priority = NotificationPriority(priority).value
        except ValueError as e:
            raise ValidationError(str(e))
        if not title:
            raise ValidationError("title is required", field="title")

        with unit_of_work(self.db):
            notification = Notification(
                type=notification_type,
                priority=priority,
                title=title,
                message=message or "",
                entity_type=entity_type,
                entity_id=str(entity_id) if entity_id is not None else None,
                user_id=user_id,
                is_read=False,
                is_email_sent=False,
                created_at=self.clock(),
                expires_at=expires_at,
            )
            self.db.add(notification)
            self.db.flush()

        logger.info(f"Notification {notification_type} ({priority}) created: {title}")
        return notification

    def find_open(self, notification_type: str, entity_type: str, entity_id) -> Optional[Notification]:
        """The unread notification for an entity, if one exists"""
        return self.db.query(Notification).filter(
            and_(
                Notification.type == notification_type,
                Notification.entity_type == entity_type,
                Notification.entity_id == str(entity_id),
                Notification.is_read.is_(False)
            )
        ).first()

    def list_for_user(
        self,
        user_id: Optional[str] = None,
        limit: int = 50,
        unread_only: bool = False,
    ) -> List[Notification]:
        query = self.db.query(Notification).filter(self._visible_to(user_id))
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(
            Notification.created_at.desc(), Notification.notification_id.desc()
        ).limit(limit).all()

    def unread_count(self, user_id: Optional[str] = None) -> int:
        return self.db.query(Notification).filter(
            and_(self._visible_to(user_id), Notification.is_read.is_(False))
        ).count()

    def mark_read(self, notification_id: int) -> Notification:
        with unit_of_work(self.db):
            notification = self.db.get(Notification, notification_id)
            if notification is None:
                raise NotFoundError("Notification", notification_id)
            notification.is_read = True
            self.db.flush()
        return notification

    def mark_all_read(self, user_id: Optional[str] = None) -> int:
        with unit_of_work(self.db):
            updated = self.db.query(Notification).filter(
                and_(self._visible_to(user_id), Notification.is_read.is_(False))
            ).update({Notification.is_read: True}, synchronize_session=False)

        logger.info(f"Marked {updated} notification(s) read for {user_id or 'all users'}")
        return updated

    def cleanup(self, days_old: Optional[int] = None) -> int:
        """Delete read notifications older than the retention window"""
        if days_old is None:
            days_old = self.policy.notification_retention_days
        if days_old < 0:
            raise ValidationError("days_old cannot be negative", field="days_old")
        cutoff = self.clock() - timedelta(days=days_old)

        with unit_of_work(self.db):
            deleted = self.db.query(Notification).filter(
                and_(Notification.is_read.is_(True), Notification.created_at < cutoff)
            ).delete(synchronize_session=False)

        logger.info(f"Cleaned up {deleted} notification(s) older than {days_old} days")
        return deleted

    @staticmethod
    def _visible_to(user_id: Optional[str]):
        if user_id is None:
            return Notification.user_id.is_(None)
        return or_(Notification.user_id == user_id, Notification.user_id.is_(None))
