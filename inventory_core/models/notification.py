"""
Notification Model
Alerts raised by the stock and expiry sweeps
"""
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, text

from inventory_core.core.database import Base


class NotificationType(str, Enum):
    LOW_STOCK = "LOW_STOCK"
    EXPIRY_WARNING = "EXPIRY_WARNING"
    STOCKOUT = "STOCKOUT"
    BATCH_EXPIRY = "BATCH_EXPIRY"
    SYSTEM_ALERT = "SYSTEM_ALERT"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Notification(Base):
    """
    Notification Record

    At most one unread notification may exist per (type, entity_type,
    entity_id); the partial unique index backs the sweep's own check.
    """
    __tablename__ = "notifications"

    notification_id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String(20), nullable=False)
    priority = Column(String(10), nullable=False, default=NotificationPriority.MEDIUM.value)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False, default="")
    entity_type = Column(String(20), nullable=True, doc="product, batch or warehouse")
    entity_id = Column(String(50), nullable=True)
    user_id = Column(String(50), nullable=True, doc="Recipient; NULL for everyone")
    is_read = Column(Boolean, nullable=False, default=False)
    is_email_sent = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index(
            "uq_notification_open_entity",
            "type", "entity_type", "entity_id",
            unique=True,
            sqlite_where=text("is_read = 0"),
            postgresql_where=text("NOT is_read"),
        ),
        Index("idx_notification_user", "user_id", "is_read"),
    )
