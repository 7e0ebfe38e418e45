"""Alert services - notifications, sweeps and their scheduler"""

from .notifications import NotificationService
from .alert_engine import AlertEngineService, expiry_priority
from .alert_scheduler import AlertScheduler

__all__ = [
    "NotificationService",
    "AlertEngineService",
    "expiry_priority",
    "AlertScheduler",
]
