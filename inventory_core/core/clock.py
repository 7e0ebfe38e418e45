"""
Clock used by every service so time can be pinned in tests
"""
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the database columns store"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
