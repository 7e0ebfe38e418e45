"""
Document number generation for batches, transfers and purchase orders
"""
import secrets
import string
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.orm import Session

from inventory_core.core.exceptions import ValidationError

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits

MAX_NUMBER_ATTEMPTS = 10


def random_suffix(length: int = 3) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def epoch_millis(now: datetime) -> int:
    # Naive timestamps from the clock are UTC
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return int(now.timestamp() * 1000)


def batch_number(now: datetime) -> str:
    """B + YYMMDDHHMMSS + 3 random characters"""
    return f"B{now.strftime('%y%m%d%H%M%S')}{random_suffix()}"


def transfer_number(now: datetime) -> str:
    """TRF + epoch milliseconds + 3 random characters"""
    return f"TRF{epoch_millis(now)}{random_suffix()}"


def purchase_order_number(now: datetime) -> str:
    """PO + epoch milliseconds + 3 random characters"""
    return f"PO{epoch_millis(now)}{random_suffix()}"


def unique_number(db: Session, column, generate: Callable[[], str], attempts: int = MAX_NUMBER_ATTEMPTS) -> str:
    """First generated number not already stored in column"""
    for _ in range(attempts):
        candidate = generate()
        if db.query(column).filter(column == candidate).first() is None:
            return candidate
    raise ValidationError(f"Could not generate a unique {column.key}", field=column.key)
