"""
API Dependencies
Common dependencies for API endpoints
"""

from typing import Generator, Optional
from fastapi import Header

from inventory_core.core.config import InventoryPolicy
from inventory_core.core.database import SessionLocal


def get_db() -> Generator:
    """
    Database dependency - creates a new database session for each request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_username(x_user: Optional[str] = Header(None)) -> str:
    """
    Acting user for audit fields, taken from the X-User header.

    Authentication happens upstream; this service trusts the header.
    """
    return (x_user or "").strip() or "system"


def get_policy() -> InventoryPolicy:
    return InventoryPolicy.from_settings()


def get_pagination_params(
    skip: int = 0,
    limit: int = 100
) -> dict:
    """
    Common pagination parameters.
    """
    return {"skip": skip, "limit": min(limit, 500)}
