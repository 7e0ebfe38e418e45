"""Purchasing API endpoints"""

from . import purchase_orders

__all__ = ["purchase_orders"]
