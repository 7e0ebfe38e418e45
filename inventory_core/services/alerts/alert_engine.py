"""
Alert Engine Service
Periodic sweeps that turn ledger and batch state into notifications
"""
import math
from datetime import timedelta
from typing import Dict, List, Optional

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_core.core.clock import Clock, utcnow
from inventory_core.core.config import InventoryPolicy
from inventory_core.core.exceptions import ConcurrentModificationError
from inventory_core.core.logging import get_logger
from inventory_core.models.batch import Batch, BatchStatus
from inventory_core.models.notification import (
    Notification, NotificationPriority, NotificationType
)
from inventory_core.models.stock import StockPosition
from inventory_core.models.warehouse import Product, Warehouse
from inventory_core.services.alerts.notifications import NotificationService
from inventory_core.services.stock.batch_registry import BatchRegistryService
from inventory_core.services.stock.stock_ledger import minimum_stock_level

logger = get_logger("alerts")


def expiry_priority(days_remaining: int) -> str:
    if days_remaining <= 7:
        return NotificationPriority.CRITICAL.value
    if days_remaining <= 15:
        return NotificationPriority.HIGH.value
    if days_remaining <= 30:
        return NotificationPriority.MEDIUM.value
    return NotificationPriority.LOW.value


class AlertEngineService:
    """
    Alert Engine

    Read-mostly observer of the ledger and batch registry. Each sweep is
    idempotent: an entity with an unread notification of the same type
    gets no second one.
    """

    def __init__(self, db: Session, policy: Optional[InventoryPolicy] = None, clock: Clock = utcnow):
        self.db = db
        self.policy = policy or InventoryPolicy.from_settings()
        self.clock = clock
        self.notifications = NotificationService(db, self.policy, clock)
        self.batches = BatchRegistryService(db, self.policy, clock)

    def sweep_low_stock(self) -> List[Notification]:
        """
        LOW_STOCK per product with a position at or below its minimum level.

        Zero stock is reported as a critical LOW_STOCK, as is anything at or
        below the warehouse's critical threshold.
        """
        rows = self.db.query(StockPosition, Product, Warehouse).join(
            Product, Product.product_id == StockPosition.product_id
        ).join(
            Warehouse, Warehouse.warehouse_id == StockPosition.warehouse_id
        ).filter(
            and_(Warehouse.is_active.is_(True), StockPosition.quantity <= minimum_stock_level(self.policy))
        ).order_by(StockPosition.quantity.asc(), StockPosition.position_id.asc()).all()

        created = []
        seen = set()
        for position, product, warehouse in rows:
            if product.product_id in seen:
                continue
            seen.add(product.product_id)
            level = next(
                value for value in (
                    product.min_stock_level, warehouse.low_stock_threshold, self.policy.low_stock_threshold
                ) if value is not None
            )
            critical_level = warehouse.critical_stock_threshold or 0
            notification = self._raise_once(
                NotificationType.LOW_STOCK.value,
                "product",
                product.product_id,
                priority=(
                    NotificationPriority.CRITICAL.value if position.quantity <= critical_level
                    else NotificationPriority.HIGH.value
                ),
                title=f"Low Stock Alert: {product.name}",
                message=(
                    f"{product.name} ({product.code}) is running low on stock in {warehouse.name}. "
                    f"Current: {position.quantity} {product.unit}, Minimum: {level} {product.unit}"
                ),
            )
            if notification:
                created.append(notification)

        logger.info(f"Low stock sweep: {len(rows)} position(s) at or below minimum, {len(created)} new alert(s)")
        return created

    def sweep_expiry(self, horizon_days: Optional[int] = None) -> List[Notification]:
        """EXPIRY_WARNING per active batch expiring within the horizon"""
        if horizon_days is None:
            horizon_days = self.policy.expiry_horizon_days
        now = self.clock()
        batches = self.db.query(Batch).filter(
            and_(
                Batch.status == BatchStatus.ACTIVE.value,
                Batch.remaining_quantity > 0,
                Batch.expiry_date.isnot(None),
                Batch.expiry_date <= now + timedelta(days=horizon_days)
            )
        ).order_by(Batch.expiry_date.asc(), Batch.batch_id.asc()).all()

        created = []
        for batch in batches:
            days = math.ceil((batch.expiry_date - now) / timedelta(days=1))
            product = batch.product
            notification = self._raise_once(
                NotificationType.EXPIRY_WARNING.value,
                "batch",
                batch.batch_id,
                priority=expiry_priority(days),
                title=f"Expiry Warning: {product.name}",
                message=(
                    f"Batch {batch.batch_number} of {product.name} expires in {days} days. "
                    f"Quantity remaining: {batch.remaining_quantity} {product.unit}"
                ),
                expires_at=batch.expiry_date,
            )
            if notification:
                created.append(notification)

        logger.info(f"Expiry sweep: {len(batches)} batch(es) within {horizon_days} days, {len(created)} new alert(s)")
        return created

    def sweep_expired_batches(self) -> List[Notification]:
        """Mark past-expiry batches expired and raise BATCH_EXPIRY for each"""
        expired = self.batches.sweep_expired()
        created = []
        for batch in expired:
            product = batch.product
            notification = self._raise_once(
                NotificationType.BATCH_EXPIRY.value,
                "batch",
                batch.batch_id,
                priority=NotificationPriority.CRITICAL.value,
                title=f"Batch Expired: {product.name}",
                message=(
                    f"Batch {batch.batch_number} of {product.name} has expired with "
                    f"{batch.remaining_quantity} {product.unit} remaining"
                ),
            )
            if notification:
                created.append(notification)
        return created

    def run_all(self) -> Dict[str, int]:
        results = {
            "low_stock": len(self.sweep_low_stock()),
            "expiry_warnings": len(self.sweep_expiry()),
            "expired_batches": len(self.sweep_expired_batches()),
        }
        logger.info(f"Alert sweep complete: {results}")
        return results

    def _raise_once(self, notification_type: str, entity_type: str, entity_id, **fields) -> Optional[Notification]:
        if self.notifications.find_open(notification_type, entity_type, entity_id):
            return None
        try:
            return self.notifications.create(
                notification_type, entity_type=entity_type, entity_id=entity_id, **fields
            )
        except ConcurrentModificationError as e:
            # Another sweep raised the same alert first
            if isinstance(e.__cause__, IntegrityError):
                logger.info(f"{notification_type} for {entity_type} {entity_id} already raised")
                return None
            raise
