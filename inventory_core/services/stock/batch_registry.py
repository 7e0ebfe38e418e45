"""
Batch Registry Service
Lot records, FEFO/FIFO/LIFO picking and expiry marking
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional

from sqlalchemy import and_, case, or_, func
from sqlalchemy.orm import Session

from inventory_core.core.clock import Clock, utcnow
from inventory_core.core.config import InventoryPolicy
from inventory_core.core.database import unit_of_work
from inventory_core.core.exceptions import (
    InsufficientBatchStockError, NotFoundError, ValidationError
)
from inventory_core.core.logging import get_logger
from inventory_core.models.batch import Batch, BatchStatus
from inventory_core.models.warehouse import Product
from inventory_core.services import numbering
from inventory_core.services.stock.stock_ledger import require_positive_quantity

logger = get_logger("batches")

MAX_BATCH_NUMBER_ATTEMPTS = 10


class PickingMethod(str, Enum):
    FEFO = "FEFO"
    FIFO = "FIFO"
    LIFO = "LIFO"


@dataclass
class BatchAllocation:
    """Quantity taken from one batch"""
    batch_id: int
    batch_number: str
    quantity: int
    unit_cost: Decimal
    expiry_date: Optional[datetime] = None

    @property
    def line_cost(self) -> Decimal:
        return self.unit_cost * self.quantity


@dataclass
class PickResult:
    product_id: int
    method: str
    allocations: List[BatchAllocation] = field(default_factory=list)

    @property
    def total_quantity(self) -> int:
        return sum(a.quantity for a in self.allocations)

    @property
    def total_cost(self) -> Decimal:
        return sum((a.line_cost for a in self.allocations), Decimal("0"))


class BatchRegistryService:
    """
    Batch Registry

    A batch is depleted exactly when its remaining quantity is zero, and
    expired when its expiry date has passed while stock remains. Batches
    without an expiry date never expire and are picked last under FEFO.
    """

    def __init__(self, db: Session, policy: Optional[InventoryPolicy] = None, clock: Clock = utcnow):
        self.db = db
        self.policy = policy or InventoryPolicy.from_settings()
        self.clock = clock

    def receive_batch(
        self,
        product_id: int,
        quantity: int,
        unit_price: Decimal,
        expiry_date: Optional[datetime] = None,
        supplier: str = "",
        batch_number: Optional[str] = None,
        manufacturing_date: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> Batch:
        require_positive_quantity(quantity)
        unit_price = Decimal(str(unit_price or 0))
        if unit_price < 0:
            raise ValidationError("unit_price cannot be negative", field="unit_price")

        with unit_of_work(self.db):
            if self.db.get(Product, product_id) is None:
                raise NotFoundError("Product", product_id)

            if batch_number:
                if self._number_taken(product_id, batch_number):
                    raise ValidationError(
                        f"Batch number {batch_number} already exists for product {product_id}",
                        field="batch_number",
                    )
            else:
                batch_number = self.generate_batch_number(product_id)

            now = self.clock()
            status = BatchStatus.ACTIVE.value
            if expiry_date is not None and expiry_date < now:
                status = BatchStatus.EXPIRED.value

            batch = Batch(
                product_id=product_id,
                batch_number=batch_number,
                quantity=quantity,
                remaining_quantity=quantity,
                purchase_price=unit_price,
                expiry_date=expiry_date,
                manufacturing_date=manufacturing_date,
                supplier=supplier or "",
                status=status,
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            self.db.add(batch)
            self.db.flush()

        logger.info(f"Received batch {batch_number} of {quantity} for product {product_id}")
        return batch

    def consume(self, product_id: int, quantity: int) -> List[BatchAllocation]:
        """
        Consume stock in FEFO order.

        Callers pair this with a ledger outflow inside the same unit of work.
        """
        return self.pick(product_id, quantity, PickingMethod.FEFO).allocations

    def pick(self, product_id: int, quantity: int, method=PickingMethod.FEFO) -> PickResult:
        """
        Take quantity from active batches in picking order.

        All or nothing: when the active batches hold less than requested,
        InsufficientBatchStockError is raised and no batch changes.
        """
        require_positive_quantity(quantity)
        try:
            method = PickingMethod(method)
        except ValueError:
            raise ValidationError(f"Invalid picking method: {method}", field="method")

        with unit_of_work(self.db):
            now = self.clock()
            batches = self._pickable(product_id, method, now)
            available = sum(b.remaining_quantity for b in batches)
            if available < quantity:
                logger.warning(
                    f"Rejected pick of {quantity} for product {product_id}: "
                    f"only {available} in active batches"
                )
                raise InsufficientBatchStockError(product_id, available, quantity)

            result = PickResult(product_id=product_id, method=method.value)
            outstanding = quantity
            for batch in batches:
                if outstanding <= 0:
                    break
                taken = min(batch.remaining_quantity, outstanding)
                batch.remaining_quantity -= taken
                if batch.remaining_quantity == 0:
                    batch.status = BatchStatus.DEPLETED.value
                batch.updated_at = now
                outstanding -= taken
                result.allocations.append(BatchAllocation(
                    batch_id=batch.batch_id,
                    batch_number=batch.batch_number,
                    quantity=taken,
                    unit_cost=Decimal(batch.purchase_price or 0),
                    expiry_date=batch.expiry_date,
                ))
            self.db.flush()

        logger.info(
            f"Picked {quantity} of product {product_id} ({method.value}) from "
            f"{len(result.allocations)} batch(es)"
        )
        return result

    def restore(self, allocations: Iterable[BatchAllocation]) -> List[Batch]:
        """Put previously consumed quantities back into their batches"""
        restored = []
        with unit_of_work(self.db):
            now = self.clock()
            for allocation in allocations:
                require_positive_quantity(allocation.quantity)
                batch = self.get_batch(allocation.batch_id)
                if batch.remaining_quantity + allocation.quantity > batch.quantity:
                    raise ValidationError(
                        f"Cannot restore {allocation.quantity} to batch {batch.batch_number}: "
                        f"exceeds the received quantity",
                        batch_id=batch.batch_id,
                    )
                batch.remaining_quantity += allocation.quantity
                batch.status = self._status_for(batch, now)
                batch.updated_at = now
                restored.append(batch)
            self.db.flush()

        for batch in restored:
            logger.info(f"Restored stock to batch {batch.batch_number} ({batch.remaining_quantity} remaining)")
        return restored

    def sweep_expired(self) -> List[Batch]:
        """Mark active batches past expiry as expired; quantities are untouched"""
        with unit_of_work(self.db):
            now = self.clock()
            batches = self.db.query(Batch).filter(
                and_(
                    Batch.status == BatchStatus.ACTIVE.value,
                    Batch.remaining_quantity > 0,
                    Batch.expiry_date.isnot(None),
                    Batch.expiry_date < now
                )
            ).all()
            for batch in batches:
                batch.status = BatchStatus.EXPIRED.value
                batch.updated_at = now
            self.db.flush()

        if batches:
            logger.info(f"Marked {len(batches)} batch(es) expired")
        return batches

    # Queries

    def get_batch(self, batch_id: int) -> Batch:
        batch = self.db.get(Batch, batch_id)
        if batch is None:
            raise NotFoundError("Batch", batch_id)
        return batch

    def list_batches(
        self,
        product_id: Optional[int] = None,
        status: Optional[str] = None,
        sort_by: str = "expiry_date",
        sort_order: str = "asc",
        skip: int = 0,
        limit: int = 100,
    ) -> List[Batch]:
        sort_columns = {
            "expiry_date": Batch.expiry_date,
            "created_at": Batch.created_at,
            "batch_number": Batch.batch_number,
            "remaining_quantity": Batch.remaining_quantity,
        }
        if sort_by not in sort_columns:
            raise ValidationError(f"Cannot sort batches by {sort_by}", field="sort_by")

        query = self.db.query(Batch)
        if product_id is not None:
            query = query.filter(Batch.product_id == product_id)
        if status:
            query = query.filter(Batch.status == status)

        column = sort_columns[sort_by]
        ordering = column.desc() if sort_order == "desc" else column.asc()
        if sort_by == "expiry_date":
            # Undated batches last in either direction
            query = query.order_by(case((Batch.expiry_date.is_(None), 1), else_=0), ordering)
        else:
            query = query.order_by(ordering)
        return query.order_by(Batch.batch_id).offset(skip).limit(limit).all()

    def available_quantity(self, product_id: int) -> int:
        now = self.clock()
        total = self.db.query(func.coalesce(func.sum(Batch.remaining_quantity), 0)).filter(
            self._active_filter(product_id, now)
        ).scalar()
        return int(total or 0)

    def generate_batch_number(self, product_id: int) -> str:
        for _ in range(MAX_BATCH_NUMBER_ATTEMPTS):
            candidate = numbering.batch_number(self.clock())
            if not self._number_taken(product_id, candidate):
                return candidate
        raise ValidationError(f"Could not generate a unique batch number for product {product_id}")

    def _pickable(self, product_id: int, method: PickingMethod, now: datetime) -> List[Batch]:
        query = self.db.query(Batch).filter(self._active_filter(product_id, now))
        if method == PickingMethod.FEFO:
            query = query.order_by(
                case((Batch.expiry_date.is_(None), 1), else_=0),
                Batch.expiry_date.asc(),
                Batch.created_at.asc(),
                Batch.batch_id.asc(),
            )
        elif method == PickingMethod.LIFO:
            query = query.order_by(Batch.created_at.desc(), Batch.batch_id.desc())
        else:
            query = query.order_by(Batch.created_at.asc(), Batch.batch_id.asc())
        return query.all()

    @staticmethod
    def _active_filter(product_id: int, now: datetime):
        return and_(
            Batch.product_id == product_id,
            Batch.status == BatchStatus.ACTIVE.value,
            Batch.remaining_quantity > 0,
            or_(Batch.expiry_date.is_(None), Batch.expiry_date >= now)
        )

    @staticmethod
    def _status_for(batch: Batch, now: datetime) -> str:
        if batch.remaining_quantity == 0:
            return BatchStatus.DEPLETED.value
        if batch.expiry_date is not None and batch.expiry_date < now:
            return BatchStatus.EXPIRED.value
        return BatchStatus.ACTIVE.value

    def _number_taken(self, product_id: int, batch_number: str) -> bool:
        return self.db.query(Batch.batch_id).filter(
            and_(Batch.product_id == product_id, Batch.batch_number == batch_number)
        ).first() is not None
