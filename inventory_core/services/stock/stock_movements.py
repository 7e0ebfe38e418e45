"""
Stock Movements Service
Composite stock operations: issues, receipts and returns
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from inventory_core.core.clock import Clock, utcnow
from inventory_core.core.config import InventoryPolicy
from inventory_core.core.database import unit_of_work
from inventory_core.core.exceptions import ValidationError
from inventory_core.core.logging import get_logger
from inventory_core.models.batch import Batch
from inventory_core.models.stock import MovementType, ReferenceType, StockTransaction
from inventory_core.models.warehouse import Product
from inventory_core.services.stock.batch_registry import (
    BatchAllocation, BatchRegistryService, PickingMethod
)
from inventory_core.services.stock.cost_reconciliation import (
    CostReconciliationEngine, CostUpdate, MarginWarning
)
from inventory_core.services.stock.stock_ledger import (
    StockLedgerService, StockReference, require_positive_quantity
)

logger = get_logger("ledger")


@dataclass
class IssueResult:
    transaction: StockTransaction
    allocations: List[BatchAllocation] = field(default_factory=list)
    cost_of_goods: Decimal = Decimal("0")


@dataclass
class ReceiptResult:
    transaction: StockTransaction
    cost_update: CostUpdate
    batch: Optional[Batch] = None

    @property
    def new_average_cost(self) -> Decimal:
        return self.cost_update.new_average_cost

    @property
    def warning(self) -> Optional[MarginWarning]:
        return self.cost_update.warning


@dataclass
class ReturnResult:
    transaction: StockTransaction
    restored_batches: List[Batch] = field(default_factory=list)


class StockMovementsService:
    """
    Stock Movements

    Each operation runs the ledger movement and its batch and cost side
    effects in one unit of work; a failure in any part leaves nothing
    behind.
    """

    def __init__(self, db: Session, policy: Optional[InventoryPolicy] = None, clock: Clock = utcnow):
        self.db = db
        self.policy = policy or InventoryPolicy.from_settings()
        self.clock = clock
        self.ledger = StockLedgerService(db, self.policy, clock)
        self.batches = BatchRegistryService(db, self.policy, clock)
        self.costs = CostReconciliationEngine(self.policy)

    def is_batch_tracked(self, product: Product) -> bool:
        return bool(self.policy.batch_tracking_enabled and product.track_batches)

    def issue_stock(
        self,
        warehouse_id: int,
        product_id: int,
        quantity: int,
        reference: Optional[StockReference] = None,
        method=PickingMethod.FEFO,
    ) -> IssueResult:
        """
        Sale or consumption: ledger outflow plus batch consumption for
        batch-tracked products, FEFO unless another picking method is given.
        """
        require_positive_quantity(quantity)
        reference = reference or StockReference(reference_type=ReferenceType.SALE.value)

        with unit_of_work(self.db):
            product = self.ledger.get_product(product_id)
            transaction = self.ledger.apply_movement(
                warehouse_id, product_id, MovementType.OUTFLOW, quantity, reference
            )

            allocations = []
            if self.is_batch_tracked(product):
                allocations = self.batches.pick(product_id, quantity, method).allocations
                cost = sum((a.line_cost for a in allocations), Decimal("0"))
            else:
                cost = Decimal(product.average_cost or 0) * quantity

        result = IssueResult(
            transaction=transaction,
            allocations=allocations,
            cost_of_goods=cost.quantize(self.policy.cost_quantum, rounding=ROUND_HALF_UP),
        )
        logger.info(
            f"Issued {quantity} of product {product_id} from warehouse {warehouse_id}, "
            f"cost of goods {result.cost_of_goods}"
        )
        return result

    def receive_stock(
        self,
        warehouse_id: int,
        product_id: int,
        quantity: int,
        unit_cost,
        reference: Optional[StockReference] = None,
        expiry_date: Optional[datetime] = None,
        batch_number: Optional[str] = None,
        manufacturing_date: Optional[datetime] = None,
        supplier: str = "",
    ) -> ReceiptResult:
        """
        Receipt into a warehouse: ledger inflow, cost reconciliation and,
        for batch-tracked products, a new batch.
        """
        require_positive_quantity(quantity)
        unit_cost = Decimal(str(unit_cost if unit_cost is not None else 0))
        if unit_cost < 0:
            raise ValidationError("unit_cost cannot be negative", field="unit_cost")
        reference = reference or StockReference(reference_type=ReferenceType.ADJUSTMENT.value)

        with unit_of_work(self.db):
            product = self.ledger.get_product(product_id)
            # On-hand before the inflow is what the existing cost applies to
            on_hand = self.ledger.product_on_hand(product_id)
            transaction = self.ledger.apply_movement(
                warehouse_id, product_id, MovementType.INFLOW, quantity, reference, unit_cost=unit_cost
            )
            cost_update = self.costs.apply_receipt(product, on_hand, quantity, unit_cost)

            batch = None
            if self.is_batch_tracked(product):
                batch = self.batches.receive_batch(
                    product_id,
                    quantity,
                    unit_cost,
                    expiry_date=expiry_date,
                    supplier=supplier,
                    batch_number=batch_number,
                    manufacturing_date=manufacturing_date,
                )
            self.db.flush()

        return ReceiptResult(transaction=transaction, cost_update=cost_update, batch=batch)

    def return_stock(
        self,
        warehouse_id: int,
        product_id: int,
        quantity: int,
        reference: Optional[StockReference] = None,
        allocations: Optional[Sequence[BatchAllocation]] = None,
    ) -> ReturnResult:
        """
        Customer return: ledger inflow, restoring the given batch
        allocations when the issue was batch-tracked.
        """
        require_positive_quantity(quantity)
        reference = reference or StockReference(reference_type=ReferenceType.RETURN.value)
        allocations = list(allocations or [])
        if allocations and sum(a.quantity for a in allocations) != quantity:
            raise ValidationError(
                "Batch allocations must add up to the returned quantity", field="allocations"
            )

        with unit_of_work(self.db):
            for allocation in allocations:
                batch = self.batches.get_batch(allocation.batch_id)
                if batch.product_id != product_id:
                    raise ValidationError(
                        f"Batch {batch.batch_number} does not belong to product {product_id}",
                        field="allocations",
                    )
            transaction = self.ledger.apply_movement(
                warehouse_id, product_id, MovementType.INFLOW, quantity, reference
            )
            restored = self.batches.restore(allocations) if allocations else []

        logger.info(f"Returned {quantity} of product {product_id} to warehouse {warehouse_id}")
        return ReturnResult(transaction=transaction, restored_batches=restored)
