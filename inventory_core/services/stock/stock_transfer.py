"""
Stock Transfer Service
Warehouse-to-warehouse transfers driven by a state machine
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.orm import Session

from inventory_core.core.audit import log_user_action
from inventory_core.core.clock import Clock, utcnow
from inventory_core.core.config import InventoryPolicy
from inventory_core.core.database import unit_of_work
from inventory_core.core.exceptions import (
    InventoryError, InvalidTransferStateError, NotFoundError, ValidationError
)
from inventory_core.core.logging import get_logger
from inventory_core.models.stock import MovementType, ReferenceType
from inventory_core.models.transfer import Transfer, TransferItem, TransferStatus
from inventory_core.services import numbering
from inventory_core.services.stock.stock_ledger import (
    StockLedgerService, StockReference, require_positive_quantity
)

logger = get_logger("transfers")

# Statuses each action may start from
ALLOWED_TRANSITIONS = {
    "approve": ({TransferStatus.PENDING.value}, TransferStatus.APPROVED.value),
    "process": ({TransferStatus.APPROVED.value}, TransferStatus.COMPLETED.value),
    "cancel": ({TransferStatus.PENDING.value, TransferStatus.APPROVED.value}, TransferStatus.CANCELLED.value),
    "reject": ({TransferStatus.PENDING.value}, TransferStatus.REJECTED.value),
}


class StockTransferService:
    """
    Transfer Orchestrator

    process() moves every item out of the source and into the destination
    warehouse inside one unit of work. If any item fails, no position in
    either warehouse changes and the transfer stays approved.
    """

    def __init__(
        self,
        db: Session,
        current_user: str = "system",
        policy: Optional[InventoryPolicy] = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.current_user = current_user or "system"
        self.policy = policy or InventoryPolicy.from_settings()
        self.clock = clock
        self.ledger = StockLedgerService(db, self.policy, clock)

    def create(
        self,
        from_warehouse_id: int,
        to_warehouse_id: int,
        items: Sequence[Dict],
        transfer_type: str = "manual",
        reason: str = "stock_replenishment",
        notes: Optional[str] = None,
    ) -> Transfer:
        """
        Create a pending transfer request.

        items: [{'product_id': int, 'quantity': int}, ...]
        """
        if from_warehouse_id == to_warehouse_id:
            raise ValidationError("Source and destination warehouses must be different")
        if not items:
            raise ValidationError("A transfer needs at least one item", field="items")
        for item in items:
            require_positive_quantity(item.get("quantity"), field="items.quantity")

        with unit_of_work(self.db):
            self.ledger.get_warehouse(from_warehouse_id)
            self.ledger.get_warehouse(to_warehouse_id)

            now = self.clock()
            transfer = Transfer(
                transfer_number=numbering.unique_number(
                    self.db, Transfer.transfer_number, lambda: numbering.transfer_number(now)
                ),
                from_warehouse_id=from_warehouse_id,
                to_warehouse_id=to_warehouse_id,
                status=TransferStatus.PENDING.value,
                type=transfer_type or "manual",
                reason=reason or "stock_replenishment",
                notes=notes,
                created_by=self.current_user,
                created_at=now,
                updated_at=now,
            )

            total_value = Decimal("0")
            for line_no, item in enumerate(items, start=1):
                product = self.ledger.get_product(item.get("product_id"))
                unit_cost = Decimal(product.average_cost or 0)
                transfer.items.append(TransferItem(
                    line_no=line_no,
                    product_id=product.product_id,
                    product_code=product.code,
                    product_name=product.name,
                    quantity=item["quantity"],
                    unit_cost=unit_cost,
                ))
                total_value += unit_cost * item["quantity"]

            transfer.total_items = len(transfer.items)
            transfer.total_quantity = sum(i.quantity for i in transfer.items)
            transfer.total_value = total_value.quantize(self.policy.currency_quantum, rounding=ROUND_HALF_UP)

            self.db.add(transfer)
            self.db.flush()

            log_user_action(
                db=self.db,
                user=self.current_user,
                action="CREATE_TRANSFER",
                timestamp=now,
                table="transfers",
                key=transfer.transfer_number,
                new_values={
                    'from_warehouse_id': from_warehouse_id,
                    'to_warehouse_id': to_warehouse_id,
                    'total_items': transfer.total_items,
                    'total_quantity': transfer.total_quantity,
                },
                module="TRANSFER"
            )

        logger.info(
            f"Transfer {transfer.transfer_number} created: {transfer.total_quantity} units "
            f"from warehouse {from_warehouse_id} to {to_warehouse_id}"
        )
        return transfer

    def approve(self, transfer_id: int) -> Transfer:
        return self._transition(transfer_id, "approve")

    def cancel(self, transfer_id: int) -> Transfer:
        return self._transition(transfer_id, "cancel")

    def reject(self, transfer_id: int) -> Transfer:
        return self._transition(transfer_id, "reject")

    def process(self, transfer_id: int) -> Transfer:
        """Move the stock and complete the transfer"""
        try:
            with unit_of_work(self.db):
                transfer = self.get(transfer_id)
                self._check_transition(transfer, "process")

                reference = StockReference(
                    reference_type=ReferenceType.TRANSFER.value,
                    reference_id=str(transfer.transfer_id),
                    created_by=self.current_user,
                    notes=f"Transfer {transfer.transfer_number}",
                )
                for item in transfer.items:
                    self.ledger.apply_movement(
                        transfer.from_warehouse_id, item.product_id,
                        MovementType.OUTFLOW, item.quantity, reference
                    )
                    self.ledger.apply_movement(
                        transfer.to_warehouse_id, item.product_id,
                        MovementType.INFLOW, item.quantity, reference, unit_cost=item.unit_cost
                    )

                now = self.clock()
                transfer.status = TransferStatus.COMPLETED.value
                transfer.completed_at = now
                transfer.updated_at = now
                log_user_action(
                    db=self.db,
                    user=self.current_user,
                    action="PROCESS_TRANSFER",
                    timestamp=now,
                    table="transfers",
                    key=transfer.transfer_number,
                    old_values={'status': TransferStatus.APPROVED.value},
                    new_values={'status': transfer.status, 'total_quantity': transfer.total_quantity},
                    module="TRANSFER"
                )
                self.db.flush()
        except InventoryError as e:
            logger.warning(f"Transfer {transfer_id} not processed: {e.message}")
            raise

        logger.info(f"Transfer {transfer.transfer_number} completed")
        return transfer

    # Queries

    def get(self, transfer_id: int) -> Transfer:
        transfer = self.db.get(Transfer, transfer_id)
        if transfer is None:
            raise NotFoundError("Transfer", transfer_id)
        return transfer

    def list_transfers(
        self,
        status: Optional[str] = None,
        warehouse_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Transfer]:
        query = self.db.query(Transfer)
        if status:
            query = query.filter(Transfer.status == status)
        if warehouse_id is not None:
            query = query.filter(or_(
                Transfer.from_warehouse_id == warehouse_id,
                Transfer.to_warehouse_id == warehouse_id
            ))
        return query.order_by(
            Transfer.created_at.desc(), Transfer.transfer_id.desc()
        ).offset(skip).limit(limit).all()

    def _transition(self, transfer_id: int, action: str) -> Transfer:
        try:
            with unit_of_work(self.db):
                transfer = self.get(transfer_id)
                self._check_transition(transfer, action)
                previous = transfer.status
                now = self.clock()
                transfer.status = ALLOWED_TRANSITIONS[action][1]
                transfer.updated_at = now
                log_user_action(
                    db=self.db,
                    user=self.current_user,
                    action=f"{action.upper()}_TRANSFER",
                    timestamp=now,
                    table="transfers",
                    key=transfer.transfer_number,
                    old_values={'status': previous},
                    new_values={'status': transfer.status},
                    module="TRANSFER"
                )
                self.db.flush()
        except InventoryError as e:
            logger.warning(f"Cannot {action} transfer {transfer_id}: {e.message}")
            raise

        logger.info(f"Transfer {transfer.transfer_number}: {previous} -> {transfer.status}")
        return transfer

    @staticmethod
    def _check_transition(transfer: Transfer, action: str):
        allowed_from = ALLOWED_TRANSITIONS[action][0]
        if transfer.status not in allowed_from:
            raise InvalidTransferStateError(transfer.transfer_id, transfer.status, action)
