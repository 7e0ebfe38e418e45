"""
Stock Ledger Service
Owns per-(warehouse, product) quantities and the append-only transaction log
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Union

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from inventory_core.core.clock import Clock, utcnow
from inventory_core.core.config import InventoryPolicy
from inventory_core.core.database import unit_of_work
from inventory_core.core.exceptions import (
    InsufficientStockError, NotFoundError, ValidationError
)
from inventory_core.core.logging import get_logger
from inventory_core.models.stock import (
    MovementType, ReferenceType, StockPosition, StockTransaction
)
from inventory_core.models.warehouse import Product, Warehouse

logger = get_logger("ledger")


@dataclass
class StockReference:
    """Source document of a movement"""
    reference_type: str = ReferenceType.ADJUSTMENT.value
    reference_id: Optional[str] = None
    created_by: str = "system"
    notes: str = ""


def require_positive_quantity(quantity, field: str = "quantity") -> int:
    """Quantities are whole units; bool is rejected even though it is an int"""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(f"{field} must be a whole number", field=field, value=quantity)
    if quantity <= 0:
        raise ValidationError(f"{field} must be greater than zero", field=field, value=quantity)
    return quantity


def minimum_stock_level(policy: InventoryPolicy):
    """A position's minimum: the product's level, else the warehouse threshold, else the policy"""
    return func.coalesce(
        Product.min_stock_level, Warehouse.low_stock_threshold, policy.low_stock_threshold
    )


class StockLedgerService:
    """
    Stock Ledger

    apply_movement is the only writer of StockPosition.quantity. Position
    and ledger entry are written in one unit of work, so the position always
    equals the signed sum of its transactions.
    """

    def __init__(self, db: Session, policy: Optional[InventoryPolicy] = None, clock: Clock = utcnow):
        self.db = db
        self.policy = policy or InventoryPolicy.from_settings()
        self.clock = clock

    def apply_movement(
        self,
        warehouse_id: int,
        product_id: int,
        movement_type: Union[MovementType, str],
        quantity: int,
        reference: Optional[StockReference] = None,
        unit_cost: Optional[Decimal] = None,
    ) -> StockTransaction:
        """
        Move stock in or out of a warehouse.

        Raises InsufficientStockError when an outflow would go below zero
        and the warehouse does not allow negative stock.
        """
        require_positive_quantity(quantity)
        movement_type = self._movement_type(movement_type)
        reference = reference or StockReference()
        reference_type = self._reference_type(reference.reference_type)

        with unit_of_work(self.db):
            warehouse = self.get_warehouse(warehouse_id)
            self.get_product(product_id)
            position = self._load_position(warehouse_id, product_id)

            previous_quantity = position.quantity if position else 0
            if movement_type == MovementType.INFLOW:
                new_quantity = previous_quantity + quantity
            else:
                new_quantity = previous_quantity - quantity

            if new_quantity < 0 and not self.allows_negative_stock(warehouse):
                logger.warning(
                    f"Rejected outflow of {quantity} for product {product_id} in warehouse "
                    f"{warehouse_id}: only {previous_quantity} on hand"
                )
                raise InsufficientStockError(warehouse_id, product_id, previous_quantity, quantity)

            now = self.clock()
            if position is None:
                position = StockPosition(
                    warehouse_id=warehouse_id,
                    product_id=product_id,
                    quantity=new_quantity,
                    last_updated=now,
                )
                self.db.add(position)
            else:
                position.quantity = new_quantity
                position.last_updated = now

            transaction = StockTransaction(
                warehouse_id=warehouse_id,
                product_id=product_id,
                type=movement_type.value,
                quantity=quantity,
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
                unit_cost=unit_cost if movement_type == MovementType.INFLOW else None,
                reference_type=reference_type,
                reference_id=str(reference.reference_id) if reference.reference_id is not None else None,
                notes=reference.notes or "",
                timestamp=now,
                created_by=reference.created_by or "system",
            )
            self.db.add(transaction)
            # Flush so later reads in the same unit see this position
            self.db.flush()

        logger.info(
            f"{movement_type.value} {quantity} of product {product_id} at warehouse {warehouse_id} "
            f"({reference_type} {transaction.reference_id or '-'}): {previous_quantity} -> {new_quantity}"
        )
        return transaction

    def adjust_to(
        self,
        warehouse_id: int,
        product_id: int,
        counted_quantity: int,
        reference: Optional[StockReference] = None,
    ) -> Optional[StockTransaction]:
        """
        Set a position to a counted quantity by recording the difference.

        Returns None when the count matches what is on hand.
        """
        if isinstance(counted_quantity, bool) or not isinstance(counted_quantity, int):
            raise ValidationError("counted_quantity must be a whole number")
        reference = reference or StockReference(reference_type=ReferenceType.ADJUSTMENT.value)

        with unit_of_work(self.db):
            current = self.get_quantity(warehouse_id, product_id)
            difference = counted_quantity - current
            if difference == 0:
                return None
            movement_type = MovementType.INFLOW if difference > 0 else MovementType.OUTFLOW
            return self.apply_movement(
                warehouse_id, product_id, movement_type, abs(difference), reference
            )

    def post_opening_balance(
        self,
        warehouse_id: int,
        product_id: int,
        quantity: int,
        unit_cost: Optional[Decimal] = None,
        created_by: str = "system",
    ) -> StockTransaction:
        """Record stock that existed before the ledger, as a creation inflow"""
        reference = StockReference(
            reference_type=ReferenceType.CREATION.value,
            created_by=created_by,
            notes="Opening balance",
        )
        return self.apply_movement(
            warehouse_id, product_id, MovementType.INFLOW, quantity, reference, unit_cost
        )

    # Queries

    def get_position(self, warehouse_id: int, product_id: int) -> Optional[StockPosition]:
        return self.db.query(StockPosition).filter(
            and_(
                StockPosition.warehouse_id == warehouse_id,
                StockPosition.product_id == product_id
            )
        ).first()

    def get_quantity(self, warehouse_id: int, product_id: int) -> int:
        position = self.get_position(warehouse_id, product_id)
        return position.quantity if position else 0

    def product_on_hand(self, product_id: int) -> int:
        """Total quantity of a product across all warehouses"""
        total = self.db.query(func.coalesce(func.sum(StockPosition.quantity), 0)).filter(
            StockPosition.product_id == product_id
        ).scalar()
        return int(total or 0)

    def list_positions(
        self,
        warehouse_id: Optional[int] = None,
        product_id: Optional[int] = None,
        below_minimum: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> List[StockPosition]:
        query = self.db.query(StockPosition)
        if warehouse_id is not None:
            query = query.filter(StockPosition.warehouse_id == warehouse_id)
        if product_id is not None:
            query = query.filter(StockPosition.product_id == product_id)
        if below_minimum:
            query = query.join(
                Product, Product.product_id == StockPosition.product_id
            ).join(
                Warehouse, Warehouse.warehouse_id == StockPosition.warehouse_id
            ).filter(StockPosition.quantity <= minimum_stock_level(self.policy))
        return query.order_by(
            StockPosition.warehouse_id, StockPosition.product_id
        ).offset(skip).limit(limit).all()

    def get_transactions(
        self,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        movement_type: Optional[str] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[StockTransaction]:
        """Transaction history, newest first"""
        query = self._transaction_query(
            product_id, warehouse_id, start_date, end_date, movement_type, reference_type, reference_id
        )
        return query.order_by(
            StockTransaction.timestamp.desc(), StockTransaction.transaction_id.desc()
        ).offset(skip).limit(limit).all()

    def count_transactions(
        self,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        movement_type: Optional[str] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[str] = None,
    ) -> int:
        return self._transaction_query(
            product_id, warehouse_id, start_date, end_date, movement_type, reference_type, reference_id
        ).count()

    def verify_conservation(self, warehouse_id: int, product_id: int) -> Dict:
        """Compare a position with the signed sum of its transactions"""
        inflow = self._sum_for(warehouse_id, product_id, MovementType.INFLOW)
        outflow = self._sum_for(warehouse_id, product_id, MovementType.OUTFLOW)
        ledger_sum = inflow - outflow
        position_quantity = self.get_quantity(warehouse_id, product_id)
        return {
            "warehouse_id": warehouse_id,
            "product_id": product_id,
            "position_quantity": position_quantity,
            "ledger_sum": ledger_sum,
            "consistent": ledger_sum == position_quantity,
        }

    # Lookups shared with the composite services

    def get_warehouse(self, warehouse_id: int, active_only: bool = True) -> Warehouse:
        warehouse = self.db.get(Warehouse, warehouse_id)
        if warehouse is None or (active_only and not warehouse.is_active):
            raise NotFoundError("Warehouse", warehouse_id)
        return warehouse

    def get_product(self, product_id: int) -> Product:
        product = self.db.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    def allows_negative_stock(self, warehouse: Warehouse) -> bool:
        if warehouse.allow_negative_stock is None:
            return self.policy.allow_negative_stock
        return bool(warehouse.allow_negative_stock)

    def _load_position(self, warehouse_id: int, product_id: int) -> Optional[StockPosition]:
        query = self.db.query(StockPosition).filter(
            and_(
                StockPosition.warehouse_id == warehouse_id,
                StockPosition.product_id == product_id
            )
        )
        if self.policy.lock_stock_rows:
            query = query.with_for_update()
        return query.first()

    def _sum_for(self, warehouse_id: int, product_id: int, movement_type: MovementType) -> int:
        total = self.db.query(func.coalesce(func.sum(StockTransaction.quantity), 0)).filter(
            and_(
                StockTransaction.warehouse_id == warehouse_id,
                StockTransaction.product_id == product_id,
                StockTransaction.type == movement_type.value
            )
        ).scalar()
        return int(total or 0)

    def _transaction_query(self, product_id, warehouse_id, start_date, end_date,
                           movement_type, reference_type, reference_id):
        query = self.db.query(StockTransaction)
        if product_id is not None:
            query = query.filter(StockTransaction.product_id == product_id)
        if warehouse_id is not None:
            query = query.filter(StockTransaction.warehouse_id == warehouse_id)
        if start_date is not None:
            query = query.filter(StockTransaction.timestamp >= start_date)
        if end_date is not None:
            query = query.filter(StockTransaction.timestamp <= end_date)
        if movement_type:
            query = query.filter(StockTransaction.type == self._movement_type(movement_type).value)
        if reference_type:
            query = query.filter(StockTransaction.reference_type == self._reference_type(reference_type))
        if reference_id is not None:
            query = query.filter(StockTransaction.reference_id == str(reference_id))
        return query

    @staticmethod
    def _movement_type(value: Union[MovementType, str]) -> MovementType:
        try:
            return MovementType(value)
        except ValueError:
            raise ValidationError(f"Invalid movement type: {value}", field="type", value=value)

    @staticmethod
    def _reference_type(value: Union[ReferenceType, str]) -> str:
        try:
            return ReferenceType(value).value
        except ValueError:
            raise ValidationError(f"Invalid reference type: {value}", field="reference_type", value=value)
