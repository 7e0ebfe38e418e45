"""
Stock Ledger Models
Per-(warehouse, product) positions and the append-only transaction log
"""
from enum import Enum

from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Text,
    ForeignKey, CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship

from inventory_core.core.database import Base


class MovementType(str, Enum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class ReferenceType(str, Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"
    CREATION = "creation"
    RETURN = "return"


class StockPosition(Base):
    """
    Stock Position - on-hand quantity for one warehouse/product pair

    Created lazily on the first movement, never deleted. The version
    column makes concurrent read-modify-write cycles fail instead of
    overwriting each other.
    """
    __tablename__ = "stock_positions"

    position_id = Column(Integer, primary_key=True, autoincrement=True, doc="Position ID")
    warehouse_id = Column(Integer, ForeignKey("warehouses.warehouse_id", ondelete="RESTRICT"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.product_id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Integer, nullable=False, default=0, doc="Quantity on hand")
    last_updated = Column(DateTime, nullable=False, doc="Last movement timestamp")
    version = Column(Integer, nullable=False, default=1)

    warehouse = relationship("Warehouse", back_populates="positions")
    product = relationship("Product")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("warehouse_id", "product_id", name="uq_stock_position_key"),
        Index("idx_position_product", "product_id"),
    )

    def __repr__(self):
        return f"<StockPosition w={self.warehouse_id} p={self.product_id} qty={self.quantity}>"


class StockTransaction(Base):
    """
    Stock Transaction - immutable audit entry for every position change
    """
    __tablename__ = "stock_transactions"

    transaction_id = Column(Integer, primary_key=True, autoincrement=True, doc="Transaction ID")
    warehouse_id = Column(Integer, ForeignKey("warehouses.warehouse_id", ondelete="RESTRICT"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.product_id", ondelete="RESTRICT"), nullable=False)
    type = Column(String(10), nullable=False, doc="inflow or outflow")
    quantity = Column(Integer, nullable=False, doc="Units moved (always positive)")
    previous_quantity = Column(Integer, nullable=False, doc="Position before the movement")
    new_quantity = Column(Integer, nullable=False, doc="Position after the movement")
    unit_cost = Column(Numeric(15, 4), nullable=True, doc="Unit cost on inflows")
    reference_type = Column(String(20), nullable=False, doc="Source document type")
    reference_id = Column(String(50), nullable=True, doc="Source document ID")
    notes = Column(Text, doc="Movement notes")
    timestamp = Column(DateTime, nullable=False, doc="Movement timestamp")
    created_by = Column(String(50), nullable=False, default="system", doc="Acting user")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("type IN ('inflow', 'outflow')", name="valid_type"),
        CheckConstraint(
            "reference_type IN ('purchase', 'sale', 'transfer', 'adjustment', 'creation', 'return')",
            name="valid_reference_type",
        ),
        Index("idx_transaction_key", "warehouse_id", "product_id"),
        Index("idx_transaction_timestamp", "timestamp"),
        Index("idx_transaction_reference", "reference_type", "reference_id"),
    )

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.type == MovementType.INFLOW.value else -self.quantity
