"""
Stock Transfer Models
Warehouse-to-warehouse moves driven by the transfer state machine
"""
from enum import Enum

from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Text,
    ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from inventory_core.core.database import Base


class TransferStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    IN_TRANSIT = "in_transit"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


TERMINAL_TRANSFER_STATES = frozenset({
    TransferStatus.COMPLETED.value,
    TransferStatus.CANCELLED.value,
    TransferStatus.REJECTED.value,
})


class Transfer(Base):
    """Transfer header"""
    __tablename__ = "transfers"

    transfer_id = Column(Integer, primary_key=True, autoincrement=True, doc="Transfer ID")
    transfer_number = Column(String(30), unique=True, nullable=False, doc="Transfer number")
    from_warehouse_id = Column(Integer, ForeignKey("warehouses.warehouse_id", ondelete="RESTRICT"), nullable=False)
    to_warehouse_id = Column(Integer, ForeignKey("warehouses.warehouse_id", ondelete="RESTRICT"), nullable=False)
    status = Column(String(12), nullable=False, default=TransferStatus.PENDING.value)
    type = Column(String(20), nullable=False, default="manual", doc="Transfer type")
    reason = Column(String(50), nullable=False, default="stock_replenishment", doc="Transfer reason")
    notes = Column(Text, doc="Transfer notes")

    total_items = Column(Integer, nullable=False, default=0)
    total_quantity = Column(Integer, nullable=False, default=0)
    total_value = Column(Numeric(15, 2), nullable=False, default=0)

    created_by = Column(String(50), nullable=False, default="system")
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    items = relationship(
        "TransferItem",
        back_populates="transfer",
        cascade="all, delete-orphan",
        order_by="TransferItem.line_no",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("from_warehouse_id <> to_warehouse_id", name="distinct_warehouses"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'in_transit', 'completed', 'cancelled', 'rejected')",
            name="valid_status",
        ),
        Index("idx_transfer_status", "status"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_TRANSFER_STATES


class TransferItem(Base):
    """Transfer line"""
    __tablename__ = "transfer_items"

    item_id = Column(Integer, primary_key=True, autoincrement=True)
    transfer_id = Column(Integer, ForeignKey("transfers.transfer_id", ondelete="CASCADE"), nullable=False)
    line_no = Column(Integer, nullable=False)
    product_id = Column(Integer, ForeignKey("products.product_id", ondelete="RESTRICT"), nullable=False)
    product_code = Column(String(30), doc="Product code snapshot")
    product_name = Column(String(200), doc="Product name snapshot")
    quantity = Column(Integer, nullable=False)
    unit_cost = Column(Numeric(15, 4), nullable=False, default=0, doc="Average cost at request time")

    transfer = relationship("Transfer", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
    )
