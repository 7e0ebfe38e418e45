"""
Batch/Lot Models
Tracked sub-quantities of a product sharing expiry and cost
"""
from enum import Enum

from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Text,
    ForeignKey, CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship

from inventory_core.core.database import Base


class BatchStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    DEPLETED = "depleted"


class Batch(Base):
    """
    Batch Record

    Never physically deleted; depleted batches stay for the audit trail.
    """
    __tablename__ = "batches"

    batch_id = Column(Integer, primary_key=True, autoincrement=True, doc="Batch ID")
    product_id = Column(Integer, ForeignKey("products.product_id", ondelete="RESTRICT"), nullable=False)
    batch_number = Column(String(40), nullable=False, doc="Batch number, unique per product")
    quantity = Column(Integer, nullable=False, doc="Quantity originally received")
    remaining_quantity = Column(Integer, nullable=False, doc="Quantity still available")
    purchase_price = Column(Numeric(15, 4), nullable=False, default=0, doc="Unit cost at receipt")
    expiry_date = Column(DateTime, nullable=True, doc="Expiry date")
    manufacturing_date = Column(DateTime, nullable=True, doc="Manufacturing date")
    supplier = Column(String(100), nullable=False, default="", doc="Supplier name")
    status = Column(String(10), nullable=False, default=BatchStatus.ACTIVE.value, doc="active/expired/depleted")
    notes = Column(Text, doc="Batch notes")
    created_at = Column(DateTime, nullable=False, doc="Receipt timestamp")
    updated_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    product = relationship("Product", back_populates="batches")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("product_id", "batch_number", name="uq_batch_product_number"),
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("remaining_quantity >= 0", name="remaining_not_negative"),
        CheckConstraint("remaining_quantity <= quantity", name="remaining_within_quantity"),
        CheckConstraint("status IN ('active', 'expired', 'depleted')", name="valid_status"),
        Index("idx_batch_fefo", "product_id", "status", "expiry_date"),
    )

    def __repr__(self):
        return f"<Batch {self.batch_number} p={self.product_id} rem={self.remaining_quantity}>"
