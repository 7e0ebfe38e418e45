"""
Purchase Order Models
Orders received against the stock ledger
"""
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Text,
    ForeignKey, CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship

from inventory_core.core.database import Base


class PurchaseOrderStatus(str, Enum):
    OPEN = "OPEN"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class PurchaseOrder(Base):
    """Purchase order header"""
    __tablename__ = "purchase_orders"

    po_id = Column(Integer, primary_key=True, autoincrement=True, doc="Purchase order ID")
    po_number = Column(String(30), unique=True, nullable=False, doc="PO number")
    supplier_id = Column(String(50), nullable=False, doc="Supplier reference")
    supplier_name = Column(String(200), nullable=False, default="")
    warehouse_id = Column(Integer, ForeignKey("warehouses.warehouse_id", ondelete="RESTRICT"), nullable=False,
                          doc="Receiving warehouse")

    sub_total = Column(Numeric(15, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(6, 2), nullable=False, default=0, doc="Tax rate percentage")
    tax_amount = Column(Numeric(15, 2), nullable=False, default=0)
    freight = Column(Numeric(15, 2), nullable=False, default=0)
    discount = Column(Numeric(15, 2), nullable=False, default=0)
    grand_total = Column(Numeric(15, 2), nullable=False, default=0)
    amount_paid = Column(Numeric(15, 2), nullable=False, default=0)

    status = Column(String(10), nullable=False, default=PurchaseOrderStatus.OPEN.value)
    notes = Column(Text)

    created_by = Column(String(50), nullable=False, default="system")
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    items = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.line_no",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("status IN ('OPEN', 'RECEIVED', 'CANCELLED')", name="valid_status"),
        CheckConstraint("amount_paid >= 0", name="amount_paid_not_negative"),
        Index("idx_po_status", "status"),
    )

    @property
    def fully_received(self) -> bool:
        return all(item.received_qty >= item.ordered_qty for item in self.items)

    @property
    def balance_due(self) -> Decimal:
        return Decimal(self.grand_total or 0) - Decimal(self.amount_paid or 0)

    @property
    def payment_status(self) -> str:
        paid = Decimal(self.amount_paid or 0)
        if paid <= 0:
            return PaymentStatus.UNPAID.value
        if paid >= Decimal(self.grand_total or 0):
            return PaymentStatus.PAID.value
        return PaymentStatus.PARTIAL.value


class PurchaseOrderItem(Base):
    """Purchase order line; versioned so concurrent receipts of one line conflict"""
    __tablename__ = "purchase_order_items"

    item_id = Column(Integer, primary_key=True, autoincrement=True)
    po_id = Column(Integer, ForeignKey("purchase_orders.po_id", ondelete="CASCADE"), nullable=False)
    line_no = Column(Integer, nullable=False)
    product_id = Column(Integer, ForeignKey("products.product_id", ondelete="RESTRICT"), nullable=False)
    name = Column(String(200), doc="Product name snapshot")
    ordered_qty = Column(Integer, nullable=False)
    received_qty = Column(Integer, nullable=False, default=0)
    unit_price = Column(Numeric(15, 4), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)

    purchase_order = relationship("PurchaseOrder", back_populates="items")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("po_id", "product_id", name="uq_po_item_product"),
        CheckConstraint("ordered_qty > 0", name="ordered_positive"),
        CheckConstraint("received_qty >= 0", name="received_not_negative"),
        CheckConstraint("received_qty <= ordered_qty", name="no_over_receipt"),
    )

    @property
    def outstanding_qty(self) -> int:
        return self.ordered_qty - self.received_qty
