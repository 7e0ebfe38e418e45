"""
Warehouse and Product Models
Master data the inventory core reads but does not own
"""
from sqlalchemy import (
    Boolean, Column, DateTime, Integer, Numeric, String, Text, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from inventory_core.core.database import Base


class Warehouse(Base):
    """Warehouse Record - stock holding site with its stock policy"""
    __tablename__ = "warehouses"

    warehouse_id = Column(Integer, primary_key=True, autoincrement=True, doc="Warehouse ID")
    code = Column(String(20), unique=True, nullable=False, doc="Warehouse code")
    name = Column(String(100), nullable=False, doc="Warehouse name")
    location = Column(String(200), doc="Address or site description")
    is_active = Column(Boolean, nullable=False, default=True, doc="Active warehouse flag")

    # Configuration; NULL falls back to the inventory policy default
    allow_negative_stock = Column(Boolean, nullable=True, doc="Allow negative stock flag")
    low_stock_threshold = Column(Integer, nullable=True, doc="Warehouse low stock threshold")
    critical_stock_threshold = Column(Integer, nullable=True, doc="Warehouse critical stock threshold")

    notes = Column(Text, doc="Warehouse notes")

    created_at = Column(DateTime, server_default=func.current_timestamp())
    updated_at = Column(DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    positions = relationship("StockPosition", back_populates="warehouse")

    def __repr__(self):
        return f"<Warehouse {self.code}>"


class Product(Base):
    """
    Product Record - item master

    average_cost is the weighted-average cost basis; only cost
    reconciliation writes it, and the version column makes two receipts
    blending from the same stale cost conflict. On-hand quantity lives in
    the stock ledger, never here.
    """
    __tablename__ = "products"

    product_id = Column(Integer, primary_key=True, autoincrement=True, doc="Product ID")
    code = Column(String(30), unique=True, nullable=False, doc="Product code")
    name = Column(String(200), nullable=False, doc="Product name")
    category = Column(String(50), doc="Category")
    unit = Column(String(10), nullable=False, default="pcs", doc="Unit of measure")

    selling_price = Column(Numeric(15, 2), nullable=False, default=0, doc="Selling price")
    average_cost = Column(Numeric(15, 4), nullable=False, default=0, doc="Weighted average cost")
    last_cost = Column(Numeric(15, 4), nullable=False, default=0, doc="Last received unit cost")

    min_stock_level = Column(Integer, nullable=True, doc="Minimum stock level for alerts")
    track_batches = Column(Boolean, nullable=False, default=False, doc="Batch/lot tracked flag")
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, server_default=func.current_timestamp())
    updated_at = Column(DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    batches = relationship("Batch", back_populates="product")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("selling_price >= 0", name="selling_price_not_negative"),
        CheckConstraint("average_cost >= 0", name="average_cost_not_negative"),
    )

    def __repr__(self):
        return f"<Product {self.code}>"
