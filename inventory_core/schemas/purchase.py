"""Purchase Order Schemas"""

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from inventory_core.models.purchase import PurchaseOrderStatus, PaymentStatus
from inventory_core.schemas.stock import MarginWarning


class PurchaseOrderItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)


class PurchaseOrderCreate(BaseModel):
    supplier_id: str = Field(..., min_length=1, max_length=50)
    supplier_name: str = Field("", max_length=200)
    warehouse_id: int
    items: List[PurchaseOrderItemCreate] = Field(..., min_length=1)
    tax_rate: Decimal = Field(default=0, ge=0)
    freight: Decimal = Field(default=0, ge=0)
    discount: Decimal = Field(default=0, ge=0)
    notes: Optional[str] = None

    @field_validator("items")
    @classmethod
    def unique_products(cls, v):
        product_ids = [item.product_id for item in v]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Each product may appear only once per order")
        return v


class ReceiveItem(BaseModel):
    product_id: int
    quantity: int = Field(..., gt=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    expiry_date: Optional[datetime] = None
    batch_number: Optional[str] = Field(None, max_length=40)


class ReceiveRequest(BaseModel):
    """Omit items to receive everything outstanding"""
    items: List[ReceiveItem] = []


class PaymentRequest(BaseModel):
    # Positivity is enforced by the service so it reports InvalidAmount
    amount: Decimal


class PurchaseOrderItem(BaseModel):
    line_no: int
    product_id: int
    name: Optional[str] = None
    ordered_qty: int
    received_qty: int
    outstanding_qty: int
    unit_price: Decimal
    total: Decimal

    model_config = ConfigDict(from_attributes=True)


class PurchaseOrder(BaseModel):
    po_id: int
    po_number: str
    supplier_id: str
    supplier_name: str
    warehouse_id: int
    items: List[PurchaseOrderItem]
    sub_total: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    freight: Decimal
    discount: Decimal
    grand_total: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    status: PurchaseOrderStatus
    payment_status: PaymentStatus
    notes: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReceiveResponse(BaseModel):
    purchase_order: PurchaseOrder
    total_received: int
    warnings: List[MarginWarning]

    model_config = ConfigDict(from_attributes=True)


class PriceAnalysis(BaseModel):
    product_id: int
    name: str
    order_unit_price: Decimal
    average_cost: Decimal
    selling_price: Decimal
    suggested_price: Optional[Decimal] = None
    margin_percent: Optional[Decimal] = None
    warning: Optional[MarginWarning] = None

    model_config = ConfigDict(from_attributes=True)


class PriceCheckResponse(BaseModel):
    po_id: int
    lines: List[PriceAnalysis]
    warnings: int
