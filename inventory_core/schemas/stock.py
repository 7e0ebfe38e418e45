"""Stock Ledger and Batch Schemas"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from inventory_core.models.stock import MovementType, ReferenceType
from inventory_core.models.batch import BatchStatus
from inventory_core.services.stock.batch_registry import PickingMethod


# Ledger Schemas
class StockMovementCreate(BaseModel):
    warehouse_id: int
    product_id: int
    type: MovementType
    quantity: int = Field(..., gt=0)
    reference_type: ReferenceType = ReferenceType.ADJUSTMENT
    reference_id: Optional[str] = Field(None, max_length=50)
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class StockAdjustmentCreate(BaseModel):
    warehouse_id: int
    product_id: int
    counted_quantity: int
    notes: Optional[str] = None


class StockIssueCreate(BaseModel):
    warehouse_id: int
    product_id: int
    quantity: int = Field(..., gt=0)
    reference_type: ReferenceType = ReferenceType.SALE
    reference_id: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class StockReceiptCreate(BaseModel):
    warehouse_id: int
    product_id: int
    quantity: int = Field(..., gt=0)
    unit_cost: Decimal = Field(..., ge=0)
    reference_type: ReferenceType = ReferenceType.ADJUSTMENT
    reference_id: Optional[str] = Field(None, max_length=50)
    expiry_date: Optional[datetime] = None
    manufacturing_date: Optional[datetime] = None
    batch_number: Optional[str] = Field(None, max_length=40)
    supplier: str = ""
    notes: Optional[str] = None


class BatchAllocationIn(BaseModel):
    batch_id: int
    quantity: int = Field(..., gt=0)


class StockReturnCreate(BaseModel):
    warehouse_id: int
    product_id: int
    quantity: int = Field(..., gt=0)
    reference_id: Optional[str] = Field(None, max_length=50)
    allocations: List[BatchAllocationIn] = []
    notes: Optional[str] = None


class OpeningBalanceCreate(BaseModel):
    warehouse_id: int
    product_id: int
    quantity: int = Field(..., gt=0)
    unit_cost: Optional[Decimal] = Field(None, ge=0)


class StockPosition(BaseModel):
    position_id: int
    warehouse_id: int
    product_id: int
    quantity: int
    last_updated: datetime
    version: int

    model_config = ConfigDict(from_attributes=True)


class StockTransaction(BaseModel):
    transaction_id: int
    warehouse_id: int
    product_id: int
    type: str
    quantity: int
    previous_quantity: int
    new_quantity: int
    unit_cost: Optional[Decimal] = None
    reference_type: str
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    timestamp: datetime
    created_by: str

    model_config = ConfigDict(from_attributes=True)


class StockTransactionListResponse(BaseModel):
    transactions: List[StockTransaction]
    total: int
    skip: int
    limit: int


class ConservationCheck(BaseModel):
    warehouse_id: int
    product_id: int
    position_quantity: int
    ledger_sum: int
    consistent: bool


class ProductOnHand(BaseModel):
    product_id: int
    on_hand: int


class MarginWarning(BaseModel):
    product_id: Optional[int] = None
    new_average_cost: Decimal
    selling_price: Decimal
    suggested_price: Decimal
    message: str

    model_config = ConfigDict(from_attributes=True)


# Batch Schemas
class BatchCreate(BaseModel):
    warehouse_id: int
    product_id: int
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    expiry_date: Optional[datetime] = None
    manufacturing_date: Optional[datetime] = None
    supplier: str = ""
    batch_number: Optional[str] = Field(None, max_length=40)
    reference_id: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class Batch(BaseModel):
    batch_id: int
    product_id: int
    batch_number: str
    quantity: int
    remaining_quantity: int
    purchase_price: Decimal
    expiry_date: Optional[datetime] = None
    manufacturing_date: Optional[datetime] = None
    supplier: str
    status: BatchStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BatchAllocation(BaseModel):
    batch_id: int
    batch_number: str
    quantity: int
    unit_cost: Decimal
    line_cost: Decimal
    expiry_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PickRequest(BaseModel):
    warehouse_id: int
    product_id: int
    quantity: int = Field(..., gt=0)
    method: PickingMethod = PickingMethod.FEFO
    reference_type: ReferenceType = ReferenceType.SALE
    reference_id: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class BatchSweepResponse(BaseModel):
    expired: int
    batches: List[Batch]


# Composite movement results
class StockIssueResponse(BaseModel):
    transaction: StockTransaction
    allocations: List[BatchAllocation]
    cost_of_goods: Decimal

    model_config = ConfigDict(from_attributes=True)


class StockReceiptResponse(BaseModel):
    transaction: StockTransaction
    new_average_cost: Decimal
    warning: Optional[MarginWarning] = None
    batch: Optional[Batch] = None

    model_config = ConfigDict(from_attributes=True)


class StockReturnResponse(BaseModel):
    transaction: StockTransaction
    restored_batches: List[Batch]

    model_config = ConfigDict(from_attributes=True)
