"""Stock Transfer Schemas"""

from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from inventory_core.models.transfer import TransferStatus


class TransferItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(..., gt=0)


class TransferCreate(BaseModel):
    from_warehouse_id: int
    to_warehouse_id: int
    items: List[TransferItemCreate] = Field(..., min_length=1)
    type: str = Field("manual", max_length=20)
    reason: str = Field("stock_replenishment", max_length=50)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def warehouses_differ(self):
        if self.from_warehouse_id == self.to_warehouse_id:
            raise ValueError("Source and destination warehouses must be different")
        return self


class TransferItem(BaseModel):
    line_no: int
    product_id: int
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    quantity: int
    unit_cost: Decimal

    model_config = ConfigDict(from_attributes=True)


class Transfer(BaseModel):
    transfer_id: int
    transfer_number: str
    from_warehouse_id: int
    to_warehouse_id: int
    status: TransferStatus
    type: str
    reason: str
    notes: Optional[str] = None
    items: List[TransferItem]
    total_items: int
    total_quantity: int
    total_value: Decimal
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
