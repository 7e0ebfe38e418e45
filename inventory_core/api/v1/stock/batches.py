"""Batch/Lot API endpoints"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from inventory_core.api import deps
from inventory_core.core.config import InventoryPolicy
from inventory_core.core.exceptions import ValidationError
from inventory_core.models.batch import BatchStatus
from inventory_core.models.stock import ReferenceType
from inventory_core.services.stock import BatchRegistryService, StockMovementsService, StockReference
from inventory_core.schemas.stock import (
    Batch, BatchCreate, BatchSweepResponse, PickRequest, StockIssueResponse, StockReceiptResponse
)

router = APIRouter()


@router.get("", response_model=List[Batch])
async def list_batches(
    product_id: Optional[int] = Query(None, description="Filter by product"),
    batch_status: Optional[BatchStatus] = Query(None, alias="status", description="Filter by status"),
    sort_by: str = Query("expiry_date", pattern="^(expiry_date|created_at|batch_number|remaining_quantity)$"),
    sort_order: str = Query("asc", pattern="^(asc|desc)$"),
    pagination: dict = Depends(deps.get_pagination_params),
    db: Session = Depends(deps.get_db),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """
    List batches.

    Sorting by expiry date puts batches without an expiry last.
    """
    return BatchRegistryService(db, policy).list_batches(
        product_id=product_id,
        status=batch_status.value if batch_status else None,
        sort_by=sort_by,
        sort_order=sort_order,
        **pagination
    )


@router.get("/{batch_id}", response_model=Batch)
async def get_batch(
    batch_id: int,
    db: Session = Depends(deps.get_db),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """Get specific batch by ID."""
    return BatchRegistryService(db, policy).get_batch(batch_id)


@router.post("", response_model=StockReceiptResponse, status_code=status.HTTP_201_CREATED)
async def receive_batch(
    batch_in: BatchCreate,
    db: Session = Depends(deps.get_db),
    username: str = Depends(deps.get_current_username),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """
    Receive a batch into a warehouse.

    The batch, its ledger inflow and the cost update commit together; the
    product must be batch tracked.
    """
    movements = StockMovementsService(db, policy)
    product = movements.ledger.get_product(batch_in.product_id)
    if not movements.is_batch_tracked(product):
        raise ValidationError(f"Product {product.code} is not batch tracked", field="product_id")

    reference = StockReference(
        reference_type=ReferenceType.PURCHASE.value,
        reference_id=batch_in.reference_id,
        created_by=username,
        notes=batch_in.notes or "",
    )
    result = movements.receive_stock(
        batch_in.warehouse_id,
        batch_in.product_id,
        batch_in.quantity,
        batch_in.unit_price,
        reference,
        expiry_date=batch_in.expiry_date,
        batch_number=batch_in.batch_number,
        manufacturing_date=batch_in.manufacturing_date,
        supplier=batch_in.supplier,
    )
    return StockReceiptResponse.model_validate(result)


@router.post("/pick", response_model=StockIssueResponse, status_code=status.HTTP_201_CREATED)
async def pick_batches(
    pick_in: PickRequest,
    db: Session = Depends(deps.get_db),
    username: str = Depends(deps.get_current_username),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """
    Issue stock from a warehouse, taking batches in FEFO, FIFO or LIFO order.

    The batch picks and the ledger outflow commit together.
    """
    movements = StockMovementsService(db, policy)
    product = movements.ledger.get_product(pick_in.product_id)
    if not movements.is_batch_tracked(product):
        raise ValidationError(f"Product {product.code} is not batch tracked", field="product_id")

    reference = StockReference(
        reference_type=pick_in.reference_type.value,
        reference_id=pick_in.reference_id,
        created_by=username,
        notes=pick_in.notes or "",
    )
    result = movements.issue_stock(
        pick_in.warehouse_id, pick_in.product_id, pick_in.quantity, reference, method=pick_in.method
    )
    return StockIssueResponse.model_validate(result)


@router.post("/sweep-expired", response_model=BatchSweepResponse)
async def sweep_expired(
    db: Session = Depends(deps.get_db),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """Mark batches past their expiry date as expired."""
    expired = BatchRegistryService(db, policy).sweep_expired()
    return BatchSweepResponse(expired=len(expired), batches=[Batch.model_validate(b) for b in expired])

