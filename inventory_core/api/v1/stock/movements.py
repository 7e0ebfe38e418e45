"""Stock Movement API endpoints"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime

from inventory_core.api import deps
from inventory_core.core.config import InventoryPolicy
from inventory_core.models.stock import MovementType, ReferenceType
from inventory_core.services.stock import (
    BatchAllocation, StockLedgerService, StockMovementsService, StockReference
)
from inventory_core.schemas.stock import (
    OpeningBalanceCreate, StockAdjustmentCreate, StockIssueCreate, StockIssueResponse,
    StockMovementCreate, StockReceiptCreate, StockReceiptResponse, StockReturnCreate,
    StockReturnResponse, StockTransaction, StockTransactionListResponse
)

router = APIRouter()


@router.get("/transactions", response_model=StockTransactionListResponse)
async def list_transactions(
    product_id: Optional[int] = Query(None, description="Filter by product"),
    warehouse_id: Optional[int] = Query(None, description="Filter by warehouse"),
    start_date: Optional[datetime] = Query(None, description="Start date"),
    end_date: Optional[datetime] = Query(None, description="End date"),
    movement_type: Optional[MovementType] = Query(None, alias="type", description="inflow or outflow"),
    reference_type: Optional[ReferenceType] = Query(None, description="Filter by reference type"),
    reference_id: Optional[str] = Query(None, description="Filter by reference"),
    pagination: dict = Depends(deps.get_pagination_params),
    db: Session = Depends(deps.get_db),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """
    List ledger transactions, newest first.
    """
    ledger = StockLedgerService(db, policy)
    filters = dict(
        product_id=product_id,
        warehouse_id=warehouse_id,
        start_date=start_date,
        end_date=end_date,
        movement_type=movement_type,
        reference_type=reference_type,
        reference_id=reference_id,
    )
    return StockTransactionListResponse(
        transactions=ledger.get_transactions(**filters, **pagination),
        total=ledger.count_transactions(**filters),
        **pagination
    )


@router.post("/movements", response_model=StockTransaction, status_code=status.HTTP_201_CREATED)
async def apply_movement(
    movement_in: StockMovementCreate,
    db: Session = Depends(deps.get_db),
    username: str = Depends(deps.get_current_username),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """
    Apply a raw ledger movement.

    Does not touch batches or cost; use receipts and issues for that.
    """
    reference = StockReference(
        reference_type=movement_in.reference_type.value,
        reference_id=movement_in.reference_id,
        created_by=username,
        notes=movement_in.notes or "",
    )
    return StockLedgerService(db, policy).apply_movement(
        movement_in.warehouse_id,
        movement_in.product_id,
        movement_in.type,
        movement_in.quantity,
        reference,
        unit_cost=movement_in.unit_cost,
    )


@router.post("/adjustments", response_model=Optional[StockTransaction])
async def adjust_stock(
    adjustment_in: StockAdjustmentCreate,
    db: Session = Depends(deps.get_db),
    username: str = Depends(deps.get_current_username),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """
    Set a position to a counted quantity.

    Returns null when the count already matches.
    """
    reference = StockReference(
        reference_type=ReferenceType.ADJUSTMENT.value,
        created_by=username,
        notes=adjustment_in.notes or "Stock count adjustment",
    )
    return StockLedgerService(db, policy).adjust_to(
        adjustment_in.warehouse_id,
        adjustment_in.product_id,
        adjustment_in.counted_quantity,
        reference,
    )


@router.post("/opening-balances", response_model=StockTransaction, status_code=status.HTTP_201_CREATED)
async def post_opening_balance(
    balance_in: OpeningBalanceCreate,
    db: Session = Depends(deps.get_db),
    username: str = Depends(deps.get_current_username),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """Load stock that predates the ledger into one warehouse."""
    return StockLedgerService(db, policy).post_opening_balance(
        balance_in.warehouse_id,
        balance_in.product_id,
        balance_in.quantity,
        unit_cost=balance_in.unit_cost,
        created_by=username,
    )


@router.post("/issues", response_model=StockIssueResponse, status_code=status.HTTP_201_CREATED)
async def issue_stock(
    issue_in: StockIssueCreate,
    db: Session = Depends(deps.get_db),
    username: str = Depends(deps.get_current_username),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """
    Issue stock for a sale or consumption.

    Batch-tracked products are consumed FEFO in the same transaction.
    """
    reference = StockReference(
        reference_type=issue_in.reference_type.value,
        reference_id=issue_in.reference_id,
        created_by=username,
        notes=issue_in.notes or "",
    )
    result = StockMovementsService(db, policy).issue_stock(
        issue_in.warehouse_id, issue_in.product_id, issue_in.quantity, reference
    )
    return StockIssueResponse.model_validate(result)


@router.post("/receipts", response_model=StockReceiptResponse, status_code=status.HTTP_201_CREATED)
async def receive_stock(
    receipt_in: StockReceiptCreate,
    db: Session = Depends(deps.get_db),
    username: str = Depends(deps.get_current_username),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """
    Receive stock outside a purchase order.

    Updates the average cost and returns a margin warning when cost now
    exceeds the selling price.
    """
    reference = StockReference(
        reference_type=receipt_in.reference_type.value,
        reference_id=receipt_in.reference_id,
        created_by=username,
        notes=receipt_in.notes or "",
    )
    result = StockMovementsService(db, policy).receive_stock(
        receipt_in.warehouse_id,
        receipt_in.product_id,
        receipt_in.quantity,
        receipt_in.unit_cost,
        reference,
        expiry_date=receipt_in.expiry_date,
        batch_number=receipt_in.batch_number,
        manufacturing_date=receipt_in.manufacturing_date,
        supplier=receipt_in.supplier,
    )
    return StockReceiptResponse.model_validate(result)


@router.post("/returns", response_model=StockReturnResponse, status_code=status.HTTP_201_CREATED)
async def return_stock(
    return_in: StockReturnCreate,
    db: Session = Depends(deps.get_db),
    username: str = Depends(deps.get_current_username),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """Book a customer return back into stock."""
    movements = StockMovementsService(db, policy)
    allocations = []
    for allocation_in in return_in.allocations:
        batch = movements.batches.get_batch(allocation_in.batch_id)
        allocations.append(BatchAllocation(
            batch_id=batch.batch_id,
            batch_number=batch.batch_number,
            quantity=allocation_in.quantity,
            unit_cost=batch.purchase_price,
            expiry_date=batch.expiry_date,
        ))
    reference = StockReference(
        reference_type=ReferenceType.RETURN.value,
        reference_id=return_in.reference_id,
        created_by=username,
        notes=return_in.notes or "",
    )
    result = movements.return_stock(
        return_in.warehouse_id,
        return_in.product_id,
        return_in.quantity,
        reference,
        allocations=allocations,
    )
    return StockReturnResponse.model_validate(result)
