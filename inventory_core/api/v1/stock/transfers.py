"""Stock Transfer API endpoints"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from inventory_core.api import deps
from inventory_core.core.config import InventoryPolicy
from inventory_core.models.transfer import TransferStatus
from inventory_core.services.stock import StockTransferService
from inventory_core.schemas.transfer import Transfer, TransferCreate

router = APIRouter()


def get_transfer_service(
    db: Session = Depends(deps.get_db),
    username: str = Depends(deps.get_current_username),
    policy: InventoryPolicy = Depends(deps.get_policy),
) -> StockTransferService:
    return StockTransferService(db, current_user=username, policy=policy)


@router.get("", response_model=List[Transfer])
async def list_transfers(
    transfer_status: Optional[TransferStatus] = Query(None, alias="status", description="Filter by status"),
    warehouse_id: Optional[int] = Query(None, description="Source or destination warehouse"),
    pagination: dict = Depends(deps.get_pagination_params),
    service: StockTransferService = Depends(get_transfer_service),
):
    """List transfers, newest first."""
    return service.list_transfers(
        status=transfer_status.value if transfer_status else None,
        warehouse_id=warehouse_id,
        **pagination
    )


@router.post("", response_model=Transfer, status_code=status.HTTP_201_CREATED)
async def create_transfer(
    transfer_in: TransferCreate,
    service: StockTransferService = Depends(get_transfer_service),
):
    """Create a pending transfer request."""
    return service.create(
        transfer_in.from_warehouse_id,
        transfer_in.to_warehouse_id,
        [item.model_dump() for item in transfer_in.items],
        transfer_type=transfer_in.type,
        reason=transfer_in.reason,
        notes=transfer_in.notes,
    )


@router.get("/{transfer_id}", response_model=Transfer)
async def get_transfer(
    transfer_id: int,
    service: StockTransferService = Depends(get_transfer_service),
):
    """Get specific transfer by ID."""
    return service.get(transfer_id)


@router.post("/{transfer_id}/approve", response_model=Transfer)
async def approve_transfer(
    transfer_id: int,
    service: StockTransferService = Depends(get_transfer_service),
):
    """Approve a pending transfer."""
    return service.approve(transfer_id)


@router.post("/{transfer_id}/process", response_model=Transfer)
async def process_transfer(
    transfer_id: int,
    service: StockTransferService = Depends(get_transfer_service),
):
    """
    Move the stock and complete an approved transfer.

    Either every item moves or none does; on failure the transfer stays
    approved and can be retried.
    """
    return service.process(transfer_id)


@router.post("/{transfer_id}/cancel", response_model=Transfer)
async def cancel_transfer(
    transfer_id: int,
    service: StockTransferService = Depends(get_transfer_service),
):
    """Cancel a pending or approved transfer."""
    return service.cancel(transfer_id)


@router.post("/{transfer_id}/reject", response_model=Transfer)
async def reject_transfer(
    transfer_id: int,
    service: StockTransferService = Depends(get_transfer_service),
):
    """Reject a pending transfer."""
    return service.reject(transfer_id)
