"""Purchase Order API endpoints"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from inventory_core.api import deps
from inventory_core.core.config import InventoryPolicy
from inventory_core.models.purchase import PurchaseOrderStatus
from inventory_core.services.purchasing import PurchaseOrderService
from inventory_core.schemas.purchase import (
    PaymentRequest, PriceAnalysis, PriceCheckResponse, PurchaseOrder,
    PurchaseOrderCreate, ReceiveRequest, ReceiveResponse
)

router = APIRouter()


def get_purchase_order_service(
    db: Session = Depends(deps.get_db),
    username: str = Depends(deps.get_current_username),
    policy: InventoryPolicy = Depends(deps.get_policy),
) -> PurchaseOrderService:
    return PurchaseOrderService(db, current_user=username, policy=policy)


@router.get("", response_model=List[PurchaseOrder])
async def list_purchase_orders(
    order_status: Optional[PurchaseOrderStatus] = Query(None, alias="status", description="Filter by status"),
    supplier_id: Optional[str] = Query(None, description="Filter by supplier"),
    pagination: dict = Depends(deps.get_pagination_params),
    service: PurchaseOrderService = Depends(get_purchase_order_service),
):
    """List purchase orders, newest first."""
    return service.list_orders(
        status=order_status.value if order_status else None,
        supplier_id=supplier_id,
        **pagination
    )


@router.post("", response_model=PurchaseOrder, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    order_in: PurchaseOrderCreate,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
):
    """
    Create purchase order.

    Totals are computed here: tax on the subtotal, plus freight, less discount.
    """
    return service.create(
        order_in.supplier_id,
        order_in.warehouse_id,
        [item.model_dump() for item in order_in.items],
        supplier_name=order_in.supplier_name,
        tax_rate=order_in.tax_rate,
        freight=order_in.freight,
        discount=order_in.discount,
        notes=order_in.notes,
    )


@router.get("/{po_id}", response_model=PurchaseOrder)
async def get_purchase_order(
    po_id: int,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
):
    """Get specific purchase order by ID."""
    return service.get(po_id)


@router.post("/{po_id}/receive", response_model=ReceiveResponse)
async def receive_purchase_order(
    po_id: int,
    receive_in: Optional[ReceiveRequest] = None,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
):
    """
    Receive goods against a purchase order.

    With no items, every outstanding quantity is received at the ordered price.
    Margin warnings are returned alongside the result; they never block it.
    """
    items = [item.model_dump() for item in receive_in.items] if receive_in else []
    result = service.receive(po_id, items)
    return ReceiveResponse.model_validate(result)


@router.post("/{po_id}/payments", response_model=PurchaseOrder)
async def record_payment(
    po_id: int,
    payment_in: PaymentRequest,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
):
    """Record a supplier payment against the order."""
    return service.record_payment(po_id, payment_in.amount)


@router.post("/{po_id}/cancel", response_model=PurchaseOrder)
async def cancel_purchase_order(
    po_id: int,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
):
    """Cancel an open purchase order."""
    return service.cancel(po_id)


@router.get("/{po_id}/check-prices", response_model=PriceCheckResponse)
async def check_prices(
    po_id: int,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
):
    """Compare each line's cost basis with its selling price without changing anything."""
    lines = [PriceAnalysis.model_validate(line) for line in service.check_prices(po_id)]
    return PriceCheckResponse(
        po_id=po_id,
        lines=lines,
        warnings=sum(1 for line in lines if line.warning is not None),
    )
