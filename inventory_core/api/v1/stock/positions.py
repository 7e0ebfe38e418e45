"""Stock Position API endpoints"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from inventory_core.api import deps
from inventory_core.core.config import InventoryPolicy
from inventory_core.core.exceptions import NotFoundError
from inventory_core.services.stock import StockLedgerService
from inventory_core.schemas.stock import ConservationCheck, ProductOnHand, StockPosition

router = APIRouter()


@router.get("/positions", response_model=List[StockPosition])
async def list_positions(
    warehouse_id: Optional[int] = Query(None, description="Filter by warehouse"),
    product_id: Optional[int] = Query(None, description="Filter by product"),
    below_minimum: bool = Query(False, description="Only positions at or below minimum level"),
    pagination: dict = Depends(deps.get_pagination_params),
    db: Session = Depends(deps.get_db),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """List stock positions per warehouse and product."""
    return StockLedgerService(db, policy).list_positions(
        warehouse_id=warehouse_id,
        product_id=product_id,
        below_minimum=below_minimum,
        **pagination
    )


@router.get("/positions/{warehouse_id}/{product_id}", response_model=StockPosition)
async def get_position(
    warehouse_id: int,
    product_id: int,
    db: Session = Depends(deps.get_db),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """
    Get the position for one warehouse and product.

    Positions only exist once stock has moved; there is no fallback to a
    product-level quantity.
    """
    position = StockLedgerService(db, policy).get_position(warehouse_id, product_id)
    if not position:
        raise NotFoundError("StockPosition", f"{warehouse_id}/{product_id}")
    return position


@router.get("/positions/{warehouse_id}/{product_id}/conservation", response_model=ConservationCheck)
async def check_conservation(
    warehouse_id: int,
    product_id: int,
    db: Session = Depends(deps.get_db),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """Compare a position with the signed sum of its ledger entries."""
    return StockLedgerService(db, policy).verify_conservation(warehouse_id, product_id)


@router.get("/products/{product_id}/on-hand", response_model=ProductOnHand)
async def product_on_hand(
    product_id: int,
    db: Session = Depends(deps.get_db),
    policy: InventoryPolicy = Depends(deps.get_policy),
):
    """Total on-hand quantity across all warehouses."""
    ledger = StockLedgerService(db, policy)
    ledger.get_product(product_id)
    return ProductOnHand(product_id=product_id, on_hand=ledger.product_on_hand(product_id))
