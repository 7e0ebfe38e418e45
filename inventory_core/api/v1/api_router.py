"""
Main API Router - Consolidates all module routes
"""

from fastapi import APIRouter
from inventory_core.api.v1 import stock, pl, notifications

api_router = APIRouter()

# Stock ledger routes
api_router.include_router(stock.positions.router, prefix="/stock", tags=["stock-positions"])
api_router.include_router(stock.movements.router, prefix="/stock", tags=["stock-movements"])

# Batch routes
api_router.include_router(stock.batches.router, prefix="/batches", tags=["batches"])

# Transfer routes
api_router.include_router(stock.transfers.router, prefix="/transfers", tags=["transfers"])

# Purchasing routes
api_router.include_router(pl.purchase_orders.router, prefix="/purchase-orders", tags=["purchase-orders"])

# Notification routes
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
