"""Purchasing services - purchase orders and receiving"""

from .purchase_orders import PurchaseOrderService, ReceivingResult, PriceAnalysis

__all__ = [
    "PurchaseOrderService",
    "ReceivingResult",
    "PriceAnalysis",
]
