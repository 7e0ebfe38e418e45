"""
Inventory SQLAlchemy Models
"""

# Import all models to ensure they are registered with SQLAlchemy
from .warehouse import Warehouse, Product
from .stock import StockPosition, StockTransaction, MovementType, ReferenceType
from .batch import Batch, BatchStatus
from .transfer import Transfer, TransferItem, TransferStatus, TERMINAL_TRANSFER_STATES
from .purchase import PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus, PaymentStatus
from .notification import Notification, NotificationType, NotificationPriority
from .audit import AuditLog

__all__ = [
    "Warehouse",
    "Product",
    "StockPosition",
    "StockTransaction",
    "MovementType",
    "ReferenceType",
    "Batch",
    "BatchStatus",
    "Transfer",
    "TransferItem",
    "TransferStatus",
    "TERMINAL_TRANSFER_STATES",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "PurchaseOrderStatus",
    "PaymentStatus",
    "Notification",
    "NotificationType",
    "NotificationPriority",
    "AuditLog",
]
