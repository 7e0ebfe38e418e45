"""
Inventory Pydantic Schemas
Request/Response models for the inventory API
"""

from .stock import (
    StockMovementCreate, StockAdjustmentCreate, StockIssueCreate, StockReceiptCreate,
    StockReturnCreate, OpeningBalanceCreate, BatchAllocationIn,
    StockPosition, StockTransaction, StockTransactionListResponse,
    ConservationCheck, ProductOnHand, MarginWarning,
    BatchCreate, Batch, BatchAllocation, PickRequest, BatchSweepResponse,
    StockIssueResponse, StockReceiptResponse, StockReturnResponse
)
from .transfer import TransferCreate, TransferItemCreate, Transfer, TransferItem
from .purchase import (
    PurchaseOrderCreate, PurchaseOrderItemCreate, PurchaseOrder, PurchaseOrderItem,
    ReceiveItem, ReceiveRequest, ReceiveResponse, PaymentRequest,
    PriceAnalysis, PriceCheckResponse
)
from .notification import (
    Notification, NotificationListResponse, UnreadCount,
    MarkAllReadResponse, CleanupResponse, SweepResponse
)
