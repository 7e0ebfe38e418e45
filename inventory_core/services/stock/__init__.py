"""Stock services - ledger, batches, cost basis, movements and transfers"""

from .stock_ledger import StockLedgerService, StockReference
from .batch_registry import BatchRegistryService, BatchAllocation, PickResult, PickingMethod
from .cost_reconciliation import (
    CostReconciliationEngine, CostUpdate, MarginWarning,
    reconcile_receipt, check_margin_warning
)
from .stock_movements import StockMovementsService, IssueResult, ReceiptResult, ReturnResult
from .stock_transfer import StockTransferService

__all__ = [
    "StockLedgerService",
    "StockReference",
    "BatchRegistryService",
    "BatchAllocation",
    "PickResult",
    "PickingMethod",
    "CostReconciliationEngine",
    "CostUpdate",
    "MarginWarning",
    "reconcile_receipt",
    "check_margin_warning",
    "StockMovementsService",
    "IssueResult",
    "ReceiptResult",
    "ReturnResult",
    "StockTransferService",
]
