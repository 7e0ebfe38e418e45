"""
Inventory Exceptions
Typed failures returned by every core command
"""
from typing import Any, Optional


class InventoryError(Exception):
    """Base exception for the inventory core"""
    code = "inventory_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(InventoryError):
    """Raised when command input is invalid"""
    code = "validation_error"


class NotFoundError(InventoryError):
    """Raised when a warehouse, product, batch, transfer or order does not exist"""
    code = "not_found"

    def __init__(self, entity: str, key: Any, message: Optional[str] = None):
        super().__init__(message or f"{entity} {key} not found", entity=entity, key=key)
        self.entity = entity
        self.key = key


class InsufficientStockError(InventoryError):
    """Raised when an outflow would drive a position negative"""
    code = "insufficient_stock"

    def __init__(self, warehouse_id: int, product_id: int, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product {product_id} in warehouse {warehouse_id}. "
            f"Available: {available}, Requested: {requested}",
            warehouse_id=warehouse_id,
            product_id=product_id,
            available=available,
            requested=requested,
        )
        self.warehouse_id = warehouse_id
        self.product_id = product_id
        self.available = available
        self.requested = requested


class InsufficientBatchStockError(InventoryError):
    """Raised when active batches cannot cover a consumption"""
    code = "insufficient_batch_stock"

    def __init__(self, product_id: int, available: int, requested: int):
        super().__init__(
            f"Insufficient batch stock for product {product_id}. "
            f"Available: {available}, Requested: {requested}",
            product_id=product_id,
            available=available,
            requested=requested,
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class InvalidTransferStateError(InventoryError):
    """Raised when a transfer transition is not allowed from its current status"""
    code = "invalid_transfer_state"

    def __init__(self, transfer_id: int, current: str, action: str):
        super().__init__(
            f"Cannot {action} transfer {transfer_id} with status: {current}",
            transfer_id=transfer_id,
            current=current,
            action=action,
        )
        self.transfer_id = transfer_id
        self.current = current
        self.action = action


class InvalidOrderStateError(InventoryError):
    """Raised when a purchase order's status does not allow the requested action"""
    code = "invalid_order_state"

    def __init__(self, po_id: int, current: str, action: str):
        super().__init__(
            f"Cannot {action} purchase order {po_id} with status: {current}",
            po_id=po_id,
            current=current,
            action=action,
        )
        self.po_id = po_id
        self.current = current
        self.action = action


class OverReceiptError(InventoryError):
    """Raised when a receipt would exceed the ordered quantity"""
    code = "over_receipt"

    def __init__(self, po_id: int, product_id: int, ordered: int, received: int, requested: int):
        super().__init__(
            f"Over-receipt on purchase order {po_id} for product {product_id}. "
            f"Ordered: {ordered}, Received: {received}, Requested: {requested}",
            po_id=po_id,
            product_id=product_id,
            ordered=ordered,
            received=received,
            requested=requested,
        )


class InvalidAmountError(InventoryError):
    """Raised when a payment amount is not positive"""
    code = "invalid_amount"


class ConcurrentModificationError(InventoryError):
    """Raised when another writer committed first on a contended key"""
    code = "concurrent_modification"
