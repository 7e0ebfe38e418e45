"""
Cost Reconciliation Engine
Weighted-average cost basis and margin warnings
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from inventory_core.core.config import InventoryPolicy
from inventory_core.core.exceptions import ValidationError
from inventory_core.core.logging import get_logger
from inventory_core.models.warehouse import Product

logger = get_logger("ledger")

DEFAULT_COST_QUANTUM = Decimal("0.0001")
DEFAULT_CURRENCY_QUANTUM = Decimal("0.01")
DEFAULT_MARKUP = Decimal("1.2")


@dataclass(frozen=True)
class MarginWarning:
    """Advisory result: cost basis now exceeds the selling price"""
    product_id: Optional[int]
    new_average_cost: Decimal
    selling_price: Decimal
    suggested_price: Decimal

    @property
    def message(self) -> str:
        return (
            f"Average cost {self.new_average_cost} exceeds selling price {self.selling_price}; "
            f"suggested selling price {self.suggested_price}"
        )


@dataclass(frozen=True)
class CostUpdate:
    product_id: int
    previous_average_cost: Decimal
    new_average_cost: Decimal
    warning: Optional[MarginWarning] = None


def _decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def reconcile_receipt(
    product_id: Optional[int],
    current_qty: int,
    current_avg_cost,
    received_qty: int,
    received_total_cost,
    quantum: Decimal = DEFAULT_COST_QUANTUM,
) -> Decimal:
    """
    New weighted-average unit cost after a receipt.

    (current_qty * current_avg_cost + received_total_cost) / (current_qty + received_qty)

    A negative on-hand quantity contributes nothing to the blend.
    """
    current_qty = max(int(current_qty), 0)
    total_qty = current_qty + int(received_qty)
    if total_qty <= 0:
        raise ValidationError(
            f"Cannot average cost for product {product_id} over a non-positive quantity",
            product_id=product_id,
        )
    current_value = current_qty * _decimal(current_avg_cost)
    new_cost = (current_value + _decimal(received_total_cost)) / total_qty
    return new_cost.quantize(quantum, rounding=ROUND_HALF_UP)


def check_margin_warning(
    new_avg_cost,
    selling_price,
    product_id: Optional[int] = None,
    markup: Decimal = DEFAULT_MARKUP,
    quantum: Decimal = DEFAULT_CURRENCY_QUANTUM,
) -> Optional[MarginWarning]:
    """Return a MarginWarning when cost exceeds a non-zero selling price"""
    new_avg_cost = _decimal(new_avg_cost)
    selling_price = _decimal(selling_price)
    if selling_price <= 0 or new_avg_cost <= selling_price:
        return None
    suggested = max(new_avg_cost * _decimal(markup), selling_price)
    return MarginWarning(
        product_id=product_id,
        new_average_cost=new_avg_cost,
        selling_price=selling_price,
        suggested_price=suggested.quantize(quantum, rounding=ROUND_HALF_UP),
    )


class CostReconciliationEngine:
    """Applies reconcile_receipt to a product's stored cost basis"""

    def __init__(self, policy: Optional[InventoryPolicy] = None):
        self.policy = policy or InventoryPolicy.from_settings()

    def apply_receipt(self, product: Product, current_qty: int, received_qty: int, unit_cost) -> CostUpdate:
        """
        Blend a receipt into product.average_cost.

        current_qty is the on-hand quantity across all warehouses before
        the receipt is posted. The caller owns the unit of work.
        """
        unit_cost = _decimal(unit_cost)
        previous = _decimal(product.average_cost or 0)
        new_cost = reconcile_receipt(
            product.product_id,
            current_qty,
            previous,
            received_qty,
            unit_cost * received_qty,
            quantum=self.policy.cost_quantum,
        )
        product.average_cost = new_cost
        product.last_cost = unit_cost

        logger.info(f"Average cost of product {product.product_id}: {previous} -> {new_cost}")

        warning = self.check_margin(product, new_cost)
        return CostUpdate(
            product_id=product.product_id,
            previous_average_cost=previous,
            new_average_cost=new_cost,
            warning=warning,
        )

    def check_margin(self, product: Product, cost) -> Optional[MarginWarning]:
        warning = check_margin_warning(
            cost,
            product.selling_price or 0,
            product_id=product.product_id,
            markup=self.policy.margin_markup,
            quantum=self.policy.currency_quantum,
        )
        if warning:
            logger.warning(f"Product {product.product_id}: {warning.message}")
        return warning
