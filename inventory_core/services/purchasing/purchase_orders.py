"""
Purchase Order Service
Order placement, receiving against the stock ledger, and payments
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from inventory_core.core.audit import log_user_action
from inventory_core.core.clock import Clock, utcnow
from inventory_core.core.config import InventoryPolicy
from inventory_core.core.database import unit_of_work
from inventory_core.core.exceptions import (
    InvalidAmountError, InvalidOrderStateError, InventoryError,
    NotFoundError, OverReceiptError, ValidationError
)
from inventory_core.core.logging import get_logger
from inventory_core.models.purchase import (
    PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus
)
from inventory_core.models.stock import ReferenceType
from inventory_core.services import numbering
from inventory_core.services.stock.cost_reconciliation import MarginWarning, check_margin_warning
from inventory_core.services.stock.stock_ledger import StockReference, require_positive_quantity
from inventory_core.services.stock.stock_movements import ReceiptResult, StockMovementsService

logger = get_logger("purchasing")


@dataclass
class ReceivingResult:
    purchase_order: PurchaseOrder
    receipts: List[ReceiptResult] = field(default_factory=list)
    warnings: List[MarginWarning] = field(default_factory=list)

    @property
    def total_received(self) -> int:
        return sum(r.transaction.quantity for r in self.receipts)


@dataclass
class PriceAnalysis:
    """Cost basis of one order line compared with its selling price"""
    product_id: int
    name: str
    order_unit_price: Decimal
    average_cost: Decimal
    selling_price: Decimal
    suggested_price: Optional[Decimal] = None
    margin_percent: Optional[Decimal] = None
    warning: Optional[MarginWarning] = None


def _money(value) -> Decimal:
    return Decimal(str(value if value is not None else 0))


class PurchaseOrderService:
    """
    Purchase-Order Receiving Engine

    receive() posts every line's ledger inflow, cost reconciliation and
    received quantity in one unit of work.
    """

    def __init__(
        self,
        db: Session,
        current_user: str = "system",
        policy: Optional[InventoryPolicy] = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.current_user = current_user or "system"
        self.policy = policy or InventoryPolicy.from_settings()
        self.clock = clock
        self.movements = StockMovementsService(db, self.policy, clock)

    def create(
        self,
        supplier_id: str,
        warehouse_id: int,
        items: Sequence[Dict],
        supplier_name: str = "",
        tax_rate=0,
        freight=0,
        discount=0,
        notes: Optional[str] = None,
    ) -> PurchaseOrder:
        """
        Place an order.

        items: [{'product_id': int, 'quantity': int, 'unit_price': Decimal}, ...]
        """
        if not supplier_id:
            raise ValidationError("supplier_id is required", field="supplier_id")
        if not items:
            raise ValidationError("A purchase order needs at least one item", field="items")

        tax_rate, freight, discount = _money(tax_rate), _money(freight), _money(discount)
        for name, value in (("tax_rate", tax_rate), ("freight", freight), ("discount", discount)):
            if value < 0:
                raise ValidationError(f"{name} cannot be negative", field=name)

        seen = set()
        for item in items:
            require_positive_quantity(item.get("quantity"), field="items.quantity")
            if _money(item.get("unit_price")) < 0:
                raise ValidationError("unit_price cannot be negative", field="items.unit_price")
            if item.get("product_id") in seen:
                raise ValidationError(
                    f"Product {item.get('product_id')} appears more than once", field="items"
                )
            seen.add(item.get("product_id"))

        quantum = self.policy.currency_quantum
        with unit_of_work(self.db):
            ledger = self.movements.ledger
            ledger.get_warehouse(warehouse_id)

            now = self.clock()
            po = PurchaseOrder(
                po_number=numbering.unique_number(
                    self.db, PurchaseOrder.po_number, lambda: numbering.purchase_order_number(now)
                ),
                supplier_id=str(supplier_id),
                supplier_name=supplier_name or "",
                warehouse_id=warehouse_id,
                tax_rate=tax_rate,
                freight=freight,
                discount=discount,
                amount_paid=Decimal("0"),
                status=PurchaseOrderStatus.OPEN.value,
                notes=notes,
                created_by=self.current_user,
                created_at=now,
                updated_at=now,
            )

            sub_total = Decimal("0")
            for line_no, item in enumerate(items, start=1):
                product = ledger.get_product(item["product_id"])
                unit_price = _money(item.get("unit_price"))
                line_total = (unit_price * item["quantity"]).quantize(quantum, rounding=ROUND_HALF_UP)
                po.items.append(PurchaseOrderItem(
                    line_no=line_no,
                    product_id=product.product_id,
                    name=product.name,
                    ordered_qty=item["quantity"],
                    received_qty=0,
                    unit_price=unit_price,
                    total=line_total,
                ))
                sub_total += line_total

            tax_amount = (sub_total * tax_rate / 100).quantize(quantum, rounding=ROUND_HALF_UP)
            po.sub_total = sub_total
            po.tax_amount = tax_amount
            po.grand_total = sub_total + tax_amount + freight - discount

            self.db.add(po)
            self.db.flush()

            log_user_action(
                db=self.db,
                user=self.current_user,
                action="CREATE_PO",
                timestamp=now,
                table="purchase_orders",
                key=po.po_number,
                new_values={
                    'supplier_id': po.supplier_id,
                    'warehouse_id': warehouse_id,
                    'lines': len(po.items),
                    'grand_total': str(po.grand_total),
                },
                module="PURCHASE"
            )

        logger.info(f"Purchase order {po.po_number} created for supplier {po.supplier_id}: {po.grand_total}")
        return po

    def receive(self, po_id: int, receive_items: Optional[Sequence[Dict]] = None) -> ReceivingResult:
        """
        Receive stock against an order.

        receive_items: [{'product_id', 'quantity', 'unit_price'?, 'expiry_date'?,
        'batch_number'?}, ...]; when omitted, every outstanding quantity is
        received at the ordered price. Raises OverReceiptError if any line
        would exceed its ordered quantity; nothing is posted in that case.
        """
        try:
            with unit_of_work(self.db):
                po = self.get(po_id)
                # A fully received order rejects further lines as over-receipts
                if po.status == PurchaseOrderStatus.CANCELLED.value:
                    raise InvalidOrderStateError(po.po_id, po.status, "receive")
                lines_by_product = {item.product_id: item for item in po.items}

                if not receive_items:
                    receive_items = [
                        {"product_id": item.product_id, "quantity": item.outstanding_qty,
                         "unit_price": item.unit_price}
                        for item in po.items if item.outstanding_qty > 0
                    ]
                    if not receive_items:
                        raise ValidationError(f"Purchase order {po.po_number} has nothing outstanding")

                result = ReceivingResult(purchase_order=po)
                reference = StockReference(
                    reference_type=ReferenceType.PURCHASE.value,
                    reference_id=str(po.po_id),
                    created_by=self.current_user,
                    notes=f"PO {po.po_number} receive",
                )
                for receipt in receive_items:
                    line = lines_by_product.get(receipt.get("product_id"))
                    if line is None:
                        raise ValidationError(
                            f"Product {receipt.get('product_id')} is not on purchase order {po.po_number}",
                            field="product_id",
                        )
                    quantity = require_positive_quantity(receipt.get("quantity"))
                    if line.received_qty + quantity > line.ordered_qty:
                        raise OverReceiptError(
                            po.po_id, line.product_id, line.ordered_qty, line.received_qty, quantity
                        )

                    unit_price = receipt.get("unit_price")
                    unit_price = line.unit_price if unit_price is None else _money(unit_price)
                    receipt_result = self.movements.receive_stock(
                        po.warehouse_id,
                        line.product_id,
                        quantity,
                        unit_price,
                        reference,
                        expiry_date=receipt.get("expiry_date"),
                        batch_number=receipt.get("batch_number"),
                        supplier=po.supplier_name,
                    )
                    line.received_qty += quantity
                    line.unit_price = unit_price
                    result.receipts.append(receipt_result)
                    if receipt_result.warning:
                        result.warnings.append(receipt_result.warning)

                now = self.clock()
                previous_status = po.status
                if po.fully_received:
                    po.status = PurchaseOrderStatus.RECEIVED.value
                po.updated_at = now

                log_user_action(
                    db=self.db,
                    user=self.current_user,
                    action="RECEIVE_PO",
                    timestamp=now,
                    table="purchase_orders",
                    key=po.po_number,
                    old_values={'status': previous_status},
                    new_values={'status': po.status, 'received': result.total_received},
                    module="PURCHASE"
                )
                self.db.flush()
        except InventoryError as e:
            logger.warning(f"Receipt against purchase order {po_id} rejected: {e.message}")
            raise

        logger.info(
            f"Purchase order {po.po_number}: received {result.total_received} units "
            f"over {len(result.receipts)} line(s), status {po.status}"
        )
        return result

    def record_payment(self, po_id: int, amount) -> PurchaseOrder:
        """Add a supplier payment; no stock effect"""
        amount = _money(amount)
        if amount <= 0:
            logger.warning(f"Rejected payment of {amount} on purchase order {po_id}")
            raise InvalidAmountError("Payment amount must be greater than zero", po_id=po_id, amount=str(amount))

        with unit_of_work(self.db):
            po = self.get(po_id)
            if po.status == PurchaseOrderStatus.CANCELLED.value:
                raise InvalidOrderStateError(po.po_id, po.status, "pay")
            previous = _money(po.amount_paid)
            now = self.clock()
            po.amount_paid = previous + amount
            po.updated_at = now
            log_user_action(
                db=self.db,
                user=self.current_user,
                action="PAY_PO",
                timestamp=now,
                table="purchase_orders",
                key=po.po_number,
                old_values={'amount_paid': str(previous)},
                new_values={'amount_paid': str(po.amount_paid)},
                module="PURCHASE"
            )
            self.db.flush()

        logger.info(f"Payment of {amount} recorded on purchase order {po.po_number} ({po.payment_status})")
        return po

    def cancel(self, po_id: int) -> PurchaseOrder:
        try:
            with unit_of_work(self.db):
                po = self.get(po_id)
                self._require_open(po, "cancel")
                now = self.clock()
                po.status = PurchaseOrderStatus.CANCELLED.value
                po.updated_at = now
                log_user_action(
                    db=self.db,
                    user=self.current_user,
                    action="CANCEL_PO",
                    timestamp=now,
                    table="purchase_orders",
                    key=po.po_number,
                    old_values={'status': PurchaseOrderStatus.OPEN.value},
                    new_values={'status': po.status},
                    module="PURCHASE"
                )
                self.db.flush()
        except InventoryError as e:
            logger.warning(f"Cannot cancel purchase order {po_id}: {e.message}")
            raise

        logger.info(f"Purchase order {po.po_number} cancelled")
        return po

    def check_prices(self, po_id: int) -> List[PriceAnalysis]:
        """Compare each line's cost basis with the selling price; read only"""
        po = self.get(po_id)
        analysis = []
        for item in po.items:
            product = self.movements.ledger.get_product(item.product_id)
            cost = _money(product.average_cost)
            selling = _money(product.selling_price)
            warning = check_margin_warning(
                cost, selling,
                product_id=product.product_id,
                markup=self.policy.margin_markup,
                quantum=self.policy.currency_quantum,
            )
            margin = None
            if cost > 0 and selling > 0:
                margin = ((selling - cost) / cost * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
            analysis.append(PriceAnalysis(
                product_id=product.product_id,
                name=product.name,
                order_unit_price=_money(item.unit_price),
                average_cost=cost,
                selling_price=selling,
                suggested_price=(cost * self.policy.margin_markup).quantize(
                    self.policy.currency_quantum, rounding=ROUND_HALF_UP
                ),
                margin_percent=margin,
                warning=warning,
            ))
        return analysis

    # Queries

    def get(self, po_id: int) -> PurchaseOrder:
        po = self.db.get(PurchaseOrder, po_id)
        if po is None:
            raise NotFoundError("PurchaseOrder", po_id)
        return po

    def list_orders(
        self,
        status: Optional[str] = None,
        supplier_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[PurchaseOrder]:
        query = self.db.query(PurchaseOrder)
        if status:
            query = query.filter(PurchaseOrder.status == status)
        if supplier_id:
            query = query.filter(PurchaseOrder.supplier_id == str(supplier_id))
        return query.order_by(
            PurchaseOrder.created_at.desc(), PurchaseOrder.po_id.desc()
        ).offset(skip).limit(limit).all()

    @staticmethod
    def _require_open(po: PurchaseOrder, action: str):
        if po.status != PurchaseOrderStatus.OPEN.value:
            raise InvalidOrderStateError(po.po_id, po.status, action)
