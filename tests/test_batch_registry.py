"""
Batch Registry Tests
Lot receipt, picking order, restores and expiry marking
"""

import re
import pytest
from datetime import timedelta
from decimal import Decimal

from inventory_core.core.exceptions import (
    InsufficientBatchStockError, NotFoundError, ValidationError
)
from inventory_core.models import BatchStatus
from inventory_core.services.stock import BatchAllocation, PickingMethod


@pytest.fixture
def syrup_id(products):
    return products["syrup"].product_id


class TestReceiveBatch:
    """Test batch creation"""

    def test_generated_batch_number(self, batch_registry, syrup_id):
        batch = batch_registry.receive_batch(syrup_id, 10, Decimal("2.50"))

        assert re.match(r"^B\d{12}[A-Z0-9]{3}$", batch.batch_number)
        assert batch.batch_number.startswith("B240601120000")
        assert batch.quantity == 10
        assert batch.remaining_quantity == 10
        assert batch.status == BatchStatus.ACTIVE.value

    def test_explicit_batch_number(self, batch_registry, syrup_id, clock):
        batch = batch_registry.receive_batch(
            syrup_id, 5, Decimal("1.00"),
            expiry_date=clock.now + timedelta(days=90),
            supplier="Acme Pharma",
            batch_number="LOT-77",
        )

        assert batch.batch_number == "LOT-77"
        assert batch.supplier == "Acme Pharma"
        assert batch.expiry_date == clock.now + timedelta(days=90)

    def test_duplicate_batch_number_for_product(self, batch_registry, syrup_id, products):
        batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"), batch_number="LOT-1")

        with pytest.raises(ValidationError):
            batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"), batch_number="LOT-1")

        # Same number on another product is fine
        other = batch_registry.receive_batch(
            products["widget"].product_id, 5, Decimal("1.00"), batch_number="LOT-1"
        )
        assert other.batch_number == "LOT-1"

    def test_already_expired_receipt(self, batch_registry, syrup_id, clock):
        batch = batch_registry.receive_batch(
            syrup_id, 5, Decimal("1.00"), expiry_date=clock.now - timedelta(days=1)
        )

        assert batch.status == BatchStatus.EXPIRED.value
        assert batch_registry.available_quantity(syrup_id) == 0

    def test_invalid_receipts(self, batch_registry, syrup_id):
        with pytest.raises(ValidationError):
            batch_registry.receive_batch(syrup_id, 0, Decimal("1.00"))
        with pytest.raises(ValidationError):
            batch_registry.receive_batch(syrup_id, 5, Decimal("-1.00"))
        with pytest.raises(NotFoundError):
            batch_registry.receive_batch(999, 5, Decimal("1.00"))


class TestFefoConsumption:
    """Earliest expiry is consumed first"""

    def test_consume_across_batches(self, batch_registry, syrup_id, clock):
        late = batch_registry.receive_batch(syrup_id, 30, Decimal("3.00"), expiry_date=clock.now + timedelta(days=30))
        early = batch_registry.receive_batch(syrup_id, 10, Decimal("1.00"), expiry_date=clock.now + timedelta(days=10))
        middle = batch_registry.receive_batch(syrup_id, 20, Decimal("2.00"), expiry_date=clock.now + timedelta(days=20))

        allocations = batch_registry.consume(syrup_id, 15)

        assert [(a.batch_id, a.quantity) for a in allocations] == [
            (early.batch_id, 10),
            (middle.batch_id, 5),
        ]
        assert early.remaining_quantity == 0
        assert early.status == BatchStatus.DEPLETED.value
        assert middle.remaining_quantity == 15
        assert late.remaining_quantity == 30

    def test_equal_expiry_falls_back_to_receipt_order(self, batch_registry, syrup_id, clock):
        expiry = clock.now + timedelta(days=60)
        first = batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"), expiry_date=expiry)
        clock.advance(hours=1)
        batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"), expiry_date=expiry)

        allocations = batch_registry.consume(syrup_id, 3)

        assert allocations[0].batch_id == first.batch_id

    def test_undated_batches_go_last(self, batch_registry, syrup_id, clock):
        undated = batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"))
        dated = batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"), expiry_date=clock.now + timedelta(days=365))

        allocations = batch_registry.consume(syrup_id, 7)

        assert [(a.batch_id, a.quantity) for a in allocations] == [
            (dated.batch_id, 5),
            (undated.batch_id, 2),
        ]

    def test_past_expiry_batches_are_skipped_before_sweep(self, batch_registry, syrup_id, clock):
        expiring = batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"), expiry_date=clock.now + timedelta(days=1))
        undated = batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"))
        clock.advance(days=2)

        allocations = batch_registry.consume(syrup_id, 5)

        assert [a.batch_id for a in allocations] == [undated.batch_id]
        assert expiring.remaining_quantity == 5
        assert batch_registry.available_quantity(syrup_id) == 0

    def test_insufficient_batches_change_nothing(self, batch_registry, syrup_id, clock):
        first = batch_registry.receive_batch(syrup_id, 6, Decimal("1.00"), expiry_date=clock.now + timedelta(days=5))
        second = batch_registry.receive_batch(syrup_id, 4, Decimal("1.00"))

        with pytest.raises(InsufficientBatchStockError) as exc_info:
            batch_registry.consume(syrup_id, 11)

        assert exc_info.value.available == 10
        assert exc_info.value.requested == 11
        assert batch_registry.get_batch(first.batch_id).remaining_quantity == 6
        assert batch_registry.get_batch(second.batch_id).remaining_quantity == 4


class TestPickingMethods:
    """Test FIFO and LIFO picking"""

    @pytest.fixture
    def three_batches(self, batch_registry, syrup_id, clock):
        batches = []
        for price, expiry_days in [("1.00", 30), ("2.00", 10), ("3.00", None)]:
            expiry = clock.now + timedelta(days=expiry_days) if expiry_days else None
            batches.append(batch_registry.receive_batch(syrup_id, 5, Decimal(price), expiry_date=expiry))
            clock.advance(hours=1)
        return batches

    def test_fifo(self, batch_registry, syrup_id, three_batches):
        result = batch_registry.pick(syrup_id, 7, PickingMethod.FIFO)

        assert result.method == "FIFO"
        assert [(a.batch_id, a.quantity) for a in result.allocations] == [
            (three_batches[0].batch_id, 5),
            (three_batches[1].batch_id, 2),
        ]
        assert result.total_quantity == 7
        assert result.total_cost == Decimal("9.00")

    def test_lifo(self, batch_registry, syrup_id, three_batches):
        result = batch_registry.pick(syrup_id, 7, "LIFO")

        assert [(a.batch_id, a.quantity) for a in result.allocations] == [
            (three_batches[2].batch_id, 5),
            (three_batches[1].batch_id, 2),
        ]
        assert result.total_cost == Decimal("19.00")

    def test_fefo(self, batch_registry, syrup_id, three_batches):
        result = batch_registry.pick(syrup_id, 7)

        assert [a.batch_id for a in result.allocations] == [
            three_batches[1].batch_id,
            three_batches[0].batch_id,
        ]

    def test_unknown_method(self, batch_registry, syrup_id, three_batches):
        with pytest.raises(ValidationError):
            batch_registry.pick(syrup_id, 1, "RANDOM")


class TestRestore:
    """Test returning consumed quantities to batches"""

    def test_restore_reactivates_depleted_batch(self, batch_registry, syrup_id):
        batch = batch_registry.receive_batch(syrup_id, 10, Decimal("1.00"))
        allocations = batch_registry.consume(syrup_id, 10)
        assert batch.status == BatchStatus.DEPLETED.value

        restored = batch_registry.restore(allocations)

        assert restored[0].batch_id == batch.batch_id
        assert batch.remaining_quantity == 10
        assert batch.status == BatchStatus.ACTIVE.value

    def test_restore_cannot_exceed_received_quantity(self, batch_registry, syrup_id):
        batch = batch_registry.receive_batch(syrup_id, 10, Decimal("1.00"))
        batch_registry.consume(syrup_id, 2)

        with pytest.raises(ValidationError):
            batch_registry.restore([
                BatchAllocation(batch_id=batch.batch_id, batch_number=batch.batch_number,
                                quantity=3, unit_cost=Decimal("1.00"))
            ])

        assert batch_registry.get_batch(batch.batch_id).remaining_quantity == 8

    def test_restore_unknown_batch(self, batch_registry):
        with pytest.raises(NotFoundError):
            batch_registry.restore([
                BatchAllocation(batch_id=999, batch_number="X", quantity=1, unit_cost=Decimal("0"))
            ])


class TestExpirySweep:
    """Test marking batches expired"""

    def test_sweep_marks_only_active_stocked_batches(self, batch_registry, syrup_id, clock):
        tomorrow = clock.now + timedelta(days=1)
        depleted = batch_registry.receive_batch(syrup_id, 3, Decimal("1.00"), expiry_date=tomorrow)
        batch_registry.consume(syrup_id, 3)
        stocked = batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"), expiry_date=tomorrow)
        undated = batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"))
        clock.advance(days=2)

        swept = batch_registry.sweep_expired()

        assert [b.batch_id for b in swept] == [stocked.batch_id]
        assert stocked.status == BatchStatus.EXPIRED.value
        assert stocked.remaining_quantity == 5
        assert depleted.status == BatchStatus.DEPLETED.value
        assert undated.status == BatchStatus.ACTIVE.value

    def test_sweep_is_idempotent(self, batch_registry, syrup_id, clock):
        batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"), expiry_date=clock.now + timedelta(hours=1))
        clock.advance(days=1)

        assert len(batch_registry.sweep_expired()) == 1
        assert batch_registry.sweep_expired() == []


class TestBatchQueries:
    """Test batch listings"""

    def test_list_by_expiry_keeps_undated_last(self, batch_registry, syrup_id, clock):
        undated = batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"))
        soon = batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"), expiry_date=clock.now + timedelta(days=5))
        later = batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"), expiry_date=clock.now + timedelta(days=50))

        ascending = batch_registry.list_batches(product_id=syrup_id)
        descending = batch_registry.list_batches(product_id=syrup_id, sort_order="desc")

        assert [b.batch_id for b in ascending] == [soon.batch_id, later.batch_id, undated.batch_id]
        assert [b.batch_id for b in descending] == [later.batch_id, soon.batch_id, undated.batch_id]

    def test_list_by_status(self, batch_registry, syrup_id):
        batch_registry.receive_batch(syrup_id, 5, Decimal("1.00"))
        batch_registry.receive_batch(syrup_id, 2, Decimal("1.00"))
        batch_registry.pick(syrup_id, 7)

        assert len(batch_registry.list_batches(status="depleted")) == 2
        assert batch_registry.list_batches(status="active") == []

    def test_invalid_sort_column(self, batch_registry):
        with pytest.raises(ValidationError):
            batch_registry.list_batches(sort_by="supplier")
