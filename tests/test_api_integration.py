"""
API Integration Tests
End-to-end testing of API endpoints with real HTTP requests
"""

import asyncio
import json
import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from inventory_core.core.exceptions import (
    ConcurrentModificationError, InsufficientStockError, InvalidAmountError, NotFoundError
)
from inventory_core.main import inventory_exception_handler, status_code_for
from inventory_core.models import AuditLog

API = "/api/v1"
FAR_FUTURE = "2099-01-01T00:00:00"


@pytest.fixture
def ids(warehouses, products):
    return {
        "main": warehouses["main"].warehouse_id,
        "branch": warehouses["branch"].warehouse_id,
        "closed": warehouses["closed"].warehouse_id,
        "widget": products["widget"].product_id,
        "syrup": products["syrup"].product_id,
        "gadget": products["gadget"].product_id,
    }


def _opening_balance(client, warehouse_id, product_id, quantity):
    response = client.post(f"{API}/stock/opening-balances", json={
        "warehouse_id": warehouse_id,
        "product_id": product_id,
        "quantity": quantity,
    })
    assert response.status_code == 201
    return response.json()


class TestSystemAPI:
    """Test system endpoints and error mapping"""

    def test_health_check(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] in ["healthy", "degraded"]
        assert "version" in data

    def test_status_codes(self):
        assert status_code_for(NotFoundError("Product", 1)) == 404
        assert status_code_for(InsufficientStockError(1, 1, 0, 5)) == 409
        assert status_code_for(InvalidAmountError("bad")) == 400
        assert status_code_for(ConcurrentModificationError("conflict")) == 409

    def test_concurrent_modification_is_retryable(self):
        response = asyncio.run(
            inventory_exception_handler(None, ConcurrentModificationError("conflict"))
        )

        assert response.status_code == 409
        body = json.loads(response.body)
        assert body["error"] == "concurrent_modification"
        assert body["retryable"] is True


class TestStockAPI:
    """Test ledger endpoints"""

    def test_opening_balance_and_position(self, client: TestClient, ids):
        transaction = _opening_balance(client, ids["main"], ids["widget"], 12)

        assert transaction["reference_type"] == "creation"
        response = client.get(f"{API}/stock/positions/{ids['main']}/{ids['widget']}")
        assert response.status_code == 200
        assert response.json()["quantity"] == 12

    def test_missing_position_is_404(self, client: TestClient, ids):
        response = client.get(f"{API}/stock/positions/{ids['main']}/{ids['widget']}")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_outflow_beyond_stock(self, client: TestClient, ids):
        _opening_balance(client, ids["main"], ids["widget"], 3)

        response = client.post(f"{API}/stock/movements", json={
            "warehouse_id": ids["main"],
            "product_id": ids["widget"],
            "type": "outflow",
            "quantity": 5,
        })

        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "insufficient_stock"
        assert "Available: 3" in data["detail"]
        position = client.get(f"{API}/stock/positions/{ids['main']}/{ids['widget']}").json()
        assert position["quantity"] == 3

    def test_movement_into_inactive_warehouse(self, client: TestClient, ids):
        response = client.post(f"{API}/stock/movements", json={
            "warehouse_id": ids["closed"],
            "product_id": ids["widget"],
            "type": "inflow",
            "quantity": 1,
        })

        assert response.status_code == 404

    def test_non_positive_quantity_is_422(self, client: TestClient, ids):
        response = client.post(f"{API}/stock/movements", json={
            "warehouse_id": ids["main"],
            "product_id": ids["widget"],
            "type": "inflow",
            "quantity": 0,
        })

        assert response.status_code == 422

    def test_acting_user_from_header(self, client: TestClient, ids):
        response = client.post(
            f"{API}/stock/movements",
            json={"warehouse_id": ids["main"], "product_id": ids["widget"], "type": "inflow", "quantity": 2},
            headers={"X-User": "clerk"},
        )

        assert response.status_code == 201
        assert response.json()["created_by"] == "clerk"

    def test_adjustment_to_same_count_returns_null(self, client: TestClient, ids):
        _opening_balance(client, ids["main"], ids["widget"], 5)

        response = client.post(f"{API}/stock/adjustments", json={
            "warehouse_id": ids["main"], "product_id": ids["widget"], "counted_quantity": 5,
        })

        assert response.status_code == 200
        assert response.json() is None

    def test_receipt_with_margin_warning(self, client: TestClient, ids):
        response = client.post(f"{API}/stock/receipts", json={
            "warehouse_id": ids["main"],
            "product_id": ids["widget"],
            "quantity": 2,
            "unit_cost": "40.00",
        })

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["new_average_cost"]) == Decimal("40")
        assert Decimal(data["warning"]["suggested_price"]) == Decimal("48.00")
        assert data["batch"] is None

    def test_batch_tracked_issue(self, client: TestClient, ids):
        client.post(f"{API}/stock/receipts", json={
            "warehouse_id": ids["main"], "product_id": ids["syrup"], "quantity": 10,
            "unit_cost": "2.00", "expiry_date": FAR_FUTURE,
        })

        response = client.post(f"{API}/stock/issues", json={
            "warehouse_id": ids["main"], "product_id": ids["syrup"], "quantity": 4,
        })

        assert response.status_code == 201
        data = response.json()
        assert [a["quantity"] for a in data["allocations"]] == [4]
        assert Decimal(data["cost_of_goods"]) == Decimal("8")

    def test_transactions_and_conservation(self, client: TestClient, ids):
        _opening_balance(client, ids["main"], ids["widget"], 10)
        client.post(f"{API}/stock/issues", json={
            "warehouse_id": ids["main"], "product_id": ids["widget"], "quantity": 4,
        })

        response = client.get(f"{API}/stock/transactions", params={"product_id": ids["widget"], "type": "outflow"})
        check = client.get(f"{API}/stock/positions/{ids['main']}/{ids['widget']}/conservation").json()
        on_hand = client.get(f"{API}/stock/products/{ids['widget']}/on-hand").json()

        assert response.json()["total"] == 1
        assert check["consistent"] is True
        assert check["ledger_sum"] == 6
        assert on_hand == {"product_id": ids["widget"], "on_hand": 6}


class TestBatchAPI:
    """Test batch endpoints"""

    def _position(self, client, ids):
        return client.get(f"{API}/stock/positions/{ids['main']}/{ids['syrup']}").json()["quantity"]

    def test_receive_and_pick(self, client: TestClient, ids):
        for number in ("LOT-A", "LOT-B"):
            response = client.post(f"{API}/batches", json={
                "warehouse_id": ids["main"], "product_id": ids["syrup"], "quantity": 5,
                "unit_price": "1.00", "batch_number": number, "expiry_date": FAR_FUTURE,
            })
            assert response.status_code == 201
            assert response.json()["batch"]["batch_number"] == number

        response = client.post(f"{API}/batches/pick", json={
            "warehouse_id": ids["main"], "product_id": ids["syrup"], "quantity": 7, "method": "FIFO",
        })

        assert response.status_code == 201
        data = response.json()
        assert [a["batch_number"] for a in data["allocations"]] == ["LOT-A", "LOT-B"]
        assert data["transaction"]["type"] == "outflow"
        assert data["transaction"]["quantity"] == 7
        listed = client.get(f"{API}/batches", params={"product_id": ids["syrup"], "status": "depleted"}).json()
        assert [b["batch_number"] for b in listed] == ["LOT-A"]
        remaining = client.get(f"{API}/batches", params={"product_id": ids["syrup"]}).json()
        assert self._position(client, ids) == sum(b["remaining_quantity"] for b in remaining) == 3

    def test_pick_moves_ledger_with_batches(self, client: TestClient, ids):
        client.post(f"{API}/stock/receipts", json={
            "warehouse_id": ids["main"], "product_id": ids["syrup"], "quantity": 10,
            "unit_cost": "2.00", "expiry_date": FAR_FUTURE,
        })

        response = client.post(f"{API}/batches/pick", json={
            "warehouse_id": ids["main"], "product_id": ids["syrup"], "quantity": 4,
        })

        assert response.status_code == 201
        batch = client.get(f"{API}/batches", params={"product_id": ids["syrup"]}).json()[0]
        assert batch["remaining_quantity"] == 6
        assert self._position(client, ids) == 6
        check = client.get(f"{API}/stock/positions/{ids['main']}/{ids['syrup']}/conservation").json()
        assert check["consistent"] is True

    def test_duplicate_batch_number_is_400(self, client: TestClient, ids):
        payload = {
            "warehouse_id": ids["main"], "product_id": ids["syrup"], "quantity": 5,
            "unit_price": "1.00", "batch_number": "LOT-A",
        }
        client.post(f"{API}/batches", json=payload)

        response = client.post(f"{API}/batches", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert self._position(client, ids) == 5

    def test_insufficient_batches_is_409(self, client: TestClient, ids):
        _opening_balance(client, ids["main"], ids["syrup"], 5)

        response = client.post(f"{API}/batches/pick", json={
            "warehouse_id": ids["main"], "product_id": ids["syrup"], "quantity": 3,
        })

        assert response.status_code == 409
        assert response.json()["error"] == "insufficient_batch_stock"
        assert self._position(client, ids) == 5

    def test_untracked_product_is_400(self, client: TestClient, ids):
        _opening_balance(client, ids["main"], ids["widget"], 5)

        response = client.post(f"{API}/batches/pick", json={
            "warehouse_id": ids["main"], "product_id": ids["widget"], "quantity": 1,
        })

        assert response.status_code == 400
        assert client.get(f"{API}/stock/positions/{ids['main']}/{ids['widget']}").json()["quantity"] == 5


class TestTransferAPI:
    """Test transfer endpoints"""

    def test_transfer_flow(self, client: TestClient, ids, db_session):
        _opening_balance(client, ids["main"], ids["widget"], 20)
        headers = {"X-User": "clerk"}

        response = client.post(f"{API}/transfers", headers=headers, json={
            "from_warehouse_id": ids["main"],
            "to_warehouse_id": ids["branch"],
            "items": [{"product_id": ids["widget"], "quantity": 20}],
        })
        assert response.status_code == 201
        transfer = response.json()
        assert transfer["status"] == "pending"
        assert transfer["created_by"] == "clerk"

        transfer_id = transfer["transfer_id"]
        assert client.post(f"{API}/transfers/{transfer_id}/approve", headers=headers).json()["status"] == "approved"
        response = client.post(f"{API}/transfers/{transfer_id}/process", headers=headers)

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert client.get(f"{API}/stock/positions/{ids['main']}/{ids['widget']}").json()["quantity"] == 0
        assert client.get(f"{API}/stock/positions/{ids['branch']}/{ids['widget']}").json()["quantity"] == 20
        users = {e.audit_user for e in db_session.query(AuditLog).all()}
        assert users == {"clerk"}

    def test_same_warehouse_is_422(self, client: TestClient, ids):
        response = client.post(f"{API}/transfers", json={
            "from_warehouse_id": ids["main"],
            "to_warehouse_id": ids["main"],
            "items": [{"product_id": ids["widget"], "quantity": 1}],
        })

        assert response.status_code == 422

    def test_invalid_transition_is_409(self, client: TestClient, ids):
        transfer = client.post(f"{API}/transfers", json={
            "from_warehouse_id": ids["main"],
            "to_warehouse_id": ids["branch"],
            "items": [{"product_id": ids["widget"], "quantity": 1}],
        }).json()

        response = client.post(f"{API}/transfers/{transfer['transfer_id']}/process")

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transfer_state"

    def test_unknown_transfer_is_404(self, client: TestClient):
        response = client.get(f"{API}/transfers/999")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestPurchaseOrderAPI:
    """Test purchase order endpoints"""

    @pytest.fixture
    def po(self, client: TestClient, ids):
        response = client.post(f"{API}/purchase-orders", json={
            "supplier_id": "SUP-1",
            "supplier_name": "Acme Supplies",
            "warehouse_id": ids["main"],
            "items": [
                {"product_id": ids["widget"], "quantity": 10, "unit_price": "5.00"},
                {"product_id": ids["gadget"], "quantity": 4, "unit_price": "2.50"},
            ],
            "tax_rate": "10",
            "freight": "5.00",
            "discount": "1.00",
        })
        assert response.status_code == 201
        return response.json()

    def test_create_totals(self, po):
        assert Decimal(po["sub_total"]) == Decimal("60.00")
        assert Decimal(po["grand_total"]) == Decimal("70.00")
        assert po["status"] == "OPEN"
        assert po["payment_status"] == "UNPAID"
        assert [item["outstanding_qty"] for item in po["items"]] == [10, 4]

    def test_duplicate_product_is_422(self, client: TestClient, ids):
        response = client.post(f"{API}/purchase-orders", json={
            "supplier_id": "SUP-1",
            "warehouse_id": ids["main"],
            "items": [
                {"product_id": ids["widget"], "quantity": 1, "unit_price": "1.00"},
                {"product_id": ids["widget"], "quantity": 1, "unit_price": "1.00"},
            ],
        })

        assert response.status_code == 422

    def test_receive_payment_and_price_check(self, client: TestClient, po, ids):
        po_id = po["po_id"]

        over = client.post(f"{API}/purchase-orders/{po_id}/receive", json={
            "items": [{"product_id": ids["widget"], "quantity": 11}],
        })
        assert over.status_code == 409
        assert over.json()["error"] == "over_receipt"

        received = client.post(f"{API}/purchase-orders/{po_id}/receive")
        assert received.status_code == 200
        data = received.json()
        assert data["total_received"] == 14
        assert data["purchase_order"]["status"] == "RECEIVED"
        assert data["warnings"] == []

        zero = client.post(f"{API}/purchase-orders/{po_id}/payments", json={"amount": "0"})
        assert zero.status_code == 400
        assert zero.json()["error"] == "invalid_amount"

        paid = client.post(f"{API}/purchase-orders/{po_id}/payments", json={"amount": "70.00"})
        assert paid.json()["payment_status"] == "PAID"

        prices = client.get(f"{API}/purchase-orders/{po_id}/check-prices").json()
        assert prices["po_id"] == po_id
        assert len(prices["lines"]) == 2
        assert prices["warnings"] == 0

    def test_cancel(self, client: TestClient, po):
        response = client.post(f"{API}/purchase-orders/{po['po_id']}/cancel")
        assert response.json()["status"] == "CANCELLED"

        again = client.post(f"{API}/purchase-orders/{po['po_id']}/cancel")
        assert again.status_code == 409
        assert again.json()["error"] == "invalid_order_state"


class TestNotificationAPI:
    """Test notification endpoints"""

    def test_sweep_and_acknowledge(self, client: TestClient, ids):
        _opening_balance(client, ids["main"], ids["widget"], 3)
        headers = {"X-User": "alice"}

        sweep = client.post(f"{API}/notifications/process")
        assert sweep.status_code == 200
        assert sweep.json()["results"]["low_stock"] == 1

        assert client.get(f"{API}/notifications/unread-count", headers=headers).json() == {"unread_count": 1}
        listing = client.get(f"{API}/notifications", headers=headers).json()
        assert listing["notifications"][0]["type"] == "LOW_STOCK"

        notification_id = listing["notifications"][0]["notification_id"]
        read = client.post(f"{API}/notifications/{notification_id}/read")
        assert read.json()["is_read"] is True
        assert client.get(f"{API}/notifications/unread-count", headers=headers).json() == {"unread_count": 0}

    def test_read_all_and_cleanup(self, client: TestClient, ids):
        _opening_balance(client, ids["main"], ids["widget"], 3)
        client.post(f"{API}/notifications/process")

        assert client.post(f"{API}/notifications/read-all").json() == {"updated": 1}
        assert client.post(f"{API}/notifications/cleanup", params={"days_old": 30}).json() == {
            "deleted": 0, "days_old": 30
        }

    def test_unknown_notification_is_404(self, client: TestClient):
        response = client.post(f"{API}/notifications/999/read")

        assert response.status_code == 404
