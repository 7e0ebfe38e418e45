"""
Test Configuration and Fixtures
Shared testing infrastructure for the inventory core
"""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("ALERT_SWEEP_INTERVAL_SECONDS", "0")

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from inventory_core.main import app
from inventory_core.api import deps
from inventory_core.core.config import InventoryPolicy
from inventory_core.core.database import Base
from inventory_core.models import Product, Warehouse
from inventory_core.services.stock import (
    BatchRegistryService, StockLedgerService, StockMovementsService, StockTransferService
)
from inventory_core.services.purchasing import PurchaseOrderService
from inventory_core.services.alerts import AlertEngineService, NotificationService

# Test database URL - in-memory SQLite shared through a single connection
TEST_DATABASE_URL = "sqlite://"

# Create test engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

START_TIME = datetime(2024, 6, 1, 12, 0, 0)


class FrozenClock:
    """Clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test"""
    # Create all tables
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[deps.get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(START_TIME)


@pytest.fixture
def policy() -> InventoryPolicy:
    return InventoryPolicy(low_stock_threshold=10, expiry_horizon_days=30)


@pytest.fixture
def warehouses(db_session: Session) -> Dict[str, Warehouse]:
    """Main and branch warehouses, an inactive one and one allowing negative stock"""
    records = {
        "main": Warehouse(code="MAIN", name="Main Warehouse", location="Dock 1"),
        "branch": Warehouse(code="BRANCH", name="Branch Store", location="High Street"),
        "closed": Warehouse(code="CLOSED", name="Closed Depot", is_active=False),
        "overdraw": Warehouse(code="OVER", name="Overdraw Store", allow_negative_stock=True),
    }
    db_session.add_all(records.values())
    db_session.commit()
    return records


@pytest.fixture
def products(db_session: Session) -> Dict[str, Product]:
    """A plain product, a batch-tracked product and one not yet priced"""
    records = {
        "widget": Product(
            code="WID-001", name="Widget", unit="pcs",
            selling_price=Decimal("15.00"), average_cost=Decimal("10.0000"),
            min_stock_level=5,
        ),
        "syrup": Product(
            code="MED-100", name="Cough Syrup", unit="btl",
            selling_price=Decimal("20.00"), average_cost=Decimal("0"),
            min_stock_level=5, track_batches=True,
        ),
        "gadget": Product(
            code="GAD-002", name="Gadget", unit="pcs",
            selling_price=Decimal("0"), average_cost=Decimal("0"),
        ),
    }
    db_session.add_all(records.values())
    db_session.commit()
    return records


@pytest.fixture
def ledger(db_session, policy, clock) -> StockLedgerService:
    return StockLedgerService(db_session, policy, clock)


@pytest.fixture
def batch_registry(db_session, policy, clock) -> BatchRegistryService:
    return BatchRegistryService(db_session, policy, clock)


@pytest.fixture
def movements(db_session, policy, clock) -> StockMovementsService:
    return StockMovementsService(db_session, policy, clock)


@pytest.fixture
def transfers(db_session, policy, clock) -> StockTransferService:
    return StockTransferService(db_session, current_user="jdoe", policy=policy, clock=clock)


@pytest.fixture
def purchase_orders(db_session, policy, clock) -> PurchaseOrderService:
    return PurchaseOrderService(db_session, current_user="buyer", policy=policy, clock=clock)


@pytest.fixture
def notifications(db_session, policy, clock) -> NotificationService:
    return NotificationService(db_session, policy, clock)


@pytest.fixture
def alert_engine(db_session, policy, clock) -> AlertEngineService:
    return AlertEngineService(db_session, policy, clock)


@pytest.fixture
def session_factory():
    """Session factory bound to the test engine, for code that opens its own sessions"""
    return TestingSessionLocal


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file-backed database, so two of them hold separate transactions"""
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'inventory.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=file_engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    finally:
        file_engine.dispose()
