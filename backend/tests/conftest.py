"""Pytest configuration and fixtures."""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from clover_sync.api.routes.clover import get_clover_client, get_sync_config
from clover_sync.core.exceptions import TransportError
from clover_sync.db.base import Base
from clover_sync.db.session import get_db
from clover_sync.main import app
# Import all models to ensure they're registered with Base.metadata
from clover_sync.models import *
from clover_sync.schemas.order import AddOn, Address, Customer, LineItem, SourceOrder
from clover_sync.services.annotation_service import DatabaseAnnotationSink
from clover_sync.services.audit_log import AuditLog
from clover_sync.services.clover_client import OAuthTokens, PosClient
from clover_sync.services.order_sync_service import SyncConfig

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


class FakePosClient(PosClient):
    """In-memory PosClient that records every call."""

    def __init__(
        self,
        order_ids: Optional[List[str]] = None,
        create_error: Optional[Exception] = None,
        print_error: Optional[Exception] = None,
    ):
        self.order_ids = list(order_ids or ["CLV123"])
        self.create_error = create_error
        self.print_error = print_error
        self.created: List[Dict[str, Any]] = []
        self.printed: List[str] = []

    @property
    def create_calls(self) -> int:
        return len(self.created)

    def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.created.append(payload)
        if self.create_error is not None:
            raise self.create_error
        order_id = self.order_ids[min(len(self.created), len(self.order_ids)) - 1]
        return {"id": order_id, "state": "open"}

    def print_bill(self, pos_order_id: str) -> None:
        self.printed.append(pos_order_id)
        if self.print_error is not None:
            raise self.print_error

    def get_access_token(self, auth_code: str, merchant_id: Optional[str] = None) -> OAuthTokens:
        if auth_code == "bad":
            raise TransportError("Clover API call failed", status_code=401)
        return OAuthTokens(access_token=f"token-{auth_code}", merchant_id=merchant_id or "MERCHANT1")

    def get_authorization_url(self, state: Optional[str] = None) -> str:
        return "https://sandbox.dev.clover.com/oauth/authorize?client_id=app"

    def get_printers(self) -> List[Dict[str, Any]]:
        return [{"id": "P1", "name": "Kitchen"}]

    def test_connection(self) -> Dict[str, Any]:
        return {"id": "MERCHANT1", "name": "Test Bistro"}

    def close(self) -> None:
        pass


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sync_config() -> SyncConfig:
    """Fully configured sync settings with printing on."""
    return SyncConfig(
        client_id="app-id",
        client_secret="app-secret",
        access_token="access-token",
        merchant_id="MERCHANT1",
        auto_print=True,
        debug_mode=True,
    )


@pytest.fixture
def fake_client() -> FakePosClient:
    return FakePosClient()


@pytest.fixture
def annotations(db_session: Session) -> DatabaseAnnotationSink:
    return DatabaseAnnotationSink(db_session)


@pytest.fixture
def audit_log(db_session: Session) -> AuditLog:
    return AuditLog(db_session, debug_enabled=True)


@pytest.fixture
def client(
    db_session: Session,
    sync_config: SyncConfig,
    fake_client: FakePosClient,
) -> Generator[TestClient, None, None]:
    """Create a test client with database and Clover overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sync_config] = lambda: sync_config
    app.dependency_overrides[get_clover_client] = lambda: fake_client
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_order() -> SourceOrder:
    """Two-item order with a named customer and a full address."""
    return SourceOrder(
        id="1001",
        order_number="1001",
        customer=Customer(
            first_name="Jane",
            last_name="Doe",
            phone="555-0100",
            email="jane@example.com",
            address=Address(
                line1="1 Main St",
                line2="Apt 2",
                city="Springfield",
                state="IL",
                zip="62701",
                country="US",
            ),
        ),
        line_items=[
            LineItem.from_total(
                name="Latte",
                item_total=Decimal("9.00"),
                quantity=2,
                variation_attributes={"Size": "large", "Milk": "oat"},
                add_ons=[AddOn(name="extra_shot", value="yes")],
            ),
            LineItem.from_total(name="Croissant", item_total=Decimal("3.50"), quantity=1),
        ],
        total=Decimal("13.37"),
        tax_amount=Decimal("0.87"),
        payment_method_title="Credit Card",
        shipping_method="Local pickup",
        customer_note="Ring the bell",
        created_at=datetime(2024, 1, 15, 12, 30, 0),
    )


@pytest.fixture
def woo_payload() -> Dict[str, Any]:
    """WooCommerce order document as delivered by an order.created webhook."""
    return {
        "id": 727,
        "number": "727",
        "status": "processing",
        "date_created": "2024-01-15T12:30:00",
        "total": "31.50",
        "total_tax": "1.50",
        "payment_method_title": "Cash on delivery",
        "customer_note": "Leave at door",
        "billing": {
            "first_name": "John",
            "last_name": "Smith",
            "address_1": "42 Elm St",
            "address_2": "",
            "city": "Portland",
            "state": "OR",
            "postcode": "97201",
            "country": "US",
            "email": "john@example.com",
            "phone": "555-0199",
        },
        "line_items": [
            {
                "id": 1,
                "name": "T-Shirt - Large",
                "product_id": 93,
                "variation_id": 101,
                "quantity": 3,
                "total": "30.00",
                "meta_data": [
                    {"id": 10, "key": "pa_size", "value": "large", "display_key": "Size"},
                    {"id": 11, "key": "pa_color", "value": "blue"},
                    {"id": 12, "key": "yith_wapo_gift_wrap", "value": "Yes"},
                    {"id": 13, "key": "_reduced_stock", "value": "3"},
                ],
            },
            {
                "id": 2,
                "name": "Deleted product",
                "product_id": 0,
                "variation_id": 0,
                "quantity": 1,
                "total": "5.00",
                "meta_data": [],
            },
        ],
        "shipping_lines": [
            {"id": 5, "method_title": "Standard", "total": "1.50"},
        ],
    }
