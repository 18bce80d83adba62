import os

# Environnement de test: à poser AVANT l'import de storefront (config lu à l'import)
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ["DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS"] = "1"
# Valeurs vides: un éventuel .env local ne doit pas activer Printful / SMTP pendant les tests
for _name in ("PRINTFUL_API_TOKEN", "PRINTFUL_STORE_ID", "EMAIL_SERVER_HOST", "EMAIL_SERVER_USER",
              "EMAIL_SERVER_PASSWORD", "LOCAL_RATE_LIMIT_FALLBACK"):
    os.environ[_name] = ""
os.environ.setdefault("CORS_ORIGINS", "http://localhost:3000,https://shop.example.com")
os.environ.setdefault("SITE_URL", "http://localhost:3000")

import hashlib
import hmac
import time
import uuid
import pytest
from typing import Any, Dict, Generator
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from storefront.app import app as fastapi_app
from storefront.infra import printful_client


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


# Aucun service externe réel pendant les tests
@pytest.fixture(scope="function", autouse=True)
def mock_external_services(monkeypatch):
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: MagicMock())
    monkeypatch.setattr(printful_client, "_printful", None)
    yield
    printful_client._printful = None


class FakeOrdersRepository:
    """Repository mémoire qui applique la même unicité que l'index orders.stripe_session_id."""

    def __init__(self):
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.create_calls = 0

    def create_order(self, order) -> Dict[str, Any]:
        self.create_calls += 1
        existing = self.orders.get(order.stripe_session_id)
        if existing:
            return {"id": existing["id"], "created": False}
        record = order.to_record()
        record["id"] = str(uuid.uuid4())
        self.orders[order.stripe_session_id] = record
        return {"id": record["id"], "created": True}

    def get_order_by_session_id(self, stripe_session_id: str):
        return self.orders.get(stripe_session_id)

    def mark_fulfillment_submitted(self, stripe_session_id: str, printful_order_id: str) -> bool:
        record = self.orders.get(stripe_session_id)
        if not record:
            return False
        record["printful_order_id"] = printful_order_id
        record["status"] = "PROCESSING"
        return True

@pytest.fixture
def orders_repo(monkeypatch) -> FakeOrdersRepository:
    repo = FakeOrdersRepository()
    monkeypatch.setattr("storefront.orders.repository.create_order", repo.create_order)
    monkeypatch.setattr("storefront.orders.repository.get_order_by_session_id", repo.get_order_by_session_id)
    monkeypatch.setattr("storefront.orders.repository.mark_fulfillment_submitted", repo.mark_fulfillment_submitted)
    return repo


def make_session(session_id: str = "cs_test_abc12345", **overrides) -> Dict[str, Any]:
    """Session Stripe Checkout complétée, telle que renvoyée avec les expansions."""
    session: Dict[str, Any] = {
        "id": session_id,
        "object": "checkout.session",
        "status": "complete",
        "payment_status": "paid",
        "amount_total": 5000,
        "currency": "usd",
        "customer_details": {
            "email": "player1@example.com",
            "name": "Player One",
            "phone": "+15555550100",
        },
        "shipping_details": {
            "name": "Player One",
            "address": {
                "line1": "1 Arcade Way",
                "line2": "Apt 2",
                "city": "Austin",
                "state": "TX",
                "postal_code": "78701",
                "country": "US",
            },
        },
        "metadata": {"source": "website", "item_count": "2", "order_source": "website"},
        "line_items": {
            "data": [
                {
                    "description": "Retro Gaming Hoodie - Large",
                    "quantity": 1,
                    "amount_total": 4500,
                    "price": {
                        "unit_amount": 4500,
                        "product": {"name": "Retro Gaming Hoodie - Large",
                                    "metadata": {"product_id": "3", "sync_variant_id": "5"}},
                    },
                },
                {
                    "description": "Bubble-free Stickers",
                    "quantity": 2,
                    "amount_total": 500,
                    "price": {
                        "unit_amount": 250,
                        "product": {"name": "Bubble-free Stickers",
                                    "metadata": {"product_id": "2", "sync_variant_id": "2"}},
                    },
                },
            ],
        },
    }
    session.update(overrides)
    return session

@pytest.fixture
def completed_session() -> Dict[str, Any]:
    return make_session()

def completed_event(session: Dict[str, Any], event_type: str = "checkout.session.completed") -> Dict[str, Any]:
    return {"id": "evt_test_1", "type": event_type, "data": {"object": session}}


def sign_payload(payload: bytes, secret: str = "whsec_test_secret", timestamp=None) -> str:
    """En-tête Stripe-Signature valide (schéma v1) pour un payload donné."""
    ts = int(timestamp if timestamp is not None else time.time())
    signed = f"{ts}.{payload.decode('utf-8')}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"
