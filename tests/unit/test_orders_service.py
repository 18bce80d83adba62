from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from conftest import completed_event, make_session
from storefront.errors import OrderPersistenceError
from storefront.notifications.email import NotificationResult
from storefront.orders import service as orders_service


@pytest.fixture
def stripe_session(monkeypatch, completed_session):
    """Relecture Stripe (avec expansions) renvoyant la session complète."""
    sessions = {completed_session["id"]: completed_session}
    retrieve = MagicMock(side_effect=lambda session_id, expand=None: sessions[session_id])
    monkeypatch.setattr("storefront.payments.stripe_client.get_session", retrieve)
    retrieve.sessions = sessions
    return retrieve

@pytest.fixture
def submit(monkeypatch):
    mock = MagicMock(return_value="98765")
    monkeypatch.setattr("storefront.fulfillment.service.submit_order", mock)
    return mock

@pytest.fixture
def notify(monkeypatch):
    mock = MagicMock(return_value=NotificationResult(success=True, message_id="<m1@example.com>"))
    monkeypatch.setattr("storefront.notifications.email.send_order_confirmation", mock)
    return mock


def test_build_order_from_expanded_session(completed_session):
    order = orders_service.build_order(completed_session)

    assert order.stripe_session_id == "cs_test_abc12345"
    assert order.customer_email == "player1@example.com"
    assert order.total_amount == Decimal("50.00")
    assert order.needs_review is False
    assert order.shipping_address.address1 == "1 Arcade Way"
    assert order.shipping_address.state_code == "TX"
    assert order.shipping_address.zip == "78701"
    hoodie, stickers = order.items
    assert hoodie.sync_variant_id == 5
    assert hoodie.product_id == "3"
    assert hoodie.price == Decimal("45.00")
    assert stickers.quantity == 2
    assert stickers.price == Decimal("2.50")


def test_build_order_reads_collected_information_address():
    session = make_session(shipping_details=None, collected_information={
        "shipping_details": {"name": "P2", "address": {"line1": "2 Main St", "city": "Toronto", "country": "CA"}},
    })
    order = orders_service.build_order(session)
    assert order.shipping_address.country_code == "CA"
    assert order.customer_name == "P2"


def test_build_order_flags_unverified_prices():
    session = make_session(metadata={"price_unverified": "true", "unverified_items": '["9"]'})
    assert orders_service.build_order(session).needs_review is True


def test_completed_session_records_submits_and_notifies(orders_repo, stripe_session, submit, notify, completed_session):
    result = orders_service.handle_event(completed_event(completed_session))

    assert result["status"] == "fulfilled"
    assert result["printful_order_id"] == "98765"
    assert result["email_sent"] is True
    record = orders_repo.orders["cs_test_abc12345"]
    assert record["printful_order_id"] == "98765"
    assert record["status"] == "PROCESSING"
    stripe_session.assert_called_once_with("cs_test_abc12345", expand=[
        "line_items", "line_items.data.price.product", "customer", "payment_intent",
    ])
    notified_order = notify.call_args.args[0]
    assert notified_order.printful_order_id == "98765"


def test_replayed_event_creates_exactly_one_order(orders_repo, stripe_session, submit, notify, completed_session):
    event = completed_event(completed_session)

    first = orders_service.handle_event(event)
    second = orders_service.handle_event(event)

    assert first["status"] == "fulfilled"
    assert second["status"] == "duplicate"
    assert len(orders_repo.orders) == 1
    assert submit.call_count == 1
    assert notify.call_count == 1


def test_concurrent_duplicate_detected_by_storage(orders_repo, stripe_session, submit, notify, completed_session, monkeypatch):
    # Les deux livraisons passent le pré-contrôle avant que l'une n'écrive
    monkeypatch.setattr("storefront.orders.repository.get_order_by_session_id", lambda session_id: None)
    event = completed_event(completed_session)

    orders_service.handle_event(event)
    second = orders_service.handle_event(event)

    assert second["status"] == "duplicate"
    assert orders_repo.create_calls == 2
    assert len(orders_repo.orders) == 1
    assert submit.call_count == 1


@pytest.mark.parametrize("overrides", [
    {"customer_details": {"email": None, "name": "Anon"}},
    {"shipping_details": None},
    {"shipping_details": {"name": "No Address", "address": None}},
])
def test_missing_email_or_address_defers(orders_repo, stripe_session, submit, notify, overrides):
    session = make_session(**overrides)
    stripe_session.sessions[session["id"]] = session

    result = orders_service.handle_event(completed_event(session))

    assert result == {"status": "deferred"}
    assert orders_repo.orders == {}
    submit.assert_not_called()
    notify.assert_not_called()


def test_unpaid_session_is_deferred_without_lookup(orders_repo, stripe_session, submit, completed_session):
    completed_session["payment_status"] = "unpaid"
    result = orders_service.handle_event(completed_event(completed_session))

    assert result == {"status": "deferred"}
    stripe_session.assert_not_called()
    assert orders_repo.orders == {}


def test_async_payment_succeeded_is_handled(orders_repo, stripe_session, submit, notify, completed_session):
    event = completed_event(completed_session, "checkout.session.async_payment_succeeded")
    assert orders_service.handle_event(event)["status"] == "fulfilled"


def test_items_without_variant_leave_order_unfulfilled(orders_repo, stripe_session, notify, completed_session, monkeypatch):
    # Vrai submitter: aucun appel Printful si aucune ligne n'a de variante
    monkeypatch.setattr("storefront.config.PRINTFUL_API_TOKEN", "tok_test")
    client = MagicMock()
    monkeypatch.setattr("storefront.infra.printful_client.get_printful_client", lambda: client)
    for line in completed_session["line_items"]["data"]:
        line["price"]["product"]["metadata"]["sync_variant_id"] = ""

    result = orders_service.handle_event(completed_event(completed_session))

    assert result["status"] == "recorded"
    assert result["printful_order_id"] is None
    client.create_order.assert_not_called()
    assert orders_repo.orders["cs_test_abc12345"]["printful_order_id"] is None


def test_fulfillment_and_email_failures_do_not_raise(orders_repo, stripe_session, completed_session, monkeypatch):
    monkeypatch.setattr("storefront.fulfillment.service.submit_order", lambda order: None)
    monkeypatch.setattr(
        "storefront.notifications.email.send_order_confirmation",
        lambda order: NotificationResult(success=False, error="Email not configured"),
    )

    result = orders_service.handle_event(completed_event(completed_session))

    assert result["status"] == "recorded"
    assert result["email_sent"] is False
    assert "cs_test_abc12345" in orders_repo.orders


def test_persistence_failure_propagates(stripe_session, submit, notify, completed_session, monkeypatch):
    monkeypatch.setattr("storefront.orders.repository.get_order_by_session_id", lambda session_id: None)

    def _fail(order):
        raise OrderPersistenceError("database unreachable")

    monkeypatch.setattr("storefront.orders.repository.create_order", _fail)

    with pytest.raises(OrderPersistenceError):
        orders_service.handle_event(completed_event(completed_session))
    submit.assert_not_called()


@pytest.mark.parametrize("event_type, status", [
    ("checkout.session.expired", "logged"),
    ("payment_intent.succeeded", "logged"),
    ("payment_intent.payment_failed", "logged"),
    ("customer.created", "ignored"),
])
def test_other_events_are_logged_or_ignored(orders_repo, stripe_session, event_type, status):
    event = {"id": "evt_2", "type": event_type, "data": {"object": {"id": "obj_1"}}}
    assert orders_service.handle_event(event) == {"status": status}
    stripe_session.assert_not_called()
    assert orders_repo.orders == {}


def test_session_without_id_is_ignored(orders_repo):
    assert orders_service.handle_event(completed_event({})) == {"status": "ignored"}


def _line(n):
    return {
        "description": f"Pixel Pin #{n}",
        "quantity": 1,
        "amount_total": 300,
        "price": {"unit_amount": 300, "product": {"name": f"Pixel Pin #{n}",
                                                  "metadata": {"product_id": "9", "sync_variant_id": str(900 + n)}}},
    }

def test_line_items_beyond_first_page_are_fetched(orders_repo, stripe_session, submit, notify, monkeypatch):
    # Expansion limitée à 10 lignes: la 11e n'arrive que par la pagination
    lines = [_line(n) for n in range(1, 12)]
    session = make_session(line_items={"object": "list", "data": lines[:10], "has_more": True})
    stripe_session.sessions[session["id"]] = session
    list_line_items = MagicMock(return_value=lines)
    monkeypatch.setattr("storefront.payments.stripe_client.list_line_items", list_line_items)

    result = orders_service.handle_event(completed_event(session))

    assert result["status"] == "fulfilled"
    list_line_items.assert_called_once_with("cs_test_abc12345")
    record = orders_repo.orders["cs_test_abc12345"]
    assert len(record["items"]) == 11
    submitted = submit.call_args.args[0]
    assert [i.sync_variant_id for i in submitted.items][-1] == 911


def test_single_page_line_items_skip_pagination(orders_repo, stripe_session, submit, notify, monkeypatch):
    list_line_items = MagicMock()
    monkeypatch.setattr("storefront.payments.stripe_client.list_line_items", list_line_items)

    orders_service.handle_event(completed_event(make_session()))

    list_line_items.assert_not_called()


def test_unsaved_printful_id_is_logged(orders_repo, stripe_session, submit, notify, completed_session, monkeypatch, caplog):
    monkeypatch.setattr("storefront.orders.repository.mark_fulfillment_submitted", lambda session_id, printful_id: False)

    with caplog.at_level("WARNING", logger="storefront.orders.service"):
        result = orders_service.handle_event(completed_event(completed_session))

    assert result["status"] == "fulfilled"
    assert "printful order 98765 not saved on session cs_test_abc12345" in caplog.text
