from azure.data.tables import UpdateMode
import pytest

from models.checkout import CartLineItem, CheckoutSession
from models.order import Order
from repository import checkout as checkout_repo
from repository import payment as payment_repo
from services.webhook import PaymentWebhookService
from tests.helpers import ticking_clock


@pytest.fixture
def service(tables):
    return PaymentWebhookService(tables, clock=ticking_clock())


def paid(service, checkout_id, user_id="user-1"):
    event = service.persist({
        "id": f"evt_{checkout_id}",
        "type": "checkout.session.completed",
        "data": {"object": {"id": f"cs_{checkout_id}", "metadata": {"checkoutId": checkout_id, "userId": user_id}}},
    })
    return service.dispatch(event)


def test_list_orders_for_user(client, tables, service):
    for checkout_id in ("c1", "c2"):
        checkout_repo.create_checkout_session(tables, CheckoutSession(
            id=checkout_id, user_id="user-1", items=[CartLineItem(product_id="tee", asset_id="fox")]))
        paid(service, checkout_id)
    paid(service, "c3", user_id="user-2")

    orders = client.get("/orders", params={"userId": "user-1"}).json()
    assert [o["id"] for o in orders] == ["c2", "c1"]
    assert all(o["paymentConfirmed"] is True for o in orders)
    assert [o["id"] for o in client.get("/orders", params={"userId": "user-2"}).json()] == ["c3"]


def test_order_without_stored_event_is_not_confirmed(client, tables, service):
    order = service.reconcile_paid_checkout("c1", {"id": "cs_c1", "metadata": {"userId": "user-1"}})
    assert isinstance(order, Order)
    orders = client.get("/orders", params={"userId": "user-1"}).json()
    assert orders[0]["paymentConfirmed"] is False


def test_list_orders_requires_user(client):
    assert client.get("/orders").status_code == 422


def test_update_fulfillment(client, admin_headers, service):
    paid(service, "c1")
    response = client.patch("/orders/c1/fulfillment", json={"status": "in_production"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["fulfillment"]["status"] == "in_production"
    assert response.json()["paymentStatus"] == "paid"

    assert client.patch("/orders/c1/fulfillment", json={"status": "lost"}, headers=admin_headers).status_code == 422
    assert client.patch("/orders/c1/fulfillment", json={"status": "shipped"}).status_code == 401
    assert client.patch("/orders/missing/fulfillment", json={"status": "shipped"},
                        headers=admin_headers).status_code == 404


def test_concurrent_write_is_retried(tables, service):
    """トランザクション直前に他の書き込みがあっても、読み直して注文は1件になる"""
    checkout_repo.create_checkout_session(tables, CheckoutSession(id="c1", user_id="user-1"))
    original = tables.checkouts_table.submit_transaction
    calls = []

    def interleaved(operations, **kwargs):
        if not calls:
            tables.checkouts_table.update_entity(
                {"PartitionKey": "c1", "RowKey": "session", "status": "stripe_created"}, mode=UpdateMode.MERGE)
        calls.append(operations)
        return original(operations, **kwargs)

    tables.checkouts_table.submit_transaction = interleaved
    order = service.reconcile_paid_checkout("c1", {"id": "cs_c1", "metadata": {"checkoutId": "c1"}})

    assert order.id == "c1"
    assert len(calls) == 2
    assert checkout_repo.get_checkout_session(tables, "c1").status == "paid"
    assert len([e for e in tables.checkouts_table.entities() if e["RowKey"] == "order"]) == 1
    assert payment_repo.query_events(tables, checkout_id="c1") == []
