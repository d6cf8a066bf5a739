from types import SimpleNamespace
from unittest.mock import patch
import json
import pytest

from models.checkout import CartLineItem, MAX_CART_ITEMS

CART = {
    "userId": "user-1",
    "items": [
        {"id": "line-1", "productId": "tee", "assetId": "fox", "productName": "T-Shirt", "assetTitle": "Fox",
         "scale": 0.8, "position": {"x": 10, "y": 20}, "quantity": 2},
        {"productId": "mug", "assetId": "owl", "productName": "Mug", "assetTitle": "Owl", "quantity": 0},
    ],
}


def stripe_session(session_id="cs_test_1"):
    return SimpleNamespace(id=session_id, url=f"https://checkout.stripe.com/c/pay/{session_id}")


@pytest.mark.parametrize("path", ["/checkout", "/create-checkout-session"])
def test_create_checkout_session(client, path):
    with patch("stripe.checkout.Session.create", return_value=stripe_session()) as create:
        response = client.post(path, json=CART, headers={"Origin": "https://shop.example.com"})
    assert response.status_code == 200
    body = response.json()
    assert body["url"] == "https://checkout.stripe.com/c/pay/cs_test_1"
    checkout_id = body["checkoutId"]

    kwargs = create.call_args.kwargs
    assert kwargs["api_key"] == "sk_test_dummy"
    assert kwargs["mode"] == "payment"
    assert kwargs["metadata"] == {"checkoutId": checkout_id, "userId": "user-1"}
    assert kwargs["success_url"] == f"https://shop.example.com/cart?status=success&checkoutId={checkout_id}"
    assert kwargs["cancel_url"] == f"https://shop.example.com/cart?status=cancel&checkoutId={checkout_id}"
    line_items = kwargs["line_items"]
    assert [item["price_data"]["product_data"]["name"] for item in line_items] == ["T-Shirt - Fox", "Mug - Owl"]
    assert [item["quantity"] for item in line_items] == [2, 1]
    assert line_items[0]["price_data"]["product_data"]["metadata"] == {
        "assetId": "fox", "productId": "tee", "cartItemId": "line-1"}

    session = client.get(f"/checkout/{checkout_id}").json()
    assert session["status"] == "stripe_created"
    assert session["stripeSessionId"] == "cs_test_1"
    assert session["amount"] == {"currency": "usd", "unitAmount": 2500, "itemCount": 3, "subtotal": 7500, "total": 7500}
    assert session["items"][0]["position"] == {"x": 10.0, "y": 20.0}


def test_default_origin_and_anonymous_user(client):
    with patch("stripe.checkout.Session.create", return_value=stripe_session()) as create:
        response = client.post("/checkout", json={"items": CART["items"][:1]})
    assert response.status_code == 200
    kwargs = create.call_args.kwargs
    assert kwargs["metadata"]["userId"] == "anon"
    assert kwargs["success_url"].startswith("http://localhost:3000/cart?status=success")


def test_empty_cart(client, tables):
    with patch("stripe.checkout.Session.create") as create:
        response = client.post("/checkout", json={"userId": "user-1", "items": []})
    assert response.status_code == 400
    assert response.json() == {"error": "No items provided"}
    create.assert_not_called()
    assert tables.checkouts_table.entities() == []


def test_stripe_failure_marks_session_error(client):
    with patch("stripe.checkout.Session.create", side_effect=RuntimeError("stripe is down")):
        response = client.post("/checkout", json=CART)
    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "stripe is down"

    session = client.get(f"/checkout/{body['checkoutId']}").json()
    assert session["status"] == "error"
    assert session["error"] == "stripe is down"


def test_get_checkout_not_found(client):
    assert client.get("/checkout/missing").status_code == 404


def test_session_is_written_before_stripe_call(client, tables):
    seen = []

    def create_stripe_session(**kwargs):
        session = tables.checkouts_table.get_entity(kwargs["metadata"]["checkoutId"], "session")
        seen.append(dict(session))
        return stripe_session()

    with patch("stripe.checkout.Session.create", side_effect=create_stripe_session):
        response = client.post("/checkout", json=CART)

    assert response.status_code == 200
    [session] = seen
    assert session["PartitionKey"] == response.json()["checkoutId"]
    assert session["status"] == "created"


@pytest.mark.parametrize("quantity,expected", [("1e400", 1), ("-1e400", 1), ("2.7", 2), ("\"abc\"", 1)])
def test_extreme_quantities_are_normalized(quantity, expected):
    item = CartLineItem.model_validate(
        json.loads(f'{{"productId": "tee", "assetId": "fox", "quantity": {quantity}}}'))
    assert item.quantity == expected


def test_infinite_quantity_defaults_to_one(client):
    body = '{"userId": "user-1", "items": [{"productId": "tee", "assetId": "fox", "quantity": 1e400}]}'
    with patch("stripe.checkout.Session.create", return_value=stripe_session()) as create:
        response = client.post("/checkout", content=body, headers={"Content-Type": "application/json"})
    assert response.status_code == 200
    assert create.call_args.kwargs["line_items"][0]["quantity"] == 1


def test_too_many_items(client, tables):
    items = [{"productId": "tee", "assetId": f"asset-{i}"} for i in range(MAX_CART_ITEMS + 1)]
    with patch("stripe.checkout.Session.create") as create:
        response = client.post("/checkout", json={"userId": "user-1", "items": items})
    assert response.status_code == 400
    assert response.json() == {"error": f"Too many items (max {MAX_CART_ITEMS})"}
    create.assert_not_called()
    assert tables.checkouts_table.entities() == []


def test_oversized_items(client, tables):
    sas_url = "https://teststorage.blob.core.windows.net/assets/mockups/x.png?" + "sig=" + "a" * 2000
    items = [{"productId": "tee", "assetId": f"asset-{i}", "assetImageUrl": sas_url, "mockupImageUrl": sas_url}
             for i in range(MAX_CART_ITEMS)]
    with patch("stripe.checkout.Session.create") as create:
        response = client.post("/checkout", json={"userId": "user-1", "items": items})
    assert response.status_code == 400
    assert response.json() == {"error": "Cart is too large"}
    create.assert_not_called()
    assert tables.checkouts_table.entities() == []
