import pytest

TEE = {"name": "Classic Tee", "description": "Soft cotton", "price": 25.0,
       "mockupImageUrl": "https://cdn.example.com/tee.png"}


@pytest.fixture
def asset_id(client, admin_headers):
    response = client.post("/assets", headers=admin_headers,
                           json={"title": "Fox", "imageUrl": "https://cdn.example.com/fox.png", "published": True})
    return response.json()["id"]


def test_create_and_get_product(client, admin_headers):
    response = client.post("/products", json=TEE, headers=admin_headers)
    assert response.status_code == 201
    product = response.json()
    assert product["name"] == "Classic Tee"
    assert product["active"] is True
    assert product["defaultAssetId"] is None

    assert client.get(f"/products/{product['id']}").json()["name"] == "Classic Tee"


def test_product_writes_require_admin_key(client, tables):
    assert client.post("/products", json=TEE).status_code == 401
    assert client.post("/products", json=TEE, headers={"X-Admin-Key": "wrong"}).status_code == 401
    assert tables.products_table.entities() == []


def test_invalid_product(client, admin_headers):
    assert client.post("/products", json={**TEE, "name": "  "}, headers=admin_headers).status_code == 422
    assert client.post("/products", json={**TEE, "price": -1}, headers=admin_headers).status_code == 422


def test_list_products_filters_active(client, admin_headers):
    client.post("/products", json={**TEE, "name": "b tee"}, headers=admin_headers)
    client.post("/products", json={**TEE, "name": "A mug"}, headers=admin_headers)
    client.post("/products", json={**TEE, "name": "Retired", "active": False}, headers=admin_headers)

    assert [p["name"] for p in client.get("/products").json()] == ["A mug", "b tee", "Retired"]
    assert [p["name"] for p in client.get("/products", params={"active": "true"}).json()] == ["A mug", "b tee"]


def test_link_and_unlink_default_asset(client, admin_headers, asset_id):
    product = client.post("/products", json=TEE, headers=admin_headers).json()

    response = client.put(f"/products/{product['id']}", json={"defaultAssetId": asset_id}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["defaultAssetId"] == asset_id
    assert response.json()["name"] == "Classic Tee"

    response = client.put(f"/products/{product['id']}", json={"defaultAssetId": ""}, headers=admin_headers)
    assert response.json()["defaultAssetId"] is None


def test_link_unknown_asset(client, admin_headers):
    product = client.post("/products", json=TEE, headers=admin_headers).json()
    response = client.put(f"/products/{product['id']}", json={"defaultAssetId": "missing"}, headers=admin_headers)
    assert response.status_code == 400


def test_update_missing_product(client, admin_headers):
    assert client.put("/products/missing", json={"price": 10}, headers=admin_headers).status_code == 404


def test_delete_product(client, admin_headers):
    product = client.post("/products", json=TEE, headers=admin_headers).json()
    assert client.delete(f"/products/{product['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/products/{product['id']}").status_code == 404
    assert client.delete(f"/products/{product['id']}", headers=admin_headers).status_code == 404


def test_assets(client, admin_headers, asset_id):
    client.post("/assets", headers=admin_headers, json={"title": "Draft", "imageUrl": "https://cdn.example.com/d.png"})

    published = client.get("/assets", params={"published": "true"}).json()
    assert [a["id"] for a in published] == [asset_id]
    assert published[0]["source"] == "manual"

    by_title = client.get("/assets", params={"orderBy": "title"}).json()
    assert [a["title"] for a in by_title] == ["Draft", "Fox"]

    response = client.patch(f"/assets/{asset_id}/publish", json={"published": False}, headers=admin_headers)
    assert response.json()["published"] is False
    assert client.get("/assets", params={"published": "true"}).json() == []

    assert client.patch("/assets/missing/publish", json={"published": True}, headers=admin_headers).status_code == 404
    assert client.post("/assets", json={"title": "x", "imageUrl": "y"}).status_code == 401
