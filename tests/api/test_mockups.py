import base64
import pytest

from tests.helpers import PNG_BYTES

DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()


@pytest.fixture
def design(client, admin_headers):
    asset = client.post("/assets", headers=admin_headers,
                        json={"title": "Fox", "imageUrl": "https://cdn.example.com/fox.png"}).json()
    product = client.post("/products", headers=admin_headers, json={"name": "Classic Tee", "price": 25}).json()
    return asset["id"], product["id"]


def test_save_mockup(client, blob_service, design):
    asset_id, product_id = design
    response = client.post("/save-mockup", json={"dataUrl": DATA_URL, "assetId": asset_id, "productId": product_id})
    assert response.status_code == 200
    body = response.json()
    assert body["imageUrl"].startswith("https://teststorage.blob.core.windows.net/assets/mockups/")

    [(container, path)] = blob_service.blobs.keys()
    assert path.startswith("mockups/") and path.endswith(".png")
    assert blob_service.blobs[(container, path)] == PNG_BYTES

    mockup = client.get(f"/mockups/{body['id']}").json()
    assert mockup["assetTitle"] == "Fox"
    assert mockup["productName"] == "Classic Tee"
    assert [m["id"] for m in client.get("/mockups").json()] == [body["id"]]


@pytest.mark.parametrize("body", [
    {"assetId": "a", "productId": "p"},
    {"dataUrl": DATA_URL, "productId": "p"},
    {"dataUrl": DATA_URL, "assetId": "a"},
])
def test_missing_fields(client, blob_service, body):
    response = client.post("/save-mockup", json=body)
    assert response.status_code == 400
    assert blob_service.blobs == {}


@pytest.mark.parametrize("data_url", ["data:image/jpeg;base64,AAAA", "not a data url", "data:image/png;base64,@@@"])
def test_invalid_data_url(client, blob_service, data_url):
    response = client.post("/save-mockup", json={"dataUrl": data_url, "assetId": "a", "productId": "p"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid data URL format"}
    assert blob_service.blobs == {}


def test_storage_failure(client, blob_service, monkeypatch):
    def fail(*args, **kwargs):
        raise RuntimeError("storage unavailable")

    monkeypatch.setattr(blob_service, "get_blob_client", fail)
    response = client.post("/save-mockup", json={"dataUrl": DATA_URL, "assetId": "a", "productId": "p"})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_get_mockup_not_found(client):
    assert client.get("/mockups/missing").status_code == 404
