from unittest.mock import patch
import pytest

from fastapi.concurrency import run_in_threadpool


@pytest.mark.parametrize("module,path", [
    ("api.products", "/products"),
    ("api.products", "/products/missing"),
    ("api.assets", "/assets"),
    ("api.assets", "/assets/missing"),
    ("api.order", "/orders?userId=user-1"),
    ("api.order", "/orders/missing"),
    ("api.mockups", "/mockups"),
    ("api.mockups", "/mockups/missing"),
])
def test_table_reads_run_in_threadpool(client, module, path):
    with patch(f"{module}.run_in_threadpool", wraps=run_in_threadpool) as threadpool:
        response = client.get(path)
    assert response.status_code in (200, 404)
    threadpool.assert_called()


def test_admin_writes_run_in_threadpool(client, admin_headers):
    with patch("api.products.run_in_threadpool", wraps=run_in_threadpool) as threadpool:
        response = client.post("/products", headers=admin_headers, json={"name": "Mug", "price": 12.0})
    assert response.status_code == 201
    threadpool.assert_called_once()

    with patch("api.order.run_in_threadpool", wraps=run_in_threadpool) as threadpool:
        response = client.patch("/orders/missing/fulfillment", headers=admin_headers, json={"status": "shipped"})
    assert response.status_code == 404
    threadpool.assert_called_once()
