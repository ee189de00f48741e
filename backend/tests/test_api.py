from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from auth import get_current_user_id
from main import app


@pytest.fixture
def client(engine, make_user):
    user = make_user("alice")
    app.dependency_overrides[get_current_user_id] = lambda: user.id
    yield TestClient(app)
    app.dependency_overrides.clear()


def _expires(days=30):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def _create_product(client, name="Apple", price=10.0, stock=5, **extra):
    response = client.post(
        "/api/products",
        json={
            "name": name,
            "price": price,
            "stock": stock,
            "expiration_time": _expires(),
            **extra,
        },
    )
    assert response.status_code == 201
    return response.json()


def _place(client, *pairs, note=""):
    return client.post(
        "/api/orders",
        json={
            "note": note,
            "order_details": [{"product_id": p, "quantity": q} for p, q in pairs],
        },
    )


def test_product_catalogue(client):
    apple = _create_product(client, name="Apple", stock=5)
    _create_product(client, name="Ghost", stock=3, is_sold_out=True)
    _create_product(client, name="Empty", stock=0)

    listing = client.get("/api/products").json()["items"]
    assert [p["name"] for p in listing] == ["Apple", "Empty"]
    assert client.get(f"/api/products/{apple['id']}").json()["stock"] == 5

    response = client.put(
        f"/api/products/{apple['id']}",
        json={"name": "Apple", "price": 12.0, "stock": 7, "expiration_time": _expires()},
    )
    assert response.status_code == 200
    assert response.json()["price"] == 12.0
    assert client.get("/api/products/999").status_code == 404


def test_order_lifecycle(client):
    apple = _create_product(client, price=10.0, stock=5)

    response = _place(client, (apple["id"], 2), note="gift")
    assert response.status_code == 201
    order = response.json()
    assert order["status"] == "pending"
    assert order["total_price"] == 20.0
    assert order["order_details"][0]["price"] == 10.0
    assert client.get(f"/api/products/{apple['id']}").json()["stock"] == 3

    response = client.patch(f"/api/orders/{order['id']}", json={"status": "paid", "note": ""})
    assert response.status_code == 200
    assert response.json()["status"] == "paid"
    assert response.json()["note"] == "gift"

    assert client.delete(f"/api/orders/{order['id']}").status_code == 204
    assert client.get(f"/api/products/{apple['id']}").json()["stock"] == 5
    assert client.get(f"/api/orders/{order['id']}").status_code == 404
    deleted = client.get(f"/api/orders/{order['id']}", params={"include_deleted": True})
    assert deleted.status_code == 200
    assert deleted.json()["is_deleted"] is True
    assert client.get("/api/orders").json()["items"] == []
    assert client.delete(f"/api/orders/{order['id']}").status_code == 404


@pytest.mark.parametrize(
    "quantity, stock, status_code, detail",
    [
        (0, 5, 400, "Quantity must be greater than zero"),
        (9, 5, 409, "Insufficient stock for product Apple"),
    ],
)
def test_rejected_orders(client, quantity, stock, status_code, detail):
    apple = _create_product(client, stock=stock)

    response = _place(client, (apple["id"], quantity))

    assert response.status_code == status_code
    assert response.json()["detail"] == detail
    assert client.get("/api/orders").json()["items"] == []


def test_unknown_product_and_empty_order(client):
    assert _place(client, (404, 1)).status_code == 404
    assert _place(client).status_code == 422


def test_order_queries_by_display_name(client):
    apple = _create_product(client, name="Apple")
    pear = _create_product(client, name="Pear")
    _place(client, (apple["id"], 1))
    _place(client, (pear["id"], 1))

    mine = client.get("/api/orders/users/alice").json()["items"]
    assert len(mine) == 2

    history = client.get(
        "/api/orders/history", params={"display_name": "alice", "product_id": pear["id"]}
    ).json()["items"]
    assert [o["order_details"][0]["product_id"] for o in history] == [pear["id"]]

    assert client.get("/api/orders/users/nobody").status_code == 404


def test_orders_require_bearer_token(engine):
    client = TestClient(app)
    assert client.get("/api/orders").status_code == 401


def test_product_writes_require_bearer_token(engine):
    client = TestClient(app)
    payload = {"name": "Apple", "price": 1.0, "stock": 1, "expiration_time": _expires()}

    assert client.post("/api/products", json=payload).status_code == 401
    assert client.put("/api/products/1", json=payload).status_code == 401
    assert client.get("/api/products").status_code == 200
