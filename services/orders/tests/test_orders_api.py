"""Orders API のテスト (TestClient 経由)"""


def create_order(client, product_id, qty=2, customer_id=5):
    return client.post(
        "/orders",
        json={"customer_id": customer_id, "items": [{"product_id": product_id, "qty": qty}]},
    )


def test_create_order(client, product_id):
    resp = create_order(client, product_id)

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "success"
    assert body["message"] == "Order created successfully."
    order = body["data"]
    assert order["status"] == "CREATED"
    assert order["total_cents"] == 2000
    assert order["items"][0]["unit_price_cents"] == 1000
    assert client.get(f"/products/{product_id}").json()["data"]["stock"] == 0


def test_create_order_unknown_customer(client, product_id):
    resp = create_order(client, product_id, customer_id=77)

    assert resp.status_code == 404
    assert resp.json()["code"] == "CLIENT_NOT_FOUND"
    assert client.get(f"/products/{product_id}").json()["data"]["stock"] == 2


def test_create_order_insufficient_stock(client, product_id):
    resp = create_order(client, product_id, qty=3)

    assert resp.status_code == 409
    body = resp.json()
    assert body["status"] == "error"
    assert body["code"] == "INSUFFICIENT_STOCK"
    assert body["product_id"] == product_id
    assert body["sku"] == "SKU-010"


def test_create_order_unknown_product(client):
    resp = create_order(client, 999, qty=1)

    assert resp.status_code == 404
    assert resp.json()["code"] == "PRODUCT_NOT_FOUND"


def test_create_order_rejects_empty_items(client):
    resp = client.post("/orders", json={"customer_id": 5, "items": []})

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"]


def test_confirm_replays_byte_identical_response(client, product_id):
    order_id = create_order(client, product_id).json()["data"]["id"]
    headers = {"X-Idempotency-Key": "confirm-1"}

    first = client.post(f"/orders/{order_id}/confirm", headers=headers)
    second = client.post(f"/orders/{order_id}/confirm", headers=headers)

    assert first.status_code == second.status_code == 200
    assert first.content == second.content
    assert first.json()["data"]["status"] == "CONFIRMED"


def test_confirm_failure_is_replayed(client):
    headers = {"X-Idempotency-Key": "confirm-missing"}

    first = client.post("/orders/999/confirm", headers=headers)
    second = client.post("/orders/999/confirm", headers=headers)

    assert first.status_code == second.status_code == 404
    assert first.content == second.content
    assert first.json()["code"] == "ORDER_NOT_FOUND"


def test_confirm_requires_idempotency_key(client, product_id):
    order_id = create_order(client, product_id).json()["data"]["id"]

    missing = client.post(f"/orders/{order_id}/confirm")
    blank = client.post(f"/orders/{order_id}/confirm", headers={"X-Idempotency-Key": "  "})

    assert missing.status_code == blank.status_code == 400
    assert missing.json()["code"] == "VALIDATION_ERROR"
    assert client.get(f"/orders/{order_id}").json()["data"]["status"] == "CREATED"


def test_confirm_canceled_order_is_conflict(client, product_id):
    order_id = create_order(client, product_id).json()["data"]["id"]
    client.post(f"/orders/{order_id}/cancel")

    resp = client.post(f"/orders/{order_id}/confirm", headers={"X-Idempotency-Key": "k"})

    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_ORDER_STATUS"


def test_cancel_restores_stock(client, product_id):
    order_id = create_order(client, product_id).json()["data"]["id"]
    client.post(f"/orders/{order_id}/confirm", headers={"X-Idempotency-Key": "c-1"})

    resp = client.post(f"/orders/{order_id}/cancel")

    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "CANCELED"
    assert client.get(f"/products/{product_id}").json()["data"]["stock"] == 2

    again = client.post(f"/orders/{order_id}/cancel")
    assert again.status_code == 200
    assert client.get(f"/products/{product_id}").json()["data"]["stock"] == 2


def test_cancel_unknown_order(client):
    resp = client.post("/orders/999/cancel")

    assert resp.status_code == 404
    assert resp.json()["code"] == "ORDER_NOT_FOUND"


def test_get_order(client, product_id):
    order_id = create_order(client, product_id, qty=1).json()["data"]["id"]

    resp = client.get(f"/orders/{order_id}")

    assert resp.status_code == 200
    order = resp.json()["data"]
    assert order["id"] == order_id
    assert len(order["items"]) == 1
    assert client.get("/orders/999").status_code == 404


def test_list_orders_with_cursor(client, product_id):
    ids = [create_order(client, product_id, qty=1).json()["data"]["id"] for _ in range(2)]

    first = client.get("/orders", params={"limit": 1}).json()
    second = client.get("/orders", params={"limit": 1, "cursor": first["nextCursor"]}).json()

    assert first["status"] == "success"
    assert [o["id"] for o in first["data"]] == ids[:1]
    assert first["nextCursor"] == ids[0]
    assert [o["id"] for o in second["data"]] == ids[1:]
    assert second["nextCursor"] is None
    assert "items" not in first["data"][0]


def test_list_orders_by_status(client, product_id):
    order_id = create_order(client, product_id, qty=1).json()["data"]["id"]
    client.post(f"/orders/{order_id}/cancel")

    canceled = client.get("/orders", params={"status": "CANCELED"}).json()["data"]
    created = client.get("/orders", params={"status": "CREATED"}).json()["data"]

    assert [o["id"] for o in canceled] == [order_id]
    assert created == []
    assert client.get("/orders", params={"status": "SHIPPED"}).status_code == 400


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
