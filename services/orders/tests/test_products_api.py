"""商品マスタ API のテスト"""


def test_create_and_get_product(client, product_id):
    resp = client.get(f"/products/{product_id}")

    assert resp.status_code == 200
    product = resp.json()["data"]
    assert product["sku"] == "SKU-010"
    assert product["price_cents"] == 1000
    assert product["stock"] == 2


def test_duplicate_sku(client, product_id):
    resp = client.post(
        "/products", json={"sku": "SKU-010", "name": "Another", "price_cents": 500}
    )

    assert resp.status_code == 409
    assert resp.json()["code"] == "DUPLICATE_SKU"


def test_create_product_validation(client):
    resp = client.post("/products", json={"sku": "S1", "name": "Mouse", "price_cents": 0})

    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_update_product(client, product_id):
    resp = client.patch(f"/products/{product_id}", json={"stock": 10, "price_cents": 1200})

    assert resp.status_code == 200
    product = resp.json()["data"]
    assert product["stock"] == 10
    assert product["price_cents"] == 1200
    assert product["name"] == "Keyboard"


def test_update_product_requires_a_field(client, product_id):
    assert client.patch(f"/products/{product_id}", json={}).status_code == 400


def test_update_unknown_product(client):
    resp = client.patch("/products/999", json={"stock": 1})

    assert resp.status_code == 404
    assert resp.json()["code"] == "PRODUCT_NOT_FOUND"


def test_list_products_search(client, product_id):
    client.post("/products", json={"sku": "MOUSE-1", "name": "Wireless mouse", "price_cents": 800})

    found = client.get("/products", params={"search": "keyb"}).json()
    everything = client.get("/products", params={"limit": 1}).json()

    assert [p["id"] for p in found["data"]] == [product_id]
    assert len(everything["data"]) == 1
    assert everything["nextCursor"] == product_id
