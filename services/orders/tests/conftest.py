import functools
import json
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from orders_service import main, products
from orders_service.clients import CustomerClient
from orders_service.idempotency import IdempotencyCoordinator
from orders_service.schemas import CreateProductRequest
from orders_service.tables import metadata
from service_common.db import Database
from service_common.events import EventPublisher

KNOWN_CUSTOMERS = {5, 6}


class FakeCustomers:
    """Customers Service の代わり。KNOWN_CUSTOMERS だけを有効な顧客とみなす。"""

    def __init__(self, known=KNOWN_CUSTOMERS):
        self.known = set(known)
        self.calls = []

    async def get_customer(self, customer_id):
        self.calls.append(customer_id)
        if customer_id in self.known:
            return {"id": customer_id, "name": f"Customer {customer_id}"}
        return None


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    await db.create_all(metadata)
    yield db
    await db.dispose()


@pytest.fixture
def redis():
    return AsyncMock()


@pytest.fixture
def publisher(redis):
    return EventPublisher(redis, "order_events")


@pytest.fixture
def customers():
    return FakeCustomers()


@pytest.fixture
def coordinator(database):
    return IdempotencyCoordinator(database)


@pytest.fixture
def add_product(database):
    async def _add(sku="SKU-010", price_cents=1000, stock=2, name=None):
        async with database.session() as session:
            product = await products.create_product(
                session,
                CreateProductRequest(
                    sku=sku, name=name or f"Product {sku}", price_cents=price_cents, stock=stock
                ),
            )
        return product.id

    return _add


@pytest.fixture
def published(redis):
    """AsyncMock に渡された (channel, event_type, data) を発行順に返す関数。"""

    def _published():
        out = []
        for call in redis.publish.await_args_list:
            channel, raw = call.args
            message = json.loads(raw)
            out.append((channel, message["event_type"], message["data"]))
        return out

    return _published


def _customers_api(request: httpx.Request) -> httpx.Response:
    customer_id = int(request.url.path.rsplit("/", 1)[-1])
    if customer_id in KNOWN_CUSTOMERS:
        return httpx.Response(
            200, json={"status": "success", "data": {"id": customer_id, "name": "Alice"}}
        )
    return httpx.Response(404, json={"status": "error", "message": "Customer not found."})


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setenv("REDIS_URL", "")
    monkeypatch.setenv("CREATE_SCHEMA", "true")
    monkeypatch.setenv("INTERNAL_SERVICE_TOKEN", "test-token")
    monkeypatch.setattr(
        main,
        "CustomerClient",
        functools.partial(CustomerClient, transport=httpx.MockTransport(_customers_api)),
    )
    with TestClient(main.app) as c:
        yield c


@pytest.fixture
def product_id(client):
    resp = client.post(
        "/products",
        json={"sku": "SKU-010", "name": "Keyboard", "price_cents": 1000, "stock": 2},
    )
    assert resp.status_code == 201
    return resp.json()["data"]["id"]
