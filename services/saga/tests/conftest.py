import json
from unittest.mock import AsyncMock

import httpx
import pytest

from service_common.events import EventPublisher


class FakeServices:
    """Customers / Orders Service を模した MockTransport。

    各エンドポイントの応答は responses を差し替えて変えられる。
    受け取ったリクエストは requests に記録する。
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responses = {
            "customer": (200, {"status": "success", "data": {"id": 5, "name": "Alice"}}),
            "create": (
                201,
                {
                    "status": "success",
                    "data": {"id": 42, "status": "CREATED", "total_cents": 2000},
                },
            ),
            "confirm": (
                200,
                {
                    "status": "success",
                    "data": {"id": 42, "status": "CONFIRMED", "total_cents": 2000},
                },
            ),
        }

    def route(self, request: httpx.Request) -> str:
        path = request.url.path
        if request.url.host == "customers.test":
            return "customer"
        if path.endswith("/confirm"):
            return "confirm"
        if path.endswith("/cancel"):
            return "cancel"
        return "create"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.responses.get(self.route(request), (500, {}))
        return httpx.Response(status, json=body)

    def calls(self) -> list[str]:
        return [self.route(r) for r in self.requests]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def services():
    return FakeServices()


@pytest.fixture
def redis():
    return AsyncMock()


@pytest.fixture
def publisher(redis):
    return EventPublisher(redis, "saga_events")


@pytest.fixture
def published(redis):
    def _published():
        return [json.loads(call.args[1]) for call in redis.publish.await_args_list]

    return _published


@pytest.fixture
def payload():
    return {
        "customer_id": 5,
        "items": [{"product_id": 10, "qty": 2}],
        "idempotency_key": "saga-key-1",
        "correlation_id": "corr-123",
    }
