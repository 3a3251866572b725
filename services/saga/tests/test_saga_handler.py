"""Saga のエントリーポイント (HTTP / Lambda 形式) のテスト"""

import functools
import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from saga_service import main as saga_main
from saga_service.handler import main as lambda_main
from saga_service.handler import place_order
from saga_service.orchestrator import OrderSagaOrchestrator


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "")
    monkeypatch.setenv("CUSTOMERS_API_URL", "http://customers.test")
    monkeypatch.setenv("ORDERS_API_URL", "http://orders.test")
    monkeypatch.setenv("INTERNAL_SERVICE_TOKEN", "test-token")


@pytest.fixture
def client(env, monkeypatch, services):
    monkeypatch.setattr(
        saga_main,
        "OrderSagaOrchestrator",
        functools.partial(OrderSagaOrchestrator, transport=services.transport),
    )
    with TestClient(saga_main.app) as c:
        yield c


# ── place_order ──────────────────────────────────


@pytest.mark.asyncio
async def test_validation_failure_keeps_correlation_id(payload):
    payload["items"] = []
    orchestrator = AsyncMock()

    outcome = await place_order(payload, orchestrator)

    assert outcome.status_code == 400
    assert outcome.body["success"] is False
    assert outcome.body["correlationId"] == "corr-123"
    assert outcome.body["message"].startswith("Validation failed: items")
    orchestrator.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_blank_idempotency_key_is_rejected(payload):
    payload["idempotency_key"] = "   "

    outcome = await place_order(payload, AsyncMock())

    assert outcome.status_code == 400
    assert "idempotency_key" in outcome.body["message"]


@pytest.mark.asyncio
async def test_unexpected_error_becomes_500(payload):
    orchestrator = AsyncMock()
    orchestrator.execute.side_effect = RuntimeError("boom")

    outcome = await place_order(payload, orchestrator)

    assert outcome.status_code == 500
    assert outcome.body == {
        "success": False,
        "correlationId": "corr-123",
        "message": "Internal server error in the orchestrator.",
    }


# ── Lambda 形式 ──────────────────────────────────


def test_lambda_rejects_non_json_body(env):
    response = lambda_main({"body": "{not json"})

    assert response["statusCode"] == 400
    assert response["headers"] == {"Content-Type": "application/json"}
    assert json.loads(response["body"]) == {
        "success": False,
        "correlationId": None,
        "message": "Invalid request body. It must be JSON.",
    }


def test_lambda_validation_failure(env, payload):
    payload["customer_id"] = 0

    response = lambda_main({"body": json.dumps(payload)})

    assert response["statusCode"] == 400
    body = json.loads(response["body"])
    assert body["correlationId"] == "corr-123"
    assert body["message"].startswith("Validation failed: customer_id")


# ── HTTP ─────────────────────────────────────────


def test_http_place_order(client, services, payload):
    resp = client.post("/saga/place-order", json=payload)

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["correlationId"] == "corr-123"
    assert body["data"]["order"]["id"] == 42
    assert services.calls() == ["customer", "create", "confirm"]


def test_http_failure_status_passes_through(client, services, payload):
    services.responses["create"] = (409, {"status": "error", "message": "Out of stock."})

    resp = client.post("/saga/place-order", json=payload)

    assert resp.status_code == 409
    assert resp.json() == {"success": False, "correlationId": "corr-123", "message": "Out of stock."}


def test_http_invalid_json(client):
    resp = client.post(
        "/saga/place-order",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid request body. It must be JSON."


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "service": "saga-service"}
