"""
Saga Service - イベントハンドラ

イベント本文 {customer_id, items, idempotency_key, correlation_id} を検証して
Saga を実行する。FastAPI のエンドポイントと Lambda 形式のハンドラ (main) の
両方がここを通る。
"""

import asyncio
import json
import logging

from pydantic import ValidationError

from service_common.events import EventPublisher
from service_common.logging_config import configure_logging

from .config import Settings
from .orchestrator import OrderSagaOrchestrator
from .schemas import PlaceOrderRequest, SagaOutcome

logger = logging.getLogger(__name__)


def _correlation_id(payload) -> str | None:
    if not isinstance(payload, dict):
        return None
    value = payload.get("correlation_id", payload.get("correlationId"))
    if isinstance(value, str):
        return value.strip() or None
    return None


async def place_order(payload, orchestrator: OrderSagaOrchestrator) -> SagaOutcome:
    """入力を検証し、Saga を実行して 1 つの結果にまとめる。"""
    correlation_id = _correlation_id(payload)
    try:
        req = PlaceOrderRequest.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(part) for part in first["loc"])
        logger.warning("Validation failed: %s", e, extra={"correlation_id": correlation_id})
        return SagaOutcome.failure(
            400, f"Validation failed: {where}: {first['msg']}", correlation_id
        )

    try:
        return await orchestrator.execute(req)
    except Exception:
        logger.exception("Unexpected orchestrator error", extra={"correlation_id": correlation_id})
        return SagaOutcome.failure(
            500, "Internal server error in the orchestrator.", correlation_id
        )


def format_response(outcome: SagaOutcome) -> dict:
    return {
        "statusCode": outcome.status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(outcome.body),
    }


async def handle_event(event: dict, settings: Settings) -> dict:
    body = event.get("body")
    if isinstance(body, (str, bytes)):
        try:
            payload = json.loads(body)
        except ValueError:
            return format_response(
                SagaOutcome.failure(400, "Invalid request body. It must be JSON.", None)
            )
    else:
        payload = body

    publisher = EventPublisher.from_url(settings.redis_url, "saga_events")
    orchestrator = OrderSagaOrchestrator(
        settings.customers_api_url,
        settings.orders_api_url,
        settings.internal_service_token,
        publisher,
        timeout=settings.http_timeout,
    )
    try:
        outcome = await place_order(payload, orchestrator)
    finally:
        await publisher.aclose()
    return format_response(outcome)


def main(event: dict, context=None) -> dict:
    """Lambda 形式のエントリーポイント。"""
    settings = Settings.from_env()
    configure_logging("saga-service", settings.log_level)
    return asyncio.run(handle_event(event, settings))
