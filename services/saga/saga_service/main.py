"""
Saga Service - FastAPI エントリーポイント

Saga オーケストレーターを HTTP API として公開する。
このサービス自身は永続的な状態を持たない。
"""

from contextlib import asynccontextmanager

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from service_common.events import EventPublisher
from service_common.logging_config import configure_logging

from .config import Settings
from .handler import place_order
from .orchestrator import OrderSagaOrchestrator
from .schemas import SagaOutcome


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings.from_env()
    configure_logging("saga-service", settings.log_level)
    app.state.settings = settings
    app.state.publisher = EventPublisher.from_url(settings.redis_url, "saga_events")
    yield
    await app.state.publisher.aclose()


app = FastAPI(title="Saga Orchestrator Service", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    outcome = SagaOutcome.failure(400, "Invalid request body. It must be JSON.", None)
    return JSONResponse(outcome.body, status_code=outcome.status_code)


@app.post("/saga/place-order")
async def saga_place_order(request: Request, payload=Body(default=None)):
    """
    注文 Saga を実行する。

    成功: 201 {success: true, correlationId, data: {customer, order}}
    失敗: 失敗したステップのステータス {success: false, correlationId, message}
    """
    state = request.app.state
    orchestrator = OrderSagaOrchestrator(
        state.settings.customers_api_url,
        state.settings.orders_api_url,
        state.settings.internal_service_token,
        state.publisher,
        timeout=state.settings.http_timeout,
    )
    outcome = await place_order(payload, orchestrator)
    return JSONResponse(outcome.body, status_code=outcome.status_code)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "saga-service"}
