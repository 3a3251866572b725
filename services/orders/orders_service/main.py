"""
Orders Service - FastAPI エントリーポイント

在庫・注文台帳と冪等性コーディネーターを HTTP API として公開する。

  POST /orders                 注文作成 (顧客検証 → 在庫ロック → 作成)
  GET  /orders                 注文一覧 (状態・期間で絞り込み、カーソルページネーション)
  GET  /orders/{id}            注文詳細
  POST /orders/{id}/confirm    注文確定 (X-Idempotency-Key 必須)
  POST /orders/{id}/cancel     注文キャンセル (確定後 10 分以内)
  /products                    商品マスタ
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, timedelta

from fastapi import FastAPI, Header, Path, Query, Request
from fastapi.responses import JSONResponse

from service_common.db import Database
from service_common.errors import ServiceError, ValidationFailed, install_error_handlers
from service_common.events import EventPublisher
from service_common.logging_config import configure_logging

from . import commands, products, queries
from .clients import CustomerClient
from .config import Settings
from .errors import OrderNotFound
from .idempotency import IdempotencyCoordinator, OperationResult
from .schemas import (
    CreateOrderRequest,
    CreateProductRequest,
    OrderStatus,
    UpdateProductRequest,
)
from .tables import metadata

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings.from_env()
    configure_logging("orders-service", settings.log_level)

    database = Database(settings.database_url)
    if settings.create_schema:
        await database.create_all(metadata)

    app.state.settings = settings
    app.state.database = database
    app.state.publisher = EventPublisher.from_url(settings.redis_url, "order_events")
    app.state.customers = CustomerClient(
        settings.customers_api_url,
        settings.internal_service_token,
        timeout=settings.http_timeout,
    )
    app.state.idempotency = IdempotencyCoordinator(database)
    logger.info("Orders service started")
    yield
    await app.state.customers.aclose()
    await app.state.publisher.aclose()
    await database.dispose()


app = FastAPI(title="Orders Service", lifespan=lifespan)
install_error_handlers(app)


# ── Order Commands (Write 側) ────────────────────


@app.post("/orders", status_code=201)
async def cmd_create_order(req: CreateOrderRequest, request: Request):
    """注文作成コマンド"""
    state = request.app.state
    async with state.database.session() as session:
        order = await commands.create_order(
            session,
            state.publisher,
            state.customers,
            req.customer_id,
            req.items,
        )
    return {
        "status": "success",
        "message": "Order created successfully.",
        "data": order.model_dump(mode="json"),
    }


@app.post("/orders/{order_id}/confirm")
async def cmd_confirm_order(
    request: Request,
    order_id: int = Path(..., gt=0),
    idempotency_key: str | None = Header(default=None, alias="X-Idempotency-Key"),
):
    """
    注文確定コマンド（冪等）

    業務エラー (404 / 409) も結果として保存され、同じキーのリトライでは
    同じステータスとボディがそのまま返る。
    """
    key = (idempotency_key or "").strip()
    if not key:
        raise ValidationFailed("Missing X-Idempotency-Key header.")

    state = request.app.state

    async def confirm(target_id: int) -> OperationResult:
        try:
            async with state.database.session() as session:
                order = await commands.confirm_order(session, state.publisher, target_id)
        except ServiceError as e:
            return OperationResult(e.status_code, e.to_body())
        return OperationResult(200, {"status": "success", "data": order.model_dump(mode="json")})

    result = await state.idempotency.run(key, "order_confirmation", order_id, confirm)
    return JSONResponse(result.body, status_code=result.status_code)


@app.post("/orders/{order_id}/cancel")
async def cmd_cancel_order(request: Request, order_id: int = Path(..., gt=0)):
    """注文キャンセルコマンド（在庫を戻す）"""
    state = request.app.state
    window = timedelta(minutes=state.settings.cancel_window_minutes)
    async with state.database.session() as session:
        order = await commands.cancel_order(session, state.publisher, order_id, window=window)
    return {"status": "success", "data": order.model_dump(mode="json")}


# ── Order Queries (Read 側) ──────────────────────


@app.get("/orders")
async def query_list_orders(
    request: Request,
    status: OrderStatus | None = None,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    cursor: int | None = Query(default=None, gt=0),
    limit: int = Query(default=20, gt=0, le=100),
):
    """注文一覧（カーソルページネーション）"""
    async with request.app.state.database.session() as session:
        page = await queries.list_orders(session, status, date_from, date_to, cursor, limit)
    return page.map(lambda o: o.model_dump(mode="json")).to_body()


@app.get("/orders/{order_id}")
async def query_get_order(request: Request, order_id: int = Path(..., gt=0)):
    """注文詳細（明細付き）"""
    async with request.app.state.database.session() as session:
        order = await queries.get_order(session, order_id)
    if not order:
        raise OrderNotFound(order_id)
    return {"status": "success", "data": order.model_dump(mode="json")}


# ── Products ─────────────────────────────────────


@app.post("/products", status_code=201)
async def create_product(req: CreateProductRequest, request: Request):
    async with request.app.state.database.session() as session:
        product = await products.create_product(session, req)
    return {"status": "success", "data": product.model_dump(mode="json")}


@app.get("/products")
async def list_products(
    request: Request,
    search: str | None = Query(default=None),
    cursor: int | None = Query(default=None, gt=0),
    limit: int = Query(default=10, gt=0, le=100),
):
    async with request.app.state.database.session() as session:
        page = await products.list_products(session, (search or "").strip() or None, cursor, limit)
    return page.map(lambda p: p.model_dump(mode="json")).to_body()


@app.get("/products/{product_id}")
async def get_product(request: Request, product_id: int = Path(..., gt=0)):
    async with request.app.state.database.session() as session:
        product = await products.get_product(session, product_id)
    return {"status": "success", "data": product.model_dump(mode="json")}


@app.patch("/products/{product_id}")
async def update_product(
    req: UpdateProductRequest, request: Request, product_id: int = Path(..., gt=0)
):
    async with request.app.state.database.session() as session:
        product = await products.update_product(session, product_id, req)
    return {"status": "success", "data": product.model_dump(mode="json")}


@app.get("/health")
async def health(request: Request):
    try:
        await request.app.state.database.ping()
    except Exception as e:
        logger.error("Health check failed: %s", e)
        return JSONResponse(
            {"status": "error", "service": "orders-service", "message": "Database unreachable"},
            status_code=503,
        )
    return {"status": "ok", "service": "orders-service"}
