"""
Customers Service - FastAPI エントリーポイント

顧客ディレクトリ。Orders Service と Saga Orchestrator から
GET /customers/{id} で顧客の存在確認に使われる。
すべてのエンドポイントはサービス間トークン (Bearer) を要求する。
"""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Path, Query, Request, Response
from fastapi.responses import JSONResponse

from service_common.auth import verify_service_token
from service_common.db import Database
from service_common.errors import install_error_handlers
from service_common.logging_config import configure_logging

from . import commands, queries
from .config import Settings
from .schemas import CreateCustomerRequest, UpdateCustomerRequest
from .tables import metadata

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings.from_env()
    configure_logging("customers-service", settings.log_level)

    database = Database(settings.database_url)
    if settings.create_schema:
        await database.create_all(metadata)

    app.state.settings = settings
    app.state.database = database
    logger.info("Customers service started")
    yield
    await database.dispose()


app = FastAPI(title="Customers Service", lifespan=lifespan)
install_error_handlers(app)

router = APIRouter(prefix="/customers", dependencies=[Depends(verify_service_token)])


# ── Command Endpoints (Write 側) ─────────────────


@router.post("", status_code=201)
async def cmd_create_customer(req: CreateCustomerRequest, request: Request):
    """顧客登録"""
    async with request.app.state.database.session() as session:
        customer = await commands.create_customer(session, req)
    return {
        "status": "success",
        "message": "Customer created successfully.",
        "data": customer.model_dump(mode="json"),
    }


@router.put("/{customer_id}")
async def cmd_update_customer(
    req: UpdateCustomerRequest, request: Request, customer_id: int = Path(..., gt=0)
):
    """顧客更新（部分更新）"""
    async with request.app.state.database.session() as session:
        customer = await commands.update_customer(session, customer_id, req)
    return {"status": "success", "data": customer.model_dump(mode="json")}


@router.delete("/{customer_id}", status_code=204)
async def cmd_delete_customer(request: Request, customer_id: int = Path(..., gt=0)):
    """顧客削除（論理削除）"""
    async with request.app.state.database.session() as session:
        await commands.delete_customer(session, customer_id)
    return Response(status_code=204)


# ── Query Endpoints (Read 側) ────────────────────


@router.get("")
async def query_list_customers(
    request: Request,
    search: str | None = Query(default=None),
    cursor: int | None = Query(default=None, gt=0),
    limit: int = Query(default=10, gt=0, le=100),
):
    """顧客一覧（検索・カーソルページネーション）"""
    async with request.app.state.database.session() as session:
        page = await queries.list_customers(session, (search or "").strip() or None, cursor, limit)
    return page.map(lambda c: c.model_dump(mode="json")).to_body()


@router.get("/{customer_id}")
async def query_get_customer(request: Request, customer_id: int = Path(..., gt=0)):
    """顧客詳細。Orders Service / Saga からの存在確認にも使われる。"""
    async with request.app.state.database.session() as session:
        customer = await queries.get_customer(session, customer_id)
    if not customer:
        raise commands.CustomerNotFound(customer_id)
    return {"status": "success", "data": customer.model_dump(mode="json")}


app.include_router(router)


@app.get("/health")
async def health(request: Request):
    try:
        await request.app.state.database.ping()
    except Exception as e:
        logger.error("Health check failed: %s", e)
        return JSONResponse(
            {"status": "error", "service": "customers-service", "message": "Database unreachable"},
            status_code=503,
        )
    return {"status": "ok", "service": "customers-service"}
