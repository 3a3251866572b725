"""
Orders Service - 商品マスタ

商品の登録・参照・部分更新・一覧。台帳のトランザクションとは独立した薄い CRUD。
"""

from datetime import datetime, timezone

from sqlalchemy import insert, or_, select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from service_common.pagination import Page, paginate

from .errors import DuplicateSku, ProductNotFound
from .queries import as_utc
from .schemas import CreateProductRequest, Product, UpdateProductRequest
from .tables import products


def _product(row: Row) -> Product:
    return Product(
        id=row.id,
        sku=row.sku,
        name=row.name,
        price_cents=row.price_cents,
        stock=row.stock,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


async def _load_product(session: AsyncSession, product_id: int) -> Row | None:
    result = await session.execute(select(products).where(products.c.id == product_id))
    return result.fetchone()


async def create_product(session: AsyncSession, req: CreateProductRequest) -> Product:
    now = datetime.now(timezone.utc)
    try:
        async with session.begin():
            result = await session.execute(
                insert(products).values(**req.model_dump(), created_at=now, updated_at=now)
            )
            row = await _load_product(session, result.inserted_primary_key[0])
    except IntegrityError as e:
        raise DuplicateSku(req.sku) from e
    return _product(row)


async def get_product(session: AsyncSession, product_id: int) -> Product:
    async with session.begin():
        row = await _load_product(session, product_id)
    if not row:
        raise ProductNotFound(product_id)
    return _product(row)


async def update_product(
    session: AsyncSession, product_id: int, req: UpdateProductRequest
) -> Product:
    changes = req.model_dump(exclude_none=True)
    try:
        async with session.begin():
            result = await session.execute(
                update(products)
                .where(products.c.id == product_id)
                .values(**changes, updated_at=datetime.now(timezone.utc))
            )
            if result.rowcount == 0:
                raise ProductNotFound(product_id)
            row = await _load_product(session, product_id)
    except IntegrityError as e:
        raise DuplicateSku(changes.get("sku", "")) from e
    return _product(row)


async def list_products(
    session: AsyncSession,
    search: str | None = None,
    cursor: int | None = None,
    limit: int = 10,
) -> Page:
    stmt = select(products)
    if search:
        stmt = stmt.where(
            or_(
                products.c.name.icontains(search, autoescape=True),
                products.c.sku.icontains(search, autoescape=True),
            )
        )
    async with session.begin():
        page = await paginate(session, stmt, products.c.id, cursor, limit)
    return page.map(_product)
