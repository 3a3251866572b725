"""
Orders Service - クエリハンドラ (Read 側)

読み取り専用。状態は変更しない。
一覧はカーソルページネーション (id 昇順、limit + 1 件取得) で返す。
"""

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from service_common.pagination import Page, paginate

from .schemas import Order, OrderItem, OrderSummary
from .tables import order_items, orders


def as_utc(value: datetime) -> datetime:
    """SQLite は tz 情報を落とすので、保存値はすべて UTC として扱う。"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _summary(row: Row) -> OrderSummary:
    return OrderSummary(
        id=row.id,
        customer_id=row.customer_id,
        status=row.status,
        total_cents=row.total_cents,
        created_at=as_utc(row.created_at),
    )


async def load_order(session: AsyncSession, order_id: int) -> Order | None:
    """注文と明細をまとめて読む。呼び出し側のトランザクション内でも使える。"""
    result = await session.execute(select(orders).where(orders.c.id == order_id))
    row = result.fetchone()
    if not row:
        return None

    result = await session.execute(
        select(order_items)
        .where(order_items.c.order_id == order_id)
        .order_by(order_items.c.id)
    )
    items = [OrderItem(**item._mapping) for item in result.fetchall()]
    return Order(
        **_summary(row).model_dump(),
        updated_at=as_utc(row.updated_at),
        items=items,
    )


async def get_order(session: AsyncSession, order_id: int) -> Order | None:
    async with session.begin():
        return await load_order(session, order_id)


async def list_orders(
    session: AsyncSession,
    status: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    cursor: int | None = None,
    limit: int = 20,
) -> Page:
    """
    注文一覧を状態・期間で絞り込む。

    date_to はその日の終わりまでを含む (翌日 0 時未満)。
    """
    stmt = select(
        orders.c.id,
        orders.c.customer_id,
        orders.c.status,
        orders.c.total_cents,
        orders.c.created_at,
    )
    if status:
        stmt = stmt.where(orders.c.status == status)
    if date_from:
        stmt = stmt.where(
            orders.c.created_at >= datetime.combine(date_from, time.min, timezone.utc)
        )
    if date_to:
        end = datetime.combine(date_to + timedelta(days=1), time.min, timezone.utc)
        stmt = stmt.where(orders.c.created_at < end)

    async with session.begin():
        page = await paginate(session, stmt, orders.c.id, cursor, limit)
    return page.map(_summary)
