"""
Customers Service - クエリハンドラ (Read 側)
"""

from datetime import timezone

from sqlalchemy import or_, select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from service_common.pagination import Page, paginate

from .schemas import Customer
from .tables import customers

_COLUMNS = (
    customers.c.id,
    customers.c.name,
    customers.c.email,
    customers.c.phone,
    customers.c.created_at,
)


def _customer(row: Row) -> Customer:
    created_at = row.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return Customer(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        created_at=created_at,
    )


async def load_customer(session: AsyncSession, customer_id: int) -> Customer | None:
    result = await session.execute(
        select(*_COLUMNS)
        .where(customers.c.id == customer_id)
        .where(customers.c.deleted_at.is_(None))
    )
    row = result.fetchone()
    if not row:
        return None
    return _customer(row)


async def get_customer(session: AsyncSession, customer_id: int) -> Customer | None:
    async with session.begin():
        return await load_customer(session, customer_id)


async def list_customers(
    session: AsyncSession,
    search: str | None = None,
    cursor: int | None = None,
    limit: int = 10,
) -> Page:
    """名前かメールアドレスの部分一致で検索する。"""
    stmt = select(*_COLUMNS).where(customers.c.deleted_at.is_(None))
    if search:
        stmt = stmt.where(
            or_(
                customers.c.name.icontains(search, autoescape=True),
                customers.c.email.icontains(search, autoescape=True),
            )
        )
    async with session.begin():
        page = await paginate(session, stmt, customers.c.id, cursor, limit)
    return page.map(_customer)
