"""
Service Common - カーソルページネーション

オフセットではなく「最後に見た id」をカーソルにする。
id 昇順で limit + 1 件を取得し、余分な 1 件が取れたら次ページがあると判断して
切り捨て、残った最後の行の id を next_cursor として返す。
並行して行が挿入されてもページがずれない。
"""

from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy import ColumnElement, Select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class Page:
    data: list[Any] = field(default_factory=list)
    next_cursor: int | None = None

    def map(self, fn: Callable[[Any], Any]) -> "Page":
        return Page([fn(item) for item in self.data], self.next_cursor)

    def to_body(self) -> dict:
        return {"status": "success", "data": self.data, "nextCursor": self.next_cursor}


async def paginate(
    session: AsyncSession,
    stmt: Select,
    id_column: ColumnElement[int],
    cursor: int | None,
    limit: int,
) -> Page:
    if cursor is not None:
        stmt = stmt.where(id_column > cursor)
    stmt = stmt.order_by(id_column.asc()).limit(limit + 1)

    result = await session.execute(stmt)
    rows = list(result.fetchall())

    next_cursor = None
    if len(rows) > limit:
        rows = rows[:limit]
        next_cursor = rows[-1]._mapping[id_column]
    return Page(rows, next_cursor)
