"""
Orders Service - コマンドハンドラ (在庫・注文台帳の Write 側)

注文の作成・確定・キャンセルは、それぞれ 1 つの DB トランザクションで完結する。
途中で何が失敗してもトランザクション全体がロールバックされ、
「注文だけできて在庫が減っていない」ような中途半端な状態は外から見えない。

ロック:
  create_order  参照する全商品の行を 1 文の SELECT ... FOR UPDATE でまとめてロック
                (1 件ずつロックすると、商品を共有する 2 注文の間でデッドロックしうる)
  confirm_order 注文行をロック
  cancel_order  注文行をロックし、戻す商品の行を create_order と同じ id 昇順でロックしてから
                同じトランザクション内で在庫を戻して状態を変える

コミット後に Redis Pub/Sub でイベントを発行する（他サービスへの通知）。
"""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Protocol, Sequence

from sqlalchemy import bindparam, insert, select, update
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from service_common.events import EventPublisher

from . import events
from .errors import (
    CancelWindowExpired,
    CustomerNotFound,
    InsufficientStock,
    InvalidOrderStatus,
    OrderNotFound,
    ProductNotFound,
)
from .queries import as_utc, load_order
from .schemas import CANCELED, CONFIRMED, CREATED, Order, OrderItemRequest
from .tables import order_items, orders, products

logger = logging.getLogger(__name__)

CANCEL_WINDOW = timedelta(minutes=10)


class CustomerDirectory(Protocol):
    async def get_customer(self, customer_id: int) -> dict | None: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _lock_order(session: AsyncSession, order_id: int) -> Row:
    result = await session.execute(
        select(orders).where(orders.c.id == order_id).with_for_update()
    )
    row = result.fetchone()
    if not row:
        raise OrderNotFound(order_id)
    return row


async def _lock_products(session: AsyncSession, product_ids) -> dict[int, Row]:
    # 常に id 昇順でロックする (create / cancel 間で順序を揃える)
    result = await session.execute(
        select(products)
        .where(products.c.id.in_(sorted(product_ids)))
        .order_by(products.c.id)
        .with_for_update()
    )
    return {row.id: row for row in result.fetchall()}


def _stock_changes(quantities: Counter) -> list[dict]:
    """在庫更新の executemany パラメータ (id 昇順)。"""
    return [{"b_product_id": pid, "b_qty": qty} for pid, qty in sorted(quantities.items())]


async def create_order(
    session: AsyncSession,
    publisher: EventPublisher,
    customers: CustomerDirectory,
    customer_id: int,
    items: Sequence[OrderItemRequest],
    now: datetime | None = None,
) -> Order:
    """
    注文作成コマンド

    1. 顧客を検証（DB に触る前）
    2. 参照する全商品をまとめてロック
    3. 商品の存在と在庫を確認し、小計・合計を計算
    4. 注文 (CREATED) と明細を INSERT、在庫を減算
    5. コミット後に OrderCreated を発行
    """
    customer = await customers.get_customer(customer_id)
    if customer is None:
        raise CustomerNotFound(customer_id)

    now = now or _utcnow()

    # 同じ商品が複数行に現れても、在庫チェックは合計数量で行う
    demand: Counter[int] = Counter()
    for item in items:
        demand[item.product_id] += item.qty

    async with session.begin():
        locked = await _lock_products(session, demand)

        total_cents = 0
        lines = []
        for item in items:
            product = locked.get(item.product_id)
            if product is None:
                raise ProductNotFound(item.product_id)
            if product.stock < demand[item.product_id]:
                raise InsufficientStock(
                    product.id, product.sku, demand[item.product_id], product.stock
                )

            subtotal = product.price_cents * item.qty
            total_cents += subtotal
            lines.append(
                {
                    "product_id": product.id,
                    "qty": item.qty,
                    "unit_price_cents": product.price_cents,
                    "subtotal_cents": subtotal,
                }
            )

        result = await session.execute(
            insert(orders).values(
                customer_id=customer_id,
                status=CREATED,
                total_cents=total_cents,
                created_at=now,
                updated_at=now,
            )
        )
        order_id = result.inserted_primary_key[0]

        await session.execute(
            insert(order_items),
            [{"order_id": order_id, **line} for line in lines],
        )
        await session.execute(
            update(products)
            .where(products.c.id == bindparam("b_product_id"))
            .values(stock=products.c.stock - bindparam("b_qty"), updated_at=now),
            _stock_changes(demand),
        )

        order = await load_order(session, order_id)

    logger.info(
        "Order %s created for customer %s (total_cents=%s)",
        order.id,
        customer_id,
        order.total_cents,
        extra={"order_id": order.id},
    )
    await publisher.publish(
        "OrderCreated", events.order_created(order, now).model_dump(mode="json")
    )
    return order


async def confirm_order(
    session: AsyncSession,
    publisher: EventPublisher,
    order_id: int,
    now: datetime | None = None,
) -> Order:
    """
    注文確定コマンド（冪等性コーディネーター経由で呼ばれる）

    すでに CONFIRMED なら何もせず現在の状態を返す（台帳レベルでも冪等）。
    CANCELED からは確定できない。
    """
    now = now or _utcnow()

    async with session.begin():
        row = await _lock_order(session, order_id)

        if row.status == CONFIRMED:
            return await load_order(session, order_id)
        if row.status != CREATED:
            raise InvalidOrderStatus(order_id, row.status)

        await session.execute(
            update(orders)
            .where(orders.c.id == order_id)
            .values(status=CONFIRMED, updated_at=now)
        )
        order = await load_order(session, order_id)

    logger.info("Order %s confirmed", order_id, extra={"order_id": order_id})
    await publisher.publish(
        "OrderConfirmed",
        events.OrderConfirmed(order_id=order_id, timestamp=now).model_dump(mode="json"),
    )
    return order


async def cancel_order(
    session: AsyncSession,
    publisher: EventPublisher,
    order_id: int,
    window: timedelta = CANCEL_WINDOW,
    now: datetime | None = None,
) -> Order:
    """
    注文キャンセルコマンド

    - CANCELED: 何もせず現在の状態を返す
    - CONFIRMED: 作成から window を超えていたら CancelWindowExpired（何も変更しない）
    - それ以外: 明細の数量分だけ在庫を戻し、CANCELED にする
    在庫の戻しと状態変更は注文を読んだのと同じトランザクションで行う。
    """
    now = now or _utcnow()

    async with session.begin():
        row = await _lock_order(session, order_id)

        if row.status == CANCELED:
            return await load_order(session, order_id)
        if row.status == CONFIRMED and now - as_utc(row.created_at) > window:
            raise CancelWindowExpired(order_id, int(window.total_seconds() // 60))

        result = await session.execute(
            select(order_items.c.product_id, order_items.c.qty).where(
                order_items.c.order_id == order_id
            )
        )
        restored: Counter[int] = Counter()
        for item in result.fetchall():
            restored[item.product_id] += item.qty

        if restored:
            await _lock_products(session, restored)
            await session.execute(
                update(products)
                .where(products.c.id == bindparam("b_product_id"))
                .values(stock=products.c.stock + bindparam("b_qty"), updated_at=now),
                _stock_changes(restored),
            )

        await session.execute(
            update(orders)
            .where(orders.c.id == order_id)
            .values(status=CANCELED, updated_at=now)
        )
        order = await load_order(session, order_id)

    logger.info("Order %s canceled", order_id, extra={"order_id": order_id})
    await publisher.publish(
        "OrderCanceled",
        events.OrderCanceled(
            order_id=order_id, restored=dict(restored), timestamp=now
        ).model_dump(mode="json"),
    )
    return order
