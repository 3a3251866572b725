"""
Orders Service - イベント定義

コミット済みの状態遷移を order_events チャネルへ通知するときのペイロード。
イベントは過去形で命名し、不変(immutable)として扱う。
"""

from datetime import datetime

from pydantic import BaseModel

from .schemas import Order


class OrderCreated(BaseModel):
    """注文が作成された（在庫は引き落とし済み）"""
    order_id: int
    customer_id: int
    total_cents: int
    items: list[dict]
    timestamp: datetime


class OrderConfirmed(BaseModel):
    """注文が確定された"""
    order_id: int
    timestamp: datetime


class OrderCanceled(BaseModel):
    """注文がキャンセルされた（在庫は戻し済み）"""
    order_id: int
    restored: dict[int, int]
    timestamp: datetime


def order_created(order: Order, timestamp: datetime) -> OrderCreated:
    return OrderCreated(
        order_id=order.id,
        customer_id=order.customer_id,
        total_cents=order.total_cents,
        items=[{"product_id": i.product_id, "qty": i.qty} for i in order.items],
        timestamp=timestamp,
    )
