"""
Orders Service - リクエスト / レスポンスモデル

金額はすべてセント単位の整数。unit_price_cents は注文作成時点の価格の
スナップショットで、その後商品価格が変わっても書き換えない。
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

OrderStatus = Literal["CREATED", "CONFIRMED", "CANCELED"]

CREATED: OrderStatus = "CREATED"
CONFIRMED: OrderStatus = "CONFIRMED"
CANCELED: OrderStatus = "CANCELED"


# ── Requests ─────────────────────────────────────


class OrderItemRequest(BaseModel):
    product_id: int = Field(..., gt=0)
    qty: int = Field(..., gt=0)


class CreateOrderRequest(BaseModel):
    customer_id: int = Field(..., gt=0)
    items: list[OrderItemRequest] = Field(..., min_length=1)


class CreateProductRequest(BaseModel):
    sku: str = Field(..., min_length=3, max_length=100)
    name: str = Field(..., min_length=3, max_length=255)
    price_cents: int = Field(..., gt=0)
    stock: int = Field(0, ge=0)


class UpdateProductRequest(BaseModel):
    sku: str | None = Field(None, min_length=3, max_length=100)
    name: str | None = Field(None, min_length=3, max_length=255)
    price_cents: int | None = Field(None, gt=0)
    stock: int | None = Field(None, ge=0)

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_dump(exclude_none=True):
            raise ValueError("At least one field must be provided")
        return self


# ── Read models ──────────────────────────────────


class Product(BaseModel):
    id: int
    sku: str
    name: str
    price_cents: int
    stock: int
    created_at: datetime
    updated_at: datetime


class OrderItem(BaseModel):
    id: int
    order_id: int
    product_id: int
    qty: int
    unit_price_cents: int
    subtotal_cents: int


class OrderSummary(BaseModel):
    id: int
    customer_id: int
    status: OrderStatus
    total_cents: int
    created_at: datetime


class Order(OrderSummary):
    updated_at: datetime
    items: list[OrderItem] = Field(default_factory=list)
