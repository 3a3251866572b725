"""
Saga Service - 入力と結果のモデル
"""

from dataclasses import dataclass

from pydantic import AliasChoices, BaseModel, Field, field_validator


class SagaItem(BaseModel):
    product_id: int = Field(..., gt=0)
    qty: int = Field(..., gt=0)


class PlaceOrderRequest(BaseModel):
    """snake_case と camelCase のどちらのキーでも受け付ける。"""

    customer_id: int = Field(
        ..., gt=0, validation_alias=AliasChoices("customer_id", "customerId")
    )
    items: list[SagaItem] = Field(..., min_length=1)
    idempotency_key: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("idempotency_key", "idempotencyKey")
    )
    correlation_id: str | None = Field(
        None, validation_alias=AliasChoices("correlation_id", "correlationId")
    )

    @field_validator("idempotency_key", "correlation_id", mode="before")
    @classmethod
    def strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("idempotency_key")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v:
            raise ValueError("idempotency_key must not be empty")
        return v


@dataclass(frozen=True)
class SagaOutcome:
    """呼び出し元に返す 1 つの結果 (成功でも失敗でも同じ形)。"""

    status_code: int
    body: dict

    @classmethod
    def success(cls, data: dict, correlation_id: str | None) -> "SagaOutcome":
        return cls(201, {"success": True, "correlationId": correlation_id, "data": data})

    @classmethod
    def failure(cls, status_code: int, message: str, correlation_id: str | None) -> "SagaOutcome":
        return cls(
            status_code,
            {"success": False, "correlationId": correlation_id, "message": message},
        )
