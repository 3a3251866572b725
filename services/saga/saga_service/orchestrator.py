"""
Saga Orchestrator - 注文 Saga

Saga パターン（オーケストレーション型）:
  中央のオーケストレーターが各サービスへの呼び出しを順番に制御し、
  どのステップの失敗も 1 つの結果にまとめて呼び出し元へ返す。

  フロー:
  ┌─────────────────────────────────────────────────────────┐
  │  1. Customers Service で顧客を検証 (読み取りのみ)          │
  │  2. Orders Service に注文作成を依頼                       │
  │     └─ 失敗 → 中断 (作成はアトミックなので補償は不要)       │
  │  3. Orders Service に注文確定を依頼 (X-Idempotency-Key)    │
  │     └─ 失敗 → 中断。注文は CREATED のまま残る              │
  │              (補償キャンセルは行わない)                    │
  └─────────────────────────────────────────────────────────┘

各ステップは独立した固定タイムアウトを持ち、リトライもバックオフもしない。
タイムアウトは失敗として扱い、それまでのステップの結果は残る。
"""

import asyncio
import logging
from datetime import datetime, timezone

import httpx

from service_common.auth import bearer_headers
from service_common.events import EventPublisher

from .schemas import PlaceOrderRequest, SagaOutcome

logger = logging.getLogger(__name__)


class SagaStepError(Exception):
    """あるステップの失敗。呼び出し元へそのまま返すステータスコードを持つ。"""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _data(body, failure_message: str) -> dict:
    """成功レスポンスの data を取り出す。無ければそのステップの失敗 (500)。"""
    data = body.get("data") if isinstance(body, dict) else None
    if not data:
        raise SagaStepError(failure_message, 500)
    return data


class OrderSagaOrchestrator:
    """注文 Saga のオーケストレーター"""

    def __init__(
        self,
        customers_service_url: str,
        orders_service_url: str,
        token: str,
        publisher: EventPublisher,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.customers_url = customers_service_url.rstrip("/")
        self.orders_url = orders_service_url.rstrip("/")
        self.token = token
        self.publisher = publisher
        self.timeout = timeout
        self.transport = transport

    async def execute(self, req: PlaceOrderRequest) -> SagaOutcome:
        """
        Saga を実行する。

        最初に失敗したステップで即座に中断し、そのステップのステータスコードと
        メッセージに correlation_id を付けて返す。
        """
        saga_log: list[dict] = []
        correlation_id = req.correlation_id
        log_extra = {"correlation_id": correlation_id}

        async with httpx.AsyncClient(
            headers=bearer_headers(self.token),
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            try:
                # ── Step 1: 顧客を検証 ──────────────────────
                logger.info("Step 1: validating customer %s", req.customer_id, extra=log_extra)
                customer = await self._run_step(
                    saga_log, 1, "ValidateCustomer",
                    self._validate_customer(client, req.customer_id),
                )

                # ── Step 2: 注文を作成 ──────────────────────
                logger.info("Step 2: creating order for customer %s", req.customer_id, extra=log_extra)
                order = await self._run_step(
                    saga_log, 2, "CreateOrder",
                    self._create_order(client, req),
                )

                # ── Step 3: 注文を確定 ──────────────────────
                logger.info(
                    "Step 3: confirming order %s with key %s",
                    order["id"], req.idempotency_key, extra=log_extra,
                )
                confirmed = await self._run_step(
                    saga_log, 3, "ConfirmOrder",
                    self._confirm_order(client, order["id"], req.idempotency_key),
                )
            except SagaStepError as e:
                logger.error("Saga failed (%s): %s", e.status_code, e.message, extra=log_extra)
                await self._publish_saga_event("SagaFailed", correlation_id, saga_log)
                return SagaOutcome.failure(e.status_code, e.message, correlation_id)

        logger.info("Saga completed for order %s", confirmed["id"], extra=log_extra)
        await self._publish_saga_event("SagaCompleted", correlation_id, saga_log)
        return SagaOutcome.success({"customer": customer, "order": confirmed}, correlation_id)

    async def _run_step(self, saga_log: list[dict], step: int, action: str, call) -> dict:
        saga_log.append(
            {
                "step": step,
                "action": action,
                "status": "EXECUTING",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )
        try:
            result = await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            saga_log[-1]["status"] = "FAILED"
            saga_log[-1]["error"] = "timeout"
            raise SagaStepError(f"{action} timed out.", 500)
        except SagaStepError as e:
            saga_log[-1]["status"] = "FAILED"
            saga_log[-1]["error"] = e.message
            raise
        saga_log[-1]["status"] = "COMPLETED"
        return result

    async def _call(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        failure_message: str,
        **kwargs,
    ) -> dict:
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise SagaStepError(f"{failure_message} (timeout)", 500) from e
        except httpx.HTTPError as e:
            raise SagaStepError(failure_message, 500) from e

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if resp.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            raise SagaStepError(message or failure_message, resp.status_code)
        return body

    async def _validate_customer(self, client: httpx.AsyncClient, customer_id: int) -> dict:
        body = await self._call(
            client,
            "GET",
            f"{self.customers_url}/customers/{customer_id}",
            "The customer is not valid or the customers API could not be reached.",
        )
        customer = body.get("data")
        if not customer:
            raise SagaStepError("Customer not found.", 404)
        return customer

    async def _create_order(self, client: httpx.AsyncClient, req: PlaceOrderRequest) -> dict:
        body = await self._call(
            client,
            "POST",
            f"{self.orders_url}/orders",
            "Failed to create the order.",
            json={
                "customer_id": req.customer_id,
                "items": [item.model_dump() for item in req.items],
            },
        )
        return _data(body, "Failed to create the order.")

    async def _confirm_order(
        self, client: httpx.AsyncClient, order_id: int, idempotency_key: str
    ) -> dict:
        body = await self._call(
            client,
            "POST",
            f"{self.orders_url}/orders/{order_id}/confirm",
            "Failed to confirm the order.",
            headers={"X-Idempotency-Key": idempotency_key},
        )
        return _data(body, "Failed to confirm the order.")

    async def _publish_saga_event(
        self,
        event_type: str,
        correlation_id: str | None,
        saga_log: list[dict],
    ) -> None:
        """Saga のイベントを Redis に発行する。"""
        await self.publisher.publish(
            event_type,
            {"correlation_id": correlation_id, "saga_log": saga_log},
        )
