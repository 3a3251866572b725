"""
Orders Service - 顧客サービスクライアント

注文作成の前に、顧客が存在するかを Customers Service に問い合わせる。
404 / 403 / 500 / 接続エラーなど、どんな失敗も「有効な顧客ではない」とみなす。
"""

import logging

import httpx

from service_common.auth import bearer_headers

logger = logging.getLogger(__name__)


class CustomerClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=bearer_headers(token),
            timeout=timeout,
            transport=transport,
        )

    async def get_customer(self, customer_id: int) -> dict | None:
        try:
            resp = await self._client.get(f"/customers/{customer_id}")
            resp.raise_for_status()
            return resp.json().get("data")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Customer %s could not be validated: %s",
                customer_id,
                e,
                extra={"customer_id": customer_id},
            )
            return None

    async def aclose(self) -> None:
        await self._client.aclose()
