"""
Service Common - Redis Pub/Sub イベント発行

コミット済みの状態遷移を他サービスへ通知する。
通知はベストエフォート: Redis が落ちていてもログに残すだけで、
すでに確定した処理結果は変えない。
REDIS_URL が空なら発行しない。
"""

import json
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class EventPublisher:
    def __init__(self, redis: aioredis.Redis | None, channel: str) -> None:
        self.redis = redis
        self.channel = channel

    @classmethod
    def from_url(cls, url: str, channel: str) -> "EventPublisher":
        redis = aioredis.from_url(url, decode_responses=True) if url else None
        return cls(redis, channel)

    async def publish(self, event_type: str, data: dict) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.publish(
                self.channel,
                json.dumps({"event_type": event_type, "data": data}, default=str),
            )
        except RedisError:
            logger.exception("Failed to publish %s on %s", event_type, self.channel)

    async def aclose(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
