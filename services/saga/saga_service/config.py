"""
Saga Service - 設定
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    customers_api_url: str
    orders_api_url: str
    internal_service_token: str
    redis_url: str
    http_timeout: float = 5.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            customers_api_url=os.environ.get("CUSTOMERS_API_URL", "http://localhost:3001"),
            orders_api_url=os.environ.get("ORDERS_API_URL", "http://localhost:3002"),
            internal_service_token=os.environ.get("INTERNAL_SERVICE_TOKEN", ""),
            redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379"),
            http_timeout=float(os.environ.get("HTTP_TIMEOUT_SECONDS", "5.0")),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )
