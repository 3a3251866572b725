"""
Orders Service - 設定

環境変数から読み込む。lifespan の中で from_env() を呼ぶので、
テストは起動前に環境変数を差し替えればよい。
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    database_url: str
    redis_url: str
    customers_api_url: str
    internal_service_token: str
    http_timeout: float = 5.0
    cancel_window_minutes: int = 10
    log_level: str = "INFO"
    create_schema: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///./orders.db"),
            redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379"),
            customers_api_url=os.environ.get("CUSTOMERS_API_URL", "http://localhost:3001"),
            internal_service_token=os.environ.get("INTERNAL_SERVICE_TOKEN", ""),
            http_timeout=float(os.environ.get("HTTP_TIMEOUT_SECONDS", "5.0")),
            cancel_window_minutes=int(os.environ.get("CANCEL_WINDOW_MINUTES", "10")),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            create_schema=os.environ.get("CREATE_SCHEMA", "true").lower() in ("1", "true", "yes"),
        )
