"""
Customers Service - 設定
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    database_url: str
    internal_service_token: str
    log_level: str = "INFO"
    create_schema: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///./customers.db"),
            internal_service_token=os.environ.get("INTERNAL_SERVICE_TOKEN", ""),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            create_schema=os.environ.get("CREATE_SCHEMA", "true").lower() in ("1", "true", "yes"),
        )
