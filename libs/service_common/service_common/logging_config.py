"""
Service Common - ログ設定

全サービス共通の構造化ログ (1 行 1 JSON)。
logger.info("...", extra={"correlation_id": ...}) のように渡した追加フィールドは
context にまとめて出力される。
"""

import json
import logging
from datetime import datetime, timezone

HANDLER_NAME = "service_common"

_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Structured JSON logs for ELK/Grafana Loki"""

    def __init__(self, service: str) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "service": self.service,
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        context = {k: v for k, v in vars(record).items() if k not in _RESERVED}
        if context:
            log_record["context"] = context
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def configure_logging(service: str, level: str | int = logging.INFO) -> None:
    """ルートロガーに JSON ハンドラを 1 つだけ取り付ける (再設定しても重複しない)。"""
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        if handler.get_name() == HANDLER_NAME:
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(JSONFormatter(service))
    root.addHandler(handler)
