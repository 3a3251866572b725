"""
Service Common - エラー分類

ドメインエラーは種類ごとの例外クラスで表し、構造化されたフィールド
(code / product_id など) を持たせる。HTTP ステータスへの変換は
サービス境界の例外ハンドラだけが行う。メッセージ文字列を解析して
エラー種別を判定することはしない。

  ValidationFailed  400
  Unauthorized      401
  Forbidden         403
  NotFound          404
  Conflict          409
  (その他の例外)    500 INTERNAL_ERROR
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error."

    def __init__(self, message: str | None = None, **details) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_body(self) -> dict:
        body = {"status": "error", "code": self.code, "message": self.message}
        body.update(self.details)
        return body


class ValidationFailed(ServiceError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid input data."


class Unauthorized(ServiceError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Unauthorized: missing Authorization header."


class Forbidden(ServiceError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Access denied: invalid service token."


class NotFound(ServiceError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found."


class Conflict(ServiceError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Request conflicts with the current state."


def install_error_handlers(app: FastAPI) -> None:
    """ServiceError と入力検証エラーを共通のエラーエンベロープに変換する。"""

    @app.exception_handler(ServiceError)
    async def _service_error(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(exc.to_body(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        body = ValidationFailed().to_body()
        body["details"] = details
        return JSONResponse(body, status_code=400)

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(ServiceError().to_body(), status_code=500)
