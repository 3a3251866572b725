"""
Service Common - サービス間認証

内部サービス同士は静的な共有シークレットを Bearer トークンとして送る。
ヘッダーが無ければ 401、トークンが一致しなければ 403。
"""

import secrets

from fastapi import Header, Request

from .errors import Forbidden, Unauthorized


def bearer_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def check_service_token(authorization: str | None, expected: str) -> None:
    if not authorization:
        raise Unauthorized()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token or not expected:
        raise Forbidden()
    if not secrets.compare_digest(token.encode(), expected.encode()):
        raise Forbidden()


async def verify_service_token(
    request: Request,
    authorization: str | None = Header(default=None),
) -> None:
    """FastAPI 依存関数。期待値は app.state.settings から読む。"""
    check_service_token(authorization, request.app.state.settings.internal_service_token)
