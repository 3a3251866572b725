"""
Orders Service - 冪等性コーディネーター

キーごとの状態遷移:

    (なし) ──insert──▶ processing ──complete──▶ completed (終端)

  1. completed なら保存済みの (status_code, body) をそのまま返す。操作は再実行しない。
  2. processing なら同じキーの処理が実行中 → 409。
  3. なければ processing で INSERT する。1 の検索と 3 の INSERT はアトミックではないので、
     key の一意制約が本当の排他になる。INSERT 競合に負けたら 2 と同じく 409。
  4. 操作を実行し、結果 (業務エラーも含む) を completed として保存してから返す。
     業務エラーも有効な「完了結果」であり、リトライでは失敗がそのまま再生される。

操作は (status_code, body) を明示的に返す関数としてモデル化する。
レスポンスを横取りして中身を覗く必要はない。
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from service_common.db import Database

from .errors import IdempotencyConflict
from .tables import idempotency_keys

logger = logging.getLogger(__name__)

PROCESSING = "processing"
COMPLETED = "completed"


@dataclass(frozen=True)
class OperationResult:
    status_code: int
    body: dict


Operation = Callable[[int], Awaitable[OperationResult]]


class IdempotencyCoordinator:
    def __init__(self, database: Database) -> None:
        self.database = database

    async def run(
        self,
        key: str,
        target_type: str,
        target_id: int,
        operation: Operation,
    ) -> OperationResult:
        """key について operation を高々 1 回だけ実行する。"""
        record = await self.find(key)
        if record is not None:
            if record.status == COMPLETED:
                logger.info("Replaying stored response for key %s", key, extra={"idempotency_key": key})
                return OperationResult(record.response_status, json.loads(record.response_body))
            raise IdempotencyConflict(key)

        await self.begin(key, target_type, target_id)
        try:
            result = await operation(target_id)
        except Exception:
            # 結果を返せなかった操作はキーを解放し、リトライで再実行できるようにする
            await self.release(key)
            raise
        try:
            return await self.complete(key, result)
        except Exception:
            # 操作はコミット済み。キーは processing のまま残り、手動で直すまで 409 を返す
            logger.error(
                "Operation for key %s committed but its result was not stored; "
                "key stays processing and needs manual repair",
                key,
                exc_info=True,
                extra={"idempotency_key": key, "target_type": target_type, "target_id": target_id},
            )
            raise

    async def find(self, key: str):
        async with self.database.session() as session:
            async with session.begin():
                result = await session.execute(
                    select(idempotency_keys).where(idempotency_keys.c.key == key)
                )
                return result.fetchone()

    async def begin(self, key: str, target_type: str, target_id: int) -> None:
        now = datetime.now(timezone.utc)
        try:
            async with self.database.session() as session:
                async with session.begin():
                    await session.execute(
                        insert(idempotency_keys).values(
                            key=key,
                            target_type=target_type,
                            target_id=target_id,
                            status=PROCESSING,
                            created_at=now,
                            updated_at=now,
                        )
                    )
        except IntegrityError as e:
            # find() と INSERT の間に別リクエストが同じキーを入れた
            raise IdempotencyConflict(key) from e

    async def complete(self, key: str, result: OperationResult) -> OperationResult:
        """結果を保存し、保存したのと同じ内容を返す (初回と再生でバイト単位で一致させる)。"""
        encoded = json.dumps(result.body, default=str)
        async with self.database.session() as session:
            async with session.begin():
                await session.execute(
                    update(idempotency_keys)
                    .where(idempotency_keys.c.key == key)
                    .where(idempotency_keys.c.status == PROCESSING)
                    .values(
                        status=COMPLETED,
                        response_status=result.status_code,
                        response_body=encoded,
                        updated_at=datetime.now(timezone.utc),
                    )
                )
        return OperationResult(result.status_code, json.loads(encoded))

    async def release(self, key: str) -> None:
        async with self.database.session() as session:
            async with session.begin():
                await session.execute(
                    delete(idempotency_keys)
                    .where(idempotency_keys.c.key == key)
                    .where(idempotency_keys.c.status == PROCESSING)
                )
