"""
Service Common - コネクションプール

各サービスはプロセス単位で 1 つの Database を持つ（Database per Service）。
起動時 (lifespan) に生成し、リクエストごとに session() でセッションを借り、
どの経路で抜けても async with によって必ずプールへ返却される。

SQLite (開発・テスト用) は SELECT ... FOR UPDATE を持たないため、
トランザクション開始時に BEGIN IMMEDIATE を発行して書き込みロックを先取りする。
行ロックよりも粒度は粗いが、書き込みトランザクションは同じように直列化される。
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import MetaData, event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker


class Database:
    """非同期エンジン (コネクションプール) とセッションファクトリの入れ物"""

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo)
        if self.engine.dialect.name == "sqlite":
            _begin_immediate(self.engine)
        self._session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """1 操作分のセッションを貸し出す。"""
        async with self._session_factory() as session:
            yield session

    async def create_all(self, metadata: MetaData) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def ping(self) -> bool:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


def _begin_immediate(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # ドライバ側の暗黙 BEGIN を止め、下の begin フックで発行する
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
