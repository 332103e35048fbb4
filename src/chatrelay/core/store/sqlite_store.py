"""MessageStore SQLite 实现

每次操作从连接池借出连接，单条写入在一个事务内提交，失败回滚。
timestamp 以 epoch 毫秒整数存储，对外统一还原为 UTC datetime。
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

import aiosqlite

from ..exceptions import StoreUnavailableError
from ..models.message import (
    Message,
    PendingMessage,
    from_epoch_ms,
    new_message_id,
    to_epoch_ms,
)
from .paging import clamp_limit
from .pool import SqlitePool


class SqliteMessageStore:
    """MessageStore 的 SQLite 实现"""

    def __init__(
        self,
        pool: SqlitePool,
        default_limit: int = 50,
        max_limit: int = 500,
    ) -> None:
        self._pool = pool
        self._default_limit = default_limit
        self._max_limit = max_limit

    @asynccontextmanager
    async def _conn(self) -> AsyncIterator[aiosqlite.Connection]:
        """借出连接，并把 aiosqlite 异常转换为 StoreUnavailableError"""
        try:
            async with self._pool.connection() as conn:
                yield conn
        except (aiosqlite.Error, ValueError) as e:
            # aiosqlite 在连接已关闭时抛出 ValueError
            raise StoreUnavailableError(f"store operation failed: {e}") from e

    async def append(self, pending: PendingMessage) -> Message:
        """写入一条消息（单事务，失败回滚）"""
        message = Message(id=new_message_id(), **pending.model_dump())
        async with self._conn() as conn:
            try:
                await conn.execute(
                    """
                    INSERT INTO messages (message_id, username, text, media, media_kind,
                                          device, source_url, source_title,
                                          timestamp_ms, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        message.id,
                        message.username,
                        message.text,
                        message.media,
                        message.media_kind.value,
                        message.device,
                        message.source_url,
                        message.source_title,
                        to_epoch_ms(message.timestamp),
                        message.created_at.isoformat(),
                    ),
                )
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise
        return message

    async def list_recent(self, limit: int | None = None) -> list[Message]:
        """最近 limit 条：倒序取 N 条后反转，最旧在前"""
        n = clamp_limit(limit, self._default_limit, self._max_limit)
        async with self._conn() as conn:
            cursor = await conn.execute(
                "SELECT * FROM messages ORDER BY timestamp_ms DESC, seq DESC LIMIT ?",
                (n,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_message(row) for row in reversed(rows)]

    async def delete_one(self, message_id: str) -> bool:
        """按 ID 删除"""
        async with self._conn() as conn:
            cursor = await conn.execute(
                "DELETE FROM messages WHERE message_id = ?",
                (message_id,),
            )
            await conn.commit()
            return cursor.rowcount > 0

    async def delete_all(self) -> int:
        """清空所有消息"""
        async with self._conn() as conn:
            cursor = await conn.execute("DELETE FROM messages")
            await conn.commit()
            return cursor.rowcount

    async def purge_older_than(self, cutoff: datetime) -> int:
        """删除 timestamp 早于 cutoff 的消息"""
        async with self._conn() as conn:
            cursor = await conn.execute(
                "DELETE FROM messages WHERE timestamp_ms < ?",
                (to_epoch_ms(cutoff),),
            )
            await conn.commit()
            return cursor.rowcount

    async def count(self) -> int:
        async with self._conn() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM messages")
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def ping(self) -> None:
        async with self._conn() as conn:
            cursor = await conn.execute("SELECT 1")
            await cursor.fetchone()

    async def close(self) -> None:
        await self._pool.close()

    @staticmethod
    def _row_to_message(row: aiosqlite.Row) -> Message:
        """将数据库行转换为 Message 模型"""
        return Message(
            id=row["message_id"],
            username=row["username"],
            text=row["text"],
            media=row["media"],
            media_kind=row["media_kind"],
            device=row["device"],
            source_url=row["source_url"],
            source_title=row["source_title"],
            timestamp=from_epoch_ms(row["timestamp_ms"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
