"""MessageStore 内存实现

进程生命周期内有效，asyncio.Lock 保护内部列表。
适用于开发和测试环境。
"""

import asyncio
from datetime import datetime

from ..exceptions import StoreUnavailableError
from ..models.message import (
    Message,
    PendingMessage,
    from_epoch_ms,
    new_message_id,
    to_epoch_ms,
)
from .paging import clamp_limit


class MemoryMessageStore:
    """MessageStore 的内存实现"""

    def __init__(self, default_limit: int = 50, max_limit: int = 500) -> None:
        self._lock = asyncio.Lock()
        # (seq, message)，seq 为写入顺序，用于 timestamp 相同时的稳定排序
        self._records: list[tuple[int, Message]] = []
        self._seq = 0
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._closed = False

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreUnavailableError("memory store is closed")

    async def append(self, pending: PendingMessage) -> Message:
        """写入一条消息"""
        async with self._lock:
            self._ensure_open()
            message = Message(id=new_message_id(), **pending.model_dump())
            self._seq += 1
            self._records.append((self._seq, message))
            return message

    async def list_recent(self, limit: int | None = None) -> list[Message]:
        """最近 limit 条，最旧在前"""
        n = clamp_limit(limit, self._default_limit, self._max_limit)
        async with self._lock:
            self._ensure_open()
            ordered = sorted(self._records, key=lambda r: (r[1].timestamp, r[0]))
        return [m for _, m in ordered[-n:]]

    async def delete_one(self, message_id: str) -> bool:
        """按 ID 删除"""
        async with self._lock:
            self._ensure_open()
            for i, (_, message) in enumerate(self._records):
                if message.id == message_id:
                    del self._records[i]
                    return True
            return False

    async def delete_all(self) -> int:
        """清空所有消息"""
        async with self._lock:
            self._ensure_open()
            deleted = len(self._records)
            self._records = []
            return deleted

    async def purge_older_than(self, cutoff: datetime) -> int:
        """删除 timestamp 早于 cutoff 的消息"""
        # 存储精度为毫秒，cutoff 向下取整后比较
        cutoff = from_epoch_ms(to_epoch_ms(cutoff))
        async with self._lock:
            self._ensure_open()
            kept = [r for r in self._records if r[1].timestamp >= cutoff]
            deleted = len(self._records) - len(kept)
            self._records = kept
            return deleted

    async def count(self) -> int:
        async with self._lock:
            self._ensure_open()
            return len(self._records)

    async def ping(self) -> None:
        self._ensure_open()

    async def close(self) -> None:
        self._closed = True
