"""Store Protocol 接口定义

定义 MessageStore 的抽象接口，使用 Python Protocol 实现结构化子类型（duck typing）。
内存、SQLite 等后端实现同一接口，可互相替换。
"""

from datetime import datetime
from typing import Protocol

from ..models.message import Message, PendingMessage


class MessageStore(Protocol):
    """Message 存储接口

    - 记录创建后不可修改，只能按 ID 删除或批量清空
    - 后端故障统一抛出 StoreUnavailableError，写入不会部分生效
    """

    async def append(self, pending: PendingMessage) -> Message:
        """写入一条消息，分配 ID 并返回已持久化的记录"""
        ...

    async def list_recent(self, limit: int | None = None) -> list[Message]:
        """查询最近 limit 条消息，按 timestamp 升序返回（最旧在前）

        limit 缺省使用默认条数，超出上限时截断到上限，不报错。
        """
        ...

    async def delete_one(self, message_id: str) -> bool:
        """按 ID 删除，存在并删除返回 True，不存在返回 False"""
        ...

    async def delete_all(self) -> int:
        """清空所有消息，返回删除条数"""
        ...

    async def purge_older_than(self, cutoff: datetime) -> int:
        """删除 timestamp 早于 cutoff 的消息，返回删除条数（按需维护操作）"""
        ...

    async def count(self) -> int:
        """当前消息总数"""
        ...

    async def ping(self) -> None:
        """连通性检查，不可用时抛出 StoreUnavailableError"""
        ...

    async def close(self) -> None:
        """释放后端资源"""
        ...
