"""ChatRelay Core Store -- MessageStore 后端实现

提供工厂函数按配置创建 MessageStore 实例。
"""

from ..config import StoreConfig
from .memory_store import MemoryMessageStore
from .paging import clamp_limit
from .pool import SqlitePool
from .protocols import MessageStore
from .sqlite_init import init_db
from .sqlite_store import SqliteMessageStore


async def create_message_store(config: StoreConfig) -> MessageStore:
    """按配置创建 MessageStore

    Args:
        config: Store 配置（backend 决定具体实现）

    Returns:
        已初始化的 MessageStore 实例
    """
    if config.backend == "memory":
        return MemoryMessageStore(
            default_limit=config.list_default_limit,
            max_limit=config.list_max_limit,
        )

    pool = SqlitePool(
        config.db_path,
        max_size=config.pool_size,
        acquire_timeout_s=config.acquire_timeout_s,
        connect_timeout_s=config.connect_timeout_s,
        idle_timeout_s=config.idle_timeout_s,
    )
    await pool.open()
    return SqliteMessageStore(
        pool,
        default_limit=config.list_default_limit,
        max_limit=config.list_max_limit,
    )


__all__ = [
    "MessageStore",
    "MemoryMessageStore",
    "SqliteMessageStore",
    "SqlitePool",
    "clamp_limit",
    "create_message_store",
    "init_db",
]
