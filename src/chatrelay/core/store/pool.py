"""SQLite 连接池 -- 有界并发 + 获取超时 + 空闲回收

- 最多 max_size 个连接同时在用，超出时等待至 acquire_timeout_s
- 等待超时、连接失败、池已关闭统一抛出 StoreUnavailableError，不无限排队
- 空闲超过 idle_timeout_s 的连接在下次取用时关闭
- 写入冲突交由 SQLite 自身的锁与 busy_timeout 处理，池本身不加额外锁
"""

import asyncio
import time
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite
import structlog

from ..exceptions import StoreUnavailableError
from .sqlite_init import init_db

log = structlog.get_logger()


class SqlitePool:
    """aiosqlite 连接池"""

    def __init__(
        self,
        db_path: str,
        *,
        max_size: int = 20,
        acquire_timeout_s: float = 5.0,
        connect_timeout_s: float = 5.0,
        idle_timeout_s: float = 300.0,
    ) -> None:
        self._db_path = db_path
        self._max_size = max_size
        self._acquire_timeout_s = acquire_timeout_s
        self._connect_timeout_s = connect_timeout_s
        self._idle_timeout_s = idle_timeout_s
        self._slots = asyncio.Semaphore(max_size)
        # (连接, 归还时刻)
        self._idle: deque[tuple[aiosqlite.Connection, float]] = deque()
        self._in_use = 0
        self._closed = False

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> None:
        """创建数据库目录并初始化表结构"""
        if self._db_path != ":memory:":
            try:
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StoreUnavailableError(
                    f"cannot create directory for {self._db_path}: {e}"
                ) from e
        async with self.connection() as conn:
            await init_db(conn)

    async def _connect(self) -> aiosqlite.Connection:
        try:
            async with asyncio.timeout(self._connect_timeout_s):
                conn = await aiosqlite.connect(self._db_path, timeout=self._connect_timeout_s)
        except (TimeoutError, aiosqlite.Error, OSError) as e:
            raise StoreUnavailableError(f"cannot connect to {self._db_path}: {e}") from e
        conn.row_factory = aiosqlite.Row
        return conn

    async def _checkout(self) -> aiosqlite.Connection:
        """优先复用空闲连接，过期的空闲连接直接关闭"""
        now = time.monotonic()
        while self._idle:
            conn, released_at = self._idle.popleft()
            if now - released_at <= self._idle_timeout_s:
                return conn
            await self._discard(conn)
            log.debug("sqlite_pool_idle_connection_closed", db_path=self._db_path)
        return await self._connect()

    async def _discard(self, conn: aiosqlite.Connection) -> None:
        try:
            await conn.close()
        except aiosqlite.Error as e:
            log.warning("sqlite_pool_close_failed", error=str(e))

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """借出一个连接，使用完毕自动归还

        Raises:
            StoreUnavailableError: 池已关闭、等待超时或无法建立连接
        """
        if self._closed:
            raise StoreUnavailableError("store connection pool is closed")

        try:
            async with asyncio.timeout(self._acquire_timeout_s):
                await self._slots.acquire()
        except TimeoutError as e:
            log.warning(
                "sqlite_pool_exhausted",
                max_size=self._max_size,
                timeout_s=self._acquire_timeout_s,
            )
            raise StoreUnavailableError(
                f"no store connection available within {self._acquire_timeout_s}s"
            ) from e

        self._in_use += 1
        conn: aiosqlite.Connection | None = None
        try:
            conn = await self._checkout()
            yield conn
        except BaseException:
            # 出错的连接不再复用
            if conn is not None:
                await self._discard(conn)
                conn = None
            raise
        finally:
            self._in_use -= 1
            if conn is not None:
                if self._closed:
                    await self._discard(conn)
                else:
                    self._idle.append((conn, time.monotonic()))
            self._slots.release()

    async def close(self) -> None:
        """关闭池：空闲连接立即关闭，在用连接归还时关闭"""
        self._closed = True
        while self._idle:
            conn, _ = self._idle.popleft()
            await self._discard(conn)
