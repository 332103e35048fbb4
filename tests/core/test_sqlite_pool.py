"""SqlitePool 单元测试

测试内容：
1. 连接复用与归还
2. 连接池耗尽时在超时后抛出 StoreUnavailableError
3. 出错的连接不再复用，空闲过期连接被回收
4. WAL 模式与表结构初始化
"""

import asyncio
from pathlib import Path

import pytest
from chatrelay.core.exceptions import StoreUnavailableError
from chatrelay.core.store import SqlitePool
from chatrelay.core.store.sqlite_init import verify_wal_mode


class TestPool:
    """连接池行为"""

    async def test_open_creates_schema_with_wal(self, sqlite_pool: SqlitePool):
        async with sqlite_pool.connection() as conn:
            assert await verify_wal_mode(conn) is True
            cursor = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='messages'"
            )
            assert await cursor.fetchone() is not None

    async def test_open_creates_parent_dir(self, tmp_path: Path):
        db_path = tmp_path / "nested" / "dir" / "x.db"
        pool = SqlitePool(str(db_path))
        await pool.open()
        assert db_path.exists()
        await pool.close()

    async def test_connection_reused(self, sqlite_pool: SqlitePool):
        async with sqlite_pool.connection() as first:
            assert sqlite_pool.in_use == 1
        assert sqlite_pool.in_use == 0
        assert sqlite_pool.idle_count == 1

        async with sqlite_pool.connection() as second:
            assert second is first

    async def test_exhausted_pool_times_out(self, tmp_path: Path):
        pool = SqlitePool(str(tmp_path / "x.db"), max_size=1, acquire_timeout_s=0.1)
        await pool.open()
        async with pool.connection():
            with pytest.raises(StoreUnavailableError):
                async with pool.connection():
                    pass
        # 归还后可再次借出
        async with pool.connection():
            pass
        await pool.close()

    async def test_waiter_served_after_release(self, tmp_path: Path):
        pool = SqlitePool(str(tmp_path / "x.db"), max_size=1, acquire_timeout_s=2.0)
        await pool.open()
        released = asyncio.Event()

        async def holder():
            async with pool.connection():
                await asyncio.sleep(0.05)
            released.set()

        async def waiter():
            async with pool.connection():
                return released.is_set()

        results = await asyncio.gather(holder(), waiter())
        assert results[1] is True
        await pool.close()

    async def test_failed_connection_discarded(self, sqlite_pool: SqlitePool):
        with pytest.raises(RuntimeError):
            async with sqlite_pool.connection():
                raise RuntimeError("boom")
        assert sqlite_pool.idle_count == 0
        assert sqlite_pool.in_use == 0

    async def test_stale_idle_connection_replaced(self, tmp_path: Path):
        pool = SqlitePool(str(tmp_path / "x.db"), idle_timeout_s=-1.0)
        await pool.open()
        async with pool.connection() as first:
            pass
        async with pool.connection() as second:
            assert second is not first
        await pool.close()

    async def test_closed_pool_rejects(self, sqlite_pool: SqlitePool):
        await sqlite_pool.close()
        assert sqlite_pool.closed is True
        assert sqlite_pool.idle_count == 0
        with pytest.raises(StoreUnavailableError):
            async with sqlite_pool.connection():
                pass

    async def test_unreachable_path(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("not a dir")
        pool = SqlitePool(str(blocker / "x.db"))
        with pytest.raises(StoreUnavailableError):
            await pool.open()
