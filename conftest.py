"""全局 pytest 配置 -- 临时 SQLite 数据库与 MessageStore fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from chatrelay.core.store import MemoryMessageStore, SqliteMessageStore, SqlitePool


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """所有测试使用临时数据目录，且不向 Logfire 发送数据"""
    monkeypatch.setenv("CHATRELAY_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "sqlite" / "test.db"


@pytest_asyncio.fixture
async def sqlite_pool(tmp_db_path: Path) -> AsyncGenerator[SqlitePool, None]:
    """提供已初始化的临时连接池"""
    pool = SqlitePool(str(tmp_db_path), max_size=4, acquire_timeout_s=1.0)
    await pool.open()
    yield pool
    await pool.close()


@pytest_asyncio.fixture
async def sqlite_store(sqlite_pool: SqlitePool) -> SqliteMessageStore:
    """SQLite MessageStore"""
    return SqliteMessageStore(sqlite_pool, default_limit=50, max_limit=500)


@pytest_asyncio.fixture
async def memory_store() -> MemoryMessageStore:
    """内存 MessageStore"""
    return MemoryMessageStore(default_limit=50, max_limit=500)


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def message_store(request, tmp_path: Path) -> AsyncGenerator:
    """两种后端参数化，验证行为一致"""
    if request.param == "memory":
        store = MemoryMessageStore(default_limit=50, max_limit=500)
        yield store
        await store.close()
        return

    pool = SqlitePool(str(tmp_path / "param.db"), max_size=4, acquire_timeout_s=1.0)
    await pool.open()
    store = SqliteMessageStore(pool, default_limit=50, max_limit=500)
    yield store
    await store.close()
