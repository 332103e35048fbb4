"""集成测试共享 fixture -- 真实 lifespan：SQLite Store + 本地 Object Store"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


@pytest.fixture
def integration_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """集成测试环境变量"""
    monkeypatch.setenv("CHATRELAY_STORE_BACKEND", "sqlite")
    monkeypatch.setenv("CHATRELAY_DB_PATH", str(tmp_path / "sqlite" / "chatrelay.db"))
    monkeypatch.setenv("CHATRELAY_OBJECT_STORE", "local")
    monkeypatch.setenv("CHATRELAY_MEDIA_DIR", str(tmp_path / "media"))
    monkeypatch.setenv("CHATRELAY_PUBLIC_BASE_URL", "http://test")
    monkeypatch.setenv("CHATRELAY_UPLOAD_MAX_BYTES", "4096")
    monkeypatch.delenv("CHATRELAY_ADMIN_KEY", raising=False)
    return tmp_path


@pytest_asyncio.fixture
async def integration_app(integration_env: Path):
    """集成测试用 FastAPI app（执行完整 lifespan）"""
    from chatrelay.gateway.main import create_app

    app = create_app()
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
