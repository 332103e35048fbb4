"""端到端集成测试

测试内容：
1. 消息创建 -> 查询 -> 删除，经过真实 SQLite Store
2. 文件上传到本地 Object Store，并通过 /media 取回
3. 进程重启后消息仍在
4. 健康检查反映真实协作方状态
"""

from pathlib import Path

from chatrelay.core.store import SqliteMessageStore
from httpx import ASGITransport, AsyncClient


class TestMessageLifecycle:
    """消息完整生命周期"""

    async def test_create_list_delete(self, client: AsyncClient):
        for ts, text in [(100, "one"), (300, "three"), (200, "two")]:
            resp = await client.post(
                "/messages",
                json={"username": "alice", "text": text, "timestamp": ts},
            )
            assert resp.status_code == 201

        resp = await client.get("/messages", params={"limit": 2})
        assert [m["text"] for m in resp.json()] == ["two", "three"]

        target = resp.json()[0]["id"]
        assert (await client.delete(f"/messages/{target}")).status_code == 200
        assert (await client.delete(f"/messages/{target}")).status_code == 404

        resp = await client.get("/messages")
        assert [m["text"] for m in resp.json()] == ["one", "three"]

        resp = await client.delete("/messages")
        assert resp.json()["deletedCount"] == 2

    async def test_lifespan_wires_sqlite_store(self, integration_app):
        assert isinstance(integration_app.state.message_store, SqliteMessageStore)


class TestUploadRoundTrip:
    """上传 + 静态文件访问"""

    async def test_upload_then_fetch(self, client: AsyncClient, integration_env: Path):
        resp = await client.post(
            "/upload",
            files={"file": ("hello.txt", b"hello media", "text/plain")},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["url"].startswith("http://test/media/")
        assert body["size"] == len(b"hello media")

        path = body["url"].removeprefix("http://test")
        fetched = await client.get(path)
        assert fetched.status_code == 200
        assert fetched.content == b"hello media"
        assert len(list((integration_env / "media").iterdir())) == 1

    async def test_upload_too_large_leaves_nothing(self, client: AsyncClient, integration_env: Path):
        resp = await client.post(
            "/upload",
            files={"file": ("big.bin", b"x" * 5000, "application/octet-stream")},
        )
        assert resp.status_code == 400
        media_dir = integration_env / "media"
        assert not media_dir.exists() or list(media_dir.iterdir()) == []

    async def test_uploaded_url_as_message_media(self, client: AsyncClient):
        url = (
            await client.post("/upload", files={"file": ("a.png", b"png", "image/png")})
        ).json()["url"]
        resp = await client.post("/messages", json={"username": "alice", "media": url})
        assert resp.status_code == 201
        assert resp.json()["message"]["mediaKind"] == "url"


class TestDurability:
    """重启后数据完整"""

    async def test_messages_survive_restart(self, integration_env: Path):
        from chatrelay.gateway.main import create_app

        app1 = create_app()
        async with app1.router.lifespan_context(app1):
            async with AsyncClient(
                transport=ASGITransport(app=app1),
                base_url="http://test",
            ) as c1:
                resp = await c1.post(
                    "/messages",
                    json={"username": "alice", "text": "durable", "timestamp": 42},
                )
                message_id = resp.json()["message"]["id"]

        app2 = create_app()
        async with app2.router.lifespan_context(app2):
            async with AsyncClient(
                transport=ASGITransport(app=app2),
                base_url="http://test",
            ) as c2:
                messages = (await c2.get("/messages")).json()

        assert [(m["id"], m["text"], m["timestamp"]) for m in messages] == [
            (message_id, "durable", 42)
        ]


class TestHealthIntegration:
    """健康检查"""

    async def test_health_and_ready(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["checks"]["store"] == "ok"
        assert resp.json()["checks"]["object_store"] == "ok"
        assert (await client.get("/ready")).status_code == 200
