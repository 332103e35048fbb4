"""跨域访问测试

测试内容：
1. 预检请求（OPTIONS）返回允许的方法与 Origin
2. 普通请求附带 access-control-allow-origin，并暴露 X-Request-ID
3. CHATRELAY_CORS_ORIGINS 限定来源
"""

import pytest
from chatrelay.gateway.main import create_app, init_app_state
from httpx import ASGITransport, AsyncClient

EXTENSION_ORIGIN = "chrome-extension://abc"


class TestCors:
    """默认允许任意来源"""

    async def test_preflight(self, client: AsyncClient):
        resp = await client.options(
            "/messages",
            headers={
                "Origin": EXTENSION_ORIGIN,
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "POST" in resp.headers["access-control-allow-methods"]

    async def test_simple_request_headers(self, client: AsyncClient):
        resp = await client.get("/messages", headers={"Origin": EXTENSION_ORIGIN})
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "X-Request-ID" in resp.headers["access-control-expose-headers"]

    async def test_error_response_has_cors_headers(self, client: AsyncClient):
        resp = await client.delete("/messages/missing", headers={"Origin": EXTENSION_ORIGIN})
        assert resp.status_code == 404
        assert resp.headers["access-control-allow-origin"] == "*"


class TestConfiguredOrigins:
    """配置了来源列表时只放行列表内的 Origin"""

    @pytest.fixture
    def restricted_app(self, monkeypatch, store, object_store, video_source, media_config):
        monkeypatch.setenv("CHATRELAY_CORS_ORIGINS", EXTENSION_ORIGIN)
        application = create_app()
        init_app_state(application, store, object_store, video_source, media_config=media_config)
        return application

    async def test_allowed_and_rejected_origins(self, restricted_app):
        async with AsyncClient(
            transport=ASGITransport(app=restricted_app),
            base_url="http://test",
        ) as ac:
            allowed = await ac.options(
                "/messages",
                headers={"Origin": EXTENSION_ORIGIN, "Access-Control-Request-Method": "GET"},
            )
            rejected = await ac.options(
                "/messages",
                headers={"Origin": "https://evil.test", "Access-Control-Request-Method": "GET"},
            )

        assert allowed.status_code == 200
        assert allowed.headers["access-control-allow-origin"] == EXTENSION_ORIGIN
        assert rejected.status_code == 400
        assert "access-control-allow-origin" not in rejected.headers
