"""依赖注入模块 -- 通过 FastAPI Depends 注入服务实例

Store / Object Store / Video Source 等实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

import hmac

from chatrelay.core.store import MessageStore
from chatrelay.media import MediaConfig, ObjectStore, VideoSource
from fastapi import Request

from .services.message_service import MessageService
from .services.video_intake import VideoIntake


class AdminKeyGuard:
    """批量删除授权判定 -- 静态共享密钥

    未配置密钥时放行所有请求；配置后比对 adminKey 查询参数或 X-Admin-Key 请求头。
    仅用于防误操作，不构成安全边界。
    """

    def __init__(self, admin_key: str | None = None) -> None:
        self._admin_key = admin_key

    @property
    def enabled(self) -> bool:
        return bool(self._admin_key)

    def __call__(self, request: Request) -> bool:
        if not self._admin_key:
            return True
        supplied = request.query_params.get("adminKey") or request.headers.get("X-Admin-Key")
        if not supplied:
            return False
        return hmac.compare_digest(supplied.encode(), self._admin_key.encode())


def get_message_store(request: Request) -> MessageStore:
    """从 app.state 获取 MessageStore 实例"""
    return request.app.state.message_store


def get_message_service(request: Request) -> MessageService:
    """从 app.state 获取 MessageService 实例"""
    return request.app.state.message_service


def get_object_store(request: Request) -> ObjectStore:
    """从 app.state 获取 Object Store 实例"""
    return request.app.state.object_store


def get_video_source(request: Request) -> VideoSource:
    """从 app.state 获取 Video Source 实例"""
    return request.app.state.video_source


def get_video_intake(request: Request) -> VideoIntake:
    """从 app.state 获取 VideoIntake 实例"""
    return request.app.state.video_intake


def get_clear_guard(request: Request) -> AdminKeyGuard:
    """从 app.state 获取批量删除授权判定"""
    return request.app.state.clear_guard


def get_media_config(request: Request) -> MediaConfig:
    """从 app.state 获取 Media 配置"""
    return request.app.state.media_config
