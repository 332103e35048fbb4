"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、Store 后端选择、连接池参数、消息字段长度上限、
inline 媒体大小上限、列表分页上限等可配置项。
"""

import os
from pathlib import Path
from typing import Literal

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("CHATRELAY_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "CHATRELAY_DB_PATH",
        str(_get_base_dir() / "sqlite" / "chatrelay.db"),
    )


def get_media_dir() -> Path:
    """获取本地媒体文件存储目录（local Object Store 使用）"""
    return Path(
        os.environ.get(
            "CHATRELAY_MEDIA_DIR",
            str(_get_base_dir() / "media"),
        )
    )


def get_admin_key() -> str | None:
    """获取批量删除的管理密钥，未配置时返回 None（不校验）"""
    return os.environ.get("CHATRELAY_ADMIN_KEY") or None


def get_cors_origins() -> list[str]:
    """获取允许跨域访问的 Origin 列表（逗号分隔），默认 ["*"]"""
    raw = os.environ.get("CHATRELAY_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]


# 消息字段长度上限（字符数，超出部分截断而非拒绝）
USERNAME_MAX_CHARS: int = 50
TEXT_MAX_CHARS: int = 5000
DEVICE_MAX_CHARS: int = 200
SOURCE_URL_MAX_CHARS: int = 2048
SOURCE_TITLE_MAX_CHARS: int = 300

# 日志中消息预览截断长度
MESSAGE_PREVIEW_LENGTH: int = 30


def _int_from_env(name: str, default: int) -> int:
    """读取正整数环境变量，非法值记录告警并回退默认值"""
    val = os.environ.get(name)
    if not val:
        return default
    try:
        parsed = int(val)
    except ValueError:
        parsed = 0
    if parsed <= 0:
        log.warning("invalid_int_config", env_var=name, value=val, fallback=default)
        return default
    return parsed


def _float_from_env(name: str, default: float) -> float:
    """读取正数浮点环境变量，非法值记录告警并回退默认值"""
    val = os.environ.get(name)
    if not val:
        return default
    try:
        parsed = float(val)
    except ValueError:
        parsed = 0.0
    if not parsed > 0:
        log.warning("invalid_float_config", env_var=name, value=val, fallback=default)
        return default
    return parsed


class IngestLimits(BaseModel):
    """消息入库策略 -- 字段上限 + inline 媒体大小上限"""

    username_max_chars: int = Field(default=USERNAME_MAX_CHARS, ge=1)
    text_max_chars: int = Field(default=TEXT_MAX_CHARS, ge=1)
    device_max_chars: int = Field(default=DEVICE_MAX_CHARS, ge=1)
    source_url_max_chars: int = Field(default=SOURCE_URL_MAX_CHARS, ge=1)
    source_title_max_chars: int = Field(default=SOURCE_TITLE_MAX_CHARS, ge=1)
    inline_media_max_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1,
        description="inline 媒体解码后的最大字节数",
    )


class StoreConfig(BaseModel):
    """Record Store 配置 -- 从环境变量加载

    环境变量:
        CHATRELAY_STORE_BACKEND: 存储后端（sqlite/memory）
        CHATRELAY_DB_PATH: SQLite 数据库路径
        CHATRELAY_STORE_POOL_SIZE: 连接池最大连接数（默认 20）
        CHATRELAY_STORE_ACQUIRE_TIMEOUT_S: 获取连接等待上限（秒，默认 5）
        CHATRELAY_STORE_CONNECT_TIMEOUT_S: 建立连接超时（秒，默认 5）
        CHATRELAY_STORE_IDLE_TIMEOUT_S: 空闲连接回收时间（秒，默认 300）
        CHATRELAY_LIST_DEFAULT_LIMIT / CHATRELAY_LIST_MAX_LIMIT: 列表分页默认值与上限
    """

    backend: Literal["sqlite", "memory"] = Field(default="sqlite", description="存储后端")
    db_path: str = Field(default_factory=get_db_path, description="SQLite 数据库路径")
    pool_size: int = Field(default=20, ge=1, description="连接池最大连接数")
    acquire_timeout_s: float = Field(default=5.0, gt=0, description="获取连接等待上限")
    connect_timeout_s: float = Field(default=5.0, gt=0, description="建立连接超时")
    idle_timeout_s: float = Field(default=300.0, gt=0, description="空闲连接回收时间")
    list_default_limit: int = Field(default=50, ge=1, description="列表默认条数")
    list_max_limit: int = Field(default=500, ge=1, description="列表条数上限")


def load_ingest_limits() -> IngestLimits:
    """从环境变量加载入库策略（仅 inline 媒体上限可配置）"""
    return IngestLimits(
        inline_media_max_bytes=_int_from_env(
            "CHATRELAY_INLINE_MEDIA_MAX_BYTES", 10 * 1024 * 1024
        ),
    )


def load_store_config() -> StoreConfig:
    """从环境变量加载 Store 配置

    非法的数值配置不阻塞启动，回退为默认值。
    """
    kwargs: dict = {}

    if val := os.environ.get("CHATRELAY_STORE_BACKEND"):
        if val in ("sqlite", "memory"):
            kwargs["backend"] = val
        else:
            log.warning(
                "invalid_store_backend_config",
                env_var="CHATRELAY_STORE_BACKEND",
                value=val,
                fallback="sqlite",
            )

    kwargs["pool_size"] = _int_from_env("CHATRELAY_STORE_POOL_SIZE", 20)
    kwargs["acquire_timeout_s"] = _float_from_env("CHATRELAY_STORE_ACQUIRE_TIMEOUT_S", 5.0)
    kwargs["connect_timeout_s"] = _float_from_env("CHATRELAY_STORE_CONNECT_TIMEOUT_S", 5.0)
    kwargs["idle_timeout_s"] = _float_from_env("CHATRELAY_STORE_IDLE_TIMEOUT_S", 300.0)
    kwargs["list_default_limit"] = _int_from_env("CHATRELAY_LIST_DEFAULT_LIMIT", 50)
    kwargs["list_max_limit"] = _int_from_env("CHATRELAY_LIST_MAX_LIMIT", 500)

    return StoreConfig(**kwargs)
