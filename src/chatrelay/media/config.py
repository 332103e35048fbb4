"""MediaConfig -- Object Store / Video Source 配置加载

从环境变量加载配置，凭据使用 SecretStr 保存。
"""

import os
from typing import Literal

import structlog
from chatrelay.core.config import get_media_dir
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()

DEFAULT_VIDEO_HOSTS: tuple[str, ...] = ("youtube.com", "youtu.be")


class MediaConfig(BaseModel):
    """Media 包配置 -- 从环境变量加载

    环境变量:
        CHATRELAY_OBJECT_STORE: Object Store 模式（local/cloudinary）
        CHATRELAY_MEDIA_DIR: local 模式文件目录
        CHATRELAY_PUBLIC_BASE_URL: local 模式对外访问地址前缀
        CLOUDINARY_CLOUD_NAME / CLOUDINARY_API_KEY / CLOUDINARY_API_SECRET: Cloudinary 凭据
        CLOUDINARY_FOLDER: Cloudinary 目录（默认 chatroom_videos）
        CHATRELAY_UPLOAD_MAX_BYTES: 单次上传上限（默认 100 MiB）
        CHATRELAY_VIDEO_HOSTS: 允许的视频站点（逗号分隔）
        CHATRELAY_VIDEO_INTAKE_TIMEOUT_S: 远程视频转存整体超时（秒，默认 120）
    """

    object_store: Literal["local", "cloudinary"] = Field(
        default="local",
        description="Object Store 模式：local / cloudinary",
    )
    media_dir: str = Field(
        default_factory=lambda: str(get_media_dir()),
        description="local 模式文件目录",
    )
    public_base_url: str = Field(
        default="http://localhost:3000",
        description="local 模式对外访问地址前缀",
    )
    cloudinary_cloud_name: str = Field(default="", description="Cloudinary cloud name")
    cloudinary_api_key: SecretStr = Field(default=SecretStr(""), description="Cloudinary API key")
    cloudinary_api_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Cloudinary API secret",
    )
    cloudinary_folder: str = Field(default="chatroom_videos", description="Cloudinary 目录")
    upload_max_bytes: int = Field(
        default=100 * 1024 * 1024,
        ge=1,
        description="单次上传上限（字节）",
    )
    video_hosts: tuple[str, ...] = Field(
        default=DEFAULT_VIDEO_HOSTS,
        description="允许的视频站点域名（含子域名）",
    )
    video_intake_timeout_s: float = Field(
        default=120.0,
        gt=0,
        description="远程视频转存整体超时（秒）",
    )
    timeout_s: float = Field(default=30.0, gt=0, description="单次 HTTP 请求超时（秒）")


def load_media_config() -> MediaConfig:
    """从环境变量加载 Media 配置

    非法的数值配置不阻塞启动，使用默认值。

    Returns:
        MediaConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("CHATRELAY_OBJECT_STORE"):
        if val in ("local", "cloudinary"):
            kwargs["object_store"] = val
        else:
            log.warning(
                "invalid_object_store_config",
                env_var="CHATRELAY_OBJECT_STORE",
                value=val,
                fallback="local",
            )

    if val := os.environ.get("CHATRELAY_MEDIA_DIR"):
        kwargs["media_dir"] = val

    if val := os.environ.get("CHATRELAY_PUBLIC_BASE_URL"):
        kwargs["public_base_url"] = val.rstrip("/")

    if val := os.environ.get("CLOUDINARY_CLOUD_NAME"):
        kwargs["cloudinary_cloud_name"] = val

    if val := os.environ.get("CLOUDINARY_API_KEY"):
        kwargs["cloudinary_api_key"] = SecretStr(val)

    if val := os.environ.get("CLOUDINARY_API_SECRET"):
        kwargs["cloudinary_api_secret"] = SecretStr(val)

    if val := os.environ.get("CLOUDINARY_FOLDER"):
        kwargs["cloudinary_folder"] = val

    if val := os.environ.get("CHATRELAY_VIDEO_HOSTS"):
        hosts = tuple(h.strip().lower() for h in val.split(",") if h.strip())
        if hosts:
            kwargs["video_hosts"] = hosts

    if val := os.environ.get("CHATRELAY_UPLOAD_MAX_BYTES"):
        try:
            kwargs["upload_max_bytes"] = int(val)
            if kwargs["upload_max_bytes"] <= 0:
                raise ValueError(val)
        except ValueError:
            kwargs.pop("upload_max_bytes", None)
            log.warning(
                "invalid_upload_limit_config",
                env_var="CHATRELAY_UPLOAD_MAX_BYTES",
                value=val,
                fallback=100 * 1024 * 1024,
            )

    if val := os.environ.get("CHATRELAY_VIDEO_INTAKE_TIMEOUT_S"):
        try:
            kwargs["video_intake_timeout_s"] = float(val)
            if not kwargs["video_intake_timeout_s"] > 0:
                raise ValueError(val)
        except ValueError:
            kwargs.pop("video_intake_timeout_s", None)
            log.warning(
                "invalid_timeout_config",
                env_var="CHATRELAY_VIDEO_INTAKE_TIMEOUT_S",
                value=val,
                fallback=120,
            )

    return MediaConfig(**kwargs)
