"""ChatRelay Media -- 外部协作方抽象层

Object Store（本地 / Cloudinary）与 Video Source（yt-dlp）的公开接口导出。
"""

from .cloudinary_store import CloudinaryObjectStore

# 配置
from .config import MediaConfig, load_media_config
from .local_store import LocalObjectStore

# 数据模型
from .models import StoredObject, VideoFormat, VideoMetadata, VideoStream
from .protocols import ObjectStore, VideoSource
from .streams import iter_bytes, limit_stream
from .ytdlp_source import YtDlpVideoSource, choose_format


def create_object_store(config: MediaConfig) -> ObjectStore:
    """按配置创建 Object Store"""
    if config.object_store == "cloudinary":
        return CloudinaryObjectStore(
            cloud_name=config.cloudinary_cloud_name,
            api_key=config.cloudinary_api_key.get_secret_value(),
            api_secret=config.cloudinary_api_secret.get_secret_value(),
            folder=config.cloudinary_folder,
            timeout_s=config.timeout_s,
        )
    return LocalObjectStore(config.media_dir, config.public_base_url)


def create_video_source(config: MediaConfig) -> VideoSource:
    """创建 Video Source"""
    return YtDlpVideoSource(timeout_s=config.timeout_s)


__all__ = [
    "StoredObject",
    "VideoFormat",
    "VideoMetadata",
    "VideoStream",
    "ObjectStore",
    "VideoSource",
    "LocalObjectStore",
    "CloudinaryObjectStore",
    "YtDlpVideoSource",
    "choose_format",
    "limit_stream",
    "iter_bytes",
    "MediaConfig",
    "load_media_config",
    "create_object_store",
    "create_video_source",
]
