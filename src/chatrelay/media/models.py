"""Media 数据模型

Object Store 上传结果与 Video Source 元数据/视频流的数据结构。
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass

from pydantic import BaseModel, Field


class StoredObject(BaseModel):
    """Object Store 上传结果"""

    url: str = Field(description="可公开访问的 URL")
    public_id: str = Field(default="", description="Object Store 内部标识")
    size: int = Field(default=0, description="上传字节数")
    resource_type: str = Field(default="auto", description="资源类型提示")


class VideoFormat(BaseModel):
    """Video Source 提供的一种编码"""

    format_id: str = Field(description="格式标识")
    url: str = Field(description="直链地址")
    ext: str = Field(default="mp4", description="文件扩展名")
    vcodec: str = Field(default="none", description="视频编码，none 表示无视频轨")
    acodec: str = Field(default="none", description="音频编码，none 表示无音频轨")
    height: int | None = Field(default=None, description="分辨率高度")
    filesize: int | None = Field(default=None, description="文件大小（已知时）")
    http_headers: dict[str, str] = Field(default_factory=dict, description="请求直链所需的头")

    @property
    def has_video(self) -> bool:
        return self.vcodec not in ("none", "")

    @property
    def has_audio(self) -> bool:
        return self.acodec not in ("none", "")

    @property
    def is_combined(self) -> bool:
        """音视频合一"""
        return self.has_video and self.has_audio


class VideoMetadata(BaseModel):
    """远程视频元数据"""

    title: str = Field(default="", description="视频标题")
    duration_s: float | None = Field(default=None, description="时长（秒）")
    webpage_url: str = Field(default="", description="规范化后的页面地址")
    formats: list[VideoFormat] = Field(default_factory=list, description="可用编码")


@dataclass
class VideoStream:
    """已打开的视频流"""

    content_type: str
    ext: str
    content_length: int | None
    chunks: AsyncIterator[bytes]
