"""日志配置 -- structlog 渲染 + 可选 Logfire APM

CHATRELAY_LOG_FORMAT: dev（默认，控制台可读输出）/ json（每行一个 JSON 对象）
CHATRELAY_LOG_LEVEL: 标准 logging 级别名，默认 INFO
LOGFIRE_SEND_TO_LOGFIRE: true 时启用 Logfire（需安装 apm 扩展）

请求级日志由 LoggingMiddleware 输出，uvicorn access log 降到 WARNING。
"""

import logging
import os
from typing import Literal

import structlog
from fastapi import FastAPI
from pydantic import BaseModel, Field

_LOG_FORMATS = ("dev", "json")
_QUIET_LOGGERS = ("uvicorn.access",)


class LogConfig(BaseModel):
    """日志配置"""

    log_format: Literal["dev", "json"] = Field(default="dev", description="渲染模式")
    level: str = Field(default="INFO", description="root logger 级别")
    send_to_logfire: bool = Field(default=False, description="是否启用 Logfire APM")

    @property
    def level_no(self) -> int:
        return logging.getLevelName(self.level)


def load_log_config() -> LogConfig:
    """从环境变量加载日志配置，非法值记录告警并回退默认值"""
    warn = structlog.get_logger().warning
    kwargs: dict = {}

    log_format = os.environ.get("CHATRELAY_LOG_FORMAT", "dev").strip().lower()
    if log_format in _LOG_FORMATS:
        kwargs["log_format"] = log_format
    else:
        warn("invalid_log_config", key="CHATRELAY_LOG_FORMAT", value=log_format, fallback="dev")

    level = os.environ.get("CHATRELAY_LOG_LEVEL", "INFO").strip().upper()
    if isinstance(logging.getLevelName(level), int):
        kwargs["level"] = level
    else:
        warn("invalid_log_config", key="CHATRELAY_LOG_LEVEL", value=level, fallback="INFO")

    kwargs["send_to_logfire"] = (
        os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").strip().lower() == "true"
    )
    return LogConfig(**kwargs)


def setup_logging(config: LogConfig | None = None) -> LogConfig:
    """初始化 structlog，并让标准库 logging（uvicorn 等）走同一渲染器"""
    config = config or load_log_config()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if config.log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(config.level_no)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, config.level_no))

    return config


def setup_logfire(app: FastAPI, config: LogConfig) -> None:
    """启用 Logfire 并接入 FastAPI；初始化失败时只保留本地日志"""
    if not config.send_to_logfire:
        return
    try:
        import logfire

        logfire.configure()
        logfire.instrument_fastapi(app)
    except Exception as e:
        structlog.get_logger().warning("logfire_init_failed", error=str(e))
