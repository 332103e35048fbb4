"""异常 -> HTTP 响应映射

- 校验错误（含 FastAPI 请求体校验）: 400
- 资源不存在: 404
- 外部依赖失败（Store / Object Store / Video Source）: 500
响应体统一为 {"success": false, "error": {"code", "message", "field"}}
"""

import structlog
from chatrelay.core.exceptions import (
    ChatRelayError,
    CollaboratorError,
    MessageNotFoundError,
    MessageValidationError,
)
from chatrelay.core.models import ErrorCode
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

log = structlog.get_logger()


def error_response(
    status_code: int,
    code: str,
    message: str,
    field: str | None = None,
) -> JSONResponse:
    """构造统一格式的错误响应"""
    error: dict = {"code": code, "message": message}
    if field is not None:
        error["field"] = field
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
    )


def status_for(error: ChatRelayError) -> int:
    """异常类别对应的 HTTP 状态码"""
    if isinstance(error, MessageValidationError):
        return 400
    if isinstance(error, MessageNotFoundError):
        return 404
    return 500


async def _chatrelay_error_handler(request: Request, exc: ChatRelayError) -> JSONResponse:
    status_code = status_for(exc)
    if isinstance(exc, CollaboratorError):
        log.error("collaborator_error", code=exc.code.value, error=exc.message)
    return error_response(status_code, exc.code.value, exc.message, exc.field)


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
    return error_response(
        400,
        ErrorCode.VALIDATION_ERROR.value,
        first.get("msg", "invalid request"),
        ".".join(loc) or None,
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error(
        "unhandled_error",
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=exc,
    )
    return error_response(500, ErrorCode.INTERNAL.value, "internal server error")


def register_error_handlers(app: FastAPI) -> None:
    """注册异常处理器"""
    app.add_exception_handler(ChatRelayError, _chatrelay_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
