import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from fastapi import HTTPException
from fastapi.responses import JSONResponse

from lemmy_blog.constant.constants import ErrorMessages, StatusCode
from lemmy_blog.core.exceptions import (
    ApiError,
    ValidationError,
    AuthenticationError
)

logger = logging.getLogger(__name__)


def get_current_time() -> datetime:
    """获取当前UTC时间"""
    return datetime.now(timezone.utc)


def current_millis() -> int:
    """当前 Unix 毫秒时间戳"""
    return int(get_current_time().timestamp() * 1000)


def parse_iso_datetime(value: Any) -> Optional[datetime]:
    """
    解析 ISO-8601 时间字符串，无法解析时返回 None

    不带时区的时间按 UTC 处理，便于与带时区的时间比较
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def handle_error(
    error: Exception,
    custom_message: Optional[str] = None
) -> HTTPException:
    """
    统一错误处理

    将各种异常转换为HTTPException

    Args:
        error: 捕获的异常
        custom_message: 可选的自定义错误消息

    Returns:
        HTTPException: 转换后的HTTP异常，由调用方 raise
    """
    if isinstance(error, ApiError):
        if error.status_code >= 500:
            logger.error(f"错误发生: {str(error)}")
        else:
            logger.info(f"请求被拒绝 ({error.status_code}): {error.detail}")
        return error.to_http_exception()

    logger.exception(f"错误发生: {str(error)}")

    if isinstance(error, ValueError):
        detail = custom_message or str(error)
        return ValidationError(detail=detail).to_http_exception()

    # 对于其他未处理的错误，返回通用服务器错误
    return HTTPException(
        status_code=StatusCode.INTERNAL_SERVER_ERROR,
        detail=custom_message or ErrorMessages.INTERNAL_ERROR
    )


def create_exception_handlers() -> Dict[Any, Any]:
    """
    创建全局异常处理程序字典

    返回可以直接传递给FastAPI应用或路由的异常处理程序字典

    Returns:
        Dict[Any, Any]: 异常处理程序字典
    """

    async def api_error_handler(request, exc: ApiError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers
        )

    async def auth_error_handler(request, exc: AuthenticationError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers or {"WWW-Authenticate": "Bearer"}
        )

    return {
        ApiError: api_error_handler,
        AuthenticationError: auth_error_handler,
    }
