"""
异常处理模块

定义应用中所有自定义异常类
"""

from fastapi import HTTPException
from typing import Any, Dict, Optional

from lemmy_blog.constant.constants import ErrorMessages, StatusCode


class ApiError(Exception):
    """API错误的基类，包含标准化格式"""
    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.detail = detail
        self.headers = headers
        super().__init__(detail)

    def to_http_exception(self) -> HTTPException:
        """转换为FastAPI的HTTPException"""
        return HTTPException(
            status_code=self.status_code,
            detail=self.detail,
            headers=self.headers
        )


# 认证错误
class AuthenticationError(ApiError):
    """会话令牌缺失、格式错误、签名无效或已过期"""
    def __init__(
        self,
        detail: str = ErrorMessages.AUTHENTICATION_FAILED,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            status_code=StatusCode.UNAUTHORIZED,
            detail=detail,
            headers=headers or {"WWW-Authenticate": "Bearer"}
        )


class ForbiddenError(ApiError):
    """已认证但不是资源作者"""
    def __init__(self, detail: str = ErrorMessages.ONLY_AUTHOR_CAN_EDIT):
        super().__init__(
            status_code=StatusCode.FORBIDDEN,
            detail=detail
        )


class NotFoundError(ApiError):
    """
    资源不存在

    草稿对非作者同样表现为不存在，避免泄露草稿的存在
    """
    def __init__(self, detail: str = ErrorMessages.POST_NOT_FOUND):
        super().__init__(
            status_code=StatusCode.NOT_FOUND,
            detail=detail
        )


class ValidationError(ApiError):
    """数据验证错误"""
    def __init__(self, detail: str = ErrorMessages.VALIDATION_ERROR):
        super().__init__(
            status_code=StatusCode.BAD_REQUEST,
            detail=detail
        )


class ConflictError(ApiError):
    """乐观并发检查失败：帖子在读取之后已被修改"""
    def __init__(self, detail: str = ErrorMessages.POST_MODIFIED):
        super().__init__(
            status_code=StatusCode.CONFLICT,
            detail=detail
        )


class StorageBackendError(ApiError):
    """存储后端（网络、序列化）失败，不做自动重试"""
    def __init__(self, detail: str = ErrorMessages.STORAGE_ERROR):
        super().__init__(
            status_code=StatusCode.INTERNAL_SERVER_ERROR,
            detail=detail
        )


class LemmyUnavailableError(ApiError):
    """无法连接 Lemmy 实例"""
    def __init__(self, detail: str = ErrorMessages.LEMMY_INSTANCE_UNREACHABLE):
        super().__init__(
            status_code=StatusCode.BAD_REQUEST,
            detail=detail
        )
