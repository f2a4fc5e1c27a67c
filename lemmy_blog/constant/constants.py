"""
应用常量定义

只定义真正需要复用的常量，避免过度设计
"""

from fastapi import status

# HTTP 状态码常量
class StatusCode:
    """HTTP状态码常量"""
    BAD_REQUEST = status.HTTP_400_BAD_REQUEST
    UNAUTHORIZED = status.HTTP_401_UNAUTHORIZED
    FORBIDDEN = status.HTTP_403_FORBIDDEN
    NOT_FOUND = status.HTTP_404_NOT_FOUND
    CONFLICT = status.HTTP_409_CONFLICT
    INTERNAL_SERVER_ERROR = status.HTTP_500_INTERNAL_SERVER_ERROR

# 错误消息常量
class ErrorMessages:
    """错误消息常量"""

    # 认证相关
    AUTHENTICATION_FAILED = "认证错误"
    MISSING_CREDENTIALS = "未提供认证凭据"
    INVALID_AUTH_SCHEME = "认证方案必须是Bearer"
    INVALID_TOKEN = "无效的认证凭据"
    TOKEN_EXPIRED = "认证凭据已过期"
    INVALID_TOKEN_TYPE = "令牌类型无效，API访问需要使用访问令牌"
    INVALID_LEMMY_CREDENTIALS = "Lemmy 用户名或密码不正确"
    LEMMY_INSTANCE_UNREACHABLE = "无法连接到指定的 Lemmy 实例"

    # 权限相关
    ONLY_AUTHOR_CAN_EDIT = "只有作者可以编辑该帖子"
    ONLY_AUTHOR_CAN_DELETE = "只有作者可以删除该帖子"

    # 资源相关
    POST_NOT_FOUND = "帖子不存在"
    POST_MODIFIED = "帖子已被其他请求修改，请刷新后重试"

    # 验证相关
    VALIDATION_ERROR = "数据验证失败"
    TITLE_AND_CONTENT_REQUIRED = "标题和内容不能为空"
    LOGIN_FIELDS_REQUIRED = "缺少必填字段: instance, username, password"

    # 系统相关
    STORAGE_ERROR = "存储后端操作失败"
    INTERNAL_ERROR = "服务器内部错误"

# 帖子存储类型标识（随列表响应返回）
class StorageType:
    MEMORY = "in_memory_temporary"
    REDIS = "redis_persistent"
    GITHUB = "github_repository"

__all__ = [
    "ErrorMessages",
    "StatusCode",
    "StorageType",
]
