from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from jose import jwt, JWTError # type: ignore
from jose.exceptions import ExpiredSignatureError  # type: ignore

from lemmy_blog.constant.constants import ErrorMessages
from lemmy_blog.core.config import settings
from lemmy_blog.core.exceptions import AuthenticationError
from lemmy_blog.infrastructure.utils.common import get_current_time

REFRESH_TOKEN_TYPE = "refresh"


@dataclass(frozen=True)
class SessionIdentity:
    """从会话令牌中解析出的 Lemmy 身份"""
    username: str
    instance: str
    exp: int
    iat: Optional[int] = None
    lemmy_user_id: Optional[int] = None

    @property
    def handle(self) -> str:
        """作者标识，格式为 username@instance"""
        return f"{self.username}@{self.instance}"

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, tz=timezone.utc)


def _encode(claims: Dict[str, Any], expires_delta: timedelta) -> Tuple[str, datetime]:
    now = get_current_time()
    expire = now + expires_delta
    to_encode = dict(claims)
    to_encode["iat"] = int(now.timestamp())
    to_encode["exp"] = int(expire.timestamp())
    encoded_jwt = jwt.encode(
        to_encode,
        settings.security.SECRET_KEY,
        algorithm=settings.security.ALGORITHM
    )
    return encoded_jwt, expire


def create_session_token(
    username: str,
    instance: str,
    lemmy_user_id: Optional[int] = None,
    expires_delta: timedelta | None = None
) -> Tuple[str, datetime]:
    """
    创建会话访问令牌

    Args:
        username: Lemmy 用户名
        instance: Lemmy 实例域名
        lemmy_user_id: Lemmy 用户ID
        expires_delta: 过期时间增量，如果未提供则使用默认配置

    Returns:
        (JWT令牌, 过期时间)
    """
    if expires_delta is None:
        expires_delta = timedelta(hours=settings.security.ACCESS_TOKEN_EXPIRE_HOURS)
    claims: Dict[str, Any] = {
        "username": username,
        "instance": instance,
        "lemmyUserId": lemmy_user_id,
    }
    return _encode(claims, expires_delta)


def create_refresh_token(
    username: str,
    instance: str,
    expires_delta: timedelta | None = None
) -> str:
    """创建刷新令牌（不能用于 API 访问）"""
    if expires_delta is None:
        expires_delta = timedelta(days=settings.security.REFRESH_TOKEN_EXPIRE_DAYS)
    token, _ = _encode(
        {"username": username, "instance": instance, "type": REFRESH_TOKEN_TYPE},
        expires_delta
    )
    return token


def verify_token(token: str) -> Tuple[bool, Optional[Dict[str, Any]], Optional[str]]:
    """
    验证JWT令牌

    Args:
        token: JWT令牌

    Returns:
        (是否有效, 解码后的payload或None, 错误类型或None)
    """
    try:
        payload = jwt.decode(
            token,
            settings.security.SECRET_KEY,
            algorithms=[settings.security.ALGORITHM],
        )
        return True, payload, None
    except ExpiredSignatureError:
        return False, None, "expired"
    except JWTError:
        return False, None, "invalid"


def verify_session_header(auth_header: Optional[str]) -> SessionIdentity:
    """
    校验 Authorization 头并提取调用者身份

    不访问 Lemmy，只信任本服务签发的、未过期的令牌

    Raises:
        AuthenticationError: 头缺失、不是 Bearer 格式、签名无效、已过期或缺少身份字段
    """
    if not auth_header:
        raise AuthenticationError(ErrorMessages.MISSING_CREDENTIALS)

    parts = auth_header.split()
    if len(parts) != 2:
        raise AuthenticationError(ErrorMessages.INVALID_TOKEN)
    scheme, token = parts
    if scheme.lower() != "bearer":
        raise AuthenticationError(ErrorMessages.INVALID_AUTH_SCHEME)

    is_valid, payload, error_type = verify_token(token)
    if not is_valid:
        if error_type == "expired":
            raise AuthenticationError(ErrorMessages.TOKEN_EXPIRED)
        raise AuthenticationError(ErrorMessages.INVALID_TOKEN)

    if payload.get("type") == REFRESH_TOKEN_TYPE:
        raise AuthenticationError(ErrorMessages.INVALID_TOKEN_TYPE)

    username = payload.get("username")
    instance = payload.get("instance")
    exp = payload.get("exp")
    if not username or not instance or exp is None:
        raise AuthenticationError(ErrorMessages.INVALID_TOKEN)

    return SessionIdentity(
        username=str(username),
        instance=str(instance),
        exp=int(exp),
        iat=payload.get("iat"),
        lemmy_user_id=payload.get("lemmyUserId"),
    )
