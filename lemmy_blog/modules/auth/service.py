import logging
from typing import Any, Callable, Dict, Optional

from lemmy_blog.constant.constants import ErrorMessages
from lemmy_blog.core.config import settings
from lemmy_blog.core.exceptions import AuthenticationError, ValidationError
from lemmy_blog.core.security import (
    SessionIdentity,
    create_refresh_token,
    create_session_token,
)
from lemmy_blog.infrastructure.external.lemmy_client import LemmyClient, instance_base_url
from lemmy_blog.infrastructure.utils.common import get_current_time
from lemmy_blog.modules.auth.schemas import (
    LemmyProfile,
    LemmyStats,
    LoginRequest,
    LoginResponse,
    SessionInfo,
    SessionInfoResponse,
    SessionUser,
)

logger = logging.getLogger(__name__)

SESSION_PERMISSIONS = ["read_posts", "write_posts", "delete_own_posts"]

LemmyClientFactory = Callable[[str], LemmyClient]


def normalize_instance(instance: str) -> str:
    """去掉协议和结尾斜杠，统一为小写域名"""
    value = instance.strip().lower()
    if "://" in value:
        value = value.split("://", 1)[1]
    return value.rstrip("/")


def build_profile(username: str, instance: str, details: Dict[str, Any]) -> LemmyProfile:
    """从 Lemmy 的 person_view 构建用户资料"""
    person_view = details.get("person_view") or {}
    person = person_view.get("person") or {}
    counts = person_view.get("counts") or {}
    return LemmyProfile(
        username=username,
        instance=instance,
        lemmy_user_id=person.get("id"),
        display_name=person.get("display_name") or username,
        bio=person.get("bio") or "",
        avatar=person.get("avatar"),
        banner=person.get("banner"),
        cake_day=person.get("published"),
        stats=LemmyStats(
            post_count=counts.get("post_count") or 0,
            comment_count=counts.get("comment_count") or 0,
            post_score=counts.get("post_score"),
            comment_score=counts.get("comment_score"),
        ),
        profile_url=f"{instance_base_url(instance)}/u/{username}",
    )


class AuthService:
    """用 Lemmy 账号登录并签发本服务的会话令牌"""

    def __init__(self, client_factory: Optional[LemmyClientFactory] = None):
        self._client_factory = client_factory or LemmyClient

    async def login(self, login_data: LoginRequest) -> LoginResponse:
        if not login_data.instance or not login_data.username or not login_data.password:
            raise ValidationError(ErrorMessages.LOGIN_FIELDS_REQUIRED)

        instance = normalize_instance(login_data.instance)
        username = login_data.username.strip()

        async with self._client_factory(instance_base_url(instance)) as client:
            lemmy_jwt = await client.login(username, login_data.password)
            if not lemmy_jwt:
                raise AuthenticationError(ErrorMessages.INVALID_LEMMY_CREDENTIALS)
            details = await client.get_person(username, lemmy_jwt)

        profile = build_profile(username, instance, details)
        access_token, expires_at = create_session_token(
            username=username,
            instance=instance,
            lemmy_user_id=profile.lemmy_user_id,
        )
        refresh_token = create_refresh_token(username=username, instance=instance)
        logger.info(f"用户登录成功: {username}@{instance}")

        return LoginResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="Bearer",
            expires_in=settings.security.ACCESS_TOKEN_EXPIRE_HOURS * 3600,
            expires_at=expires_at,
            user=profile,
        )

    async def me(self, identity: SessionIdentity) -> SessionInfoResponse:
        """返回令牌中的身份、权限和剩余有效期，不访问 Lemmy"""
        now = int(get_current_time().timestamp())
        return SessionInfoResponse(
            user=SessionUser(
                username=identity.username,
                instance=identity.instance,
                lemmy_user_id=identity.lemmy_user_id,
                token_expires=identity.exp,
                authenticated_since=identity.iat,
            ),
            permissions=list(SESSION_PERMISSIONS),
            session_info=SessionInfo(
                expires_at=identity.expires_at,
                time_remaining=max(0, identity.exp - now),
            ),
        )
