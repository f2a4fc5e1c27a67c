from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional


class LoginRequest(BaseModel):
    """
    Lemmy 登录请求

    字段在服务层校验，缺失时返回 400
    """
    instance: Optional[str] = Field(None, description="Lemmy 实例域名，例如 lemmy.ml")
    username: Optional[str] = Field(None, description="用户名或邮箱")
    password: Optional[str] = Field(None, description="密码")


class LemmyStats(BaseModel):
    post_count: int = 0
    comment_count: int = 0
    post_score: Optional[int] = None
    comment_score: Optional[int] = None


# Lemmy 用户资料
class LemmyProfile(BaseModel):
    username: str
    instance: str
    lemmy_user_id: Optional[int] = None
    display_name: str
    bio: str = ""
    avatar: Optional[str] = None
    banner: Optional[str] = None
    cake_day: Optional[str] = None
    stats: LemmyStats = Field(default_factory=LemmyStats)
    profile_url: str


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    expires_at: datetime
    user: LemmyProfile


class SessionUser(BaseModel):
    username: str
    instance: str
    lemmy_user_id: Optional[int] = None
    token_expires: int
    authenticated_since: Optional[int] = None


class SessionInfo(BaseModel):
    expires_at: datetime
    time_remaining: int


class SessionInfoResponse(BaseModel):
    user: SessionUser
    permissions: List[str]
    session_info: SessionInfo
