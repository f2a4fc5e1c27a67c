from fastapi import APIRouter, Depends
from typing import Annotated

from lemmy_blog.api.v1.dependencies import CurrentIdentity, get_auth_service
from lemmy_blog.infrastructure.utils.common import handle_error
from lemmy_blog.modules.auth.schemas import LoginRequest, LoginResponse, SessionInfoResponse
from lemmy_blog.modules.auth.service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> LoginResponse:
    """
    使用 Lemmy 账号登录，获取访问令牌和刷新令牌

    - **instance**: Lemmy 实例域名
    - **username**: 用户名或邮箱
    - **password**: 密码
    """
    try:
        return await auth_service.login(login_data)
    except Exception as e:
        raise handle_error(e)


@router.get("/me", response_model=SessionInfoResponse)
async def read_session(
    identity: CurrentIdentity,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> SessionInfoResponse:
    """当前会话的用户信息、权限和剩余有效期"""
    try:
        return await auth_service.me(identity)
    except Exception as e:
        raise handle_error(e)
