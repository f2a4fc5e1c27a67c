from typing import Annotated, Optional
from fastapi import Depends, Request

from lemmy_blog.core.security import SessionIdentity, verify_session_header


async def get_current_identity(request: Request) -> SessionIdentity:
    """
    从 Authorization 头中解析调用者身份

    令牌缺失或无效时抛出 AuthenticationError，由全局异常处理器返回 401
    """
    return verify_session_header(request.headers.get("Authorization"))


async def get_optional_identity(request: Request) -> Optional[SessionIdentity]:
    """
    可选认证

    没有 Authorization 头时返回 None；提供了但无效时仍然返回 401
    """
    header = request.headers.get("Authorization")
    if not header:
        return None
    return verify_session_header(header)


CurrentIdentity = Annotated[SessionIdentity, Depends(get_current_identity)]
OptionalIdentity = Annotated[Optional[SessionIdentity], Depends(get_optional_identity)]
