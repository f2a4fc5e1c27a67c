from fastapi import Request

from lemmy_blog.modules.auth.service import AuthService
from lemmy_blog.modules.posts.service import PostService


def get_post_service(request: Request) -> PostService:
    """返回启动时创建并绑定到 app.state 的帖子服务"""
    return request.app.state.post_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service
