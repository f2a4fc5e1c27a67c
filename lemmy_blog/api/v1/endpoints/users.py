from fastapi import APIRouter, Depends
from typing import Annotated

from lemmy_blog.api.v1.dependencies import CurrentIdentity, get_post_service
from lemmy_blog.infrastructure.utils.common import handle_error
from lemmy_blog.modules.posts.schemas import AuthorPostsResponse
from lemmy_blog.modules.posts.service import PostService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/posts", response_model=AuthorPostsResponse)
async def read_my_posts(
    identity: CurrentIdentity,
    service: Annotated[PostService, Depends(get_post_service)],
) -> AuthorPostsResponse:
    """当前用户的全部帖子（包括草稿）及统计"""
    try:
        return await service.list_author_posts(identity)
    except Exception as e:
        raise handle_error(e)
