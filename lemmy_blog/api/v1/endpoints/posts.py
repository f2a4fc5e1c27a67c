from fastapi import APIRouter, Depends, Path, Query, status
from typing import Annotated, Optional

from lemmy_blog.api.v1.dependencies import (
    CurrentIdentity,
    OptionalIdentity,
    PaginationParams,
    get_pagination_params,
    get_post_service,
)
from lemmy_blog.infrastructure.utils.common import handle_error
from lemmy_blog.modules.posts.schemas import (
    PostCreate,
    PostCreated,
    PostDeleted,
    PostDetailResponse,
    PostFilters,
    PostListResponse,
    PostUpdate,
    PostUpdated,
)
from lemmy_blog.modules.posts.service import PostService

router = APIRouter(prefix="/posts", tags=["posts"])

PostServiceDep = Annotated[PostService, Depends(get_post_service)]
SlugPath = Annotated[str, Path(description="帖子 slug")]


@router.get("", response_model=PostListResponse)
async def list_posts(
    service: PostServiceDep,
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    search: Annotated[Optional[str], Query(description="搜索标题、描述或正文（不区分大小写）")] = None,
    tag: Annotated[Optional[str], Query(description="标签（精确匹配）")] = None,
    author: Annotated[Optional[str], Query(description="作者，格式 username@instance")] = None,
) -> PostListResponse:
    """
    获取已发布帖子列表

    - 草稿不会出现在列表中
    - featured 帖子排在前面，其余按创建时间倒序
    """
    try:
        return await service.list_posts(
            PostFilters(search=search, tag=tag, author=author),
            page=pagination.page,
            limit=pagination.limit,
        )
    except Exception as e:
        raise handle_error(e)


@router.post("", response_model=PostCreated, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    identity: CurrentIdentity,
    service: PostServiceDep,
) -> PostCreated:
    """
    创建新帖子

    需要登录；作者取自会话令牌
    """
    try:
        return await service.create(post_data, identity)
    except Exception as e:
        raise handle_error(e)


@router.get("/{slug}", response_model=PostDetailResponse)
async def get_post(
    slug: SlugPath,
    identity: OptionalIdentity,
    service: PostServiceDep,
) -> PostDetailResponse:
    """获取帖子详情，草稿只对作者可见"""
    try:
        return await service.get_by_slug(slug, identity)
    except Exception as e:
        raise handle_error(e)


@router.put("/{slug}", response_model=PostUpdated)
async def update_post(
    slug: SlugPath,
    post_data: PostUpdate,
    identity: CurrentIdentity,
    service: PostServiceDep,
) -> PostUpdated:
    """
    更新帖子（只有作者可以更新）

    只修改请求体中出现的字段；提供 expected_updated_at 时进行并发冲突检查
    """
    try:
        return await service.update(slug, post_data, identity)
    except Exception as e:
        raise handle_error(e)


@router.delete("/{slug}", response_model=PostDeleted)
async def delete_post(
    slug: SlugPath,
    identity: CurrentIdentity,
    service: PostServiceDep,
) -> PostDeleted:
    """删除帖子（只有作者可以删除）"""
    try:
        return await service.delete(slug, identity)
    except Exception as e:
        raise handle_error(e)
