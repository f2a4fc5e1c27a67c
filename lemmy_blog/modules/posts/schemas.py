from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional, Union


# 作者信息（创建时从会话令牌中记录）
class AuthorInfo(BaseModel):
    username: str
    instance: str
    lemmy_user_id: Optional[int] = None


# 帖子存储模型
class Post(BaseModel):
    """
    存储中的帖子记录，以 slug 为键

    word_count / read_time / content_preview 由 content 派生，
    published 始终等于 not draft
    """
    slug: str
    title: str
    description: str = ""
    content: str
    content_preview: str = ""
    tags: List[str] = Field(default_factory=list)
    author: str
    author_info: Optional[AuthorInfo] = None
    date: Optional[str] = None
    word_count: int = 0
    read_time: int = 0
    draft: bool = False
    published: bool = True
    featured: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


# 帖子创建模型
class PostCreate(BaseModel):
    """
    创建帖子时的请求体

    title 和 content 在服务层校验，缺失时返回 400 而不是 422
    """
    title: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None
    tags: Union[List[str], str, None] = None
    is_draft: bool = Field(False, alias="isDraft")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Hello World",
                "content": "# Hello\n\nMy first post.",
                "description": "A short introduction",
                "tags": ["intro", "lemmy"],
                "isDraft": False
            }
        }
    )


# 帖子部分更新模型
class PostUpdate(BaseModel):
    """
    更新帖子的请求体，只应用请求中出现的字段

    expected_updated_at: 可选的乐观并发令牌，与存储中的 updated_at 不一致时返回 409
    """
    title: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None
    tags: Union[List[str], str, None] = None
    is_draft: Optional[bool] = Field(None, alias="isDraft")
    expected_updated_at: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class PostFilters(BaseModel):
    """列表过滤条件，多个条件之间为 AND 关系"""
    search: Optional[str] = None
    tag: Optional[str] = None
    author: Optional[str] = None


class Pagination(BaseModel):
    current_page: int
    per_page: int
    total_posts: int
    total_pages: int
    has_next: bool
    has_prev: bool


class ListMeta(BaseModel):
    total_stored_posts: int
    storage_type: str


class PostListResponse(BaseModel):
    posts: List[Post]
    pagination: Pagination
    filters: PostFilters
    meta: ListMeta


class PostCreated(BaseModel):
    slug: str
    title: str
    author: str
    status: str
    created_at: str
    storage_type: str
    mirrored: bool = False
    url: Optional[str] = None


class PostLinks(BaseModel):
    api_url: str
    web_url: str
    edit_url: str
    storage_type: str


class PostDetailResponse(BaseModel):
    post: Post
    meta: PostLinks


class PostUpdated(BaseModel):
    slug: str
    title: str
    updated_at: str
    storage_type: str


class PostDeleted(BaseModel):
    slug: str
    deleted_at: str


class AuthorStats(BaseModel):
    total_posts: int
    published_posts: int
    draft_posts: int
    total_words: int
    avg_read_time: float
    most_used_tags: List[str]
    latest_post_date: Optional[str] = None


class AuthorPostsResponse(BaseModel):
    posts: List[Post]
    stats: AuthorStats


class StorageInfo(BaseModel):
    storage_type: str
    persistent: bool
    details: Dict[str, str] = Field(default_factory=dict)
