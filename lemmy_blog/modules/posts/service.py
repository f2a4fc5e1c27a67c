import logging
import math
from collections import Counter, OrderedDict
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from lemmy_blog.constant.constants import ErrorMessages
from lemmy_blog.core.config import settings
from lemmy_blog.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StorageBackendError,
    ValidationError,
)
from lemmy_blog.core.security import SessionIdentity
from lemmy_blog.infrastructure.external.github_mirror import GitHubMirror
from lemmy_blog.infrastructure.storage.base import PostStore
from lemmy_blog.infrastructure.utils.common import get_current_time, parse_iso_datetime
from lemmy_blog.modules.posts.derived import compute_derived, normalize_tags, unique_slug
from lemmy_blog.modules.posts.schemas import (
    AuthorInfo,
    AuthorPostsResponse,
    AuthorStats,
    ListMeta,
    Pagination,
    Post,
    PostCreate,
    PostCreated,
    PostDeleted,
    PostDetailResponse,
    PostFilters,
    PostLinks,
    PostListResponse,
    PostUpdate,
    PostUpdated,
)

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
RECENTLY_DELETED_LIMIT = 1000
WELCOME_SLUG = "welcome-to-community"
WELCOME_CONTENT = """# Welcome to Our Blog!

This is a blog platform where you can share your thoughts, tutorials, and insights.

## Getting Started

1. **Login** with your Lemmy account credentials
2. **Create a new post** and share your expertise
3. **Add relevant tags** so readers can find it

*Happy blogging!*"""


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _sort_key(post: Post) -> Tuple[int, datetime]:
    created = parse_iso_datetime(post.created_at) or parse_iso_datetime(post.date) or EPOCH
    return (1 if post.featured else 0, created)


class PostService:
    """
    帖子业务逻辑：创建、列表、详情、更新、删除

    存储后端通过构造函数注入，服务本身不关心具体后端。
    后端没有事务：更新和删除是"读取-检查-整体覆盖"，并发更新时后写入者生效，
    除非调用方提供 expected_updated_at 做乐观并发检查。
    """

    def __init__(self, store: PostStore, mirror: Optional[GitHubMirror] = None):
        self.store = store
        self.mirror = mirror
        # slug -> (author, deleted_at)，用于重复删除
        self._recently_deleted: "OrderedDict[str, Tuple[str, str]]" = OrderedDict()

    @property
    def storage_type(self) -> str:
        return self.store.storage_type

    # ========== 内部工具 ==========

    async def _load(self, slug: str) -> Post:
        record = await self.store.get(slug)
        if record is None:
            raise NotFoundError()
        try:
            return Post.model_validate(record)
        except PydanticValidationError as e:
            logger.error(f"帖子记录格式错误 (slug={slug}): {e}")
            raise StorageBackendError(f"无法解析存储记录: {slug}") from e

    async def _load_all(self) -> Tuple[List[Post], int]:
        """读取全部帖子，单条记录失败时记录日志并跳过"""
        keys = await self.store.list()
        posts: List[Post] = []
        for key in keys:
            try:
                record = await self.store.get(key)
                if record is None:
                    # list() 与 get() 之间被删除
                    continue
                posts.append(Post.model_validate(record))
            except (StorageBackendError, PydanticValidationError) as e:
                logger.error(f"读取帖子失败，已跳过 (key={key}): {e}")
        return posts, len(keys)

    def _links(self, slug: str) -> PostLinks:
        base = settings.SITE_URL.rstrip("/")
        return PostLinks(
            api_url=f"{base}/api/v1/posts/{slug}",
            web_url=f"{base}/posts/{slug}",
            edit_url=f"{base}/admin?edit={slug}",
            storage_type=self.storage_type,
        )

    # ========== 创建 ==========

    async def create(self, data: PostCreate, identity: SessionIdentity) -> PostCreated:
        if _is_blank(data.title) or _is_blank(data.content):
            raise ValidationError(ErrorMessages.TITLE_AND_CONTENT_REQUIRED)

        now = get_current_time()
        slug = unique_slug(data.title, now_ms=int(now.timestamp() * 1000))
        derived = compute_derived(data.content)
        timestamp = now.isoformat()

        post = Post(
            slug=slug,
            title=data.title,
            description=data.description or "",
            content=data.content,
            content_preview=derived.content_preview,
            tags=normalize_tags(data.tags),
            author=identity.handle,
            author_info=AuthorInfo(
                username=identity.username,
                instance=identity.instance,
                lemmy_user_id=identity.lemmy_user_id,
            ),
            date=now.date().isoformat(),
            word_count=derived.word_count,
            read_time=derived.read_time,
            draft=data.is_draft,
            published=not data.is_draft,
            created_at=timestamp,
            updated_at=timestamp,
        )
        await self.store.set(slug, post.model_dump())
        logger.info(f"帖子已创建 (slug={slug}, author={post.author}, draft={post.draft})")

        mirrored = False
        if self.mirror is not None:
            mirrored = await self.mirror.mirror_post(post)

        return PostCreated(
            slug=slug,
            title=post.title,
            author=post.author,
            status="draft" if post.draft else "published",
            created_at=timestamp,
            storage_type=self.storage_type,
            mirrored=mirrored,
            url=self._links(slug).web_url,
        )

    # ========== 列表 ==========

    async def list_posts(
        self,
        filters: PostFilters,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> PostListResponse:
        """
        公开帖子列表

        草稿永远不出现在列表中；过滤条件之间为 AND；
        featured 优先，其余按 created_at 倒序；limit 最大为配置值（默认 50）
        """
        max_limit = settings.posts.MAX_PAGE_SIZE
        if limit is None:
            limit = settings.posts.DEFAULT_PAGE_SIZE
        limit = max(1, min(limit, max_limit))
        page = max(1, page)

        posts, total_stored = await self._load_all()
        matched = [post for post in posts if not post.draft and self._matches(post, filters)]
        # 两次稳定排序：先按时间倒序，再把 featured 提到前面
        matched.sort(key=lambda p: _sort_key(p)[1], reverse=True)
        matched.sort(key=lambda p: _sort_key(p)[0], reverse=True)

        total = len(matched)
        start = (page - 1) * limit
        end = start + limit
        return PostListResponse(
            posts=matched[start:end],
            pagination=Pagination(
                current_page=page,
                per_page=limit,
                total_posts=total,
                total_pages=math.ceil(total / limit),
                has_next=end < total,
                has_prev=page > 1,
            ),
            filters=filters,
            meta=ListMeta(total_stored_posts=total_stored, storage_type=self.storage_type),
        )

    @staticmethod
    def _matches(post: Post, filters: PostFilters) -> bool:
        if filters.search:
            needle = filters.search.lower()
            haystacks = (post.title, post.description, post.content)
            if not any(needle in (text or "").lower() for text in haystacks):
                return False
        if filters.tag and filters.tag not in post.tags:
            return False
        if filters.author and post.author != filters.author:
            return False
        return True

    # ========== 详情 ==========

    async def get_by_slug(
        self,
        slug: str,
        identity: Optional[SessionIdentity] = None,
    ) -> PostDetailResponse:
        post = await self._load(slug)
        if post.draft and (identity is None or identity.handle != post.author):
            # 对非作者隐藏草稿的存在
            raise NotFoundError()
        return PostDetailResponse(post=post, meta=self._links(slug))

    # ========== 更新 ==========

    async def update(self, slug: str, patch: PostUpdate, identity: SessionIdentity) -> PostUpdated:
        post = await self._load(slug)
        if post.author != identity.handle:
            raise ForbiddenError(ErrorMessages.ONLY_AUTHOR_CAN_EDIT)

        if patch.expected_updated_at is not None and patch.expected_updated_at != post.updated_at:
            raise ConflictError()

        changes = patch.model_dump(
            exclude_unset=True,
            exclude_none=True,
            exclude={"expected_updated_at"},
        )
        for field in ("title", "content"):
            if field in changes and _is_blank(changes[field]):
                raise ValidationError(ErrorMessages.TITLE_AND_CONTENT_REQUIRED)

        updated = post.model_copy(deep=True)
        if "title" in changes:
            updated.title = changes["title"]
        if "description" in changes:
            updated.description = changes["description"]
        if "tags" in changes:
            updated.tags = normalize_tags(changes["tags"])
        if "content" in changes and changes["content"] != post.content:
            derived = compute_derived(changes["content"])
            updated.content = changes["content"]
            updated.word_count = derived.word_count
            updated.read_time = derived.read_time
            updated.content_preview = derived.content_preview
        if "is_draft" in changes:
            updated.draft = changes["is_draft"]
            updated.published = not changes["is_draft"]
        updated.updated_at = get_current_time().isoformat()

        await self.store.set(slug, updated.model_dump())
        logger.info(f"帖子已更新 (slug={slug}, fields={sorted(changes)})")

        return PostUpdated(
            slug=slug,
            title=updated.title,
            updated_at=updated.updated_at,
            storage_type=self.storage_type,
        )

    # ========== 删除 ==========

    async def delete(self, slug: str, identity: SessionIdentity) -> PostDeleted:
        """
        删除帖子

        同一作者重复删除刚删除的帖子视为成功；从未存在的 slug 返回 NotFoundError
        """
        try:
            post = await self._load(slug)
        except NotFoundError:
            previous = self._recently_deleted.get(slug)
            if previous is None:
                raise
            author, deleted_at = previous
            if author != identity.handle:
                raise ForbiddenError(ErrorMessages.ONLY_AUTHOR_CAN_DELETE)
            return PostDeleted(slug=slug, deleted_at=deleted_at)

        if post.author != identity.handle:
            raise ForbiddenError(ErrorMessages.ONLY_AUTHOR_CAN_DELETE)

        await self.store.delete(slug)
        deleted_at = get_current_time().isoformat()
        self._remember_deleted(slug, post.author, deleted_at)
        logger.info(f"帖子已删除 (slug={slug})")
        return PostDeleted(slug=slug, deleted_at=deleted_at)

    def _remember_deleted(self, slug: str, author: str, deleted_at: str) -> None:
        self._recently_deleted[slug] = (author, deleted_at)
        self._recently_deleted.move_to_end(slug)
        while len(self._recently_deleted) > RECENTLY_DELETED_LIMIT:
            self._recently_deleted.popitem(last=False)

    # ========== 作者自己的帖子 ==========

    async def list_author_posts(self, identity: SessionIdentity) -> AuthorPostsResponse:
        """作者的全部帖子（包括草稿）及统计信息"""
        posts, _ = await self._load_all()
        own = [post for post in posts if post.author == identity.handle]
        own.sort(key=lambda p: _sort_key(p)[1], reverse=True)

        total = len(own)
        drafts = sum(1 for post in own if post.draft)
        avg_read_time = sum(post.read_time for post in own) / total if total else 0.0
        tag_counts = Counter(tag for post in own for tag in post.tags)

        stats = AuthorStats(
            total_posts=total,
            published_posts=total - drafts,
            draft_posts=drafts,
            total_words=sum(post.word_count for post in own),
            avg_read_time=round(avg_read_time, 1),
            most_used_tags=[tag for tag, _ in tag_counts.most_common(5)],
            latest_post_date=own[0].created_at if own else None,
        )
        return AuthorPostsResponse(posts=own, stats=stats)

    # ========== 初始化 ==========

    async def ensure_welcome_post(self) -> bool:
        """欢迎帖不存在时写入一篇 featured 欢迎帖，返回是否新建"""
        if await self.store.get(WELCOME_SLUG) is not None:
            return False

        now = get_current_time()
        derived = compute_derived(WELCOME_CONTENT)
        post = Post(
            slug=WELCOME_SLUG,
            title="Welcome to Our Blog!",
            description="Start sharing your thoughts and ideas",
            content=WELCOME_CONTENT,
            content_preview=derived.content_preview,
            tags=["welcome", "getting-started", "blogging"],
            author="Admin",
            date=now.date().isoformat(),
            word_count=derived.word_count,
            read_time=derived.read_time,
            draft=False,
            published=True,
            featured=True,
            created_at=now.isoformat(),
            updated_at=now.isoformat(),
        )
        await self.store.set(WELCOME_SLUG, post.model_dump())
        logger.info("欢迎帖已创建")
        return True
