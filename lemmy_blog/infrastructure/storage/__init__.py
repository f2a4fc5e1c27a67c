from lemmy_blog.infrastructure.storage.base import PostStore
from lemmy_blog.infrastructure.storage.factory import build_mirror, build_post_store
from lemmy_blog.infrastructure.storage.github_store import GitHubPostStore
from lemmy_blog.infrastructure.storage.memory import MemoryPostStore
from lemmy_blog.infrastructure.storage.redis_store import RedisPostStore

__all__ = [
    "GitHubPostStore",
    "MemoryPostStore",
    "PostStore",
    "RedisPostStore",
    "build_mirror",
    "build_post_store",
]
