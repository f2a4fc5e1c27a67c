"""
存储后端装配

后端在进程启动时由 STORAGE_BACKEND 显式选择，不做运行时探测。
选择了持久化后端但无法连接时启动失败，不会静默退回内存存储。
"""
import logging
from typing import Optional

from lemmy_blog.core.config import Settings
from lemmy_blog.core.exceptions import StorageBackendError
from lemmy_blog.infrastructure.external.github_client import GitHubContentsClient
from lemmy_blog.infrastructure.external.github_mirror import GitHubMirror
from lemmy_blog.infrastructure.redis.pool import RedisConnectionManager
from lemmy_blog.infrastructure.redis.redis_base import RedisBase
from lemmy_blog.infrastructure.storage.base import PostStore
from lemmy_blog.infrastructure.storage.github_store import GitHubPostStore
from lemmy_blog.infrastructure.storage.memory import MemoryPostStore
from lemmy_blog.infrastructure.storage.redis_store import RedisPostStore

logger = logging.getLogger(__name__)


def build_post_store(config: Settings) -> PostStore:
    """按配置创建帖子存储（尚未连接，需调用 startup）"""
    backend = config.storage.BACKEND
    if backend == "redis":
        manager = RedisConnectionManager(config.redis.CONNECTION_URL)
        return RedisPostStore(RedisBase(manager, key_prefix=config.storage.KEY_PREFIX))
    if backend == "github":
        if not config.github.configured:
            raise StorageBackendError("github 存储需要 GITHUB_TOKEN 和 GITHUB_REPO (owner/repo)")
        return GitHubPostStore(
            GitHubContentsClient(config.github),
            posts_path=config.github.POSTS_PATH,
        )
    return MemoryPostStore()


def build_mirror(config: Settings) -> Optional[GitHubMirror]:
    """
    新帖子的 GitHub 镜像

    未配置 GitHub、显式关闭或帖子本身已存放在 GitHub 时返回 None
    """
    if not config.github.MIRROR_ENABLED or not config.github.configured:
        return None
    if config.storage.BACKEND == "github":
        return None
    logger.info(f"新帖子将镜像到 GitHub 仓库 {config.github.REPO}")
    return GitHubMirror(GitHubContentsClient(config.github), posts_path=config.github.POSTS_PATH)
