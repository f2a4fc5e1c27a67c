import logging
from typing import Any, Dict, List, Optional

from lemmy_blog.constant.constants import StorageType
from lemmy_blog.infrastructure.redis.redis_base import RedisBase
from lemmy_blog.infrastructure.storage.base import PostStore

logger = logging.getLogger(__name__)


class RedisPostStore(PostStore):
    """
    Redis 持久化存储

    每篇帖子是 "<前缀><slug>" 下的一个 JSON 字符串。
    list() 基于 SCAN，遍历期间写入的键可能不出现在结果中。
    """

    storage_type = StorageType.REDIS
    persistent = True

    def __init__(self, redis_client: RedisBase):
        self._redis = redis_client

    async def startup(self) -> None:
        await self._redis.ensure_connection()
        logger.info(f"使用 Redis 存储帖子 (prefix={self._redis.key_prefix})")

    async def shutdown(self) -> None:
        await self._redis.close()

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        return await self._redis.get_json(key)

    async def set(self, key: str, record: Dict[str, Any]) -> None:
        await self._redis.set_json(key, record)

    async def delete(self, key: str) -> None:
        await self._redis.delete(key)

    async def list(self) -> List[str]:
        return await self._redis.scan_keys("*")
