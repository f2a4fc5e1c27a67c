"""
Redis基础操作类
提供帖子存储需要的字符串、JSON 和 SCAN 操作，使用连接池和上下文管理器

与只做缓存的场景不同，这里的失败不能被吞掉：记录错误后抛出 StorageBackendError
"""
import json
import logging
from typing import Any, Dict, List, Optional

from lemmy_blog.core.exceptions import StorageBackendError
from lemmy_blog.infrastructure.redis.pool import RedisConnectionManager

logger = logging.getLogger(__name__)


class RedisBase:
    """Redis服务基类，使用共享连接池和上下文管理器"""

    def __init__(self, connection_manager: RedisConnectionManager, key_prefix: str = ""):
        """
        初始化Redis基类

        Args:
            connection_manager: 连接池管理器
            key_prefix: 键前缀，用于命名空间隔离
        """
        self.key_prefix = key_prefix
        self._connection_manager = connection_manager

    def _make_key(self, key: str) -> str:
        """生成带前缀的键名"""
        if self.key_prefix:
            return f"{self.key_prefix}{key}"
        return key

    async def ensure_connection(self) -> None:
        """确保连接池已初始化"""
        try:
            await self._connection_manager.initialize()
        except Exception as e:
            raise StorageBackendError(f"Redis 不可用: {e}") from e

    async def close(self) -> None:
        await self._connection_manager.close()

    # ========== 字符串操作 ==========

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """设置字符串值"""
        try:
            async with self._connection_manager.get_connection() as client:
                await client.set(self._make_key(key), value, ex=ttl)
        except Exception as e:
            logger.error(f"Redis set error (key={key}): {e}")
            raise StorageBackendError() from e

    async def get(self, key: str) -> Optional[str]:
        """获取字符串值，键不存在时返回 None"""
        try:
            async with self._connection_manager.get_connection() as client:
                return await client.get(self._make_key(key))
        except Exception as e:
            logger.error(f"Redis get error (key={key}): {e}")
            raise StorageBackendError() from e

    async def delete(self, *keys: str) -> int:
        """删除键，返回删除数量"""
        if not keys:
            return 0
        try:
            async with self._connection_manager.get_connection() as client:
                prefixed_keys = [self._make_key(key) for key in keys]
                return await client.delete(*prefixed_keys)
        except Exception as e:
            logger.error(f"Redis delete error (keys={keys}): {e}")
            raise StorageBackendError() from e

    # ========== JSON操作 ==========

    async def set_json(self, key: str, data: Dict[str, Any], ttl: Optional[int] = None) -> None:
        """存储JSON数据"""
        try:
            json_str = json.dumps(data, ensure_ascii=False, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"JSON serialization error (key={key}): {e}")
            raise StorageBackendError() from e
        await self.set(key, json_str, ttl)

    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """获取JSON数据，内容无法解析时抛出 StorageBackendError"""
        data = await self.get(key)
        if data is None:
            return None
        try:
            return json.loads(data)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"JSON deserialization error (key={key}): {e}")
            raise StorageBackendError(f"无法解析存储记录: {key}") from e

    # ========== SCAN操作（非阻塞） ==========

    async def scan_keys(self, pattern: str = "*", scan_count: int = 1000) -> List[str]:
        """使用SCAN获取匹配的键列表（去掉前缀）"""
        try:
            pattern_with_prefix = self._make_key(pattern)
            keys = []
            cursor = 0
            async with self._connection_manager.get_connection() as client:
                while True:
                    cursor, batch_keys = await client.scan(
                        cursor, match=pattern_with_prefix, count=scan_count
                    )
                    if self.key_prefix:
                        prefix_len = len(self.key_prefix)
                        keys.extend([key[prefix_len:] for key in batch_keys if key.startswith(self.key_prefix)])
                    else:
                        keys.extend(batch_keys)
                    if cursor == 0:  # cursor为0表示扫描完成
                        break
            return keys
        except Exception as e:
            logger.error(f"Redis scan keys error (pattern={pattern}): {e}")
            raise StorageBackendError() from e
