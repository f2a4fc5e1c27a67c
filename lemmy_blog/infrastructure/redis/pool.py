"""
Redis连接池管理器
提供统一的Redis连接管理，支持上下文管理器和健康检查
"""
import asyncio
import logging
from typing import Optional
from contextlib import asynccontextmanager

import redis.asyncio as redis
from redis import ConnectionError

from lemmy_blog.core.config import settings

logger = logging.getLogger(__name__)


class RedisConnectionManager:
    """Redis连接池管理器"""

    def __init__(self, url: Optional[str] = None):
        self._url = url or settings.redis.CONNECTION_URL
        self._pool: Optional[redis.Redis] = None

    async def initialize(self) -> None:
        """初始化连接池并执行一次健康检查，失败时抛出异常"""
        if self._pool is not None:
            return
        try:
            self._pool = redis.from_url(
                self._url,
                max_connections=settings.redis.MAX_CONNECTIONS,
                socket_connect_timeout=settings.redis.SOCKET_TIMEOUT,
                socket_timeout=settings.redis.SOCKET_TIMEOUT,
                decode_responses=True,
                encoding="utf-8"
            )
            if not await self._health_check():
                raise ConnectionError("Redis ping失败")
            logger.info(f"Redis连接池已创建 (max_connections={settings.redis.MAX_CONNECTIONS})")
        except Exception as e:
            logger.error(f"Redis连接池创建失败: {e}")
            await self.close()
            raise

    async def get_client(self) -> redis.Redis:
        """获取Redis客户端"""
        if self._pool is None:
            await self.initialize()
        return self._pool

    @asynccontextmanager
    async def get_connection(self):
        """上下文管理器方式获取连接"""
        client = await self.get_client()
        try:
            yield client
        except Exception as e:
            logger.error(f"Redis连接错误: {e}")
            raise

    async def _health_check(self) -> bool:
        """执行健康检查"""
        if self._pool is None:
            return False
        try:
            return bool(await asyncio.wait_for(self._pool.ping(), timeout=3))
        except (asyncio.TimeoutError, OSError, ConnectionError) as e:
            logger.warning(f"Redis ping超时或连接错误: {e}")
            return False

    async def close(self) -> None:
        """关闭连接池"""
        if self._pool is not None:
            try:
                await self._pool.aclose()
            finally:
                self._pool = None
                logger.info("Redis连接池已关闭")
