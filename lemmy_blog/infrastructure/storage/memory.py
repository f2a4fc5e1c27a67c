import copy
import logging
from typing import Any, Dict, List, Optional

from lemmy_blog.constant.constants import StorageType
from lemmy_blog.infrastructure.storage.base import PostStore

logger = logging.getLogger(__name__)


class MemoryPostStore(PostStore):
    """
    进程内存储

    数据只存在于当前进程中，重启即丢失；实例由调用方创建并注入，不使用全局变量。
    读写都做深拷贝，避免调用方修改已存储的记录。
    """

    storage_type = StorageType.MEMORY
    persistent = False

    def __init__(self, initial: Optional[Dict[str, Dict[str, Any]]] = None):
        self._data: Dict[str, Dict[str, Any]] = {}
        for key, record in (initial or {}).items():
            self._data[key] = copy.deepcopy(record)

    async def startup(self) -> None:
        logger.warning("使用内存存储：帖子数据不会在重启后保留")

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        record = self._data.get(key)
        return copy.deepcopy(record) if record is not None else None

    async def set(self, key: str, record: Dict[str, Any]) -> None:
        self._data[key] = copy.deepcopy(record)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def list(self) -> List[str]:
        return list(self._data.keys())

    def __len__(self) -> int:
        return len(self._data)
