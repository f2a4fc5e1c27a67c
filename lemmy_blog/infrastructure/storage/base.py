"""Backend-agnostic key/value contract used by the post service."""

from __future__ import annotations

import abc
from typing import Any, Dict, List, Optional


class PostStore(abc.ABC):
    """Key/value store holding post records keyed by slug.

    Contract shared by every backend:

    - ``get`` returns ``None`` when the key does not exist and raises
      ``StorageBackendError`` for any other failure.
    - ``set`` is an unconditional upsert (last writer wins).
    - ``delete`` is idempotent.
    - ``list`` returns keys; whether a just-written key is visible depends on
      the backend, so callers must tolerate lag.

    No backend offers transactions or multi-key atomicity.
    """

    storage_type: str = "unknown"
    persistent: bool = False

    async def startup(self) -> None:
        """Connect or verify the backend. Raises ``StorageBackendError`` if unreachable."""

    async def shutdown(self) -> None:
        """Release connections held by the backend."""

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abc.abstractmethod
    async def set(self, key: str, record: Dict[str, Any]) -> None:
        ...

    @abc.abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abc.abstractmethod
    async def list(self) -> List[str]:
        ...
