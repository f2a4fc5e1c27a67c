import logging
from typing import Any, Dict, List, Optional

import httpx

from lemmy_blog.constant.constants import StorageType
from lemmy_blog.core.exceptions import StorageBackendError
from lemmy_blog.infrastructure.external.github_client import GitHubContentsClient
from lemmy_blog.infrastructure.storage.base import PostStore
from lemmy_blog.infrastructure.storage.markdown_codec import (
    markdown_to_record,
    record_to_markdown,
    slug_from_filename,
)

logger = logging.getLogger(__name__)


class GitHubPostStore(PostStore):
    """
    GitHub 仓库存储

    每篇帖子对应仓库中的 "<posts_path>/<slug>.md"，frontmatter 保存除正文外的全部字段。
    目录列表由 GitHub API 提供，刚提交的文件可能短时间内不出现在 list() 中。
    """

    storage_type = StorageType.GITHUB
    persistent = True

    def __init__(self, client: GitHubContentsClient, posts_path: str = "posts"):
        self._client = client
        self._posts_path = posts_path.strip("/")

    def _path(self, key: str) -> str:
        return f"{self._posts_path}/{key}.md"

    async def startup(self) -> None:
        try:
            await self._client.check_access()
        except httpx.HTTPError as e:
            raise StorageBackendError(f"GitHub 仓库不可用: {e}") from e
        logger.info(f"使用 GitHub 仓库存储帖子 ({self._client.owner}/{self._client.repo})")

    async def shutdown(self) -> None:
        await self._client.aclose()

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            file = await self._client.get_file(self._path(key))
        except httpx.HTTPError as e:
            logger.error(f"GitHub get error (key={key}): {e}")
            raise StorageBackendError() from e
        if file is None:
            return None
        try:
            record = markdown_to_record(file.text)
        except ValueError as e:
            logger.error(f"无法解析帖子文件 {file.path}: {e}")
            raise StorageBackendError(f"无法解析存储记录: {key}") from e
        record.setdefault("slug", key)
        return record

    async def set(self, key: str, record: Dict[str, Any]) -> None:
        path = self._path(key)
        try:
            existing = await self._client.get_file(path)
            await self._client.put_file(
                path,
                record_to_markdown(record),
                message=f"{'Update' if existing else 'Add'} blog post: {record.get('title', key)}",
                sha=existing.sha if existing else None,
            )
        except httpx.HTTPError as e:
            logger.error(f"GitHub set error (key={key}): {e}")
            raise StorageBackendError() from e

    async def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            existing = await self._client.get_file(path)
            if existing is None:
                return
            await self._client.delete_file(path, existing.sha, message=f"Delete blog post: {key}")
        except httpx.HTTPError as e:
            logger.error(f"GitHub delete error (key={key}): {e}")
            raise StorageBackendError() from e

    async def list(self) -> List[str]:
        try:
            entries = await self._client.list_dir(self._posts_path)
        except httpx.HTTPError as e:
            logger.error(f"GitHub list error: {e}")
            raise StorageBackendError() from e
        return [
            slug_from_filename(entry["name"])
            for entry in entries
            if entry.get("type", "file") == "file"
            and str(entry.get("name", "")).endswith(".md")
        ]
