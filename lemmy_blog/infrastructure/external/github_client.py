"""Thin async client for the GitHub repository contents API."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from lemmy_blog.core.config import GitHubSettings


@dataclass
class GitHubFile:
    """A file fetched from the contents API."""

    path: str
    sha: str
    text: str


class GitHubContentsClient:
    """Read, write, list and delete files in one repository.

    HTTP errors other than 404 propagate as ``httpx.HTTPStatusError``;
    connection problems as ``httpx.TransportError``.
    """

    def __init__(self, config: GitHubSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        owner, _, repo = config.REPO.partition("/")
        self.owner = owner
        self.repo = repo
        self.branch = config.BRANCH
        self._http_client = httpx.AsyncClient(
            base_url=config.API_URL,
            timeout=config.TIMEOUT,
            transport=transport,
            headers={
                "Authorization": f"Bearer {config.TOKEN}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )

    def _url(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{path.strip('/')}"

    def _ref_params(self) -> Dict[str, str]:
        return {"ref": self.branch} if self.branch else {}

    async def get_file(self, path: str) -> Optional[GitHubFile]:
        """Return the decoded file, or ``None`` if it does not exist."""
        response = await self._http_client.get(self._url(path), params=self._ref_params())
        if response.status_code == 404:
            return None
        response.raise_for_status()
        payload = response.json()
        text = base64.b64decode(payload.get("content", "")).decode("utf-8")
        return GitHubFile(path=payload.get("path", path), sha=payload["sha"], text=text)

    async def list_dir(self, path: str) -> List[Dict[str, Any]]:
        """List directory entries; a missing directory is empty."""
        response = await self._http_client.get(self._url(path), params=self._ref_params())
        if response.status_code == 404:
            return []
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, list):
            return []
        return payload

    async def put_file(
        self,
        path: str,
        text: str,
        message: str,
        sha: Optional[str] = None,
        author: Optional[Dict[str, str]] = None,
    ) -> None:
        """Create the file, or overwrite it when ``sha`` of the current blob is given."""
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
        }
        if sha:
            body["sha"] = sha
        if self.branch:
            body["branch"] = self.branch
        if author:
            body["author"] = author
        response = await self._http_client.put(self._url(path), json=body)
        response.raise_for_status()

    async def delete_file(self, path: str, sha: str, message: str) -> bool:
        """Delete the file. Returns False when it was already gone."""
        body: Dict[str, Any] = {"message": message, "sha": sha}
        if self.branch:
            body["branch"] = self.branch
        response = await self._http_client.request("DELETE", self._url(path), json=body)
        if response.status_code == 404:
            return False
        response.raise_for_status()
        return True

    async def check_access(self) -> None:
        """Fail if the repository cannot be reached with the configured token."""
        response = await self._http_client.get(f"/repos/{self.owner}/{self.repo}")
        response.raise_for_status()

    async def aclose(self) -> None:
        await self._http_client.aclose()
