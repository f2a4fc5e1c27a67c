"""Minimal async client for the Lemmy v3 HTTP API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from lemmy_blog.core.config import settings
from lemmy_blog.core.exceptions import LemmyUnavailableError

logger = logging.getLogger(__name__)


def instance_base_url(instance: str, scheme: Optional[str] = None) -> str:
    """``lemmy.ml`` -> ``https://lemmy.ml``; an explicit scheme in ``instance`` wins."""
    instance = instance.strip().rstrip("/")
    if "://" in instance:
        return instance
    return f"{scheme or settings.lemmy.SCHEME}://{instance}"


class LemmyClient:
    """Talk to one Lemmy instance.

    Rejected credentials are reported as ``None`` from :meth:`login`; an
    instance that cannot be reached raises ``LemmyUnavailableError``.
    """

    def __init__(
        self,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url
        self._http_client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout if timeout is not None else settings.lemmy.TIMEOUT,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "LemmyClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._http_client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.warning(f"Lemmy instance unreachable ({self.base_url}): {e}")
            raise LemmyUnavailableError() from e

    async def login(self, username_or_email: str, password: str) -> Optional[str]:
        """Return the Lemmy JWT, or ``None`` when the instance rejects the credentials."""
        response = await self._request(
            "POST",
            "/api/v3/user/login",
            json={"username_or_email": username_or_email, "password": password},
        )
        if response.status_code in (400, 401, 403, 404):
            logger.info(f"Lemmy login rejected for {username_or_email} ({response.status_code})")
            return None
        response.raise_for_status()
        return response.json().get("jwt")

    async def get_person(self, username: str, auth: str) -> Dict[str, Any]:
        """Fetch ``person_view`` details for ``username``."""
        response = await self._request(
            "GET",
            "/api/v3/user",
            params={"username": username},
            headers={"Authorization": f"Bearer {auth}"},
        )
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        await self._http_client.aclose()
