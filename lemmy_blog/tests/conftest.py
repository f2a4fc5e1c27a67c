"""Shared fixtures: test settings, a controllable clock and session identities."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

import pytest

# Provide minimal environment so Settings can initialise during import.
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("GITHUB_MIRROR_ENABLED", "false")

from lemmy_blog.core.security import SessionIdentity
from lemmy_blog.infrastructure.storage.memory import MemoryPostStore
from lemmy_blog.modules.posts import service as post_service_module
from lemmy_blog.modules.posts.service import PostService


class FakeClock:
    """Monotonic clock advancing one second per call so slugs and ordering are deterministic."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture()
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    fake = FakeClock()
    monkeypatch.setattr(post_service_module, "get_current_time", fake)
    return fake


@pytest.fixture()
def alice() -> SessionIdentity:
    return SessionIdentity(username="alice", instance="lemmy.ml", exp=4_102_444_800, lemmy_user_id=7)


@pytest.fixture()
def bob() -> SessionIdentity:
    return SessionIdentity(username="bob", instance="lemmy.world", exp=4_102_444_800)


@pytest.fixture()
def store() -> MemoryPostStore:
    return MemoryPostStore()


@pytest.fixture()
def service(store: MemoryPostStore, clock: FakeClock) -> PostService:
    return PostService(store)
