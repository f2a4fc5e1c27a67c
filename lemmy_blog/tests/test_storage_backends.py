"""Storage contract checks for the memory, Redis and GitHub backends."""

from __future__ import annotations

import asyncio
import base64
import copy
import fnmatch
import json
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import httpx
import pytest

from lemmy_blog.constant.constants import StorageType
from lemmy_blog.core.config import GitHubSettings
from lemmy_blog.core.exceptions import StorageBackendError
from lemmy_blog.infrastructure.external.github_client import GitHubContentsClient
from lemmy_blog.infrastructure.redis.redis_base import RedisBase
from lemmy_blog.infrastructure.storage.github_store import GitHubPostStore
from lemmy_blog.infrastructure.storage.memory import MemoryPostStore
from lemmy_blog.infrastructure.storage.redis_store import RedisPostStore
from lemmy_blog.modules.posts.derived import build_preview, count_words
from lemmy_blog.modules.posts.schemas import PostCreate
from lemmy_blog.modules.posts.service import PostService

RECORD = {
    "slug": "hello-world-1",
    "title": "Hello World",
    "content": "# Hello\n\nBody text.",
    "tags": ["a", "b"],
    "author": "alice@lemmy.ml",
    "draft": False,
    "created_at": "2024-05-01T12:00:00+00:00",
}


def _run(coro):
    """Helper to execute async store calls inside sync pytest tests."""
    return asyncio.run(coro)


class FakeRedisClient:
    """Subset of redis.asyncio.Redis used by RedisBase."""

    def __init__(self) -> None:
        self.data: Dict[str, str] = {}
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("redis down")

    async def get(self, key: str) -> Optional[str]:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self._check()
        self.data[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def scan(self, cursor: int, match: str = "*", count: int = 10):
        self._check()
        return 0, [key for key in self.data if fnmatch.fnmatch(key, match)]


class FakeConnectionManager:
    def __init__(self, client: FakeRedisClient, healthy: bool = True) -> None:
        self.client = client
        self.healthy = healthy
        self.closed = False

    async def initialize(self) -> None:
        if not self.healthy:
            raise ConnectionError("Redis ping失败")

    @asynccontextmanager
    async def get_connection(self):
        yield self.client

    async def close(self) -> None:
        self.closed = True


class FakeGitHubRepo:
    """In-memory GitHub contents API served through httpx.MockTransport."""

    def __init__(self, files: Optional[Dict[str, str]] = None) -> None:
        self.files: Dict[str, Dict[str, str]] = {}
        self.commits: List[Dict[str, Any]] = []
        self.sha_counter = 0
        for path, text in (files or {}).items():
            self._write(path, text)

    def _write(self, path: str, text: str) -> None:
        self.sha_counter += 1
        self.files[path] = {"text": text, "sha": f"sha{self.sha_counter}"}

    def handler(self, request: httpx.Request) -> httpx.Response:
        prefix = "/repos/owner/blog"
        path = request.url.path
        if path == prefix:
            return httpx.Response(200, json={"full_name": "owner/blog"})
        file_path = path[len(prefix + "/contents/"):]

        if request.method == "GET":
            if file_path in self.files:
                entry = self.files[file_path]
                return httpx.Response(200, json={
                    "path": file_path,
                    "sha": entry["sha"],
                    "content": base64.b64encode(entry["text"].encode("utf-8")).decode("ascii"),
                })
            children = [
                {"name": name.split("/")[-1], "path": name, "type": "file"}
                for name in self.files
                if name.startswith(file_path + "/")
            ]
            if children:
                return httpx.Response(200, json=children)
            return httpx.Response(404, json={"message": "Not Found"})

        body = json.loads(request.content or b"{}")
        self.commits.append({"method": request.method, "path": file_path, **body})
        if request.method == "PUT":
            existing = self.files.get(file_path)
            if existing and body.get("sha") != existing["sha"]:
                return httpx.Response(409, json={"message": "sha mismatch"})
            self._write(file_path, base64.b64decode(body["content"]).decode("utf-8"))
            return httpx.Response(201, json={"content": {"path": file_path}})
        if request.method == "DELETE":
            if file_path not in self.files:
                return httpx.Response(404, json={"message": "Not Found"})
            del self.files[file_path]
            return httpx.Response(200, json={})
        return httpx.Response(405)


def _github_store(repo: FakeGitHubRepo) -> GitHubPostStore:
    client = GitHubContentsClient(
        GitHubSettings(TOKEN="token", REPO="owner/blog"),
        transport=httpx.MockTransport(repo.handler),
    )
    return GitHubPostStore(client, posts_path="posts")


@pytest.fixture(params=["memory", "redis", "github"])
def any_store(request):
    if request.param == "memory":
        return MemoryPostStore()
    if request.param == "redis":
        manager = FakeConnectionManager(FakeRedisClient())
        return RedisPostStore(RedisBase(manager, key_prefix="posts:"))
    return _github_store(FakeGitHubRepo())


def test_get_missing_returns_none(any_store):
    assert _run(any_store.get("missing")) is None


def test_set_get_list_delete_contract(any_store):
    _run(any_store.set("hello-world-1", dict(RECORD)))

    stored = _run(any_store.get("hello-world-1"))
    assert stored["title"] == "Hello World"
    assert stored["tags"] == ["a", "b"]
    assert stored["content"].strip() == RECORD["content"].strip()
    assert _run(any_store.list()) == ["hello-world-1"]

    _run(any_store.delete("hello-world-1"))
    _run(any_store.delete("hello-world-1"))

    assert _run(any_store.get("hello-world-1")) is None
    assert _run(any_store.list()) == []


def test_set_overwrites_whole_record(any_store):
    _run(any_store.set("k", dict(RECORD)))
    _run(any_store.set("k", {**RECORD, "title": "Changed", "tags": []}))

    stored = _run(any_store.get("k"))
    assert stored["title"] == "Changed"
    assert stored["tags"] == []


# ========== memory ==========


def test_memory_store_returns_copies():
    store = MemoryPostStore()
    record = copy.deepcopy(RECORD)
    _run(store.set("k", record))
    record["tags"].append("mutated")

    fetched = _run(store.get("k"))
    fetched["title"] = "mutated"

    assert _run(store.get("k"))["title"] == "Hello World"
    assert _run(store.get("k"))["tags"] == ["a", "b"]
    assert store.storage_type == StorageType.MEMORY
    assert store.persistent is False


def test_memory_stores_are_independent():
    first, second = MemoryPostStore(), MemoryPostStore()
    _run(first.set("k", dict(RECORD)))

    assert _run(second.get("k")) is None


# ========== redis ==========


def test_redis_store_uses_key_prefix():
    client = FakeRedisClient()
    store = RedisPostStore(RedisBase(FakeConnectionManager(client), key_prefix="posts:"))
    client.data["other:thing"] = "{}"

    _run(store.set("k", dict(RECORD)))

    assert "posts:k" in client.data
    assert json.loads(client.data["posts:k"])["title"] == "Hello World"
    assert _run(store.list()) == ["k"]


def test_redis_errors_raise_storage_backend_error():
    client = FakeRedisClient()
    store = RedisPostStore(RedisBase(FakeConnectionManager(client), key_prefix="posts:"))
    client.fail = True

    with pytest.raises(StorageBackendError):
        _run(store.get("k"))
    with pytest.raises(StorageBackendError):
        _run(store.list())


def test_redis_unparseable_record_raises():
    client = FakeRedisClient()
    store = RedisPostStore(RedisBase(FakeConnectionManager(client), key_prefix="posts:"))
    client.data["posts:broken"] = "{not json"

    with pytest.raises(StorageBackendError):
        _run(store.get("broken"))


def test_redis_startup_fails_loudly():
    manager = FakeConnectionManager(FakeRedisClient(), healthy=False)
    store = RedisPostStore(RedisBase(manager, key_prefix="posts:"))

    with pytest.raises(StorageBackendError):
        _run(store.startup())


def test_redis_shutdown_closes_pool():
    manager = FakeConnectionManager(FakeRedisClient())
    store = RedisPostStore(RedisBase(manager))

    _run(store.shutdown())

    assert manager.closed is True


# ========== github ==========


def test_github_store_writes_markdown_with_frontmatter():
    repo = FakeGitHubRepo()
    store = _github_store(repo)

    _run(store.set("hello-world-1", dict(RECORD)))
    _run(store.set("hello-world-1", {**RECORD, "title": "Second"}))

    text = repo.files["posts/hello-world-1.md"]["text"]
    assert text.startswith("---\n")
    assert "title: Second" in text
    assert "# Hello" in text
    assert [commit["message"] for commit in repo.commits] == [
        "Add blog post: Hello World",
        "Update blog post: Second",
    ]
    assert repo.commits[1]["sha"] == "sha1"


def test_github_list_ignores_other_files():
    repo = FakeGitHubRepo({
        "posts/one.md": "---\ntitle: One\n---\nbody",
        "posts/README.txt": "notes",
        "posts/mirror.mdx": "---\ntitle: Mirror\n---\nbody",
    })

    assert _run(_github_store(repo).list()) == ["one"]


def test_github_get_fills_slug_from_filename():
    repo = FakeGitHubRepo({"posts/one.md": "---\ntitle: One\ndate: 2024-05-01\n---\nbody"})

    record = _run(_github_store(repo).get("one"))

    assert record["slug"] == "one"
    assert record["date"] == "2024-05-01"
    assert record["content"] == "body"


def test_github_invalid_frontmatter_raises():
    repo = FakeGitHubRepo({"posts/bad.md": "---\ntitle: [unclosed\n---\nbody"})

    with pytest.raises(StorageBackendError):
        _run(_github_store(repo).get("bad"))


def test_github_unreachable_raises_storage_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    client = GitHubContentsClient(
        GitHubSettings(TOKEN="token", REPO="owner/blog"),
        transport=httpx.MockTransport(handler),
    )
    store = GitHubPostStore(client)

    with pytest.raises(StorageBackendError):
        _run(store.startup())
    with pytest.raises(StorageBackendError):
        _run(store.get("anything"))


UNTRIMMED_CONTENT = "\n\n    indented code line\n" + "word " * 40 + "\n---\nafter a rule\n\n\n"


def test_github_store_keeps_body_whitespace():
    repo = FakeGitHubRepo()
    store = _github_store(repo)

    _run(store.set("spacing", {**RECORD, "slug": "spacing", "content": UNTRIMMED_CONTENT}))

    assert _run(store.get("spacing"))["content"] == UNTRIMMED_CONTENT


def test_github_post_derived_fields_match_stored_content(clock, alice):
    service = PostService(_github_store(FakeGitHubRepo()))
    created = _run(service.create(PostCreate(title="Spacing", content=UNTRIMMED_CONTENT), alice))

    post = _run(service.get_by_slug(created.slug, alice)).post

    assert post.content == UNTRIMMED_CONTENT
    assert post.content.splitlines()[2] == "    indented code line"
    assert post.word_count == count_words(post.content)
    assert post.content_preview == build_preview(post.content)


def test_github_file_without_frontmatter_is_plain_body():
    repo = FakeGitHubRepo({"posts/bare.md": "just a body\n"})

    record = _run(_github_store(repo).get("bare"))

    assert record == {"slug": "bare", "content": "just a body\n"}


def test_github_unterminated_frontmatter_raises():
    repo = FakeGitHubRepo({"posts/open.md": "---\ntitle: Open\nbody"})

    with pytest.raises(StorageBackendError):
        _run(_github_store(repo).get("open"))
