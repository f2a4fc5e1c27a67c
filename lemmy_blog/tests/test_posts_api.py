from __future__ import annotations

from typing import Dict

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from lemmy_blog.api import router
from lemmy_blog.api.v1.dependencies import get_auth_service, get_post_service
from lemmy_blog.core.security import create_refresh_token, create_session_token
from lemmy_blog.infrastructure.external.lemmy_client import LemmyClient
from lemmy_blog.infrastructure.storage.memory import MemoryPostStore
from lemmy_blog.infrastructure.utils.common import create_exception_handlers
from lemmy_blog.modules.auth.service import AuthService
from lemmy_blog.modules.posts.service import PostService


def _auth(username: str = "alice", instance: str = "lemmy.ml") -> Dict[str, str]:
    token, _ = create_session_token(username, instance, lemmy_user_id=1)
    return {"Authorization": f"Bearer {token}"}


def _lemmy_factory(base_url: str) -> LemmyClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v3/user/login":
            return httpx.Response(200, json={"jwt": "lemmy-jwt"})
        return httpx.Response(200, json={"person_view": {"person": {"id": 5}, "counts": {}}})

    return LemmyClient(base_url, transport=httpx.MockTransport(handler))


@pytest.fixture()
def api_client(clock) -> tuple[TestClient, MemoryPostStore]:
    test_app = FastAPI(exception_handlers=create_exception_handlers())
    test_app.include_router(router, prefix="/api")

    store = MemoryPostStore()
    post_service = PostService(store)
    auth_service = AuthService(client_factory=_lemmy_factory)
    test_app.dependency_overrides[get_post_service] = lambda: post_service
    test_app.dependency_overrides[get_auth_service] = lambda: auth_service

    try:
        yield TestClient(test_app), store
    finally:
        test_app.dependency_overrides.clear()


def _create(client: TestClient, headers=None, **body):
    payload = {"title": "Hello World", "content": "Some words here"}
    payload.update(body)
    return client.post("/api/v1/posts", json=payload, headers=headers or _auth())


def test_create_requires_authentication(api_client):
    client, store = api_client

    response = client.post("/api/v1/posts", json={"title": "t", "content": "c"})

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert len(store) == 0


def test_refresh_token_is_not_accepted(api_client):
    client, _ = api_client
    refresh = create_refresh_token("alice", "lemmy.ml")

    response = _create(client, headers={"Authorization": f"Bearer {refresh}"})

    assert response.status_code == 401


def test_create_and_fetch_post(api_client):
    client, _ = api_client

    created = _create(client, tags="python, lemmy")

    assert created.status_code == 201
    body = created.json()
    assert body["slug"].startswith("hello-world-")
    assert body["author"] == "alice@lemmy.ml"
    assert body["status"] == "published"
    assert body["storage_type"] == "in_memory_temporary"

    fetched = client.get(f"/api/v1/posts/{body['slug']}")
    assert fetched.status_code == 200
    post = fetched.json()["post"]
    assert post["tags"] == ["python", "lemmy"]
    assert post["word_count"] == 3
    assert post["read_time"] == 1


def test_missing_title_returns_400(api_client):
    client, _ = api_client

    response = client.post("/api/v1/posts", json={"content": "only content"}, headers=_auth())

    assert response.status_code == 400


def test_list_filters_and_paginates(api_client):
    client, _ = api_client
    _create(client, title="One", tags=["b"])
    _create(client, title="Two", tags=["b"])
    _create(client, title="Three", tags=["c"])
    _create(client, title="Hidden", tags=["b"], isDraft=True)

    response = client.get("/api/v1/posts", params={"tag": "b", "limit": 1, "page": 2})

    assert response.status_code == 200
    data = response.json()
    assert [post["title"] for post in data["posts"]] == ["One"]
    assert data["pagination"]["total_posts"] == 2
    assert data["pagination"]["total_pages"] == 2
    assert data["pagination"]["has_prev"] is True
    assert data["filters"]["tag"] == "b"
    assert data["meta"]["total_stored_posts"] == 4


def test_draft_hidden_from_other_users(api_client):
    client, _ = api_client
    slug = _create(client, title="Draft", isDraft=True).json()["slug"]

    assert client.get(f"/api/v1/posts/{slug}").status_code == 404
    assert client.get(f"/api/v1/posts/{slug}", headers=_auth("bob", "lemmy.world")).status_code == 404
    assert client.get(f"/api/v1/posts/{slug}", headers=_auth()).status_code == 200


def test_invalid_token_on_public_read_is_rejected(api_client):
    client, _ = api_client
    slug = _create(client).json()["slug"]

    response = client.get(f"/api/v1/posts/{slug}", headers={"Authorization": "Bearer garbage"})

    assert response.status_code == 401


def test_update_by_author(api_client):
    client, store = api_client
    slug = _create(client).json()["slug"]

    response = client.put(
        f"/api/v1/posts/{slug}",
        json={"content": "now four words here", "isDraft": True},
        headers=_auth(),
    )

    assert response.status_code == 200
    assert response.json()["slug"] == slug
    assert client.get(f"/api/v1/posts/{slug}", headers=_auth()).json()["post"]["word_count"] == 4
    assert client.get(f"/api/v1/posts/{slug}").status_code == 404


def test_update_by_other_user_is_forbidden(api_client):
    client, _ = api_client
    slug = _create(client).json()["slug"]

    response = client.put(f"/api/v1/posts/{slug}", json={"title": "Mine now"}, headers=_auth("bob", "lemmy.world"))

    assert response.status_code == 403
    assert client.get(f"/api/v1/posts/{slug}").json()["post"]["title"] == "Hello World"


def test_update_with_stale_expected_timestamp_conflicts(api_client):
    client, _ = api_client
    slug = _create(client).json()["slug"]

    response = client.put(
        f"/api/v1/posts/{slug}",
        json={"title": "New", "expected_updated_at": "2000-01-01T00:00:00+00:00"},
        headers=_auth(),
    )

    assert response.status_code == 409


def test_update_missing_post(api_client):
    client, _ = api_client

    response = client.put("/api/v1/posts/missing", json={"title": "x"}, headers=_auth())

    assert response.status_code == 404


def test_delete_flow(api_client):
    client, store = api_client
    slug = _create(client).json()["slug"]

    forbidden = client.delete(f"/api/v1/posts/{slug}", headers=_auth("bob", "lemmy.world"))
    first = client.delete(f"/api/v1/posts/{slug}", headers=_auth())
    second = client.delete(f"/api/v1/posts/{slug}", headers=_auth())

    assert forbidden.status_code == 403
    assert first.status_code == 200
    assert second.status_code == 200
    assert len(store) == 0
    assert client.get(f"/api/v1/posts/{slug}").status_code == 404


def test_my_posts_include_drafts(api_client):
    client, _ = api_client
    _create(client, title="Public")
    _create(client, title="Draft", isDraft=True)
    _create(client, title="Bob's", headers=_auth("bob", "lemmy.world"))

    response = client.get("/api/v1/users/me/posts", headers=_auth())

    assert response.status_code == 200
    data = response.json()
    assert {post["title"] for post in data["posts"]} == {"Public", "Draft"}
    assert data["stats"]["draft_posts"] == 1


def test_login_and_me(api_client):
    client, _ = api_client

    login = client.post(
        "/api/v1/auth/login",
        json={"instance": "lemmy.ml", "username": "carol", "password": "secret"},
    )

    assert login.status_code == 200
    token = login.json()["access_token"]
    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["user"]["username"] == "carol"
    assert me.json()["user"]["lemmy_user_id"] == 5


def test_login_missing_fields_returns_400(api_client):
    client, _ = api_client

    response = client.post("/api/v1/auth/login", json={"instance": "lemmy.ml"})

    assert response.status_code == 400
