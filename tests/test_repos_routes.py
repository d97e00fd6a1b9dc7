"""Repository-mirror routes through TestClient with the store and GitHub mocked."""

from __future__ import annotations

import dataclasses
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from auth import dependencies as auth_dependencies
from auth import repository as auth_repository
from main import create_app
from repos import repository, service
from repos.provider import GitHubProvider

ADMIN = {"id": 1, "username": "admin", "is_active": True, "github_username": None}


def _repo(repo_id: int, name: str, **extra) -> dict:
    return {
        "id": repo_id,
        "name": name,
        "full_name": f"octo/{name}",
        "html_url": f"https://github.com/octo/{name}",
        "stargazers_count": 1,
        "private": False,
        "fork": False,
        **extra,
    }


@pytest.fixture
def app(settings, store, monkeypatch):
    app = create_app(settings)
    app.dependency_overrides[auth_dependencies.get_current_admin] = lambda: dict(ADMIN)
    monkeypatch.setattr(auth_repository, "get_github_credentials", AsyncMock(return_value=None))

    monkeypatch.setattr(repository, "list_for_provider", store.list_for_provider)
    monkeypatch.setattr(repository, "insert", store.insert)
    monkeypatch.setattr(repository, "update", store.update)
    monkeypatch.setattr(repository, "delete_many", store.delete_many)
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def _use_transport(monkeypatch, settings, handler) -> None:
    transport = httpx.MockTransport(handler)

    def resolve(settings_arg, **kwargs):
        return GitHubProvider.from_settings(settings, transport=transport)

    monkeypatch.setattr(service, "resolve_provider", resolve)


class TestFetchAndSync:
    def test_requires_admin(self, settings):
        client = TestClient(create_app(settings))

        assert client.post("/api/github/fetch", json={}).status_code == 401

    def test_sync_creates_then_updates(self, client, settings, store, monkeypatch):
        pages = {1: [_repo(1, "Nutrito"), _repo(2, "MealBook")]}

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=pages.get(int(request.url.params["page"]), []))

        _use_transport(monkeypatch, settings, handler)

        first = client.post("/api/github/fetch", json={})
        store.get("github", "1")["is_featured"] = True
        second = client.post("/api/github/fetch", json={"options": {"delete_removed": True}})

        assert first.status_code == 200
        assert first.json()["created"] == 2
        body = second.json()
        assert (body["created"], body["updated"], body["deleted"]) == (0, 2, 0)
        assert store.get("github", "1")["is_featured"] is True
        repo = next(r for r in body["repos"] if r["remote_id"] == "1")
        assert repo["github_url"] == "https://github.com/octo/Nutrito"
        assert "raw" not in repo

    def test_rate_limit_maps_to_429(self, client, settings, monkeypatch):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, headers={"x-ratelimit-remaining": "0"}, json={})

        _use_transport(monkeypatch, settings, handler)

        resp = client.post("/api/github/fetch", json={})

        assert resp.status_code == 429

    def test_upstream_failure_maps_to_502(self, client, settings, store, monkeypatch):
        _use_transport(monkeypatch, settings, lambda request: httpx.Response(500, text="boom"))

        resp = client.post("/admin/github/sync")

        assert resp.status_code == 502
        assert store.rows == {}

    def test_sync_single_not_found(self, client, settings, monkeypatch):
        _use_transport(monkeypatch, settings, lambda request: httpx.Response(404, json={}))

        resp = client.post("/api/github/sync-single", json={"repo_name": "missing"})

        assert resp.status_code == 404

    def test_sync_single(self, client, settings, store, monkeypatch):
        _use_transport(monkeypatch, settings, lambda request: httpx.Response(200, json=_repo(9, "Nutrito")))

        resp = client.post("/api/github/sync-single", json={"repo_name": "Nutrito"})

        assert resp.status_code == 200
        assert resp.json()["repo"]["title"] == "Nutrito"
        assert store.get("github", "9") is not None


class TestResolveProvider:
    def test_missing_credentials(self, settings):
        bare = dataclasses.replace(settings, github_username="", github_token="")

        with pytest.raises(HTTPException) as exc_info:
            service.resolve_provider(bare, admin_user=ADMIN)
        assert exc_info.value.status_code == 400

    def test_precedence(self, settings):
        admin = {**ADMIN, "github_username": "stored", "github_token": "stored-token"}

        assert service.resolve_provider(settings, admin_user=admin).username == "stored"
        explicit = service.resolve_provider(settings, username="explicit", token="t", admin_user=admin)
        assert (explicit.username, explicit.token) == ("explicit", "t")
        assert service.resolve_provider(settings).username == "octo"


class TestRepoEdits:
    def test_update_rejects_synced_fields(self, client):
        resp = client.patch("/api/repos/5", json={"title": "renamed"})

        assert resp.status_code == 422

    def test_update_curated_fields(self, client, monkeypatch):
        update = AsyncMock(return_value={"id": 5, "provider": "github", "url": "u", "raw": None, "is_featured": True})
        monkeypatch.setattr(repository, "update_curated", update)

        resp = client.patch("/api/repos/5", json={"is_featured": True, "category": None, "hidden": None})

        assert resp.status_code == 200
        update.assert_awaited_once_with(5, {"is_featured": True, "category": None})
        assert resp.json()["github_url"] == "u"

    def test_update_missing_repo(self, client, monkeypatch):
        monkeypatch.setattr(repository, "update_curated", AsyncMock(return_value=None))

        assert client.patch("/api/repos/5", json={"hidden": True}).status_code == 404

    def test_bulk_route_is_not_an_id(self, client, monkeypatch):
        bulk = AsyncMock(return_value=2)
        monkeypatch.setattr(repository, "bulk_update_curated", bulk)

        resp = client.patch("/api/repos/bulk", json={"ids": [1, 2], "updates": {"is_published": True}})

        assert resp.status_code == 200
        assert resp.json()["modified_count"] == 2
        bulk.assert_awaited_once_with([1, 2], {"is_published": True})

    def test_publish(self, client, monkeypatch):
        update = AsyncMock(return_value={"id": 5, "provider": "github", "url": None, "is_published": True})
        monkeypatch.setattr(repository, "update_curated", update)

        resp = client.post("/api/repos/5/publish")

        assert resp.status_code == 200
        update.assert_awaited_once_with(5, {"is_published": True})


class TestPublicReads:
    def test_list_repos_pagination(self, client, monkeypatch):
        rows = [{"id": 1, "provider": "github", "url": "u1", "raw": {"full_name": "octo/a"}}]
        listing = AsyncMock(return_value=(rows, 3))
        monkeypatch.setattr(repository, "list_repos", listing)

        resp = client.get("/api/repos", params={"featured": "true", "limit": 1, "offset": 1})

        assert resp.status_code == 200
        body = resp.json()
        assert body["pagination"] == {"total": 3, "limit": 1, "offset": 1, "has_more": True}
        assert body["repos"][0]["github_url"] == "https://github.com/octo/a"
        assert listing.await_args.kwargs["featured"] is True

    def test_stats(self, client, monkeypatch):
        stats = {"total": 2, "featured": 1, "languages": [], "by_provider": [], "recently_synced": []}
        monkeypatch.setattr(repository, "stats", AsyncMock(return_value=stats))

        resp = client.get("/api/github/portfolio/stats")

        assert resp.json() == {"stats": stats}
