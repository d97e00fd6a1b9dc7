"""Auth: password hashing, JWT handling and the /admin routes."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import jwt
import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from auth import dependencies, security
from auth import repository as auth_repository
from core import github
from main import create_app


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    monkeypatch.setattr(security, "BCRYPT_ROUNDS", 4)


def _user(**overrides) -> dict:
    row = {
        "id": 1,
        "username": "admin",
        "email": "admin@portfolio.com",
        "password_hash": security.hash_password("secret123"),
        "role": "admin",
        "is_active": True,
        "last_login": None,
        "github_username": None,
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = security.hash_password("secret123")

        assert hashed != "secret123"
        assert security.verify_password("secret123", hashed)
        assert not security.verify_password("wrong", hashed)

    def test_empty_password_rejected(self):
        with pytest.raises(security.AuthSecurityError):
            security.hash_password("")

    def test_garbage_hash_does_not_verify(self):
        assert not security.verify_password("secret123", "not-a-bcrypt-hash")


class TestTokens:
    def test_access_token_claims(self, settings):
        token = security.build_access_token(settings, user_id=5, username="admin", role="admin")

        payload = security.decode_access_token(settings, token)

        assert payload["sub"] == "5"
        assert payload["type"] == "access"
        assert payload["exp"] - payload["iat"] == 7 * 24 * 60 * 60

    def test_expired_token(self, settings):
        expired = dataclasses.replace(settings, access_token_expire_minutes=-1)
        token = security.build_access_token(expired, user_id=5, username="admin", role="admin")

        with pytest.raises(security.AuthSecurityError, match="expired"):
            security.decode_access_token(settings, token)

    def test_token_signed_with_other_secret(self, settings):
        other = dataclasses.replace(settings, jwt_secret="another-secret-for-unit-tests-32b")
        token = security.build_access_token(other, user_id=5, username="admin", role="admin")

        with pytest.raises(security.AuthSecurityError, match="Invalid"):
            security.decode_access_token(settings, token)

    def test_non_access_token(self, settings):
        token = jwt.encode({"sub": "5", "type": "refresh"}, settings.jwt_secret, algorithm="HS256")

        with pytest.raises(security.AuthSecurityError, match="not an access token"):
            security.decode_access_token(settings, token)


class TestBearerHeader:
    def test_extracts_token(self):
        assert dependencies._extract_bearer_token("Bearer abc.def") == "abc.def"

    @pytest.mark.parametrize("header", [None, "", "abc", "Basic abc", "Bearer "])
    def test_rejects_malformed(self, header):
        with pytest.raises(HTTPException) as exc_info:
            dependencies._extract_bearer_token(header)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_admin_with_github_merges_stored_credentials(self, monkeypatch):
        lookup = AsyncMock(return_value={"github_username": "octo", "github_token": "stored"})
        monkeypatch.setattr(auth_repository, "get_github_credentials", lookup)

        admin = await dependencies.get_admin_with_github({"id": 7, "username": "admin"})

        assert admin == {"id": 7, "username": "admin", "github_username": "octo", "github_token": "stored"}
        lookup.assert_awaited_once_with(7)

    @pytest.mark.asyncio
    async def test_admin_without_stored_credentials(self, monkeypatch):
        monkeypatch.setattr(auth_repository, "get_github_credentials", AsyncMock(return_value=None))

        assert await dependencies.get_admin_with_github({"id": 7}) == {"id": 7}


@pytest.fixture
def client(settings):
    return TestClient(create_app(settings))


class TestLoginRoute:
    def test_login_returns_token(self, client, settings, monkeypatch):
        user = _user()
        monkeypatch.setattr(auth_repository, "get_active_by_identifier", AsyncMock(return_value=user))
        monkeypatch.setattr(auth_repository, "touch_last_login", AsyncMock())
        monkeypatch.setattr(auth_repository, "get_user_by_id", AsyncMock(return_value=user))

        resp = client.post("/admin/login", json={"identifier": "admin", "password": "secret123"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["user"]["username"] == "admin"
        assert "password_hash" not in body["user"]
        assert security.decode_access_token(settings, body["token"])["sub"] == "1"
        auth_repository.touch_last_login.assert_awaited_once_with(1)

    def test_wrong_password(self, client, monkeypatch):
        monkeypatch.setattr(auth_repository, "get_active_by_identifier", AsyncMock(return_value=_user()))

        resp = client.post("/admin/login", json={"identifier": "admin", "password": "nope"})

        assert resp.status_code == 401

    def test_profile_requires_token(self, client):
        assert client.get("/admin/profile").status_code == 401

    def test_profile_with_token(self, client, settings, monkeypatch):
        monkeypatch.setattr(auth_repository, "get_user_by_id", AsyncMock(return_value=_user()))
        token = security.build_access_token(settings, user_id=1, username="admin", role="admin")

        resp = client.get("/admin/profile", headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 200
        assert resp.json()["email"] == "admin@portfolio.com"

    def test_inactive_user_is_forbidden(self, client, settings, monkeypatch):
        monkeypatch.setattr(auth_repository, "get_user_by_id", AsyncMock(return_value=_user(is_active=False)))
        token = security.build_access_token(settings, user_id=1, username="admin", role="admin")

        resp = client.get("/admin/profile", headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 403


class TestConfigureGitHub:
    def _auth(self, settings) -> dict:
        token = security.build_access_token(settings, user_id=1, username="admin", role="admin")
        return {"Authorization": f"Bearer {token}"}

    def test_login_mismatch_is_rejected(self, client, settings, monkeypatch):
        monkeypatch.setattr(auth_repository, "get_user_by_id", AsyncMock(return_value=_user()))
        monkeypatch.setattr(github, "get_authenticated_user", AsyncMock(return_value={"login": "someone-else"}))
        store = AsyncMock()
        monkeypatch.setattr(auth_repository, "set_github_credentials", store)

        resp = client.post(
            "/admin/github/configure",
            json={"github_token": "tok", "github_username": "octo"},
            headers=self._auth(settings),
        )

        assert resp.status_code == 400
        store.assert_not_awaited()

    def test_valid_token_is_stored(self, client, settings, monkeypatch):
        monkeypatch.setattr(auth_repository, "get_user_by_id", AsyncMock(return_value=_user()))
        monkeypatch.setattr(github, "get_authenticated_user", AsyncMock(return_value={"login": "Octo"}))
        monkeypatch.setattr(
            auth_repository,
            "set_github_credentials",
            AsyncMock(return_value=_user(github_username="octo")),
        )

        resp = client.post(
            "/admin/github/configure",
            json={"github_token": "tok", "github_username": "octo"},
            headers=self._auth(settings),
        )

        assert resp.status_code == 200
        assert resp.json()["github_username"] == "octo"

    def test_invalid_token(self, client, settings, monkeypatch):
        monkeypatch.setattr(auth_repository, "get_user_by_id", AsyncMock(return_value=_user()))
        monkeypatch.setattr(
            github,
            "get_authenticated_user",
            AsyncMock(side_effect=github.RemoteFetchError("401", status_code=401)),
        )

        resp = client.post(
            "/admin/github/configure",
            json={"github_token": "bad", "github_username": "octo"},
            headers=self._auth(settings),
        )

        assert resp.status_code == 400
