"""
GitHub REST API client helpers.

Used endpoints:
- GET /users/{username}/repos, GET /user/repos  -> [{...repo...}, ...]
- GET /repos/{owner}/{repo}                      -> {...repo...}
- GET /user                                      -> {"login": "...", ...}
- GET /rate_limit                                -> {"resources": {"core": {...}}}

No retries here: callers decide whether to abort or try again.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx


class RemoteFetchError(RuntimeError):
    """
    Transport or HTTP failure while talking to the remote source.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


class RemoteRateLimitExceeded(RemoteFetchError):
    def __init__(self, message: str, *, reset_at: datetime | None = None, status_code: int | None = None) -> None:
        super().__init__(message, status_code=status_code)
        self.reset_at = reset_at


class NotFoundError(LookupError):
    """
    The requested item does not exist on the remote side.
    """


@dataclass(frozen=True)
class RateLimitStatus:
    limit: int
    used: int
    remaining: int
    reset: datetime

    def as_dict(self) -> dict[str, Any]:
        return {
            "limit": self.limit,
            "used": self.used,
            "remaining": self.remaining,
            "reset": self.reset.isoformat(),
        }


def _normalize_base_url(base_url: str) -> str:
    base_url = (base_url or "").strip()
    if not base_url:
        raise RemoteFetchError("GITHUB_API_URL is empty.")
    return base_url.rstrip("/")


def _headers(token: str | None) -> dict[str, str]:
    headers = {"Accept": "application/vnd.github.v3+json"}
    token = (token or "").strip()
    if token:
        headers["Authorization"] = f"token {token}"
    return headers


def _epoch_to_datetime(raw: Any) -> datetime | None:
    try:
        return datetime.fromtimestamp(int(raw), tz=timezone.utc)
    except (TypeError, ValueError):
        return None


def open_client(
    *,
    base_url: str,
    token: str | None,
    timeout_s: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=_normalize_base_url(base_url),
        headers=_headers(token),
        timeout=timeout_s,
        transport=transport,
    )


def _raise_for_response(resp: httpx.Response, path: str) -> None:
    if resp.status_code == 200:
        return

    if resp.status_code == 404:
        raise NotFoundError(f"GitHub resource not found: {path}")

    remaining = resp.headers.get("x-ratelimit-remaining")
    if resp.status_code == 429 or (resp.status_code == 403 and remaining == "0"):
        raise RemoteRateLimitExceeded(
            "GitHub API rate limit exceeded.",
            reset_at=_epoch_to_datetime(resp.headers.get("x-ratelimit-reset")),
            status_code=resp.status_code,
        )

    # Avoid dumping huge bodies; include a small snippet.
    body = resp.text[:300]
    raise RemoteFetchError(
        f"GitHub request failed: {resp.status_code} {body}",
        status_code=resp.status_code,
    )


async def get_json(
    client: httpx.AsyncClient,
    path: str,
    *,
    params: dict[str, Any] | None = None,
) -> Any:
    try:
        resp = await client.get(path, params=params)
    except httpx.HTTPError as exc:
        raise RemoteFetchError(f"GitHub request to {path} failed: {exc}", cause=exc) from exc

    _raise_for_response(resp, path)
    try:
        return resp.json()
    except ValueError as exc:
        raise RemoteFetchError(f"GitHub returned invalid JSON for {path}.", cause=exc) from exc


async def get_authenticated_user(
    *,
    base_url: str,
    token: str,
    timeout_s: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    async with open_client(base_url=base_url, token=token, timeout_s=timeout_s, transport=transport) as client:
        data = await get_json(client, "/user")
    if not isinstance(data, dict):
        raise RemoteFetchError("GitHub returned an unexpected user payload.")
    return data


async def validate_token(
    *,
    base_url: str,
    token: str,
    timeout_s: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    try:
        await get_authenticated_user(base_url=base_url, token=token, timeout_s=timeout_s, transport=transport)
    except (RemoteFetchError, NotFoundError):
        return False
    return True


def parse_rate_limit(data: dict[str, Any]) -> RateLimitStatus:
    resources = data.get("resources")
    core = resources.get("core") if isinstance(resources, dict) else None
    if not isinstance(core, dict):
        core = data.get("rate")
    if not isinstance(core, dict):
        raise RemoteFetchError("GitHub returned no rate limit information.")

    reset = _epoch_to_datetime(core.get("reset")) or datetime.now(timezone.utc)
    return RateLimitStatus(
        limit=int(core.get("limit") or 0),
        used=int(core.get("used") or 0),
        remaining=int(core.get("remaining") or 0),
        reset=reset,
    )


async def get_rate_limit(
    *,
    base_url: str,
    token: str | None,
    timeout_s: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RateLimitStatus:
    async with open_client(base_url=base_url, token=token, timeout_s=timeout_s, transport=transport) as client:
        data = await get_json(client, "/rate_limit")
    if not isinstance(data, dict):
        raise RemoteFetchError("GitHub returned an unexpected rate limit payload.")
    return parse_rate_limit(data)
