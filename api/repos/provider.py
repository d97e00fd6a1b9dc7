"""
Remote source adapters.

An adapter turns a provider's API into a finite list of `RemoteItem`s.
Pagination and the page cap live here; retries do not.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Protocol

import httpx

from core import github
from core.config import DEFAULT_GITHUB_API_URL, Settings

from .records import RemoteItem

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 100
DEFAULT_MAX_PAGES = 10
ALLOWED_SORTS = {"created", "updated", "pushed", "full_name"}


@dataclass(frozen=True)
class FetchOptions:
    # None -> the provider's configured page size.
    per_page: int | None = None
    include_forks: bool = True
    include_private: bool = False
    sort: str = "updated"


class SourceProvider(Protocol):
    name: str

    async def fetch_all(self, options: FetchOptions | None = None) -> list[RemoteItem]: ...

    async def fetch_one(self, item_name: str) -> RemoteItem: ...

    async def rate_limit(self) -> github.RateLimitStatus: ...


def _parse_timestamp(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        return datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def _opt_int(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _opt_bool(raw: Any) -> bool | None:
    return raw if isinstance(raw, bool) else None


def _opt_str(raw: Any) -> str | None:
    return raw if isinstance(raw, str) else None


def transform_repo(data: dict[str, Any]) -> RemoteItem:
    """
    Map one GitHub repository payload to a `RemoteItem`.
    """
    license_data = data.get("license")
    license_name = license_data.get("name") if isinstance(license_data, dict) else None
    topics = data.get("topics")

    return RemoteItem(
        remote_id=str(data["id"]),
        title=str(data.get("name") or ""),
        description=_opt_str(data.get("description")),
        url=_opt_str(data.get("html_url")),
        language=_opt_str(data.get("language")),
        topics=[str(t) for t in topics] if isinstance(topics, list) else None,
        stars=_opt_int(data.get("stargazers_count")),
        forks=_opt_int(data.get("forks_count")),
        watchers=_opt_int(data.get("watchers_count")),
        open_issues=_opt_int(data.get("open_issues_count")),
        size=_opt_int(data.get("size")),
        default_branch=_opt_str(data.get("default_branch")),
        is_private=_opt_bool(data.get("private")),
        is_fork=_opt_bool(data.get("fork")),
        has_wiki=_opt_bool(data.get("has_wiki")),
        has_pages=_opt_bool(data.get("has_pages")),
        has_downloads=_opt_bool(data.get("has_downloads")),
        license=_opt_str(license_name),
        remote_created_at=_parse_timestamp(data.get("created_at")),
        remote_updated_at=_parse_timestamp(data.get("updated_at")),
        pushed_at=_parse_timestamp(data.get("pushed_at")),
        homepage=_opt_str(data.get("homepage")) or None,
        raw=data,
    )


def filter_items(items: Iterable[RemoteItem], options: FetchOptions) -> list[RemoteItem]:
    out: list[RemoteItem] = []
    for item in items:
        if not options.include_forks and item.is_fork:
            continue
        if not options.include_private and item.is_private:
            continue
        out.append(item)
    return out


def language_breakdown(items: Iterable[RemoteItem]) -> dict[str, int]:
    """
    Repository count per primary language, most common first.
    """
    counts = Counter(item.language for item in items if item.language)
    return dict(counts.most_common())


class GitHubProvider:
    name = "github"

    def __init__(
        self,
        username: str,
        token: str | None = None,
        *,
        base_url: str = DEFAULT_GITHUB_API_URL,
        timeout_s: float = 30.0,
        max_pages: int = DEFAULT_MAX_PAGES,
        per_page: int = DEFAULT_PER_PAGE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        username = (username or "").strip()
        if not username:
            raise ValueError("GitHub username is required.")
        self.username = username
        self.token = (token or "").strip() or None
        self.base_url = base_url
        self.timeout_s = timeout_s
        self.max_pages = max(1, max_pages)
        self.per_page = max(1, min(per_page, 100))
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        username: str | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> GitHubProvider:
        return cls(
            username or settings.github_username,
            token or settings.github_token,
            base_url=settings.github_api_url,
            timeout_s=settings.github_timeout_s,
            max_pages=settings.github_max_pages,
            per_page=settings.github_per_page,
            transport=transport,
        )

    def _client(self) -> httpx.AsyncClient:
        return github.open_client(
            base_url=self.base_url,
            token=self.token,
            timeout_s=self.timeout_s,
            transport=self._transport,
        )

    def _listing(self, options: FetchOptions) -> tuple[str, dict[str, Any]]:
        sort = options.sort if options.sort in ALLOWED_SORTS else "updated"
        per_page = options.per_page or self.per_page
        params: dict[str, Any] = {"per_page": max(1, min(per_page, 100)), "sort": sort}
        if options.include_private and self.token:
            # Only the authenticated listing includes private repositories.
            params.update({"visibility": "all", "affiliation": "owner"})
            return "/user/repos", params
        params["type"] = "owner"
        return f"/users/{self.username}/repos", params

    async def fetch_all(self, options: FetchOptions | None = None) -> list[RemoteItem]:
        options = options or FetchOptions()
        path, params = self._listing(options)

        items: list[RemoteItem] = []
        async with self._client() as client:
            page = 1
            while True:
                if page > self.max_pages:
                    logger.warning(
                        "github_page_cap_reached username=%s max_pages=%s fetched=%s",
                        self.username,
                        self.max_pages,
                        len(items),
                    )
                    break

                try:
                    data = await github.get_json(client, path, params={**params, "page": page})
                except github.NotFoundError as exc:
                    # A missing listing (unknown user) is a failed fetch, not a missing item.
                    raise github.RemoteFetchError(
                        f"GitHub listing not found: {path}", status_code=404, cause=exc
                    ) from exc
                if not isinstance(data, list):
                    raise github.RemoteFetchError(f"GitHub returned a non-list page for {path}.")
                if not data:
                    break

                items.extend(transform_repo(r) for r in data if isinstance(r, dict) and "id" in r)
                page += 1

        filtered = filter_items(items, options)
        logger.info(
            "github_fetch_complete username=%s fetched=%s returned=%s",
            self.username,
            len(items),
            len(filtered),
        )
        return filtered

    async def fetch_one(self, item_name: str) -> RemoteItem:
        item_name = (item_name or "").strip()
        if not item_name:
            raise ValueError("Repository name is required.")
        full_name = item_name if "/" in item_name else f"{self.username}/{item_name}"

        async with self._client() as client:
            data = await github.get_json(client, f"/repos/{full_name}")
        if not isinstance(data, dict) or "id" not in data:
            raise github.RemoteFetchError(f"GitHub returned an unexpected payload for {full_name}.")
        return transform_repo(data)

    async def rate_limit(self) -> github.RateLimitStatus:
        return await github.get_rate_limit(
            base_url=self.base_url,
            token=self.token,
            timeout_s=self.timeout_s,
            transport=self._transport,
        )
