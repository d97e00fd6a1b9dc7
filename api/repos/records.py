"""
Repository record shapes shared by the adapter, the sync engine and the store.

Field groups:
- synced fields: authoritative on the remote side, overwritten on every sync
- curated fields: set by an admin, kept across syncs by default
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any

SYNCED_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "url",
    "language",
    "topics",
    "stars",
    "forks",
    "watchers",
    "open_issues",
    "size",
    "default_branch",
    "is_private",
    "is_fork",
    "has_wiki",
    "has_pages",
    "has_downloads",
    "license",
    "remote_created_at",
    "remote_updated_at",
    "pushed_at",
    "homepage",
)

CURATED_DEFAULTS: dict[str, Any] = {
    "is_featured": False,
    "hidden": False,
    "display_order": 0,
    "category": None,
    "tech_stack": [],
    "demo_url": None,
    "screenshots": [],
    "is_published": False,
    "portfolio_title": None,
    "portfolio_description": None,
}

CURATED_FIELDS: frozenset[str] = frozenset(CURATED_DEFAULTS)

# Defaults applied only when a record is first created.
COUNT_FIELDS: tuple[str, ...] = ("stars", "forks", "watchers", "open_issues")
FLAG_FIELDS: tuple[str, ...] = ("is_private", "is_fork", "has_wiki", "has_pages", "has_downloads")

# Curated values a remote item is allowed to carry.
ITEM_CURATED_FIELDS: tuple[str, ...] = ("is_published", "portfolio_title", "portfolio_description")


class PersistenceError(RuntimeError):
    """
    A record could not be written to (or read from) the local store.
    """


@dataclass(frozen=True)
class RemoteItem:
    """
    One normalized item fetched from a provider.

    `None` means "the remote did not provide this field".
    """

    remote_id: str
    title: str
    description: str | None = None
    url: str | None = None
    language: str | None = None
    topics: list[str] | None = None
    stars: int | None = None
    forks: int | None = None
    watchers: int | None = None
    open_issues: int | None = None
    size: int | None = None
    default_branch: str | None = None
    is_private: bool | None = None
    is_fork: bool | None = None
    has_wiki: bool | None = None
    has_pages: bool | None = None
    has_downloads: bool | None = None
    license: str | None = None
    remote_created_at: datetime | None = None
    remote_updated_at: datetime | None = None
    pushed_at: datetime | None = None
    homepage: str | None = None

    is_published: bool | None = None
    portfolio_title: str | None = None
    portfolio_description: str | None = None

    raw: dict[str, Any] | None = field(default=None, compare=False, repr=False)

    def synced_values(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in SYNCED_FIELDS if getattr(self, name) is not None}

    def curated_values(self) -> dict[str, Any]:
        return {
            name: getattr(self, name) for name in ITEM_CURATED_FIELDS if getattr(self, name) is not None
        }


REMOTE_ITEM_FIELDS: frozenset[str] = frozenset(f.name for f in fields(RemoteItem))


@dataclass(frozen=True)
class SyncOptions:
    preserve_custom_fields: bool = True
    update_existing: bool = True
    delete_removed: bool = False


@dataclass
class SyncResult:
    created: int = 0
    updated: int = 0
    deleted: int = 0
    repos: list[dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.repos)

    def as_dict(self, *, include_raw: bool = False) -> dict[str, Any]:
        repos = self.repos if include_raw else [public_record(r) for r in self.repos]
        return {
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "total": self.total,
            "repos": repos,
        }


def public_record(record: dict[str, Any]) -> dict[str, Any]:
    """
    Record as exposed by read APIs: `raw` dropped, `github_url` derived from it.
    """
    out = {k: v for k, v in record.items() if k != "raw"}
    raw = record.get("raw")
    full_name = raw.get("full_name") if isinstance(raw, dict) else None
    if record.get("provider") == "github" and full_name:
        out["github_url"] = f"https://github.com/{full_name}"
    else:
        out["github_url"] = record.get("url")
    return out
