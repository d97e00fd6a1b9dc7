"""
Pydantic schemas for repository-mirror endpoints.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .provider import FetchOptions
from .records import CURATED_DEFAULTS, SyncOptions


class SyncOptionsBody(BaseModel):
    include_private: bool = False
    include_forks: bool = True
    sort: Literal["created", "updated", "pushed", "full_name"] = "updated"
    per_page: int | None = Field(default=None, ge=1, le=100)

    preserve_custom_fields: bool = True
    update_existing: bool = True
    delete_removed: bool = False

    def fetch_options(self) -> FetchOptions:
        return FetchOptions(
            per_page=self.per_page,
            include_forks=self.include_forks,
            include_private=self.include_private,
            sort=self.sort,
        )

    def sync_options(self) -> SyncOptions:
        return SyncOptions(
            preserve_custom_fields=self.preserve_custom_fields,
            update_existing=self.update_existing,
            delete_removed=self.delete_removed,
        )


class FetchRequest(BaseModel):
    # Both omitted -> server-side credentials (env or admin profile).
    username: str | None = Field(default=None, min_length=1, max_length=100)
    token: str | None = Field(default=None, min_length=1)
    options: SyncOptionsBody = Field(default_factory=SyncOptionsBody)


class SyncSingleRequest(BaseModel):
    repo_name: str = Field(..., min_length=1, max_length=200)
    preserve_custom_fields: bool = True


class RepoUpdate(BaseModel):
    """
    Curated fields an admin may edit. Unset fields are left untouched.
    """

    model_config = ConfigDict(extra="forbid")

    is_featured: bool | None = None
    hidden: bool | None = None
    display_order: int | None = None
    category: str | None = Field(default=None, max_length=100)
    tech_stack: list[str] | None = None
    demo_url: str | None = Field(default=None, max_length=2000)
    screenshots: list[str] | None = None
    is_published: bool | None = None
    portfolio_title: str | None = Field(default=None, max_length=200)
    portfolio_description: str | None = Field(default=None, max_length=5000)

    def values(self) -> dict[str, Any]:
        # Explicit nulls only clear fields whose default is null.
        return {
            k: v
            for k, v in self.model_dump(exclude_unset=True).items()
            if v is not None or CURATED_DEFAULTS.get(k, "") is None
        }


class BulkRepoUpdate(BaseModel):
    ids: list[int] = Field(..., min_length=1)
    updates: RepoUpdate
