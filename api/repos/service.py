"""
Repository-mirror business logic.

Scope:
- resolve GitHub credentials (request body, admin profile, environment)
- run full and single-item syncs and translate core errors to HTTP errors
- shape read-side listings for the public portfolio and the admin UI
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import HTTPException, status

from core import github
from core.config import Settings

from . import repository, schemas, sync
from .provider import GitHubProvider, language_breakdown
from .records import PersistenceError, SyncOptions, public_record

logger = logging.getLogger(__name__)


@contextmanager
def _http_errors(action: str) -> Iterator[None]:
    try:
        yield
    except github.NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except github.RemoteRateLimitExceeded as exc:
        reset = exc.reset_at.isoformat() if exc.reset_at else "unknown"
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"{action}: GitHub rate limit exceeded (resets at {reset}).",
        ) from exc
    except github.RemoteFetchError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"{action}: {exc}") from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"{action}: {exc}") from exc


def resolve_provider(
    settings: Settings,
    *,
    username: str | None = None,
    token: str | None = None,
    admin_user: dict | None = None,
) -> GitHubProvider:
    """
    Pick credentials: explicit values first, then the admin profile, then env.
    """
    stored_username = str((admin_user or {}).get("github_username") or "").strip()
    stored_token = str((admin_user or {}).get("github_token") or "").strip()

    final_username = (username or "").strip() or stored_username or settings.github_username
    final_token = (token or "").strip() or stored_token or settings.github_token
    if not final_username or not final_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="GitHub credentials not configured.",
        )
    return GitHubProvider.from_settings(settings, username=final_username, token=final_token)


def _pagination(total: int, *, limit: int, offset: int, count: int) -> dict[str, Any]:
    return {
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + count < total,
    }


async def run_sync(provider: GitHubProvider, options: schemas.SyncOptionsBody) -> dict[str, Any]:
    with _http_errors("Failed to sync GitHub repositories"):
        result = await sync.sync_provider(
            provider,
            fetch_options=options.fetch_options(),
            options=options.sync_options(),
        )
    return {"message": "GitHub repositories synced successfully", **result.as_dict()}


async def sync_single_repo(provider: GitHubProvider, request: schemas.SyncSingleRequest) -> dict[str, Any]:
    with _http_errors(f"Failed to sync repository {request.repo_name}"):
        result = await sync.sync_single(
            provider,
            request.repo_name,
            options=SyncOptions(preserve_custom_fields=request.preserve_custom_fields),
        )
    repo = public_record(result.repos[0]) if result.repos else None
    return {
        "message": f"Repository {request.repo_name} synced successfully",
        "created": result.created,
        "updated": result.updated,
        "repo": repo,
    }


async def rate_limit(provider: GitHubProvider) -> dict[str, Any]:
    with _http_errors("Failed to fetch rate limit"):
        info = await provider.rate_limit()
    return info.as_dict()


async def languages(provider: GitHubProvider) -> dict[str, int]:
    with _http_errors("Failed to fetch repository languages"):
        items = await provider.fetch_all()
    return language_breakdown(items)


async def github_info(provider: GitHubProvider) -> dict[str, Any]:
    return {
        "username": provider.username,
        "configured": True,
        "rate_limit": await rate_limit(provider),
    }


async def list_repos(
    *,
    provider: str | None,
    featured: bool | None,
    hidden: bool | None,
    language: str | None,
    limit: int,
    offset: int,
) -> dict[str, Any]:
    rows, total = await repository.list_repos(
        provider=provider,
        featured=featured,
        hidden=hidden,
        language=language,
        limit=limit,
        offset=offset,
    )
    return {
        "repos": [public_record(r) for r in rows],
        "pagination": _pagination(total, limit=limit, offset=offset, count=len(rows)),
    }


async def list_admin_repos(*, provider: str | None, limit: int, offset: int) -> dict[str, Any]:
    rows, total = await repository.list_admin(provider=provider, limit=limit, offset=offset)
    return {
        "repos": [public_record(r) for r in rows],
        "pagination": _pagination(total, limit=limit, offset=offset, count=len(rows)),
    }


async def portfolio_repos(*, limit: int) -> dict[str, Any]:
    rows = await repository.list_published(limit=limit)
    return {"repos": [public_record(r) for r in rows], "count": len(rows)}


async def featured_repos(*, limit: int) -> dict[str, Any]:
    rows = await repository.list_featured(limit=limit)
    return {"repos": [public_record(r) for r in rows], "count": len(rows)}


async def popular_repos(*, limit: int) -> dict[str, Any]:
    rows = await repository.list_popular(limit=limit)
    return {"repos": [public_record(r) for r in rows], "count": len(rows)}


async def recent_repos(*, limit: int) -> dict[str, Any]:
    rows = await repository.list_recent(limit=limit)
    return {"repos": [public_record(r) for r in rows], "count": len(rows)}


async def repos_by_language(language: str, *, limit: int) -> dict[str, Any]:
    rows = await repository.list_by_language(language, limit=limit)
    return {"language": language, "repos": [public_record(r) for r in rows], "count": len(rows)}


async def repo_stats(*, provider: str | None = None) -> dict[str, Any]:
    return {"stats": await repository.stats(provider=provider)}


async def update_repo(repo_id: int, payload: schemas.RepoUpdate) -> dict[str, Any]:
    row = await repository.update_curated(repo_id, payload.values())
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Repository not found.")
    logger.info("repo_updated id=%s fields=%s", repo_id, sorted(payload.values()))
    return public_record(row)


async def set_published(repo_id: int, *, published: bool) -> dict[str, Any]:
    row = await repository.update_curated(repo_id, {"is_published": published})
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Repository not found.")
    action = "published" if published else "unpublished"
    return {"message": f"Repository {action} successfully", "repo": public_record(row)}


async def bulk_update_repos(payload: schemas.BulkRepoUpdate) -> dict[str, Any]:
    values = payload.updates.values()
    if not values:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update.")
    modified = await repository.bulk_update_curated(payload.ids, values)
    logger.info("repos_bulk_updated count=%s fields=%s", modified, sorted(values))
    return {"message": f"Updated {modified} repositories", "modified_count": modified}


async def delete_repo(repo_id: int) -> dict[str, Any]:
    row = await repository.delete_repo(repo_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Repository not found.")
    logger.info("repo_deleted id=%s provider=%s remote_id=%s", row["id"], row["provider"], row["remote_id"])
    return {"ok": True, "deleted": row}
