"""
Repository-mirror API endpoints.

- `/api/repos`                 public filtered listing + admin edits
- `/api/github/...`            portfolio reads, manual fetch/sync, info
- `/admin/github/...`          sync/rate-limit/languages with stored credentials
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from auth import dependencies as auth_dependencies
from core.config import Settings, get_settings

from . import schemas, service

router = APIRouter()


# --- public reads ---------------------------------------------------------


@router.get("/api/repos")
async def list_repos(
    provider: str | None = Query(default=None, max_length=50),
    featured: bool | None = None,
    hidden: bool | None = None,
    language: str | None = Query(default=None, max_length=100),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> dict:
    return await service.list_repos(
        provider=provider,
        featured=featured,
        hidden=hidden,
        language=language,
        limit=limit,
        offset=offset,
    )


@router.get("/api/github/portfolio/repos")
async def portfolio_repos(limit: int = Query(50, ge=1, le=200)) -> dict:
    return await service.portfolio_repos(limit=limit)


@router.get("/api/github/portfolio/repos/featured")
async def featured_repos(limit: int = Query(6, ge=1, le=50)) -> dict:
    return await service.featured_repos(limit=limit)


@router.get("/api/github/portfolio/repos/popular")
async def popular_repos(limit: int = Query(10, ge=1, le=50)) -> dict:
    return await service.popular_repos(limit=limit)


@router.get("/api/github/portfolio/repos/recent")
async def recent_repos(limit: int = Query(10, ge=1, le=50)) -> dict:
    return await service.recent_repos(limit=limit)


@router.get("/api/github/portfolio/repos/language/{language}")
async def repos_by_language(language: str, limit: int = Query(10, ge=1, le=50)) -> dict:
    return await service.repos_by_language(language, limit=limit)


@router.get("/api/github/portfolio/stats")
async def repo_stats(provider: str | None = Query(default=None, max_length=50)) -> dict:
    return await service.repo_stats(provider=provider)


# --- admin: mirror management ---------------------------------------------


@router.get("/api/github/admin/repos")
async def admin_repos(
    provider: str | None = Query(default=None, max_length=50),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.list_admin_repos(provider=provider, limit=limit, offset=offset)


@router.get("/api/github/info")
async def github_info(
    settings: Settings = Depends(get_settings),
    admin: dict = Depends(auth_dependencies.get_admin_with_github),
) -> dict:
    provider = service.resolve_provider(settings, admin_user=admin)
    return await service.github_info(provider)


@router.post("/api/github/fetch")
async def fetch_and_sync(
    request: schemas.FetchRequest,
    settings: Settings = Depends(get_settings),
    admin: dict = Depends(auth_dependencies.get_admin_with_github),
) -> dict:
    provider = service.resolve_provider(
        settings,
        username=request.username,
        token=request.token,
        admin_user=admin,
    )
    return await service.run_sync(provider, request.options)


@router.post("/api/github/sync-single")
async def sync_single(
    request: schemas.SyncSingleRequest,
    settings: Settings = Depends(get_settings),
    admin: dict = Depends(auth_dependencies.get_admin_with_github),
) -> dict:
    provider = service.resolve_provider(settings, admin_user=admin)
    return await service.sync_single_repo(provider, request)


# Registered before /api/repos/{repo_id} so "bulk" is not parsed as an id.
@router.patch("/api/repos/bulk")
async def bulk_update_repos(
    request: schemas.BulkRepoUpdate,
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.bulk_update_repos(request)


@router.patch("/api/repos/{repo_id}")
async def update_repo(
    repo_id: int,
    request: schemas.RepoUpdate,
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.update_repo(repo_id, request)


@router.delete("/api/repos/{repo_id}")
async def delete_repo(
    repo_id: int,
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.delete_repo(repo_id)


@router.post("/api/repos/{repo_id}/publish")
async def publish_repo(
    repo_id: int,
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.set_published(repo_id, published=True)


@router.post("/api/repos/{repo_id}/unpublish")
async def unpublish_repo(
    repo_id: int,
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.set_published(repo_id, published=False)


# --- admin: stored-credential shortcuts -----------------------------------


@router.post("/admin/github/sync")
async def admin_sync(
    request: schemas.SyncOptionsBody | None = None,
    settings: Settings = Depends(get_settings),
    admin: dict = Depends(auth_dependencies.get_admin_with_github),
) -> dict:
    provider = service.resolve_provider(settings, admin_user=admin)
    return await service.run_sync(provider, request or schemas.SyncOptionsBody())


@router.get("/admin/github/rate-limit")
async def admin_rate_limit(
    settings: Settings = Depends(get_settings),
    admin: dict = Depends(auth_dependencies.get_admin_with_github),
) -> dict:
    provider = service.resolve_provider(settings, admin_user=admin)
    return await service.rate_limit(provider)


@router.get("/admin/github/languages")
async def admin_languages(
    settings: Settings = Depends(get_settings),
    admin: dict = Depends(auth_dependencies.get_admin_with_github),
) -> dict:
    provider = service.resolve_provider(settings, admin_user=admin)
    return {"languages": await service.languages(provider)}
