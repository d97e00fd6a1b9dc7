"""
Blog API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from auth import dependencies as auth_dependencies

from . import schemas, service

router = APIRouter(prefix="/api/blog")


@router.get("")
async def list_posts(
    author: str | None = Query(default=None, max_length=200),
    tag: str | None = Query(default=None, max_length=100),
    tags: str | None = Query(default=None, max_length=1000),
    search: str | None = Query(default=None, max_length=500),
    sort: str = Query(default="created_at"),
    order: str = Query(default="desc", pattern="^(asc|desc|ASC|DESC)$"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> dict:
    return await service.list_posts(
        author=author,
        tag=tag,
        tags=tags,
        search=search,
        sort=sort,
        order=order,
        limit=limit,
        offset=offset,
    )


@router.get("/{id_or_slug}")
async def get_post(id_or_slug: str) -> dict:
    return await service.get_post(id_or_slug)


@router.post("/admin", status_code=201)
async def create_post(
    request: schemas.BlogPostCreate,
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.create_post(request)


@router.patch("/admin/bulk/update")
async def bulk_update(
    request: schemas.BulkUpdateRequest,
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.bulk_update(request)


@router.delete("/admin/bulk/delete")
async def bulk_delete(
    request: schemas.BulkDeleteRequest,
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.bulk_delete(request)


@router.patch("/admin/{post_id}")
async def update_post(
    post_id: int,
    request: schemas.BlogPostUpdate,
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.update_post(post_id, request)


@router.delete("/admin/{post_id}")
async def delete_post(
    post_id: int,
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.delete_post(post_id)
