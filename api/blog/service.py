"""
Blog business logic: listing filters, slug handling, CRUD.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import asyncpg
from fastapi import HTTPException, status

from . import repository, schemas

logger = logging.getLogger(__name__)

_INVALID_SLUG_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASHES = re.compile(r"-+")

# blog_posts.id is a bigint.
MAX_POST_ID = 2**63 - 1


def slugify(value: str) -> str:
    slug = (value or "").strip().lower()
    slug = _INVALID_SLUG_CHARS.sub("", slug)
    slug = _WHITESPACE.sub("-", slug)
    slug = _DASHES.sub("-", slug)
    return slug.strip("-")


def unique_slug(base: str, taken: set[str]) -> str:
    """
    `base`, or `base-2`, `base-3`, ... whichever is free first.
    """
    candidate = base
    suffix = 2
    while candidate in taken:
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


def parse_tags(tag: str | None, tags: str | None) -> list[str] | None:
    collected: list[str] = []
    if tag and tag.strip():
        collected.append(tag.strip())
    if tags:
        collected.extend(t.strip() for t in tags.split(",") if t.strip())
    return collected or None


async def _resolve_slug(raw_slug: str | None, title: str | None, *, exclude_id: int | None = None) -> str | None:
    base = slugify(raw_slug or "") or slugify(title or "")
    if not base:
        return None
    taken = await repository.slugs_with_prefix(base, exclude_id=exclude_id)
    return unique_slug(base, taken)


async def list_posts(
    *,
    author: str | None,
    tag: str | None,
    tags: str | None,
    search: str | None,
    sort: str,
    order: str,
    limit: int,
    offset: int,
) -> dict[str, Any]:
    if sort not in repository.SORTABLE_COLUMNS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot sort by {sort!r}. Allowed: {sorted(repository.SORTABLE_COLUMNS)}",
        )

    rows, total = await repository.list_posts(
        author=(author or "").strip() or None,
        tags=parse_tags(tag, tags),
        search=(search or "").strip() or None,
        sort=sort,
        descending=order.lower() == "desc",
        limit=limit,
        offset=offset,
    )
    return {
        "posts": rows,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(rows) < total,
        },
    }


def _is_post_id(key: str) -> bool:
    return key.isascii() and key.isdigit() and len(key) <= 19 and int(key) <= MAX_POST_ID


async def get_post(id_or_slug: str) -> dict[str, Any]:
    key = (id_or_slug or "").strip()
    row = await repository.get_post(int(key)) if _is_post_id(key) else None
    if row is None:
        row = await repository.get_post_by_slug(key.lower())
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog post not found.")
    return row


async def create_post(payload: schemas.BlogPostCreate) -> dict[str, Any]:
    values = payload.model_dump(exclude_none=True)
    slug = await _resolve_slug(values.pop("slug", None), values.get("title"))
    if slug:
        values["slug"] = slug

    try:
        row = await repository.insert_post(values)
    except asyncpg.UniqueViolationError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug is already taken.") from exc

    logger.info("blog_post_created id=%s slug=%s", row["id"], row.get("slug"))
    return row


async def update_post(post_id: int, payload: schemas.BlogPostUpdate) -> dict[str, Any]:
    values = payload.model_dump(exclude_unset=True)
    if values.get("slug"):
        values["slug"] = await _resolve_slug(values["slug"], None, exclude_id=post_id)

    try:
        row = await repository.update_post(post_id, values)
    except asyncpg.UniqueViolationError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug is already taken.") from exc

    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog post not found.")
    return row


async def delete_post(post_id: int) -> dict[str, Any]:
    row = await repository.delete_post(post_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog post not found.")
    logger.info("blog_post_deleted id=%s", post_id)
    return {"message": "Blog post deleted", "id": post_id}


async def bulk_update(payload: schemas.BulkUpdateRequest) -> dict[str, Any]:
    values = payload.updates.model_dump(exclude_unset=True)
    if "slug" in values:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Slugs cannot be bulk updated.",
        )
    if not values:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update.")

    modified = await repository.bulk_update_posts(payload.ids, values)
    return {"message": f"Updated {modified} posts", "modified_count": modified, "matched_count": len(payload.ids)}


async def bulk_delete(payload: schemas.BulkDeleteRequest) -> dict[str, Any]:
    deleted = await repository.bulk_delete_posts(payload.ids)
    return {"message": f"Deleted {deleted} posts", "deleted_count": deleted}
