"""
Portfolio business logic.

Generic CRUD works for every `schemas.EntityKind`; the entity-specific
operations (featured projects, current role, sections by type) and the
overview/stats aggregates sit on top of it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import asyncpg
from fastapi import HTTPException, status
from pydantic import BaseModel

from . import schemas
from .repository import DocumentRepository

logger = logging.getLogger(__name__)

REPOSITORIES: dict[str, DocumentRepository] = {
    kind.kind: DocumentRepository(kind.kind) for kind in schemas.ENTITY_KINDS
}


def repository_for(kind: schemas.EntityKind) -> DocumentRepository:
    return REPOSITORIES[kind.kind]


def _not_found(kind: schemas.EntityKind) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{kind.label} not found.")


def _page(items: list[dict[str, Any]], *, total: int, limit: int, offset: int) -> dict[str, Any]:
    return {
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + len(items) < total,
    }


# --- generic CRUD ----------------------------------------------------------


async def list_documents(
    kind: schemas.EntityKind,
    *,
    active_only: bool,
    limit: int,
    offset: int,
) -> dict[str, Any]:
    repo = repository_for(kind)
    items = await repo.find(active_only=active_only, limit=limit, offset=offset)
    total = await repo.count(active_only=active_only)
    return {
        kind.collection: items,
        "pagination": _page(items, total=total, limit=limit, offset=offset),
    }


async def get_document(kind: schemas.EntityKind, document_id: int, *, active_only: bool = False) -> dict[str, Any]:
    document = await repository_for(kind).get(document_id, active_only=active_only)
    if document is None:
        raise _not_found(kind)
    return document


def _conflict(kind: schemas.EntityKind) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"{kind.label} already exists.")


async def create_document(kind: schemas.EntityKind, payload: BaseModel) -> dict[str, Any]:
    columns, data = schemas.split_payload(payload, partial=False)
    try:
        document = await repository_for(kind).insert(data, **columns)
    except asyncpg.UniqueViolationError as exc:
        raise _conflict(kind) from exc
    logger.info("portfolio_created kind=%s id=%s", kind.kind, document["id"])
    return document


async def update_document(kind: schemas.EntityKind, document_id: int, payload: BaseModel) -> dict[str, Any]:
    columns, data = schemas.split_payload(payload, partial=True)
    try:
        document = await repository_for(kind).update(document_id, data, columns)
    except asyncpg.UniqueViolationError as exc:
        raise _conflict(kind) from exc
    if document is None:
        raise _not_found(kind)
    logger.info("portfolio_updated kind=%s id=%s fields=%s", kind.kind, document_id, sorted({**columns, **data}))
    return document


async def delete_document(kind: schemas.EntityKind, document_id: int) -> dict[str, Any]:
    document = await repository_for(kind).delete(document_id)
    if document is None:
        raise _not_found(kind)
    logger.info("portfolio_deleted kind=%s id=%s", kind.kind, document_id)
    return {
        "message": f"{kind.label} deleted",
        "deleted_item": {"id": document["id"], "name": kind.display_name(document)},
    }


async def bulk_update_documents(kind: schemas.EntityKind, ids: list[int], updates: BaseModel) -> dict[str, Any]:
    columns, data = schemas.split_payload(updates, partial=True)
    if not columns and not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update.")

    modified = await repository_for(kind).bulk_update(ids, data, columns)
    logger.info("portfolio_bulk_updated kind=%s modified=%s fields=%s", kind.kind, modified, sorted({**columns, **data}))
    return {
        "message": f"Updated {modified} {kind.collection}",
        "modified_count": modified,
        "matched_count": len(ids),
    }


async def bulk_delete_documents(kind: schemas.EntityKind, ids: list[int]) -> dict[str, Any]:
    deleted = await repository_for(kind).bulk_delete(ids)
    logger.info("portfolio_bulk_deleted kind=%s deleted=%s", kind.kind, deleted)
    return {"message": f"Deleted {deleted} {kind.collection}", "deleted_count": deleted}


# --- projects --------------------------------------------------------------


async def featured_projects(*, limit: int) -> dict[str, Any]:
    projects = await repository_for(schemas.PROJECTS).find(
        active_only=True,
        match={"is_featured": True},
        limit=limit,
    )
    return {"projects": projects, "count": len(projects)}


async def projects_by_type(project_type: str, *, limit: int) -> dict[str, Any]:
    projects = await repository_for(schemas.PROJECTS).find(
        active_only=True,
        match={"type": project_type},
        limit=limit,
    )
    return {"type": project_type, "projects": projects, "count": len(projects)}


async def toggle_featured(project_id: int) -> dict[str, Any]:
    project = await repository_for(schemas.PROJECTS).toggle_flag(project_id, "is_featured")
    if project is None:
        raise _not_found(schemas.PROJECTS)
    featured = bool(project.get("is_featured"))
    logger.info("project_featured_toggled id=%s is_featured=%s", project_id, featured)
    return {
        "message": f"Project {'featured' if featured else 'unfeatured'}",
        "project": project,
    }


# --- work experience -------------------------------------------------------


async def _current_role() -> dict[str, Any] | None:
    roles = await repository_for(schemas.WORK_EXPERIENCE).find(
        active_only=True,
        match={"is_current_role": True},
        limit=1,
    )
    return roles[0] if roles else None


async def current_role() -> dict[str, Any]:
    role = await _current_role()
    if role is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No current role found.")
    return role


async def set_current_role(experience_id: int) -> dict[str, Any]:
    """
    Mark one work experience as the current role; every other one is unset.
    """
    experience = await repository_for(schemas.WORK_EXPERIENCE).set_exclusive_flag(experience_id, "is_current_role")
    if experience is None:
        raise _not_found(schemas.WORK_EXPERIENCE)
    logger.info("work_experience_set_current id=%s", experience_id)
    return {"message": "Work experience set as current role", "work_experience": experience}


# --- additional sections ---------------------------------------------------


async def sections_by_type(section_type: str, *, limit: int, offset: int) -> dict[str, Any]:
    repo = repository_for(schemas.ADDITIONAL_SECTIONS)
    match = {"section": {"type": section_type}}
    items = await repo.find(active_only=True, match=match, limit=limit, offset=offset)
    total = await repo.count(active_only=True, match=match)
    return {
        "type": section_type,
        "items": items,
        "pagination": _page(items, total=total, limit=limit, offset=offset),
    }


# --- aggregates ------------------------------------------------------------


async def overview() -> dict[str, Any]:
    certifications = await repository_for(schemas.CERTIFICATIONS).find(active_only=True, limit=10)
    skill_categories = await repository_for(schemas.SKILLS).find(active_only=True)
    featured = (await featured_projects(limit=6))["projects"]
    recent = await repository_for(schemas.PROJECTS).find(active_only=True, order="recent", limit=5)
    current = await _current_role()

    return {
        "overview": {
            "certifications": {"items": certifications, "total": len(certifications)},
            "skills": {"categories": skill_categories, "total": len(skill_categories)},
            "projects": {
                "featured": featured,
                "recent": recent,
                "featured_count": len(featured),
            },
            "work_experience": {"current": current},
        },
        "last_updated": datetime.now(timezone.utc),
    }


async def stats() -> dict[str, Any]:
    projects = repository_for(schemas.PROJECTS)
    by_type = await projects.count_by("type")

    return {
        "stats": {
            "certifications": await repository_for(schemas.CERTIFICATIONS).count(active_only=True),
            "skill_categories": await repository_for(schemas.SKILLS).count(active_only=True),
            "projects": {
                "total": await projects.count(active_only=True),
                "featured": await projects.count(active_only=True, match={"is_featured": True}),
                "by_type": [{"type": r["value"], "count": r["count"]} for r in by_type],
            },
            "work_experience": await repository_for(schemas.WORK_EXPERIENCE).count(active_only=True),
            "additional_sections": await repository_for(schemas.ADDITIONAL_SECTIONS).count(active_only=True),
            "my_work": await repository_for(schemas.MY_WORK).count(active_only=True),
        },
        "generated_at": datetime.now(timezone.utc),
    }
