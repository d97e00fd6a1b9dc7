"""
Portfolio API endpoints.

Public (read-only, active documents only):
- GET /api/portfolio/overview | /stats
- GET /api/portfolio/<kind> for certifications, skills, projects, work-experience, mywork
- GET /api/portfolio/projects/featured | /projects/type/{type} | /projects/{id}
- GET /api/portfolio/work-experience/current
- GET /api/portfolio/additional/{type}
- GET /api/portfolio/mywork/{id}

Admin (bearer token), for every kind:
- GET/POST /api/portfolio/admin/<kind>
- GET/PATCH/DELETE /api/portfolio/admin/<kind>/{id}
- PATCH /api/portfolio/admin/<kind>/bulk/update
- DELETE /api/portfolio/admin/<kind>/bulk/delete
"""

# Annotations in the route factory refer to per-kind models held in local
# variables, so they must be evaluated eagerly: no `from __future__ import annotations`.

from fastapi import APIRouter, Depends, Query

from auth import dependencies as auth_dependencies

from . import schemas, service

router = APIRouter(prefix="/api/portfolio")

PUBLIC_LIST_KINDS = (
    schemas.CERTIFICATIONS,
    schemas.SKILLS,
    schemas.PROJECTS,
    schemas.WORK_EXPERIENCE,
    schemas.MY_WORK,
)


# --- public: aggregates and entity-specific reads --------------------------


@router.get("/overview")
async def overview() -> dict:
    return await service.overview()


@router.get("/stats")
async def stats() -> dict:
    return await service.stats()


# Registered before the generic /projects/{id} route.
@router.get("/projects/featured")
async def featured_projects(limit: int = Query(6, ge=1, le=50)) -> dict:
    return await service.featured_projects(limit=limit)


@router.get("/projects/type/{project_type}")
async def projects_by_type(project_type: schemas.ProjectType, limit: int = Query(10, ge=1, le=50)) -> dict:
    return await service.projects_by_type(project_type, limit=limit)


@router.get("/work-experience/current")
async def current_role() -> dict:
    return await service.current_role()


@router.get("/additional/{section_type}")
async def sections_by_type(
    section_type: schemas.SectionType,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> dict:
    return await service.sections_by_type(section_type, limit=limit, offset=offset)


# --- admin: entity-specific operations -------------------------------------


@router.post("/admin/projects/{project_id}/toggle-featured")
async def toggle_featured(
    project_id: int,
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.toggle_featured(project_id)


@router.post("/admin/work-experience/{experience_id}/set-current")
async def set_current_role(
    experience_id: int,
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.set_current_role(experience_id)


@router.get("/admin/additional/type/{section_type}")
async def admin_sections_by_type(
    section_type: schemas.SectionType,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _: dict = Depends(auth_dependencies.get_current_admin),
) -> dict:
    return await service.sections_by_type(section_type, limit=limit, offset=offset)


# --- generic routes per kind -----------------------------------------------


def _register_public(kind: schemas.EntityKind, *, with_detail: bool) -> None:
    @router.get(f"/{kind.path}", name=f"public_list_{kind.kind}")
    async def list_active(
        limit: int = Query(100, ge=1, le=500),
        offset: int = Query(0, ge=0),
    ) -> dict:
        return await service.list_documents(kind, active_only=True, limit=limit, offset=offset)

    if with_detail:

        @router.get(f"/{kind.path}/{{document_id}}", name=f"public_get_{kind.kind}")
        async def get_active(document_id: int) -> dict:
            return await service.get_document(kind, document_id, active_only=True)


def _register_admin(kind: schemas.EntityKind) -> None:
    create_model = kind.create_model
    update_model = kind.update_model
    bulk_model = schemas.bulk_update_model(kind)
    base = f"/admin/{kind.path}"

    @router.get(base, name=f"admin_list_{kind.kind}")
    async def list_all(
        limit: int = Query(100, ge=1, le=500),
        offset: int = Query(0, ge=0),
        _: dict = Depends(auth_dependencies.get_current_admin),
    ) -> dict:
        return await service.list_documents(kind, active_only=False, limit=limit, offset=offset)

    @router.post(base, status_code=201, name=f"admin_create_{kind.kind}")
    async def create(
        request: create_model,
        _: dict = Depends(auth_dependencies.get_current_admin),
    ) -> dict:
        return await service.create_document(kind, request)

    @router.patch(f"{base}/bulk/update", name=f"admin_bulk_update_{kind.kind}")
    async def bulk_update(
        request: bulk_model,
        _: dict = Depends(auth_dependencies.get_current_admin),
    ) -> dict:
        return await service.bulk_update_documents(kind, request.ids, request.updates)

    @router.delete(f"{base}/bulk/delete", name=f"admin_bulk_delete_{kind.kind}")
    async def bulk_delete(
        request: schemas.BulkDeleteRequest,
        _: dict = Depends(auth_dependencies.get_current_admin),
    ) -> dict:
        return await service.bulk_delete_documents(kind, request.ids)

    @router.get(f"{base}/{{document_id}}", name=f"admin_get_{kind.kind}")
    async def get_one(
        document_id: int,
        _: dict = Depends(auth_dependencies.get_current_admin),
    ) -> dict:
        return await service.get_document(kind, document_id)

    @router.patch(f"{base}/{{document_id}}", name=f"admin_update_{kind.kind}")
    async def update(
        document_id: int,
        request: update_model,
        _: dict = Depends(auth_dependencies.get_current_admin),
    ) -> dict:
        return await service.update_document(kind, document_id, request)

    @router.delete(f"{base}/{{document_id}}", name=f"admin_delete_{kind.kind}")
    async def delete(
        document_id: int,
        _: dict = Depends(auth_dependencies.get_current_admin),
    ) -> dict:
        return await service.delete_document(kind, document_id)


for _kind in PUBLIC_LIST_KINDS:
    _register_public(_kind, with_detail=_kind in (schemas.PROJECTS, schemas.MY_WORK))

for _kind in schemas.ENTITY_KINDS:
    _register_admin(_kind)
