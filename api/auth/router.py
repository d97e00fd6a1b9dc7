"""
Admin authentication and profile endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from core.config import Settings, get_settings

from . import dependencies, schemas, service

router = APIRouter(prefix="/admin")


@router.post("/login")
async def login(
    request: schemas.LoginRequest,
    settings: Settings = Depends(get_settings),
) -> schemas.LoginResponse:
    return await service.login(settings, request)


@router.get("/profile")
async def get_profile(
    current_admin: dict = Depends(dependencies.get_current_admin),
) -> schemas.AdminResponse:
    return service.to_admin_response(current_admin)


@router.patch("/profile")
async def update_profile(
    request: schemas.ProfileUpdate,
    current_admin: dict = Depends(dependencies.get_current_admin),
) -> schemas.AdminResponse:
    return await service.update_profile(int(current_admin["id"]), request)


@router.post("/change-password")
async def change_password(
    request: schemas.ChangePasswordRequest,
    current_admin: dict = Depends(dependencies.get_current_admin),
) -> dict:
    return await service.change_password(int(current_admin["id"]), request)


@router.post("/github/configure")
async def configure_github(
    request: schemas.GitHubConfigureRequest,
    settings: Settings = Depends(get_settings),
    current_admin: dict = Depends(dependencies.get_current_admin),
) -> dict:
    return await service.configure_github(settings, int(current_admin["id"]), request)
