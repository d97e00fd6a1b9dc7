"""
Auth business logic.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from core import github
from core.config import Settings

from . import repository, schemas, security

logger = logging.getLogger(__name__)


def to_admin_response(user_row: dict) -> schemas.AdminResponse:
    return schemas.AdminResponse(
        id=int(user_row["id"]),
        username=str(user_row["username"]),
        email=str(user_row["email"]),
        role=str(user_row.get("role") or "admin"),
        is_active=bool(user_row["is_active"]),
        github_username=user_row.get("github_username"),
        last_login=user_row.get("last_login"),
        created_at=user_row["created_at"],
    )


async def login(settings: Settings, payload: schemas.LoginRequest) -> schemas.LoginResponse:
    user_row = await repository.get_active_by_identifier(payload.identifier)
    if user_row is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials.",
        )

    is_valid = security.verify_password(payload.password, str(user_row.get("password_hash") or ""))
    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials.",
        )

    await repository.touch_last_login(int(user_row["id"]))
    user_row = await repository.get_user_by_id(int(user_row["id"])) or user_row

    token = security.build_access_token(
        settings,
        user_id=int(user_row["id"]),
        username=str(user_row["username"]),
        role=str(user_row.get("role") or "admin"),
    )
    logger.info("admin_login username=%s", user_row["username"])
    return schemas.LoginResponse(token=token, user=to_admin_response(user_row))


async def get_admin_from_access_token(settings: Settings, access_token: str) -> dict:
    try:
        payload = security.decode_access_token(settings, access_token)
    except security.AuthSecurityError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc

    subject = str(payload.get("sub") or "").strip()
    if not subject.isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token subject.",
        )

    user_row = await repository.get_user_by_id(int(subject))
    if user_row is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found.",
        )
    if not bool(user_row.get("is_active", False)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is inactive.",
        )
    return user_row


async def update_profile(user_id: int, payload: schemas.ProfileUpdate) -> schemas.AdminResponse:
    values = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not values:
        user_row = await repository.get_user_by_id(user_id)
    else:
        user_row = await repository.update_profile(user_id, values)
    if user_row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return to_admin_response(user_row)


async def change_password(user_id: int, payload: schemas.ChangePasswordRequest) -> dict[str, str]:
    user_row = await repository.get_user_by_id(user_id)
    if user_row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    if not security.verify_password(payload.current_password, str(user_row.get("password_hash") or "")):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect.",
        )

    await repository.update_password(user_id, security.hash_password(payload.new_password))
    logger.info("admin_password_changed username=%s", user_row["username"])
    return {"message": "Password updated successfully"}


async def configure_github(
    settings: Settings,
    user_id: int,
    payload: schemas.GitHubConfigureRequest,
) -> dict[str, str]:
    """
    Store GitHub credentials after checking the token belongs to the given login.
    """
    try:
        remote_user = await github.get_authenticated_user(
            base_url=settings.github_api_url,
            token=payload.github_token,
            timeout_s=settings.github_timeout_s,
        )
    except (github.RemoteFetchError, github.NotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid GitHub token.") from exc

    if str(remote_user.get("login") or "").lower() != payload.github_username.strip().lower():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="GitHub username does not match token.",
        )

    user_row = await repository.set_github_credentials(
        user_id,
        github_username=payload.github_username.strip(),
        github_token=payload.github_token,
    )
    if user_row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin user not found.")

    logger.info("admin_github_configured username=%s github=%s", user_row["username"], user_row["github_username"])
    return {
        "message": "GitHub credentials configured successfully",
        "github_username": str(user_row["github_username"]),
    }


async def create_admin_if_missing(
    *,
    username: str,
    email: str,
    password: str,
    github_username: str | None = None,
) -> tuple[dict, bool]:
    """
    Returns (user_row, created).
    """
    existing = await repository.find_by_username_or_email(username=username, email=email)
    if existing is not None:
        return existing, False

    user_row = await repository.create_admin(
        username=username,
        email=email,
        password_hash=security.hash_password(password),
        github_username=github_username,
    )
    return user_row, True
