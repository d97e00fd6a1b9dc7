"""
Admin guards for protected routes.

`get_current_admin` resolves the bearer token to an active admin row.
`get_admin_with_github` adds the admin's stored GitHub credentials for the
routes that talk to GitHub on the admin's behalf.
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status

from core.config import Settings, get_settings

from . import repository, service


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _extract_bearer_token(authorization: str | None) -> str:
    header = (authorization or "").strip()
    if not header:
        raise _unauthorized("No token provided.")

    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized("Invalid auth header format. Expected: Bearer <token>.")
    return token.strip()


async def get_current_admin(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> dict:
    token = _extract_bearer_token(authorization)
    return await service.get_admin_from_access_token(settings, token)


async def get_admin_with_github(current_admin: dict = Depends(get_current_admin)) -> dict:
    # The token column is never part of the regular user row.
    credentials = await repository.get_github_credentials(int(current_admin["id"]))
    return {**current_admin, **(credentials or {})}
