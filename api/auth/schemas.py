"""
Auth API schemas (request/response models).
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

EMAIL_PATTERN = r"^\S+@\S+\.\S+$"


class LoginRequest(BaseModel):
    # Email or username.
    identifier: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)


class ProfileUpdate(BaseModel):
    email: str | None = Field(default=None, max_length=320, pattern=EMAIL_PATTERN)
    github_username: str | None = Field(default=None, min_length=1, max_length=100)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=6, max_length=128)


class GitHubConfigureRequest(BaseModel):
    github_token: str = Field(..., min_length=1)
    github_username: str = Field(..., min_length=1, max_length=100)


class AdminResponse(BaseModel):
    id: int
    username: str
    email: str
    role: Literal["admin", "moderator"]
    is_active: bool
    github_username: str | None = None
    last_login: datetime | None = None
    created_at: datetime


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: AdminResponse
