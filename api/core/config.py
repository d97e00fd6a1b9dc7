"""
Process-wide settings.

Settings are read from the environment once at startup (see `api/main.py`)
and handed to the code that needs them. Request handlers get them through
`get_settings`, never from module globals.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from fastapi import Request

DEFAULT_JWT_SECRET = "dev-change-this-secret"
DEFAULT_GITHUB_API_URL = "https://api.github.com"


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = ""

    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 7 * 24 * 60

    github_api_url: str = DEFAULT_GITHUB_API_URL
    github_username: str = ""
    github_token: str = ""
    github_timeout_s: float = 30.0
    github_max_pages: int = 10
    github_per_page: int = 100

    cors_origins: tuple[str, ...] = field(
        default=("http://localhost:5173", "http://127.0.0.1:5173")
    )

    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "./logs"

    admin_username: str = "admin"
    admin_email: str = "admin@portfolio.com"
    admin_password: str = ""

    @property
    def github_configured(self) -> bool:
        return bool(self.github_username and self.github_token)

    @classmethod
    def from_env(cls) -> Settings:
        defaults = cls()
        return cls(
            database_url=_env_str("DATABASE_URL"),
            jwt_secret=_env_str("JWT_SECRET", DEFAULT_JWT_SECRET),
            jwt_algorithm=_env_str("JWT_ALG", "HS256"),
            access_token_expire_minutes=_env_int(
                "ACCESS_TOKEN_EXPIRE_MIN", defaults.access_token_expire_minutes
            ),
            github_api_url=_env_str("GITHUB_API_URL", DEFAULT_GITHUB_API_URL),
            github_username=_env_str("GITHUB_USERNAME"),
            github_token=_env_str("GITHUB_TOKEN"),
            github_timeout_s=_env_float("GITHUB_TIMEOUT_S", defaults.github_timeout_s),
            github_max_pages=_env_int("GITHUB_MAX_PAGES", defaults.github_max_pages),
            github_per_page=_env_int("GITHUB_PER_PAGE", defaults.github_per_page),
            cors_origins=_env_list("CORS_ORIGINS", defaults.cors_origins),
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
            log_to_file=_env_bool("LOG_TO_FILE"),
            log_dir=_env_str("LOG_DIR", "./logs"),
            admin_username=_env_str("ADMIN_USERNAME", defaults.admin_username),
            admin_email=_env_str("ADMIN_EMAIL", defaults.admin_email),
            admin_password=_env_str("ADMIN_PASSWORD"),
        )


def get_settings(request: Request) -> Settings:
    """
    FastAPI dependency returning the settings built at startup.
    """
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise RuntimeError("Settings are not initialized. Build them in the app lifespan.")
    return settings
