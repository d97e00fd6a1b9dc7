"""
Create the admin user from ADMIN_USERNAME / ADMIN_EMAIL / ADMIN_PASSWORD.

Run from `api/`:
    python -m scripts.seed_admin

Does nothing when a user with that username or email already exists.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from auth import service as auth_service
from core import db
from core.config import Settings
from core.log import configure_logging

logger = logging.getLogger(__name__)


async def seed(settings: Settings) -> bool:
    if not settings.admin_password:
        raise RuntimeError("ADMIN_PASSWORD is not set.")

    await db.init_pool(settings.database_url)
    try:
        user, created = await auth_service.create_admin_if_missing(
            username=settings.admin_username,
            email=settings.admin_email,
            password=settings.admin_password,
            github_username=settings.github_username or None,
        )
    finally:
        await db.close_pool()

    if created:
        logger.info("admin_created id=%s username=%s", user["id"], user["username"])
    else:
        logger.info("admin_exists id=%s username=%s", user["id"], user["username"])
    return created


def main() -> int:
    settings = Settings.from_env()
    configure_logging(settings)
    try:
        asyncio.run(seed(settings))
    except Exception:
        logger.exception("seed_failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
