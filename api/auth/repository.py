"""
Admin user persistence helpers.
"""

from __future__ import annotations

from typing import Any

from core import db

# github_token is deliberately absent; use get_github_credentials().
USER_COLUMNS = """
    id, username, email, password_hash, role, is_active, last_login,
    github_username, created_at, updated_at
"""

PROFILE_COLUMNS = frozenset({"email", "github_username"})


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def create_admin(
    *,
    username: str,
    email: str,
    password_hash: str,
    role: str = "admin",
    github_username: str | None = None,
) -> dict:
    row = await db.fetch_one(
        f"""
        INSERT INTO admin_users (username, email, password_hash, role, github_username)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING {USER_COLUMNS}
        """,
        username.strip(),
        normalize_email(email),
        password_hash,
        role,
        github_username or None,
    )
    if row is None:
        raise RuntimeError("Failed to create admin user.")
    return row


async def find_by_username_or_email(*, username: str, email: str) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {USER_COLUMNS}
        FROM admin_users
        WHERE username = $1
           OR lower(email) = lower($2)
        LIMIT 1
        """,
        username.strip(),
        normalize_email(email),
    )


async def get_active_by_identifier(identifier: str) -> dict | None:
    """
    Login lookup: `identifier` is either the email or the username.
    """
    return await db.fetch_one(
        f"""
        SELECT {USER_COLUMNS}
        FROM admin_users
        WHERE (lower(email) = lower($1) OR username = $2)
          AND is_active = true
        LIMIT 1
        """,
        normalize_email(identifier),
        (identifier or "").strip(),
    )


async def get_user_by_id(user_id: int) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {USER_COLUMNS}
        FROM admin_users
        WHERE id = $1
        """,
        user_id,
    )


async def touch_last_login(user_id: int) -> None:
    await db.execute(
        """
        UPDATE admin_users
        SET last_login = now()
        WHERE id = $1
        """,
        user_id,
    )


async def update_profile(user_id: int, values: dict[str, Any]) -> dict | None:
    unknown = set(values) - PROFILE_COLUMNS
    if unknown:
        raise ValueError(f"Unknown profile fields: {sorted(unknown)}")
    if "email" in values:
        values = {**values, "email": normalize_email(values["email"])}

    assignments = [f"{name} = ${i}" for i, name in enumerate(values, start=2)]
    assignments.append("updated_at = now()")
    return await db.fetch_one(
        f"""
        UPDATE admin_users
        SET {", ".join(assignments)}
        WHERE id = $1
        RETURNING {USER_COLUMNS}
        """,
        user_id,
        *values.values(),
    )


async def update_password(user_id: int, password_hash: str) -> None:
    await db.execute(
        """
        UPDATE admin_users
        SET password_hash = $2,
            updated_at = now()
        WHERE id = $1
        """,
        user_id,
        password_hash,
    )


async def set_github_credentials(user_id: int, *, github_username: str, github_token: str) -> dict | None:
    return await db.fetch_one(
        f"""
        UPDATE admin_users
        SET github_username = $2,
            github_token = $3,
            updated_at = now()
        WHERE id = $1
        RETURNING {USER_COLUMNS}
        """,
        user_id,
        github_username,
        github_token,
    )


async def get_github_credentials(user_id: int) -> dict | None:
    return await db.fetch_one(
        """
        SELECT github_username, github_token
        FROM admin_users
        WHERE id = $1
        """,
        user_id,
    )
