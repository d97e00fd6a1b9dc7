"""
Repository-mirror persistence (raw SQL).

The first four functions form the record store used by `repos.sync`:
list_for_provider / insert / update / delete_many. Everything below them
serves the read APIs and admin edits.
"""

from __future__ import annotations

from collections.abc import Collection, Iterator
from contextlib import contextmanager
from typing import Any

import asyncpg

from core import db

from .records import CURATED_FIELDS, SYNCED_FIELDS, PersistenceError

WRITABLE_COLUMNS: frozenset[str] = frozenset(SYNCED_FIELDS) | CURATED_FIELDS | {"raw", "fetched_at"}

PUBLIC_COLUMNS = """
    id, provider, remote_id, title, description, url, language, topics,
    stars, forks, watchers, open_issues, size, default_branch,
    is_private, is_fork, has_wiki, has_pages, has_downloads, license,
    remote_created_at, remote_updated_at, pushed_at, homepage,
    is_featured, hidden, display_order, category, tech_stack, demo_url,
    screenshots, is_published, portfolio_title, portfolio_description,
    fetched_at, created_at, updated_at
"""

# `raw` is only needed to derive `github_url`; it is dropped before responses.
FULL_COLUMNS = PUBLIC_COLUMNS + ", raw"


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
        raise PersistenceError(f"{action} failed: {exc}") from exc


def _decode(row: dict[str, Any]) -> dict[str, Any]:
    if "raw" in row:
        row["raw"] = db.json_value(row["raw"])
    return row


def _bind(name: str, index: int) -> str:
    return f"${index}::jsonb" if name == "raw" else f"${index}"


def _arg(name: str, value: Any) -> Any:
    return db.json_arg(value) if name == "raw" else value


def _check_columns(values: dict[str, Any]) -> None:
    unknown = set(values) - WRITABLE_COLUMNS
    if unknown:
        raise ValueError(f"Unknown repo columns: {sorted(unknown)}")


def _assignments(values: dict[str, Any], *, start: int) -> tuple[str, list[Any]]:
    _check_columns(values)
    parts: list[str] = []
    args: list[Any] = []
    for offset, (name, value) in enumerate(values.items()):
        parts.append(f"{name} = {_bind(name, start + offset)}")
        args.append(_arg(name, value))
    parts.append("updated_at = now()")
    return ",\n            ".join(parts), args


async def list_for_provider(provider: str) -> list[dict[str, Any]]:
    with _store_errors(f"Loading repos for provider {provider}"):
        rows = await db.fetch_all(
            f"""
            SELECT {FULL_COLUMNS}
            FROM repos
            WHERE provider = $1
            ORDER BY id
            """,
            provider,
        )
    return [_decode(r) for r in rows]


async def insert(provider: str, remote_id: str, values: dict[str, Any]) -> dict[str, Any]:
    """
    Create a record. A concurrent create of the same (provider, remote_id)
    turns into an update of the written fields instead of a duplicate.
    """
    _check_columns(values)
    names = list(values)
    columns = ", ".join(["provider", "remote_id", *names])
    placeholders = ", ".join(["$1", "$2", *(_bind(n, i) for i, n in enumerate(names, start=3))])
    conflict_set = ",\n              ".join([*(f"{n} = EXCLUDED.{n}" for n in names), "updated_at = now()"])

    with _store_errors(f"Inserting repo {provider}/{remote_id}"):
        row = await db.fetch_one(
            f"""
            INSERT INTO repos ({columns})
            VALUES ({placeholders})
            ON CONFLICT (provider, remote_id) DO UPDATE
            SET {conflict_set}
            RETURNING {FULL_COLUMNS}
            """,
            provider,
            remote_id,
            *(_arg(n, values[n]) for n in names),
        )
    if row is None:
        raise PersistenceError(f"Failed to insert repo {provider}/{remote_id}.")
    return _decode(row)


async def update(provider: str, remote_id: str, values: dict[str, Any]) -> dict[str, Any]:
    assignments, args = _assignments(values, start=3)
    with _store_errors(f"Updating repo {provider}/{remote_id}"):
        row = await db.fetch_one(
            f"""
            UPDATE repos
            SET {assignments}
            WHERE provider = $1
              AND remote_id = $2
            RETURNING {FULL_COLUMNS}
            """,
            provider,
            remote_id,
            *args,
        )
    if row is None:
        raise PersistenceError(f"Repo {provider}/{remote_id} disappeared during update.")
    return _decode(row)


async def delete_many(provider: str, remote_ids: Collection[str]) -> int:
    if not remote_ids:
        return 0
    with _store_errors(f"Deleting repos for provider {provider}"):
        return await db.execute_count(
            """
            DELETE FROM repos
            WHERE provider = $1
              AND remote_id = ANY($2::text[])
            """,
            provider,
            list(remote_ids),
        )


async def list_repos(
    *,
    provider: str | None = None,
    featured: bool | None = None,
    hidden: bool | None = None,
    language: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """
    Filtered listing, most recently synced first. Returns (rows, total).
    """
    where = """
        WHERE ($1::text IS NULL OR provider = $1)
          AND ($2::boolean IS NULL OR is_featured = $2)
          AND ($3::boolean IS NULL OR hidden = $3)
          AND ($4::text IS NULL OR language = $4)
    """
    args = (provider, featured, hidden, language)
    rows = await db.fetch_all(
        f"""
        SELECT {FULL_COLUMNS}
        FROM repos
        {where}
        ORDER BY fetched_at DESC, id DESC
        LIMIT $5
        OFFSET $6
        """,
        *args,
        limit,
        offset,
    )
    total = await db.fetch_value(f"SELECT count(*) FROM repos {where}", *args)
    return [_decode(r) for r in rows], int(total or 0)


async def list_admin(*, provider: str | None = None, limit: int = 100, offset: int = 0) -> tuple[list[dict[str, Any]], int]:
    rows = await db.fetch_all(
        f"""
        SELECT {FULL_COLUMNS}
        FROM repos
        WHERE ($1::text IS NULL OR provider = $1)
        ORDER BY display_order ASC, is_featured DESC, stars DESC, id ASC
        LIMIT $2
        OFFSET $3
        """,
        provider,
        limit,
        offset,
    )
    total = await db.fetch_value(
        "SELECT count(*) FROM repos WHERE ($1::text IS NULL OR provider = $1)",
        provider,
    )
    return [_decode(r) for r in rows], int(total or 0)


async def list_published(*, limit: int = 50) -> list[dict[str, Any]]:
    rows = await db.fetch_all(
        f"""
        SELECT {FULL_COLUMNS}
        FROM repos
        WHERE is_published = true
          AND hidden = false
        ORDER BY display_order ASC, is_featured DESC, stars DESC
        LIMIT $1
        """,
        limit,
    )
    return [_decode(r) for r in rows]


async def list_featured(*, limit: int = 6) -> list[dict[str, Any]]:
    rows = await db.fetch_all(
        f"""
        SELECT {FULL_COLUMNS}
        FROM repos
        WHERE is_featured = true
          AND is_published = true
          AND hidden = false
        ORDER BY display_order ASC, stars DESC
        LIMIT $1
        """,
        limit,
    )
    return [_decode(r) for r in rows]


async def list_by_language(language: str, *, limit: int = 10) -> list[dict[str, Any]]:
    rows = await db.fetch_all(
        f"""
        SELECT {FULL_COLUMNS}
        FROM repos
        WHERE lower(language) = lower($1)
          AND hidden = false
        ORDER BY stars DESC, remote_updated_at DESC NULLS LAST
        LIMIT $2
        """,
        language,
        limit,
    )
    return [_decode(r) for r in rows]


async def list_popular(*, limit: int = 10) -> list[dict[str, Any]]:
    rows = await db.fetch_all(
        f"""
        SELECT {FULL_COLUMNS}
        FROM repos
        WHERE hidden = false
          AND is_fork = false
        ORDER BY stars DESC, forks DESC
        LIMIT $1
        """,
        limit,
    )
    return [_decode(r) for r in rows]


async def list_recent(*, limit: int = 10) -> list[dict[str, Any]]:
    rows = await db.fetch_all(
        f"""
        SELECT {FULL_COLUMNS}
        FROM repos
        WHERE hidden = false
        ORDER BY pushed_at DESC NULLS LAST, remote_updated_at DESC NULLS LAST
        LIMIT $1
        """,
        limit,
    )
    return [_decode(r) for r in rows]


async def get_repo(repo_id: int) -> dict[str, Any] | None:
    row = await db.fetch_one(f"SELECT {FULL_COLUMNS} FROM repos WHERE id = $1", repo_id)
    return _decode(row) if row is not None else None


async def update_curated(repo_id: int, values: dict[str, Any]) -> dict[str, Any] | None:
    """
    Admin edit of curated fields. Returns None when the repo does not exist.
    """
    if set(values) - CURATED_FIELDS:
        raise ValueError("Only curated fields can be edited directly.")
    if not values:
        return await get_repo(repo_id)

    assignments, args = _assignments(values, start=2)
    row = await db.fetch_one(
        f"""
        UPDATE repos
        SET {assignments}
        WHERE id = $1
        RETURNING {FULL_COLUMNS}
        """,
        repo_id,
        *args,
    )
    return _decode(row) if row is not None else None


async def bulk_update_curated(repo_ids: list[int], values: dict[str, Any]) -> int:
    if set(values) - CURATED_FIELDS:
        raise ValueError("Only curated fields can be edited directly.")
    if not repo_ids or not values:
        return 0

    assignments, args = _assignments(values, start=2)
    return await db.execute_count(
        f"""
        UPDATE repos
        SET {assignments}
        WHERE id = ANY($1::bigint[])
        """,
        repo_ids,
        *args,
    )


async def delete_repo(repo_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        DELETE FROM repos
        WHERE id = $1
        RETURNING id, provider, remote_id, title
        """,
        repo_id,
    )


async def stats(*, provider: str | None = None) -> dict[str, Any]:
    """
    Read-side aggregation over the mirror, optionally for one provider.
    """
    total = await db.fetch_value(
        "SELECT count(*) FROM repos WHERE ($1::text IS NULL OR provider = $1)",
        provider,
    )
    featured = await db.fetch_value(
        """
        SELECT count(*)
        FROM repos
        WHERE ($1::text IS NULL OR provider = $1)
          AND is_featured = true
        """,
        provider,
    )
    languages = await db.fetch_all(
        """
        SELECT language, count(*) AS count
        FROM repos
        WHERE ($1::text IS NULL OR provider = $1)
          AND language IS NOT NULL
        GROUP BY language
        ORDER BY count DESC, language ASC
        LIMIT 10
        """,
        provider,
    )
    providers = await db.fetch_all(
        """
        SELECT provider, count(*) AS count
        FROM repos
        WHERE ($1::text IS NULL OR provider = $1)
        GROUP BY provider
        ORDER BY count DESC, provider ASC
        """,
        provider,
    )
    recent = await db.fetch_all(
        """
        SELECT title, provider, fetched_at
        FROM repos
        WHERE ($1::text IS NULL OR provider = $1)
        ORDER BY fetched_at DESC NULLS LAST
        LIMIT 5
        """,
        provider,
    )
    return {
        "total": int(total or 0),
        "featured": int(featured or 0),
        "languages": [{"language": r["language"], "count": int(r["count"])} for r in languages],
        "by_provider": [{"provider": r["provider"], "count": int(r["count"])} for r in providers],
        "recently_synced": recent,
    }
