"""
Blog persistence (raw SQL).
"""

from __future__ import annotations

from typing import Any

from core import db

POST_COLUMNS = """
    id, title, slug, excerpt, content, author, tags, video_url, cover_image,
    created_at, updated_at
"""

WRITABLE_COLUMNS = frozenset(
    {"title", "slug", "excerpt", "content", "author", "tags", "video_url", "cover_image"}
)

SORTABLE_COLUMNS = frozenset({"created_at", "updated_at", "title", "author"})


def _check_columns(values: dict[str, Any]) -> None:
    unknown = set(values) - WRITABLE_COLUMNS
    if unknown:
        raise ValueError(f"Unknown blog post fields: {sorted(unknown)}")


def _filters(
    *,
    author: str | None,
    tags: list[str] | None,
    search: str | None,
) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    args: list[Any] = []
    if author:
        args.append(author)
        clauses.append(f"author = ${len(args)}")
    if tags:
        args.append(tags)
        clauses.append(f"tags && ${len(args)}::text[]")
    if search:
        args.append(f"%{search}%")
        n = len(args)
        clauses.append(f"(title ILIKE ${n} OR excerpt ILIKE ${n} OR content ILIKE ${n})")
    where = ("WHERE " + "\n  AND ".join(clauses)) if clauses else ""
    return where, args


async def list_posts(
    *,
    author: str | None = None,
    tags: list[str] | None = None,
    search: str | None = None,
    sort: str = "created_at",
    descending: bool = True,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    if sort not in SORTABLE_COLUMNS:
        raise ValueError(f"Cannot sort by {sort!r}.")
    direction = "DESC" if descending else "ASC"
    where, args = _filters(author=author, tags=tags, search=search)

    rows = await db.fetch_all(
        f"""
        SELECT {POST_COLUMNS}
        FROM blog_posts
        {where}
        ORDER BY {sort} {direction} NULLS LAST, id {direction}
        LIMIT ${len(args) + 1}
        OFFSET ${len(args) + 2}
        """,
        *args,
        limit,
        offset,
    )
    total = await db.fetch_value(f"SELECT count(*) FROM blog_posts {where}", *args)
    return rows, int(total or 0)


async def get_post(post_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(f"SELECT {POST_COLUMNS} FROM blog_posts WHERE id = $1", post_id)


async def get_post_by_slug(slug: str) -> dict[str, Any] | None:
    return await db.fetch_one(f"SELECT {POST_COLUMNS} FROM blog_posts WHERE slug = $1", slug)


async def slugs_with_prefix(base: str, *, exclude_id: int | None = None) -> set[str]:
    """
    Existing slugs equal to `base` or of the form `base-N`.
    """
    rows = await db.fetch_all(
        """
        SELECT slug
        FROM blog_posts
        WHERE (slug = $1 OR slug LIKE ($1 || '-%'))
          AND ($2::bigint IS NULL OR id <> $2)
        """,
        base,
        exclude_id,
    )
    return {str(r["slug"]) for r in rows}


async def insert_post(values: dict[str, Any]) -> dict[str, Any]:
    _check_columns(values)
    names = list(values)
    if not names:
        row = await db.fetch_one(f"INSERT INTO blog_posts DEFAULT VALUES RETURNING {POST_COLUMNS}")
    else:
        placeholders = ", ".join(f"${i}" for i in range(1, len(names) + 1))
        row = await db.fetch_one(
            f"""
            INSERT INTO blog_posts ({", ".join(names)})
            VALUES ({placeholders})
            RETURNING {POST_COLUMNS}
            """,
            *values.values(),
        )
    if row is None:
        raise RuntimeError("Failed to insert blog post.")
    return row


async def update_post(post_id: int, values: dict[str, Any]) -> dict[str, Any] | None:
    _check_columns(values)
    if not values:
        return await get_post(post_id)
    assignments = [f"{name} = ${i}" for i, name in enumerate(values, start=2)]
    assignments.append("updated_at = now()")
    return await db.fetch_one(
        f"""
        UPDATE blog_posts
        SET {", ".join(assignments)}
        WHERE id = $1
        RETURNING {POST_COLUMNS}
        """,
        post_id,
        *values.values(),
    )


async def bulk_update_posts(post_ids: list[int], values: dict[str, Any]) -> int:
    _check_columns(values)
    if not post_ids or not values:
        return 0
    assignments = [f"{name} = ${i}" for i, name in enumerate(values, start=2)]
    assignments.append("updated_at = now()")
    return await db.execute_count(
        f"""
        UPDATE blog_posts
        SET {", ".join(assignments)}
        WHERE id = ANY($1::bigint[])
        """,
        post_ids,
        *values.values(),
    )


async def delete_post(post_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        "DELETE FROM blog_posts WHERE id = $1 RETURNING id, slug",
        post_id,
    )


async def bulk_delete_posts(post_ids: list[int]) -> int:
    if not post_ids:
        return 0
    return await db.execute_count("DELETE FROM blog_posts WHERE id = ANY($1::bigint[])", post_ids)
