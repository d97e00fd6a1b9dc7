"""
Portfolio persistence (raw SQL).

All six portfolio entity kinds share the `portfolio_documents` table:
- `kind`: which entity the row holds
- `data`: the entity's fields as a jsonb document
- `is_active`, `display_order`: shared columns used for filtering/sorting

`DocumentRepository` is parameterized by kind, so every query is scoped to
one entity type. Field filters use jsonb containment (`data @> $n`), which
the GIN index on `data` serves.
"""

from __future__ import annotations

from typing import Any

from core import db

ORDERINGS: dict[str, str] = {
    "display": "display_order ASC, id ASC",
    "recent": "updated_at DESC, id DESC",
    "created": "created_at DESC, id DESC",
}

COLUMNS = "id, kind, data, is_active, display_order, created_at, updated_at"


def to_document(row: dict[str, Any]) -> dict[str, Any]:
    """
    Flatten a row into the API shape: document fields plus the shared columns.
    """
    data = db.json_value(row.get("data")) or {}
    return {
        "id": row["id"],
        **data,
        "is_active": row["is_active"],
        "display_order": row["display_order"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


class DocumentRepository:
    def __init__(self, kind: str) -> None:
        self.kind = kind

    def _where(
        self,
        *,
        active_only: bool,
        match: dict[str, Any] | None,
        args: list[Any],
    ) -> str:
        args.append(self.kind)
        clauses = [f"kind = ${len(args)}"]
        if active_only:
            clauses.append("is_active")
        if match:
            args.append(db.json_arg(match))
            clauses.append(f"data @> ${len(args)}::jsonb")
        return "WHERE " + "\n  AND ".join(clauses)

    async def find(
        self,
        *,
        active_only: bool = False,
        match: dict[str, Any] | None = None,
        order: str = "display",
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        args: list[Any] = []
        where = self._where(active_only=active_only, match=match, args=args)
        paging = ""
        if limit is not None:
            args.extend([limit, offset])
            paging = f"LIMIT ${len(args) - 1} OFFSET ${len(args)}"
        rows = await db.fetch_all(
            f"""
            SELECT {COLUMNS}
            FROM portfolio_documents
            {where}
            ORDER BY {ORDERINGS[order]}
            {paging}
            """,
            *args,
        )
        return [to_document(r) for r in rows]

    async def count(self, *, active_only: bool = False, match: dict[str, Any] | None = None) -> int:
        args: list[Any] = []
        where = self._where(active_only=active_only, match=match, args=args)
        total = await db.fetch_value(f"SELECT count(*) FROM portfolio_documents {where}", *args)
        return int(total or 0)

    async def count_by(self, field: str, *, active_only: bool = True) -> list[dict[str, Any]]:
        """
        Group by a top-level document field: [{"value": ..., "count": n}], largest first.
        """
        args: list[Any] = [field]
        where = self._where(active_only=active_only, match=None, args=args)
        return await db.fetch_all(
            f"""
            SELECT data->>$1 AS value, count(*)::int AS count
            FROM portfolio_documents
            {where}
            GROUP BY 1
            ORDER BY 2 DESC, 1 ASC
            """,
            *args,
        )

    async def get(self, document_id: int, *, active_only: bool = False) -> dict[str, Any] | None:
        args: list[Any] = [document_id]
        where = self._where(active_only=active_only, match=None, args=args)
        row = await db.fetch_one(
            f"SELECT {COLUMNS} FROM portfolio_documents {where} AND id = $1",
            *args,
        )
        return to_document(row) if row else None

    async def insert(self, data: dict[str, Any], *, is_active: bool = True, display_order: int = 0) -> dict[str, Any]:
        row = await db.fetch_one(
            f"""
            INSERT INTO portfolio_documents (kind, data, is_active, display_order)
            VALUES ($1, $2::jsonb, $3, $4)
            RETURNING {COLUMNS}
            """,
            self.kind,
            db.json_arg(data),
            is_active,
            display_order,
        )
        if row is None:
            raise RuntimeError(f"Failed to insert {self.kind} document.")
        return to_document(row)

    @staticmethod
    def _assignments(data: dict[str, Any], columns: dict[str, Any], args: list[Any]) -> str:
        assignments: list[str] = []
        if data:
            # Top-level merge: fields not in `data` are left untouched.
            args.append(db.json_arg(data))
            assignments.append(f"data = data || ${len(args)}::jsonb")
        for name in ("is_active", "display_order"):
            if columns.get(name) is not None:
                args.append(columns[name])
                assignments.append(f"{name} = ${len(args)}")
        assignments.append("updated_at = now()")
        return ", ".join(assignments)

    async def update(
        self,
        document_id: int,
        data: dict[str, Any],
        columns: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        args: list[Any] = [document_id, self.kind]
        assignments = self._assignments(data, columns or {}, args)
        row = await db.fetch_one(
            f"""
            UPDATE portfolio_documents
            SET {assignments}
            WHERE id = $1
              AND kind = $2
            RETURNING {COLUMNS}
            """,
            *args,
        )
        return to_document(row) if row else None

    async def bulk_update(
        self,
        document_ids: list[int],
        data: dict[str, Any],
        columns: dict[str, Any] | None = None,
    ) -> int:
        if not document_ids:
            return 0
        args: list[Any] = [document_ids, self.kind]
        assignments = self._assignments(data, columns or {}, args)
        return await db.execute_count(
            f"""
            UPDATE portfolio_documents
            SET {assignments}
            WHERE id = ANY($1::bigint[])
              AND kind = $2
            """,
            *args,
        )

    async def delete(self, document_id: int) -> dict[str, Any] | None:
        row = await db.fetch_one(
            f"""
            DELETE FROM portfolio_documents
            WHERE id = $1
              AND kind = $2
            RETURNING {COLUMNS}
            """,
            document_id,
            self.kind,
        )
        return to_document(row) if row else None

    async def bulk_delete(self, document_ids: list[int]) -> int:
        if not document_ids:
            return 0
        return await db.execute_count(
            "DELETE FROM portfolio_documents WHERE id = ANY($1::bigint[]) AND kind = $2",
            document_ids,
            self.kind,
        )

    async def toggle_flag(self, document_id: int, field: str) -> dict[str, Any] | None:
        """
        Flip a boolean document field (missing counts as false).
        """
        row = await db.fetch_one(
            f"""
            UPDATE portfolio_documents
            SET data = jsonb_set(
                  data,
                  ARRAY[$3::text],
                  to_jsonb(NOT COALESCE((data->>$3)::boolean, false))
                ),
                updated_at = now()
            WHERE id = $1
              AND kind = $2
            RETURNING {COLUMNS}
            """,
            document_id,
            self.kind,
            field,
        )
        return to_document(row) if row else None

    async def set_exclusive_flag(self, document_id: int, field: str) -> dict[str, Any] | None:
        """
        Set a boolean document field on one row and clear it on every other row
        of this kind, in a single transaction.

        Returns None (and changes nothing) when the row does not exist.
        """
        pool = db.pool()
        async with pool.acquire() as conn:  # type: asyncpg.Connection
            async with conn.transaction():
                exists = await conn.fetchval(
                    "SELECT 1 FROM portfolio_documents WHERE id = $1 AND kind = $2 FOR UPDATE",
                    document_id,
                    self.kind,
                )
                if not exists:
                    return None
                await conn.execute(
                    """
                    UPDATE portfolio_documents
                    SET data = jsonb_set(data, ARRAY[$3::text], 'false'::jsonb),
                        updated_at = now()
                    WHERE kind = $1
                      AND id <> $2
                      AND data @> jsonb_build_object($3::text, true)
                    """,
                    self.kind,
                    document_id,
                    field,
                )
                row = await conn.fetchrow(
                    f"""
                    UPDATE portfolio_documents
                    SET data = jsonb_set(data, ARRAY[$3::text], 'true'::jsonb),
                        updated_at = now()
                    WHERE id = $1
                      AND kind = $2
                    RETURNING {COLUMNS}
                    """,
                    document_id,
                    self.kind,
                    field,
                )
        return to_document(dict(row)) if row else None
