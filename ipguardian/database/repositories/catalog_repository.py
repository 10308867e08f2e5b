from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from ipguardian.catalog.base import BaseCatalogRepository
from ipguardian.catalog.models import CatalogEntry, CategoryStats, NewCatalogEntry, OwnerStats
from ipguardian.ingestion.exceptions import (
    DuplicateEntryError,
    EntryNotFoundError,
    PersistenceError,
)

COLUMNS = """
    id, content_hash, content_id, owner_id, original_name, extension,
    category, mimetype, size_bytes, derived_artifact_ref, is_public,
    is_active, pinned, media_metadata, download_count, last_accessed_at,
    created_at, updated_at
"""


class CatalogRepository(BaseCatalogRepository):
    """Database operations for the catalog_entries table."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @contextmanager
    def _connection(self) -> Generator[psycopg.Connection[Any], None, None]:
        """Yield a pooled connection, translating driver errors to domain errors."""
        try:
            with self._pool.connection() as conn:
                yield conn
        except psycopg.errors.UniqueViolation as exc:
            raise DuplicateEntryError(str(exc)) from exc
        except psycopg.Error as exc:
            raise PersistenceError(f"Catalog database error: {exc}") from exc

    def find_active(self, content_hash: str, owner_id: str) -> CatalogEntry | None:
        with self._connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {COLUMNS}
                    FROM catalog_entries
                    WHERE content_hash = %s AND owner_id = %s AND is_active
                    """,
                    (content_hash, owner_id),
                )
                row = cur.fetchone()
        return _to_entry(row) if row is not None else None

    def insert(self, entry: NewCatalogEntry) -> CatalogEntry:
        with self._connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO catalog_entries
                    (content_hash, content_id, owner_id, original_name, extension,
                     category, mimetype, size_bytes, derived_artifact_ref,
                     is_public, pinned, media_metadata)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING {COLUMNS}
                    """,
                    (
                        entry.content_hash,
                        entry.content_id,
                        entry.owner_id,
                        entry.original_name,
                        entry.extension,
                        entry.category,
                        entry.mimetype,
                        entry.size_bytes,
                        entry.derived_artifact_ref,
                        entry.is_public,
                        entry.pinned,
                        Jsonb(entry.media_metadata),
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise PersistenceError("INSERT returned no row")
        return _to_entry(row)

    def find_by_content_id(
        self,
        content_id: str,
        owner_id: str | None = None,
    ) -> CatalogEntry | None:
        query = f"SELECT {COLUMNS} FROM catalog_entries WHERE content_id = %s AND is_active"
        params: list[Any] = [content_id]
        if owner_id is not None:
            query += " AND owner_id = %s"
            params.append(owner_id)
        query += " ORDER BY created_at DESC LIMIT 1"
        with self._connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                row = cur.fetchone()
        return _to_entry(row) if row is not None else None

    def list_by_owner(
        self,
        owner_id: str,
        *,
        category: str | None = None,
        is_public: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[CatalogEntry], int]:
        where = ["owner_id = %s", "is_active"]
        params: list[Any] = [owner_id]
        if category is not None:
            where.append("category = %s")
            params.append(category)
        if is_public is not None:
            where.append("is_public = %s")
            params.append(is_public)
        return self._page(" AND ".join(where), params, limit, offset)

    def list_public(
        self,
        *,
        category: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[CatalogEntry], int]:
        where = ["is_public", "is_active"]
        params: list[Any] = []
        if category is not None:
            where.append("category = %s")
            params.append(category)
        return self._page(" AND ".join(where), params, limit, offset)

    def deactivate(self, entry_id: int) -> bool:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE catalog_entries
                    SET is_active = FALSE, updated_at = NOW()
                    WHERE id = %s AND is_active
                    """,
                    (entry_id,),
                )
                changed = cur.rowcount > 0
            conn.commit()
        return changed

    def count_active_by_content_id(self, content_id: str) -> int:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT COUNT(*) FROM catalog_entries WHERE content_id = %s AND is_active",
                    (content_id,),
                )
                row = cur.fetchone()
        return int(row[0]) if row is not None else 0

    def update_visibility(self, entry_id: int, is_public: bool) -> CatalogEntry:
        with self._connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE catalog_entries
                    SET is_public = %s, updated_at = NOW()
                    WHERE id = %s AND is_active
                    RETURNING {COLUMNS}
                    """,
                    (is_public, entry_id),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise EntryNotFoundError(f"Entry {entry_id} not found")
        return _to_entry(row)

    def record_access(self, entry_id: int) -> None:
        with self._connection() as conn:
            conn.execute(
                """
                UPDATE catalog_entries
                SET download_count = download_count + 1, last_accessed_at = NOW()
                WHERE id = %s
                """,
                (entry_id,),
            )
            conn.commit()

    def owner_stats(self, owner_id: str) -> OwnerStats:
        with self._connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT COUNT(*) AS total_files,
                           COALESCE(SUM(size_bytes), 0) AS total_size,
                           COALESCE(SUM(download_count), 0) AS total_downloads,
                           COUNT(*) FILTER (WHERE is_public) AS public_files,
                           COUNT(*) FILTER (WHERE NOT is_public) AS private_files
                    FROM catalog_entries
                    WHERE owner_id = %s AND is_active
                    """,
                    (owner_id,),
                )
                totals = cur.fetchone()
                cur.execute(
                    """
                    SELECT category, COUNT(*) AS count,
                           COALESCE(SUM(size_bytes), 0) AS total_size
                    FROM catalog_entries
                    WHERE owner_id = %s AND is_active
                    GROUP BY category
                    """,
                    (owner_id,),
                )
                categories = cur.fetchall()
        if totals is None:
            return OwnerStats()
        return OwnerStats(
            total_files=int(totals["total_files"]),
            total_size=int(totals["total_size"]),
            total_downloads=int(totals["total_downloads"]),
            public_files=int(totals["public_files"]),
            private_files=int(totals["private_files"]),
            categories={
                row["category"]: CategoryStats(
                    count=int(row["count"]), total_size=int(row["total_size"])
                )
                for row in categories
            },
        )

    def _page(
        self,
        where: str,
        params: list[Any],
        limit: int,
        offset: int,
    ) -> tuple[list[CatalogEntry], int]:
        with self._connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {COLUMNS}
                    FROM catalog_entries
                    WHERE {where}
                    ORDER BY created_at DESC, id DESC
                    LIMIT %s OFFSET %s
                    """,
                    [*params, limit, offset],
                )
                rows = cur.fetchall()
                cur.execute(f"SELECT COUNT(*) AS total FROM catalog_entries WHERE {where}", params)
                count_row = cur.fetchone()
        total = int(count_row["total"]) if count_row is not None else 0
        return [_to_entry(row) for row in rows], total


def _to_entry(row: dict[str, Any]) -> CatalogEntry:
    return CatalogEntry(
        id=row["id"],
        content_hash=row["content_hash"].strip(),
        content_id=row["content_id"],
        owner_id=row["owner_id"],
        original_name=row["original_name"],
        extension=row["extension"],
        category=row["category"],
        mimetype=row["mimetype"],
        size_bytes=row["size_bytes"],
        derived_artifact_ref=row["derived_artifact_ref"],
        is_public=row["is_public"],
        is_active=row["is_active"],
        pinned=row["pinned"],
        media_metadata=row["media_metadata"] or {},
        download_count=row["download_count"],
        last_accessed_at=row["last_accessed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
