import threading
from dataclasses import replace
from datetime import datetime, timezone
from itertools import count

from ipguardian.catalog.base import BaseCatalogRepository
from ipguardian.catalog.models import CatalogEntry, CategoryStats, NewCatalogEntry, OwnerStats
from ipguardian.ingestion.exceptions import DuplicateEntryError, EntryNotFoundError


class InMemoryCatalogRepository(BaseCatalogRepository):
    """Process-local catalog with the same active-uniqueness rule as the database.

    The uniqueness check and the insert happen under one lock, which plays the
    role of the partial unique index.
    """

    def __init__(self) -> None:
        self._entries: dict[int, CatalogEntry] = {}
        self._ids = count(1)
        self._lock = threading.Lock()

    def find_active(self, content_hash: str, owner_id: str) -> CatalogEntry | None:
        with self._lock:
            return self._find_active_unlocked(content_hash, owner_id)

    def insert(self, entry: NewCatalogEntry) -> CatalogEntry:
        with self._lock:
            if self._find_active_unlocked(entry.content_hash, entry.owner_id) is not None:
                raise DuplicateEntryError(
                    f"Active entry exists for {entry.content_hash} / {entry.owner_id}"
                )
            now = _now()
            created = CatalogEntry(
                id=next(self._ids),
                content_hash=entry.content_hash,
                content_id=entry.content_id,
                owner_id=entry.owner_id,
                original_name=entry.original_name,
                extension=entry.extension,
                category=entry.category,
                mimetype=entry.mimetype,
                size_bytes=entry.size_bytes,
                derived_artifact_ref=entry.derived_artifact_ref,
                is_public=entry.is_public,
                pinned=entry.pinned,
                media_metadata=dict(entry.media_metadata),
                created_at=now,
                updated_at=now,
            )
            self._entries[created.id] = created
            return created

    def find_by_content_id(
        self,
        content_id: str,
        owner_id: str | None = None,
    ) -> CatalogEntry | None:
        with self._lock:
            matches = [
                e
                for e in self._entries.values()
                if e.is_active
                and e.content_id == content_id
                and (owner_id is None or e.owner_id == owner_id)
            ]
        return _newest_first(matches)[0] if matches else None

    def list_by_owner(
        self,
        owner_id: str,
        *,
        category: str | None = None,
        is_public: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[CatalogEntry], int]:
        with self._lock:
            matches = [
                e
                for e in self._entries.values()
                if e.is_active
                and e.owner_id == owner_id
                and (category is None or e.category == category)
                and (is_public is None or e.is_public == is_public)
            ]
        ordered = _newest_first(matches)
        return ordered[offset : offset + limit], len(ordered)

    def list_public(
        self,
        *,
        category: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[CatalogEntry], int]:
        with self._lock:
            matches = [
                e
                for e in self._entries.values()
                if e.is_active and e.is_public and (category is None or e.category == category)
            ]
        ordered = _newest_first(matches)
        return ordered[offset : offset + limit], len(ordered)

    def deactivate(self, entry_id: int) -> bool:
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None or not entry.is_active:
                return False
            self._entries[entry_id] = replace(entry, is_active=False, updated_at=_now())
            return True

    def count_active_by_content_id(self, content_id: str) -> int:
        with self._lock:
            return sum(
                1 for e in self._entries.values() if e.is_active and e.content_id == content_id
            )

    def update_visibility(self, entry_id: int, is_public: bool) -> CatalogEntry:
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None or not entry.is_active:
                raise EntryNotFoundError(f"Entry {entry_id} not found")
            updated = replace(entry, is_public=is_public, updated_at=_now())
            self._entries[entry_id] = updated
            return updated

    def record_access(self, entry_id: int) -> None:
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                return
            self._entries[entry_id] = replace(
                entry,
                download_count=entry.download_count + 1,
                last_accessed_at=_now(),
            )

    def owner_stats(self, owner_id: str) -> OwnerStats:
        with self._lock:
            active = [e for e in self._entries.values() if e.is_active and e.owner_id == owner_id]
        categories: dict[str, CategoryStats] = {}
        for entry in active:
            current = categories.get(entry.category, CategoryStats(count=0, total_size=0))
            categories[entry.category] = CategoryStats(
                count=current.count + 1,
                total_size=current.total_size + entry.size_bytes,
            )
        public = sum(1 for e in active if e.is_public)
        return OwnerStats(
            total_files=len(active),
            total_size=sum(e.size_bytes for e in active),
            total_downloads=sum(e.download_count for e in active),
            public_files=public,
            private_files=len(active) - public,
            categories=categories,
        )

    def all_entries(self) -> list[CatalogEntry]:
        """Every entry including soft-deleted ones. Useful for tests."""
        with self._lock:
            return list(self._entries.values())

    def _find_active_unlocked(self, content_hash: str, owner_id: str) -> CatalogEntry | None:
        for entry in self._entries.values():
            if entry.is_active and entry.content_hash == content_hash and entry.owner_id == owner_id:
                return entry
        return None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _newest_first(entries: list[CatalogEntry]) -> list[CatalogEntry]:
    return sorted(entries, key=lambda e: e.id, reverse=True)
