from ipguardian.catalog.base import BaseCatalogRepository
from ipguardian.catalog.models import CatalogEntry, EntryPage, OwnerStats
from ipguardian.ingestion.exceptions import AccessDeniedError, EntryNotFoundError
from ipguardian.logging.logger import Log
from ipguardian.storage.base import BaseObjectStore
from ipguardian.storage.exceptions import ObjectStoreError


class CatalogService:
    """Owner-facing operations on recorded catalog entries."""

    def __init__(self, catalog: BaseCatalogRepository, store: BaseObjectStore) -> None:
        self._catalog = catalog
        self._store = store

    def list_entries(
        self,
        owner_id: str,
        *,
        category: str | None = None,
        is_public: bool | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> EntryPage:
        page, limit = max(1, page), max(1, limit)
        entries, total = self._catalog.list_by_owner(
            owner_id,
            category=category,
            is_public=is_public,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return EntryPage(entries=entries, page=page, limit=limit, total=total)

    def list_public(
        self,
        *,
        category: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> EntryPage:
        page, limit = max(1, page), max(1, limit)
        entries, total = self._catalog.list_public(
            category=category, limit=limit, offset=(page - 1) * limit
        )
        return EntryPage(entries=entries, page=page, limit=limit, total=total)

    def get_entry(self, content_id: str, requester_id: str | None) -> CatalogEntry:
        """Return an entry visible to the requester.

        Raises:
            EntryNotFoundError: if no active entry has this content id.
            AccessDeniedError: if the entry is private and not owned by the requester.
        """
        owned = (
            self._catalog.find_by_content_id(content_id, owner_id=requester_id)
            if requester_id is not None
            else None
        )
        if owned is not None:
            return owned
        entry = self._catalog.find_by_content_id(content_id)
        if entry is None:
            raise EntryNotFoundError(f"File {content_id} not found")
        if not entry.is_public:
            raise AccessDeniedError(f"Access denied to {content_id}")
        return entry

    def fetch_content(self, content_id: str, requester_id: str | None) -> tuple[CatalogEntry, bytes]:
        """Fetch stored bytes and count the download.

        Raises:
            EntryNotFoundError, AccessDeniedError: see ``get_entry``.
            TransientStoreError: if the object store cannot serve the content.
        """
        entry = self.get_entry(content_id, requester_id)
        data = self._store.cat(content_id)
        self._catalog.record_access(entry.id)
        return entry, data

    def set_visibility(self, content_id: str, owner_id: str, is_public: bool) -> CatalogEntry:
        entry = self._owned(content_id, owner_id)
        updated = self._catalog.update_visibility(entry.id, is_public)
        Log.info(
            f"Visibility of entry {entry.id} set to {'public' if is_public else 'private'}",
            owner=owner_id,
        )
        return updated

    def remove_entry(self, content_id: str, owner_id: str) -> CatalogEntry:
        """Soft-delete the owner's entry, then release the pin if nobody else uses it.

        Unpinning is best-effort; its failure never blocks the deletion.
        """
        entry = self._owned(content_id, owner_id)
        if not self._catalog.deactivate(entry.id):
            raise EntryNotFoundError(f"File {content_id} not found")
        Log.info(f"Entry {entry.id} deactivated", owner=owner_id, content_id=content_id)

        if self._catalog.count_active_by_content_id(content_id) == 0:
            try:
                self._store.unpin(content_id)
            except ObjectStoreError as exc:
                Log.warning(f"Failed to unpin after removal: {exc}", content_id=content_id)
        return entry

    def owner_stats(self, owner_id: str) -> OwnerStats:
        return self._catalog.owner_stats(owner_id)

    def _owned(self, content_id: str, owner_id: str) -> CatalogEntry:
        entry = self._catalog.find_by_content_id(content_id, owner_id=owner_id)
        if entry is None:
            raise EntryNotFoundError(f"File {content_id} not found or access denied")
        return entry
