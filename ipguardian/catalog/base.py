from abc import ABC, abstractmethod

from ipguardian.catalog.models import CatalogEntry, NewCatalogEntry, OwnerStats


class BaseCatalogRepository(ABC):
    """Contract for catalog storage backends.

    Implementations must enforce at most one active entry per
    (content_hash, owner_id) at the storage layer.
    """

    @abstractmethod
    def find_active(self, content_hash: str, owner_id: str) -> CatalogEntry | None:
        """Return the active entry for this content and owner, if any."""

    @abstractmethod
    def insert(self, entry: NewCatalogEntry) -> CatalogEntry:
        """Persist a new active entry.

        Raises:
            DuplicateEntryError: if an active entry for the same
                (content_hash, owner_id) already exists.
            PersistenceError: on any other storage failure.
        """

    @abstractmethod
    def find_by_content_id(
        self,
        content_id: str,
        owner_id: str | None = None,
    ) -> CatalogEntry | None:
        """Return the newest active entry for a content id, optionally scoped to an owner."""

    @abstractmethod
    def list_by_owner(
        self,
        owner_id: str,
        *,
        category: str | None = None,
        is_public: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[CatalogEntry], int]:
        """Return (page of active entries newest first, total matching count)."""

    @abstractmethod
    def list_public(
        self,
        *,
        category: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[CatalogEntry], int]:
        """Return (page of active public entries newest first, total count)."""

    @abstractmethod
    def deactivate(self, entry_id: int) -> bool:
        """Soft-delete an entry. Returns False if it was not active."""

    @abstractmethod
    def count_active_by_content_id(self, content_id: str) -> int:
        """Count active entries still referencing a content id."""

    @abstractmethod
    def update_visibility(self, entry_id: int, is_public: bool) -> CatalogEntry:
        """Set the visibility flag and return the updated entry."""

    @abstractmethod
    def record_access(self, entry_id: int) -> None:
        """Increment the download counter and stamp last access."""

    @abstractmethod
    def owner_stats(self, owner_id: str) -> OwnerStats:
        """Aggregate counters over the owner's active entries."""
