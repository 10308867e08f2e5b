from dataclasses import dataclass

from ipguardian.catalog.base import BaseCatalogRepository
from ipguardian.catalog.models import CatalogEntry, NewCatalogEntry
from ipguardian.ingestion.exceptions import DuplicateEntryError, PersistenceError
from ipguardian.logging.logger import Log


@dataclass(frozen=True)
class RecordResult:
    entry: CatalogEntry
    created: bool


class CatalogRecorder:
    """Persists the final catalog entry for a stored object.

    The storage layer's unique constraint decides races between concurrent
    identical uploads; the losing writer gets the winner's entry back with
    ``created=False``.
    """

    def __init__(self, catalog: BaseCatalogRepository) -> None:
        self._catalog = catalog

    def persist(self, entry: NewCatalogEntry) -> RecordResult:
        """Insert the entry, converting a uniqueness conflict into the existing entry.

        Raises:
            PersistenceError: if the write fails for any other reason.
        """
        try:
            return RecordResult(entry=self._catalog.insert(entry), created=True)
        except DuplicateEntryError:
            existing = self._catalog.find_active(entry.content_hash, entry.owner_id)
            if existing is None:
                raise PersistenceError(
                    f"Uniqueness conflict for {entry.content_hash[:12]} but no active entry found"
                ) from None
            Log.info(
                "Concurrent upload lost the race, returning existing entry",
                owner=entry.owner_id,
                entry_id=existing.id,
            )
            return RecordResult(entry=existing, created=False)
