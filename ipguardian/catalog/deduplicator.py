from ipguardian.catalog.base import BaseCatalogRepository
from ipguardian.catalog.models import CatalogEntry


class Deduplicator:
    """Looks up an active entry for (content_hash, owner_id) before remote work.

    Scope is per owner: the same bytes uploaded by another owner are not a hit.
    """

    def __init__(self, catalog: BaseCatalogRepository) -> None:
        self._catalog = catalog

    def check(self, content_hash: str, owner_id: str) -> CatalogEntry | None:
        return self._catalog.find_active(content_hash, owner_id)
