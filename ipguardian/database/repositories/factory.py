from psycopg_pool import ConnectionPool

from ipguardian.catalog.base import BaseCatalogRepository
from ipguardian.config.settings import Settings
from ipguardian.database.repositories.catalog_repository import CatalogRepository
from ipguardian.database.repositories.memory_catalog_repository import InMemoryCatalogRepository


class CatalogRepositoryFactory:
    """Creates the configured catalog backend."""

    BACKENDS = ("postgres", "memory")

    @classmethod
    def create(
        cls,
        settings: Settings,
        pool: ConnectionPool | None = None,
    ) -> BaseCatalogRepository:
        backend = settings.catalog_backend.lower()
        if backend == "postgres":
            if pool is None:
                raise ValueError("catalog_backend=postgres requires a connection pool")
            return CatalogRepository(pool)
        if backend == "memory":
            return InMemoryCatalogRepository()
        raise ValueError(
            f"Unknown catalog backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
