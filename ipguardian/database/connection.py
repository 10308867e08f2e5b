from psycopg_pool import ConnectionPool

from ipguardian.config.settings import Settings


def build_conninfo(settings: Settings) -> str:
    """Build a libpq connection string from settings."""
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password}"
    )


def create_pool(settings: Settings, max_size: int = 10) -> ConnectionPool:
    """Open a connection pool sized for concurrent ingestion workers.

    The pool is owned by the caller and handed to repositories explicitly;
    close it with ``pool.close()`` on shutdown.
    """
    return ConnectionPool(
        build_conninfo(settings),
        min_size=1,
        max_size=max(max_size, settings.ingest_concurrency),
        open=True,
    )
