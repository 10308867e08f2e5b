import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from ipguardian.config.settings import Settings
from ipguardian.database.connection import create_pool
from ipguardian.database.repositories.catalog_repository import CatalogRepository
from ipguardian.database.schema import apply_schema


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "ipguardian_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[ConnectionPool, None, None]:
    pool = create_pool(test_settings)
    try:
        pool.wait(timeout=5)
        with pool.connection() as conn:
            apply_schema(conn)
    except Exception as e:
        pool.close()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to point at one")
    try:
        yield pool
    finally:
        pool.close()


@pytest.fixture
def db_conn(integration_pool: ConnectionPool) -> Generator[psycopg.Connection[Any], None, None]:
    with integration_pool.connection() as conn:
        yield conn


@pytest.fixture
def repository(integration_pool: ConnectionPool) -> CatalogRepository:
    return CatalogRepository(integration_pool)


@pytest.fixture
def owner_ids(integration_pool: ConnectionPool) -> Generator[list[str], None, None]:
    """Hand out unique owner ids and delete their rows afterwards."""
    owners = [f"it-{uuid.uuid4().hex[:12]}" for _ in range(2)]
    yield owners
    with integration_pool.connection() as conn:
        conn.execute("DELETE FROM catalog_entries WHERE owner_id = ANY(%s)", (owners,))
        conn.commit()
