from typing import Any

import psycopg

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS catalog_entries (
    id                BIGSERIAL PRIMARY KEY,
    content_hash      CHAR(64)     NOT NULL,
    content_id        TEXT         NOT NULL,
    owner_id          TEXT         NOT NULL,
    original_name     TEXT         NOT NULL,
    extension         TEXT         NOT NULL,
    category          TEXT         NOT NULL,
    mimetype          TEXT         NOT NULL,
    size_bytes        BIGINT       NOT NULL CHECK (size_bytes >= 0),
    derived_artifact_ref TEXT,
    is_public         BOOLEAN      NOT NULL DEFAULT FALSE,
    is_active         BOOLEAN      NOT NULL DEFAULT TRUE,
    pinned            BOOLEAN      NOT NULL DEFAULT FALSE,
    media_metadata    JSONB        NOT NULL DEFAULT '{}'::jsonb,
    download_count    INTEGER      NOT NULL DEFAULT 0,
    last_accessed_at  TIMESTAMPTZ,
    created_at        TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
    updated_at        TIMESTAMPTZ  NOT NULL DEFAULT NOW()
);

CREATE UNIQUE INDEX IF NOT EXISTS catalog_entries_active_hash_owner_uq
    ON catalog_entries (content_hash, owner_id)
    WHERE is_active;

CREATE INDEX IF NOT EXISTS catalog_entries_owner_idx
    ON catalog_entries (owner_id, created_at DESC);

CREATE INDEX IF NOT EXISTS catalog_entries_content_id_idx
    ON catalog_entries (content_id);
"""


def apply_schema(conn: psycopg.Connection[Any]) -> None:
    """Create the catalog table and its indexes if they do not exist."""
    conn.execute(SCHEMA_SQL)
    conn.commit()
