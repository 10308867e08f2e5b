from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class NewCatalogEntry:
    """Fields supplied by the pipeline when recording a freshly stored asset."""

    content_hash: str
    content_id: str
    owner_id: str
    original_name: str
    extension: str
    category: str
    mimetype: str
    size_bytes: int
    derived_artifact_ref: str | None = None
    is_public: bool = False
    pinned: bool = False
    media_metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CatalogEntry:
    """Represents a row from the catalog_entries table."""

    id: int
    content_hash: str
    content_id: str
    owner_id: str
    original_name: str
    extension: str
    category: str
    mimetype: str
    size_bytes: int
    derived_artifact_ref: str | None = None
    is_public: bool = False
    is_active: bool = True
    pinned: bool = False
    media_metadata: dict[str, Any] = field(default_factory=dict)
    download_count: int = 0
    last_accessed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class EntryPage:
    """One page of catalog entries plus pagination counters."""

    entries: list[CatalogEntry]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return -(-self.total // self.limit)

    @property
    def has_more(self) -> bool:
        return (self.page - 1) * self.limit + len(self.entries) < self.total


@dataclass(frozen=True)
class CategoryStats:
    count: int
    total_size: int


@dataclass(frozen=True)
class OwnerStats:
    """Aggregate usage for one owner's active entries."""

    total_files: int = 0
    total_size: int = 0
    total_downloads: int = 0
    public_files: int = 0
    private_files: int = 0
    categories: dict[str, CategoryStats] = field(default_factory=dict)

    @property
    def formatted_total_size(self) -> str:
        return human_readable_size(self.total_size)


def human_readable_size(size: int) -> str:
    """Format a byte count as ``1.5 KB`` style text."""
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    rounded = round(value, 2)
    if rounded == int(rounded):
        return f"{int(rounded)} {units[index]}"
    return f"{rounded} {units[index]}"
