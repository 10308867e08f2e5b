from dataclasses import dataclass


@dataclass(frozen=True)
class StoredObject:
    """An object accepted by the remote store."""

    content_id: str
    size_bytes: int
    pinned: bool = False
