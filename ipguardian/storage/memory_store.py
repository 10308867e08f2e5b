"""In-process object store.

Content ids are derived from the SHA-256 of the bytes, so identical content
always maps to the same id. No network calls; used for local development and
tests.
"""

import hashlib
import threading
from pathlib import Path

from ipguardian.storage.base import BaseObjectStore
from ipguardian.storage.exceptions import TransientStoreError
from ipguardian.storage.models import StoredObject


class InMemoryObjectStore(BaseObjectStore):
    PREFIX = "mem-"

    def __init__(self, gateway_url: str = "memory://gateway") -> None:
        super().__init__(gateway_url)
        self._objects: dict[str, bytes] = {}
        self._pins: set[str] = set()
        self._lock = threading.Lock()
        self.add_calls = 0

    def add(self, source: Path | bytes, name: str) -> StoredObject:
        data = source if isinstance(source, bytes) else source.read_bytes()
        content_id = self.PREFIX + hashlib.sha256(data).hexdigest()
        with self._lock:
            self._objects[content_id] = data
            self.add_calls += 1
        return StoredObject(content_id=content_id, size_bytes=len(data))

    def cat(self, content_id: str) -> bytes:
        with self._lock:
            data = self._objects.get(content_id)
        if data is None:
            raise TransientStoreError(f"Unknown content id {content_id}")
        return data

    def pin(self, content_id: str) -> bool:
        with self._lock:
            if content_id not in self._objects:
                raise TransientStoreError(f"Cannot pin unknown content id {content_id}")
            self._pins.add(content_id)
        return True

    def unpin(self, content_id: str) -> bool:
        with self._lock:
            if content_id not in self._pins:
                raise TransientStoreError(f"{content_id} is not pinned")
            self._pins.discard(content_id)
        return True

    @property
    def object_count(self) -> int:
        return len(self._objects)

    def is_pinned(self, content_id: str) -> bool:
        return content_id in self._pins
