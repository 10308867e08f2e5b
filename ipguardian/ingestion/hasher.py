import hashlib
from pathlib import Path
from typing import BinaryIO

from ipguardian.ingestion.exceptions import IntegrityError


class ContentHasher:
    """Streams bytes into a SHA-256 digest in bounded chunks.

    The digest depends only on the byte sequence: not on the filename and not
    on how the stream happens to be chunked.
    """

    ALGORITHM = "sha256"

    def __init__(self, chunk_size: int = 65536) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._chunk_size = chunk_size

    def hash_stream(self, stream: BinaryIO) -> str:
        """Return the hex digest of everything left in ``stream``.

        Raises:
            IntegrityError: if reading fails part-way.
        """
        digest = hashlib.new(self.ALGORITHM)
        try:
            for chunk in iter(lambda: stream.read(self._chunk_size), b""):
                digest.update(chunk)
        except OSError as exc:
            raise IntegrityError(f"Read failed while hashing: {exc}") from exc
        return digest.hexdigest()

    def hash_file(self, path: Path) -> str:
        try:
            with path.open("rb") as fh:
                return self.hash_stream(fh)
        except OSError as exc:
            raise IntegrityError(f"Cannot open {path.name} for hashing: {exc}") from exc

    def hash_bytes(self, data: bytes) -> str:
        return hashlib.new(self.ALGORITHM, data).hexdigest()
