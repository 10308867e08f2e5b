import re
import shutil
import time
import uuid
from collections.abc import Iterable
from pathlib import Path
from typing import BinaryIO

from ipguardian.logging.logger import Log


def sanitize_filename(filename: str) -> str:
    """Replace anything outside ``[a-zA-Z0-9.-]`` with ``_``, collapse runs and lower-case."""
    cleaned = re.sub(r"[^a-zA-Z0-9.-]", "_", filename)
    cleaned = re.sub(r"_{2,}", "_", cleaned)
    return cleaned.strip("_").lower()


class StagingArea:
    """Local temp directory shared by concurrent uploads.

    Every staged or derived file gets a randomly suffixed name, so concurrent
    requests never collide.
    """

    DERIVED_DIR = "derived"

    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def stage(self, source: bytes | BinaryIO | Path, filename: str) -> Path:
        """Copy upload bytes into a fresh staging file and return its path."""
        path = self._root / self._unique_name(filename)
        if isinstance(source, Path):
            with source.open("rb") as src:
                self._write(path, src)
        else:
            self._write(path, source)
        Log.debug("Staged upload", filename=filename, path=path)
        return path

    @staticmethod
    def _write(path: Path, source: bytes | BinaryIO) -> None:
        """Write ``source`` to a new file at ``path``; a partial file is removed on failure."""
        with path.open("xb") as out:
            try:
                if isinstance(source, bytes):
                    out.write(source)
                else:
                    shutil.copyfileobj(source, out)
            except BaseException:
                out.close()
                path.unlink(missing_ok=True)
                raise

    def scratch_path(self, prefix: str, suffix: str) -> Path:
        """Reserve a unique path for a derived artifact. The file is not created."""
        derived = self._root / self.DERIVED_DIR
        derived.mkdir(parents=True, exist_ok=True)
        return derived / f"{prefix}_{uuid.uuid4().hex}{suffix}"

    def discard(self, paths: Iterable[Path]) -> None:
        """Delete staged files. Missing files are ignored; other errors are logged."""
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                Log.warning(f"Failed to remove temp file: {exc}", path=path)

    @staticmethod
    def _unique_name(filename: str) -> str:
        sanitized = sanitize_filename(filename) or "upload"
        stem, dot, extension = sanitized.rpartition(".")
        if not dot or not stem:
            stem, extension = sanitized, ""
        suffix = f"_{int(time.time() * 1000)}_{uuid.uuid4().hex}"
        return f"{stem}{suffix}.{extension}" if extension else f"{stem}{suffix}"
