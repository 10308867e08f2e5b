import mimetypes
from pathlib import Path, PurePath

import filetype

from ipguardian.ingestion.exceptions import IntegrityError
from ipguardian.ingestion.models import (
    RejectionReason,
    ResolutionSource,
    TypeResolution,
    ValidationResult,
)
from ipguardian.logging.logger import Log

TAXONOMY: dict[str, tuple[str, ...]] = {
    "images": ("jpg", "jpeg", "png", "gif", "webp", "svg", "bmp"),
    "documents": ("pdf", "doc", "docx", "txt", "rtf", "odt"),
    "audio": ("mp3", "wav", "ogg", "aac", "m4a", "flac"),
    "video": ("mp4", "avi", "mov", "wmv", "flv", "webm", "mkv"),
    "archives": ("zip", "rar", "7z", "tar", "gz"),
    "code": ("js", "html", "css", "json", "xml", "py", "java", "cpp", "c"),
}


def categorize(extension: str) -> str:
    """Map a file extension to its taxonomy category, or ``unknown``."""
    ext = extension.lower().lstrip(".")
    for category, extensions in TAXONOMY.items():
        if ext in extensions:
            return category
    return "unknown"


def declared_extension(filename: str) -> str:
    return PurePath(filename).suffix.lower().lstrip(".")


class FileValidator:
    """Classifies staged bytes against the allowed-type taxonomy.

    The true type is sniffed from magic numbers first; only when sniffing is
    indeterminate does the declared extension decide.
    """

    SNIFF_BYTES = 8192

    def __init__(self, max_file_size_bytes: int, allowed_categories: list[str]) -> None:
        self._max_file_size_bytes = max_file_size_bytes
        self._allowed = frozenset(c.lower() for c in allowed_categories) - {"unknown"}

    def resolve_type(
        self,
        head: bytes,
        filename: str,
        declared_mimetype: str | None = None,
    ) -> TypeResolution:
        """Resolve (extension, mimetype) and report which source decided it."""
        kind = filetype.guess(head) if head else None
        if kind is not None:
            return TypeResolution(ResolutionSource.SNIFFED, kind.extension.lower(), kind.mime)

        extension = declared_extension(filename)
        if not extension:
            return TypeResolution(ResolutionSource.UNRESOLVED)
        mimetype = (
            declared_mimetype
            or mimetypes.guess_type(filename)[0]
            or "application/octet-stream"
        )
        return TypeResolution(ResolutionSource.DECLARED_FALLBACK, extension, mimetype)

    def validate(
        self,
        path: Path,
        filename: str,
        declared_size: int | None = None,
        declared_mimetype: str | None = None,
    ) -> ValidationResult:
        """Classify the staged file; a rejection is returned, never raised.

        Raises:
            IntegrityError: if the staged file cannot be read.
        """
        try:
            size = path.stat().st_size
            with path.open("rb") as fh:
                head = fh.read(self.SNIFF_BYTES)
        except OSError as exc:
            raise IntegrityError(f"Cannot read staged file {filename}: {exc}") from exc

        if declared_size is not None and declared_size != size:
            Log.debug(
                "Declared size differs from staged size",
                filename=filename,
                declared=declared_size,
                staged=size,
            )

        resolution = self.resolve_type(head, filename, declared_mimetype)
        category = categorize(resolution.extension) if resolution.extension else "unknown"

        def result(rejection: RejectionReason | None = None, message: str = "") -> ValidationResult:
            return ValidationResult(
                category=category,
                mimetype=resolution.mimetype,
                extension=resolution.extension,
                size_bytes=size,
                source=resolution.source,
                rejection=rejection,
                message=message,
            )

        if size > self._max_file_size_bytes:
            limit_mb = self._max_file_size_bytes / 1024 / 1024
            return result(
                RejectionReason.OVERSIZED,
                f"File size exceeds limit of {limit_mb:g}MB",
            )
        if category == "unknown" and resolution.source is not ResolutionSource.SNIFFED:
            return result(
                RejectionReason.UNVERIFIABLE_TYPE,
                "Unable to verify file type or unsupported format",
            )
        if category not in self._allowed:
            return result(
                RejectionReason.UNSUPPORTED_TYPE,
                f"File type '{resolution.extension}' is not allowed",
            )
        return result()
