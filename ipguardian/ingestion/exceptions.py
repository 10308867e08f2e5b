from ipguardian.ingestion.models import RejectionReason


class IngestionError(Exception):
    """Base exception for all ingestion-related errors."""


class FileValidationError(IngestionError):
    """Raised when an upload fails type or size validation."""

    def __init__(self, reason: RejectionReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class IntegrityError(IngestionError):
    """Raised when staged bytes cannot be read back for hashing."""


class ThumbnailError(IngestionError):
    """Raised when a thumbnail cannot be derived from an image."""


class DuplicateEntryError(IngestionError):
    """Raised when an active catalog entry already exists for (content_hash, owner_id)."""


class PersistenceError(IngestionError):
    """Raised when the catalog cannot be written."""


class BatchLimitError(IngestionError):
    """Raised when a batch contains more files than allowed."""


class EntryNotFoundError(IngestionError):
    """Raised when no active catalog entry matches a lookup."""


class AccessDeniedError(IngestionError):
    """Raised when a requester may not see or change an entry."""
