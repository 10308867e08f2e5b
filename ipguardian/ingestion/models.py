from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ipguardian.catalog.models import CatalogEntry

CATEGORIES: tuple[str, ...] = (
    "images",
    "documents",
    "audio",
    "video",
    "archives",
    "code",
    "unknown",
)


class RejectionReason(str, Enum):
    OVERSIZED = "oversized"
    UNSUPPORTED_TYPE = "unsupported-type"
    UNVERIFIABLE_TYPE = "unverifiable-type"


class ResolutionSource(str, Enum):
    """How confidently a file type was determined."""

    SNIFFED = "sniffed"
    DECLARED_FALLBACK = "declared_fallback"
    UNRESOLVED = "unresolved"


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    DUPLICATE = "duplicate"
    FAILED = "failed"


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    INTEGRITY = "integrity"
    TRANSIENT_STORE = "transient_store"
    PERSISTENCE = "persistence"
    INTERNAL = "internal"


@dataclass(frozen=True)
class UploadRequest:
    """A file already staged on local disk by the upload boundary.

    The orchestrator owns ``path`` for the duration of the call and deletes it
    on every exit path.
    """

    path: Path
    filename: str
    owner_id: str
    declared_size: int | None = None
    declared_mimetype: str | None = None
    is_public: bool = False


@dataclass(frozen=True)
class TypeResolution:
    source: ResolutionSource
    extension: str = ""
    mimetype: str = ""


@dataclass(frozen=True)
class ValidationResult:
    """Resolved classification of one upload, or the reason it was rejected."""

    category: str
    mimetype: str
    extension: str
    size_bytes: int
    source: ResolutionSource
    rejection: RejectionReason | None = None
    message: str = ""

    @property
    def is_valid(self) -> bool:
        return self.rejection is None


@dataclass(frozen=True)
class DerivedArtifact:
    """A locally rendered thumbnail waiting to be uploaded."""

    path: Path
    width: int
    height: int
    mimetype: str = "image/jpeg"


@dataclass(frozen=True)
class IngestFailure:
    kind: ErrorKind
    message: str
    reason: RejectionReason | None = None


@dataclass(frozen=True)
class IngestOutcome:
    """Terminal state of one file's trip through the pipeline."""

    filename: str
    owner_id: str
    status: OutcomeStatus
    entry: CatalogEntry | None = None
    failure: IngestFailure | None = None
    category: str | None = None
    size_bytes: int | None = None

    @property
    def content_id(self) -> str | None:
        return self.entry.content_id if self.entry is not None else None

    @property
    def derived_artifact_ref(self) -> str | None:
        return self.entry.derived_artifact_ref if self.entry is not None else None

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.FAILED


@dataclass(frozen=True)
class BatchSummary:
    total: int = 0
    succeeded: int = 0
    duplicates: int = 0
    failed: int = 0


@dataclass(frozen=True)
class BatchResult:
    outcomes: list[IngestOutcome] = field(default_factory=list)

    @property
    def summary(self) -> BatchSummary:
        duplicates = sum(1 for o in self.outcomes if o.status is OutcomeStatus.DUPLICATE)
        failed = sum(1 for o in self.outcomes if o.status is OutcomeStatus.FAILED)
        return BatchSummary(
            total=len(self.outcomes),
            succeeded=len(self.outcomes) - failed,
            duplicates=duplicates,
            failed=failed,
        )
