from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ipguardian.catalog.models import CatalogEntry
from ipguardian.ingestion.models import (
    DerivedArtifact,
    ErrorKind,
    IngestFailure,
    IngestOutcome,
    OutcomeStatus,
    RejectionReason,
    UploadRequest,
    ValidationResult,
)
from ipguardian.storage.models import StoredObject


@dataclass(slots=True)
class IngestionContext:
    """Per-file state carried through the pipeline. Never shared between files."""

    request: UploadRequest
    validation: ValidationResult | None = None
    content_hash: str = ""
    media_metadata: dict[str, Any] = field(default_factory=dict)
    thumbnail: DerivedArtifact | None = None
    stored: StoredObject | None = None
    thumbnail_content_id: str | None = None
    entry: CatalogEntry | None = None
    status: OutcomeStatus | None = None
    failure: IngestFailure | None = None
    temp_paths: list[Path] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.temp_paths.append(self.request.path)

    @property
    def done(self) -> bool:
        return self.status is not None

    def fail(
        self,
        kind: ErrorKind,
        message: str,
        reason: RejectionReason | None = None,
    ) -> None:
        self.failure = IngestFailure(kind=kind, message=message, reason=reason)
        self.status = OutcomeStatus.FAILED

    def finish(self, status: OutcomeStatus, entry: CatalogEntry) -> None:
        self.entry = entry
        self.status = status

    def to_outcome(self) -> IngestOutcome:
        if self.status is None:
            raise ValueError("IngestionContext has not reached a terminal state")
        category = self.validation.category if self.validation is not None else None
        size = self.validation.size_bytes if self.validation is not None else None
        if self.entry is not None:
            category, size = self.entry.category, self.entry.size_bytes
        return IngestOutcome(
            filename=self.request.filename,
            owner_id=self.request.owner_id,
            status=self.status,
            entry=self.entry,
            failure=self.failure,
            category=category,
            size_bytes=size,
        )


class PipelineStep(ABC):
    """One stage of single-file ingestion.

    A step either advances the context, or records a terminal state on it
    (``fail``/``finish``); it does not raise for expected failures.
    """

    @abstractmethod
    def run(self, context: IngestionContext) -> IngestionContext:
        raise NotImplementedError
