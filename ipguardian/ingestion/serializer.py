from typing import Any

from ipguardian.ingestion.models import BatchResult, IngestOutcome
from ipguardian.storage.base import BaseObjectStore


class OutcomeSerializer:
    """Converts ingestion outcomes to JSON-serializable response bodies."""

    def __init__(self, store: BaseObjectStore) -> None:
        self._store = store

    def outcome(self, outcome: IngestOutcome) -> dict[str, Any]:
        """Single-file body: a failed file makes the whole call unsuccessful."""
        if outcome.failure is not None:
            return {
                "success": False,
                "file": outcome.filename,
                "outcome": outcome.status.value,
                "error": {
                    "kind": outcome.failure.kind.value,
                    "reason": outcome.failure.reason.value if outcome.failure.reason else None,
                    "message": outcome.failure.message,
                },
            }
        content_id = outcome.content_id
        return {
            "success": True,
            "file": outcome.filename,
            "outcome": outcome.status.value,
            "entryId": outcome.entry.id if outcome.entry is not None else None,
            "category": outcome.category,
            "contentId": content_id,
            "derivedArtifactRef": outcome.derived_artifact_ref,
            "sizeBytes": outcome.size_bytes,
            "gatewayUrl": self._store.gateway_url(content_id) if content_id else None,
        }

    def batch(self, result: BatchResult) -> dict[str, Any]:
        """Batch body: always a partial-success structure."""
        summary = result.summary
        return {
            "success": summary.succeeded > 0 or summary.total == 0,
            "files": [self.outcome(o) for o in result.outcomes],
            "summary": {
                "total": summary.total,
                "succeeded": summary.succeeded,
                "duplicates": summary.duplicates,
                "failed": summary.failed,
            },
        }
