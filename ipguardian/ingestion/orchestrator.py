from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from ipguardian.catalog.base import BaseCatalogRepository
from ipguardian.catalog.deduplicator import Deduplicator
from ipguardian.catalog.recorder import CatalogRecorder
from ipguardian.config.settings import Settings
from ipguardian.ingestion.exceptions import BatchLimitError
from ipguardian.ingestion.hasher import ContentHasher
from ipguardian.ingestion.media import MediaInspector
from ipguardian.ingestion.models import BatchResult, ErrorKind, IngestOutcome, UploadRequest
from ipguardian.ingestion.pipeline import IngestionContext, PipelineStep
from ipguardian.ingestion.staging import StagingArea
from ipguardian.ingestion.steps import (
    DeduplicateStep,
    DeriveThumbnailStep,
    HashStep,
    InspectMediaStep,
    PersistStep,
    PinStep,
    UploadStep,
    UploadThumbnailStep,
    ValidateStep,
)
from ipguardian.ingestion.thumbnails import ThumbnailDeriver
from ipguardian.ingestion.validator import FileValidator
from ipguardian.logging.logger import Log
from ipguardian.pdf.factory import PdfInspectorFactory
from ipguardian.storage.base import BaseObjectStore


class IngestionOrchestrator:
    """Runs the ingestion pipeline for one file or a batch of files.

    Pipeline: validate -> hash -> deduplicate -> inspect -> thumbnail ->
    upload -> upload thumbnail -> pin -> persist. Every staged or derived
    temp file is removed when a file reaches its terminal state.
    """

    def __init__(
        self,
        steps: Sequence[PipelineStep],
        staging: StagingArea,
        *,
        max_files_per_batch: int = 10,
        concurrency: int = 4,
    ) -> None:
        self._steps = list(steps)
        self._staging = staging
        self._max_files_per_batch = max_files_per_batch
        self._concurrency = max(1, concurrency)

    @property
    def staging(self) -> StagingArea:
        return self._staging

    def ingest(self, request: UploadRequest) -> IngestOutcome:
        """Ingest one staged file. Never raises for per-file failures."""
        Log.info(f"Ingesting {request.filename}", owner=request.owner_id)
        context = IngestionContext(request=request)
        try:
            for step in self._steps:
                try:
                    context = step.run(context)
                except Exception as exc:
                    Log.error(
                        f"{type(step).__name__} crashed for {request.filename}: {exc}",
                        owner=request.owner_id,
                    )
                    context.fail(ErrorKind.INTERNAL, f"{type(step).__name__}: {exc}")
                if context.done:
                    break
            if not context.done:
                context.fail(ErrorKind.INTERNAL, "Pipeline finished without a terminal state")
        finally:
            self._staging.discard(context.temp_paths)

        outcome = context.to_outcome()
        if outcome.failure is not None:
            Log.info(
                f"Ingestion of {request.filename} failed: {outcome.failure.message}",
                kind=outcome.failure.kind.value,
            )
        return outcome

    def ingest_batch(self, requests: Sequence[UploadRequest]) -> BatchResult:
        """Ingest files independently; one failure never affects its siblings.

        Outcomes are returned in request order.

        Raises:
            BatchLimitError: if the batch is larger than allowed. All staged
                files of the batch are discarded first.
        """
        if len(requests) > self._max_files_per_batch:
            self._staging.discard(r.path for r in requests)
            raise BatchLimitError(
                f"Maximum {self._max_files_per_batch} files allowed per batch, got {len(requests)}"
            )
        if not requests:
            return BatchResult(outcomes=[])

        workers = min(self._concurrency, len(requests))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ingest") as pool:
            outcomes = list(pool.map(self.ingest, requests))

        result = BatchResult(outcomes=outcomes)
        summary = result.summary
        Log.info(
            f"Batch complete: {summary.succeeded} succeeded, {summary.failed} failed",
            total=summary.total,
            duplicates=summary.duplicates,
        )
        return result


def build_orchestrator(
    settings: Settings,
    catalog: BaseCatalogRepository,
    store: BaseObjectStore,
    staging: StagingArea | None = None,
) -> IngestionOrchestrator:
    """Build an IngestionOrchestrator with all pipeline steps wired."""
    staging = staging if staging is not None else StagingArea(Path(settings.temp_dir))
    validator = FileValidator(settings.max_file_size_bytes, settings.allowed_categories)
    hasher = ContentHasher(settings.hash_chunk_size_bytes)
    inspector = MediaInspector(PdfInspectorFactory.create(settings))
    deriver = ThumbnailDeriver(
        staging,
        width=settings.thumbnail_width,
        height=settings.thumbnail_height,
        quality=settings.thumbnail_quality,
    )
    steps: list[PipelineStep] = [
        ValidateStep(validator),
        HashStep(hasher),
        DeduplicateStep(Deduplicator(catalog)),
        InspectMediaStep(inspector),
        DeriveThumbnailStep(deriver),
        UploadStep(store),
        UploadThumbnailStep(store),
        PinStep(store),
        PersistStep(CatalogRecorder(catalog)),
    ]
    return IngestionOrchestrator(
        steps,
        staging,
        max_files_per_batch=settings.max_files_per_batch,
        concurrency=settings.ingest_concurrency,
    )
