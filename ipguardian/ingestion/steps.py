from dataclasses import replace

from ipguardian.catalog.deduplicator import Deduplicator
from ipguardian.catalog.models import NewCatalogEntry
from ipguardian.catalog.recorder import CatalogRecorder
from ipguardian.ingestion.exceptions import IntegrityError, PersistenceError
from ipguardian.ingestion.hasher import ContentHasher
from ipguardian.ingestion.media import MediaInspector
from ipguardian.ingestion.models import ErrorKind, OutcomeStatus, ValidationResult
from ipguardian.ingestion.pipeline import IngestionContext, PipelineStep
from ipguardian.ingestion.thumbnails import ThumbnailDeriver
from ipguardian.ingestion.validator import FileValidator
from ipguardian.logging.logger import Log
from ipguardian.storage.base import BaseObjectStore
from ipguardian.storage.exceptions import ObjectStoreError


def _require_validation(context: IngestionContext) -> ValidationResult:
    if context.validation is None:
        raise ValueError("IngestionContext.validation must be set before this step")
    return context.validation


class ValidateStep(PipelineStep):
    def __init__(self, validator: FileValidator) -> None:
        self._validator = validator

    def run(self, context: IngestionContext) -> IngestionContext:
        request = context.request
        try:
            result = self._validator.validate(
                request.path,
                request.filename,
                declared_size=request.declared_size,
                declared_mimetype=request.declared_mimetype,
            )
        except IntegrityError as exc:
            context.fail(ErrorKind.INTEGRITY, str(exc))
            return context
        context.validation = result
        if not result.is_valid:
            Log.info(
                f"Rejected {request.filename}: {result.message}",
                owner=request.owner_id,
                reason=result.rejection.value if result.rejection else None,
            )
            context.fail(ErrorKind.VALIDATION, result.message, reason=result.rejection)
            return context
        Log.info(
            f"Validated {request.filename} as {result.category}",
            mimetype=result.mimetype,
            source=result.source.value,
        )
        return context


class HashStep(PipelineStep):
    def __init__(self, hasher: ContentHasher) -> None:
        self._hasher = hasher

    def run(self, context: IngestionContext) -> IngestionContext:
        try:
            context.content_hash = self._hasher.hash_file(context.request.path)
        except IntegrityError as exc:
            context.fail(ErrorKind.INTEGRITY, str(exc))
            return context
        Log.debug(f"Hashed {context.request.filename}", sha256=context.content_hash)
        return context


class DeduplicateStep(PipelineStep):
    def __init__(self, deduplicator: Deduplicator) -> None:
        self._deduplicator = deduplicator

    def run(self, context: IngestionContext) -> IngestionContext:
        if not context.content_hash:
            raise ValueError("IngestionContext.content_hash must be set before deduplication")
        try:
            existing = self._deduplicator.check(context.content_hash, context.request.owner_id)
        except PersistenceError as exc:
            context.fail(ErrorKind.PERSISTENCE, str(exc))
            return context
        if existing is not None:
            Log.info(
                f"Duplicate upload {context.request.filename}, reusing entry {existing.id}",
                owner=context.request.owner_id,
                content_id=existing.content_id,
            )
            context.finish(OutcomeStatus.DUPLICATE, existing)
        return context


class InspectMediaStep(PipelineStep):
    """Best-effort: failures leave the metadata empty."""

    def __init__(self, inspector: MediaInspector) -> None:
        self._inspector = inspector

    def run(self, context: IngestionContext) -> IngestionContext:
        validation = _require_validation(context)
        try:
            context.media_metadata = self._inspector.inspect(context.request.path, validation)
        except Exception as exc:  # noqa: BLE001
            Log.warning(f"Media inspection failed for {context.request.filename}: {exc}")
        return context


class DeriveThumbnailStep(PipelineStep):
    """Best-effort: only images, and a failure never changes the outcome."""

    def __init__(self, deriver: ThumbnailDeriver) -> None:
        self._deriver = deriver

    def run(self, context: IngestionContext) -> IngestionContext:
        if _require_validation(context).category != "images":
            return context
        try:
            artifact = self._deriver.derive(context.request.path)
        except Exception as exc:  # noqa: BLE001
            Log.warning(f"Thumbnail generation failed for {context.request.filename}: {exc}")
            return context
        context.thumbnail = artifact
        context.temp_paths.append(artifact.path)
        return context


class UploadStep(PipelineStep):
    def __init__(self, store: BaseObjectStore) -> None:
        self._store = store

    def run(self, context: IngestionContext) -> IngestionContext:
        request = context.request
        try:
            context.stored = self._store.add(request.path, request.filename)
        except ObjectStoreError as exc:
            Log.warning(f"Upload failed for {request.filename}: {exc}", owner=request.owner_id)
            context.fail(ErrorKind.TRANSIENT_STORE, str(exc))
            return context
        Log.info(
            f"Uploaded {request.filename}",
            content_id=context.stored.content_id,
            size=context.stored.size_bytes,
        )
        return context


class UploadThumbnailStep(PipelineStep):
    """Best-effort: runs after the canonical upload so a failed canonical
    upload never leaves a stored thumbnail behind."""

    def __init__(self, store: BaseObjectStore) -> None:
        self._store = store

    def run(self, context: IngestionContext) -> IngestionContext:
        if context.thumbnail is None:
            return context
        name = f"thumb_{context.request.filename}"
        try:
            context.thumbnail_content_id = self._store.add(context.thumbnail.path, name).content_id
        except ObjectStoreError as exc:
            Log.warning(f"Thumbnail upload failed for {context.request.filename}: {exc}")
        return context


class PinStep(PipelineStep):
    """Pinning is a durability hint; a failure is logged and ingestion continues."""

    def __init__(self, store: BaseObjectStore) -> None:
        self._store = store

    def run(self, context: IngestionContext) -> IngestionContext:
        if context.stored is None:
            raise ValueError("IngestionContext.stored must be set before pinning")
        try:
            self._store.pin(context.stored.content_id)
        except ObjectStoreError as exc:
            Log.warning(f"Pin failed: {exc}", content_id=context.stored.content_id)
            return context
        context.stored = replace(context.stored, pinned=True)
        return context


class PersistStep(PipelineStep):
    def __init__(self, recorder: CatalogRecorder) -> None:
        self._recorder = recorder

    def run(self, context: IngestionContext) -> IngestionContext:
        validation = _require_validation(context)
        if context.stored is None:
            raise ValueError("IngestionContext.stored must be set before persisting")
        request = context.request
        new_entry = NewCatalogEntry(
            content_hash=context.content_hash,
            content_id=context.stored.content_id,
            owner_id=request.owner_id,
            original_name=request.filename,
            extension=validation.extension,
            category=validation.category,
            mimetype=validation.mimetype,
            size_bytes=validation.size_bytes,
            derived_artifact_ref=context.thumbnail_content_id,
            is_public=request.is_public,
            pinned=context.stored.pinned,
            media_metadata=context.media_metadata,
        )
        try:
            recorded = self._recorder.persist(new_entry)
        except PersistenceError as exc:
            # remote bytes exist (and may be pinned) with no catalog record
            Log.error(
                f"Catalog write failed after upload, orphaned object: {exc}",
                content_id=context.stored.content_id,
                pinned=context.stored.pinned,
                owner=request.owner_id,
                sha256=context.content_hash,
            )
            context.fail(ErrorKind.PERSISTENCE, str(exc))
            return context
        status = OutcomeStatus.SUCCEEDED if recorded.created else OutcomeStatus.DUPLICATE
        context.finish(status, recorded.entry)
        Log.info(
            f"Recorded {request.filename} as entry {recorded.entry.id}",
            owner=request.owner_id,
            status=status.value,
        )
        return context
