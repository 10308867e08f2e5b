from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ipguardian.catalog.models import CatalogEntry
from ipguardian.catalog.recorder import RecordResult
from ipguardian.ingestion.exceptions import DuplicateEntryError, PersistenceError
from ipguardian.ingestion.models import (
    DerivedArtifact,
    ErrorKind,
    OutcomeStatus,
    ResolutionSource,
    UploadRequest,
    ValidationResult,
)
from ipguardian.ingestion.pipeline import IngestionContext
from ipguardian.ingestion.steps import (
    DeduplicateStep,
    DeriveThumbnailStep,
    InspectMediaStep,
    PersistStep,
    PinStep,
    UploadThumbnailStep,
)
from ipguardian.storage.exceptions import TransientStoreError
from ipguardian.storage.models import StoredObject


def _entry(entry_id: int = 1) -> CatalogEntry:
    return CatalogEntry(
        id=entry_id,
        content_hash="a" * 64,
        content_id="QmContent",
        owner_id="u1",
        original_name="a.png",
        extension="png",
        category="images",
        mimetype="image/png",
        size_bytes=10,
    )


def _context(category: str = "images", extension: str = "png") -> IngestionContext:
    context = IngestionContext(
        request=UploadRequest(path=Path("/tmp/staged_a.png"), filename="a.png", owner_id="u1")
    )
    context.validation = ValidationResult(
        category=category,
        mimetype="image/png",
        extension=extension,
        size_bytes=10,
        source=ResolutionSource.SNIFFED,
    )
    context.content_hash = "a" * 64
    return context


class TestIngestionContext:
    def test_tracks_staged_path(self) -> None:
        assert _context().temp_paths == [Path("/tmp/staged_a.png")]

    def test_outcome_requires_terminal_state(self) -> None:
        with pytest.raises(ValueError):
            _context().to_outcome()


class TestDeduplicateStep:
    def test_hit_finishes_as_duplicate(self) -> None:
        dedup = MagicMock()
        dedup.check.return_value = _entry(3)
        context = DeduplicateStep(dedup).run(_context())
        assert context.status is OutcomeStatus.DUPLICATE
        assert context.entry.id == 3

    def test_miss_continues(self) -> None:
        dedup = MagicMock()
        dedup.check.return_value = None
        assert not DeduplicateStep(dedup).run(_context()).done

    def test_lookup_failure_is_persistence_failure(self) -> None:
        dedup = MagicMock()
        dedup.check.side_effect = PersistenceError("db down")
        context = DeduplicateStep(dedup).run(_context())
        assert context.failure.kind is ErrorKind.PERSISTENCE

    def test_requires_hash(self) -> None:
        context = _context()
        context.content_hash = ""
        with pytest.raises(ValueError):
            DeduplicateStep(MagicMock()).run(context)


class TestBestEffortSteps:
    def test_media_inspection_failure_leaves_empty_metadata(self) -> None:
        inspector = MagicMock()
        inspector.inspect.side_effect = OSError("cannot identify image")
        context = InspectMediaStep(inspector).run(_context())
        assert context.media_metadata == {}
        assert not context.done

    def test_thumbnail_skipped_for_non_images(self) -> None:
        deriver = MagicMock()
        DeriveThumbnailStep(deriver).run(_context(category="documents", extension="pdf"))
        deriver.derive.assert_not_called()

    def test_thumbnail_path_is_tracked_for_cleanup(self) -> None:
        deriver = MagicMock()
        deriver.derive.return_value = DerivedArtifact(path=Path("/tmp/thumb.jpg"), width=300, height=300)
        context = DeriveThumbnailStep(deriver).run(_context())
        assert Path("/tmp/thumb.jpg") in context.temp_paths
        assert context.thumbnail is not None

    def test_thumbnail_upload_failure_leaves_no_ref(self) -> None:
        store = MagicMock()
        store.add.side_effect = TransientStoreError("timeout")
        context = _context()
        context.thumbnail = DerivedArtifact(path=Path("/tmp/thumb.jpg"), width=300, height=300)
        context = UploadThumbnailStep(store).run(context)
        assert context.thumbnail_content_id is None
        assert not context.done

    def test_thumbnail_upload_uses_prefixed_name(self) -> None:
        store = MagicMock()
        store.add.return_value = StoredObject(content_id="QmThumb", size_bytes=5)
        context = _context()
        context.thumbnail = DerivedArtifact(path=Path("/tmp/thumb.jpg"), width=300, height=300)
        context = UploadThumbnailStep(store).run(context)
        store.add.assert_called_once_with(Path("/tmp/thumb.jpg"), "thumb_a.png")
        assert context.thumbnail_content_id == "QmThumb"

    def test_pin_failure_keeps_unpinned(self) -> None:
        store = MagicMock()
        store.pin.side_effect = TransientStoreError("refused")
        context = _context()
        context.stored = StoredObject(content_id="QmContent", size_bytes=10)
        context = PinStep(store).run(context)
        assert context.stored.pinned is False
        assert not context.done

    def test_pin_success_marks_pinned(self) -> None:
        store = MagicMock()
        context = _context()
        context.stored = StoredObject(content_id="QmContent", size_bytes=10)
        assert PinStep(store).run(context).stored.pinned is True


class TestPersistStep:
    def _ready(self) -> IngestionContext:
        context = _context()
        context.stored = StoredObject(content_id="QmContent", size_bytes=10, pinned=True)
        context.thumbnail_content_id = "QmThumb"
        context.media_metadata = {"width": 1, "height": 1}
        return context

    def test_created_entry_succeeds(self) -> None:
        recorder = MagicMock()
        recorder.persist.return_value = RecordResult(entry=_entry(), created=True)
        context = PersistStep(recorder).run(self._ready())

        assert context.status is OutcomeStatus.SUCCEEDED
        new_entry = recorder.persist.call_args[0][0]
        assert new_entry.derived_artifact_ref == "QmThumb"
        assert new_entry.pinned is True
        assert new_entry.media_metadata == {"width": 1, "height": 1}

    def test_lost_race_is_duplicate(self) -> None:
        recorder = MagicMock()
        recorder.persist.return_value = RecordResult(entry=_entry(9), created=False)
        context = PersistStep(recorder).run(self._ready())
        assert context.status is OutcomeStatus.DUPLICATE
        assert context.entry.id == 9

    def test_write_failure_is_persistence_failure(self) -> None:
        recorder = MagicMock()
        recorder.persist.side_effect = PersistenceError("db down")
        context = PersistStep(recorder).run(self._ready())
        assert context.failure.kind is ErrorKind.PERSISTENCE

    def test_unexpected_duplicate_error_propagates(self) -> None:
        recorder = MagicMock()
        recorder.persist.side_effect = DuplicateEntryError("boom")
        with pytest.raises(DuplicateEntryError):
            PersistStep(recorder).run(self._ready())
