from pathlib import Path

import pytest

from ipguardian.ingestion.exceptions import IntegrityError
from ipguardian.ingestion.models import RejectionReason, ResolutionSource
from ipguardian.ingestion.staging import StagingArea
from ipguardian.ingestion.validator import FileValidator, categorize, declared_extension

ALL_CATEGORIES = ["images", "documents", "audio", "video", "archives", "code"]
EXE_BYTES = b"MZ\x90\x00\x03\x00\x00\x00" + b"\x00" * 120


@pytest.fixture
def validator() -> FileValidator:
    return FileValidator(max_file_size_bytes=1024 * 1024, allowed_categories=ALL_CATEGORIES)


class TestCategorize:
    @pytest.mark.parametrize(
        ("extension", "category"),
        [
            ("jpg", "images"),
            ("PNG", "images"),
            (".pdf", "documents"),
            ("flac", "audio"),
            ("mkv", "video"),
            ("7z", "archives"),
            ("py", "code"),
            ("exe", "unknown"),
            ("", "unknown"),
        ],
    )
    def test_maps_extension(self, extension: str, category: str) -> None:
        assert categorize(extension) == category

    def test_declared_extension_is_lowercased(self) -> None:
        assert declared_extension("Scan.PDF") == "pdf"

    def test_declared_extension_missing(self) -> None:
        assert declared_extension("Makefile") == ""


class TestResolveType:
    def test_sniffed_png(self, validator: FileValidator, png_bytes: bytes) -> None:
        resolution = validator.resolve_type(png_bytes[:8192], "photo.txt")
        assert resolution.source is ResolutionSource.SNIFFED
        assert resolution.extension == "png"
        assert resolution.mimetype == "image/png"

    def test_declared_fallback_uses_mimetypes(self, validator: FileValidator) -> None:
        resolution = validator.resolve_type(b"plain text\n", "notes.txt")
        assert resolution.source is ResolutionSource.DECLARED_FALLBACK
        assert resolution.extension == "txt"
        assert resolution.mimetype == "text/plain"

    def test_declared_mimetype_wins_over_guess(self, validator: FileValidator) -> None:
        resolution = validator.resolve_type(b"plain text\n", "notes.txt", "text/x-custom")
        assert resolution.mimetype == "text/x-custom"

    def test_unknown_extension_falls_back_to_octet_stream(self, validator: FileValidator) -> None:
        resolution = validator.resolve_type(b"plain text\n", "data.zzqq")
        assert resolution.mimetype == "application/octet-stream"

    def test_unresolved_without_extension(self, validator: FileValidator) -> None:
        resolution = validator.resolve_type(b"plain text\n", "README")
        assert resolution.source is ResolutionSource.UNRESOLVED
        assert resolution.extension == ""

    def test_empty_head_is_not_sniffed(self, validator: FileValidator) -> None:
        resolution = validator.resolve_type(b"", "empty.txt")
        assert resolution.source is ResolutionSource.DECLARED_FALLBACK


class TestValidate:
    def test_png_is_image(
        self, validator: FileValidator, staging: StagingArea, png_bytes: bytes
    ) -> None:
        path = staging.stage(png_bytes, "photo.png")
        result = validator.validate(path, "photo.png")
        assert result.is_valid
        assert result.category == "images"
        assert result.mimetype == "image/png"
        assert result.size_bytes == len(png_bytes)
        assert result.source is ResolutionSource.SNIFFED

    def test_pdf_is_document(
        self, validator: FileValidator, staging: StagingArea, sample_pdf_bytes: bytes
    ) -> None:
        path = staging.stage(sample_pdf_bytes, "report.pdf")
        result = validator.validate(path, "report.pdf")
        assert result.is_valid
        assert result.category == "documents"
        assert result.extension == "pdf"

    def test_sniffed_type_beats_misleading_extension(
        self, validator: FileValidator, staging: StagingArea, png_bytes: bytes
    ) -> None:
        path = staging.stage(png_bytes, "totally-a.txt")
        result = validator.validate(path, "totally-a.txt")
        assert result.category == "images"
        assert result.extension == "png"

    def test_text_falls_back_to_extension(
        self, validator: FileValidator, staging: StagingArea
    ) -> None:
        path = staging.stage(b"print('hi')\n", "script.py")
        result = validator.validate(path, "script.py")
        assert result.is_valid
        assert result.category == "code"
        assert result.source is ResolutionSource.DECLARED_FALLBACK

    def test_executable_is_unsupported(
        self, validator: FileValidator, staging: StagingArea
    ) -> None:
        path = staging.stage(EXE_BYTES, "setup.pdf")
        result = validator.validate(path, "setup.pdf")
        assert not result.is_valid
        assert result.rejection is RejectionReason.UNSUPPORTED_TYPE
        assert result.message == "File type 'exe' is not allowed"

    def test_unknown_declared_extension_is_unverifiable(
        self, validator: FileValidator, staging: StagingArea
    ) -> None:
        path = staging.stage(b"@echo off\n", "run.bat")
        result = validator.validate(path, "run.bat")
        assert result.rejection is RejectionReason.UNVERIFIABLE_TYPE
        assert result.message == "Unable to verify file type or unsupported format"

    def test_no_extension_is_unverifiable(
        self, validator: FileValidator, staging: StagingArea
    ) -> None:
        path = staging.stage(b"just words\n", "README")
        result = validator.validate(path, "README")
        assert result.rejection is RejectionReason.UNVERIFIABLE_TYPE
        assert result.category == "unknown"

    def test_oversized_rejected_first(self, staging: StagingArea) -> None:
        validator = FileValidator(max_file_size_bytes=1024 * 1024, allowed_categories=ALL_CATEGORIES)
        path = staging.stage(b"a" * (1024 * 1024 + 1), "big.txt")
        result = validator.validate(path, "big.txt")
        assert result.rejection is RejectionReason.OVERSIZED
        assert result.message == "File size exceeds limit of 1MB"

    def test_size_at_limit_is_accepted(self, staging: StagingArea) -> None:
        validator = FileValidator(max_file_size_bytes=16, allowed_categories=ALL_CATEGORIES)
        path = staging.stage(b"a" * 16, "edge.txt")
        assert validator.validate(path, "edge.txt").is_valid

    def test_restricted_categories(
        self, staging: StagingArea, png_bytes: bytes
    ) -> None:
        validator = FileValidator(max_file_size_bytes=1024 * 1024, allowed_categories=["documents"])
        path = staging.stage(png_bytes, "photo.png")
        result = validator.validate(path, "photo.png")
        assert result.rejection is RejectionReason.UNSUPPORTED_TYPE

    def test_restricted_category_from_declared_extension(self, staging: StagingArea) -> None:
        validator = FileValidator(max_file_size_bytes=1024, allowed_categories=["images", "documents"])
        path = staging.stage(b"print('hi')\n", "x.py")
        result = validator.validate(path, "x.py")
        assert result.category == "code"
        assert result.source is ResolutionSource.DECLARED_FALLBACK
        assert result.rejection is RejectionReason.UNSUPPORTED_TYPE
        assert result.message == "File type 'py' is not allowed"

    def test_unknown_is_never_allowed(self, staging: StagingArea) -> None:
        validator = FileValidator(max_file_size_bytes=1024, allowed_categories=["unknown"])
        path = staging.stage(b"words\n", "run.bat")
        assert not validator.validate(path, "run.bat").is_valid

    def test_missing_file_raises_integrity_error(
        self, validator: FileValidator, tmp_path: Path
    ) -> None:
        with pytest.raises(IntegrityError):
            validator.validate(tmp_path / "gone.txt", "gone.txt")
