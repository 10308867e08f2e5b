import io
from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from ipguardian.config.settings import Settings
from ipguardian.database.repositories.memory_catalog_repository import InMemoryCatalogRepository
from ipguardian.ingestion.models import UploadRequest
from ipguardian.ingestion.orchestrator import IngestionOrchestrator, build_orchestrator
from ipguardian.ingestion.staging import StagingArea
from ipguardian.storage.memory_store import InMemoryObjectStore


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    """Generate a 640x480 RGB PNG."""
    buf = io.BytesIO()
    Image.new("RGB", (640, 480), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path / "staging"


@pytest.fixture()
def settings(temp_dir: Path) -> Settings:
    return Settings(
        temp_dir=str(temp_dir),
        catalog_backend="memory",
        object_store_backend="memory",
        max_file_size_bytes=1024 * 1024,
        max_files_per_batch=10,
        ingest_concurrency=4,
    )


@pytest.fixture()
def staging(temp_dir: Path) -> StagingArea:
    return StagingArea(temp_dir)


@pytest.fixture()
def catalog() -> InMemoryCatalogRepository:
    return InMemoryCatalogRepository()


@pytest.fixture()
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture()
def orchestrator(
    settings: Settings,
    catalog: InMemoryCatalogRepository,
    store: InMemoryObjectStore,
    staging: StagingArea,
) -> IngestionOrchestrator:
    return build_orchestrator(settings, catalog, store, staging=staging)


@pytest.fixture()
def make_request(staging: StagingArea) -> Callable[..., UploadRequest]:
    """Stage bytes and return the UploadRequest the upload boundary would hand over."""

    def _make(
        data: bytes,
        filename: str,
        owner_id: str = "u1",
        is_public: bool = False,
    ) -> UploadRequest:
        return UploadRequest(
            path=staging.stage(data, filename),
            filename=filename,
            owner_id=owner_id,
            declared_size=len(data),
            is_public=is_public,
        )

    return _make


@pytest.fixture()
def leftover_files(temp_dir: Path) -> Callable[[], list[Path]]:
    """Return a probe listing every file still present under the staging root."""

    def _list() -> list[Path]:
        return [p for p in temp_dir.rglob("*") if p.is_file()]

    return _list
