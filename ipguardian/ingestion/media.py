from pathlib import Path
from typing import Any

from PIL import Image

from ipguardian.ingestion.models import ValidationResult
from ipguardian.pdf.base import BasePdfInspector


class MediaInspector:
    """Reads descriptive metadata (image dimensions, PDF page count)."""

    def __init__(self, pdf_inspector: BasePdfInspector) -> None:
        self._pdf_inspector = pdf_inspector

    def inspect(self, path: Path, validation: ValidationResult) -> dict[str, Any]:
        """Return metadata for supported types, ``{}`` for everything else.

        Raises:
            OSError: if an image cannot be decoded.
            PdfInspectionError: if a PDF cannot be opened.
        """
        if validation.category == "images" and validation.extension != "svg":
            with Image.open(path) as image:
                width, height = image.size
            return {"width": width, "height": height}
        if validation.extension == "pdf":
            return {"page_count": self._pdf_inspector.page_count(path)}
        return {}
