from pathlib import Path

import pymupdf

from ipguardian.pdf.base import BasePdfInspector
from ipguardian.pdf.exceptions import PdfInspectionError


class PyMuPdfAdapter(BasePdfInspector):
    """Inspects PDFs using PyMuPDF."""

    def page_count(self, pdf_path: Path) -> int:
        try:
            with pymupdf.open(str(pdf_path), filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                return int(doc.page_count)
        except Exception as exc:
            raise PdfInspectionError(f"pymupdf inspection failed: {exc}") from exc
