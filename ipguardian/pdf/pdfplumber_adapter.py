from pathlib import Path

import pdfplumber

from ipguardian.pdf.base import BasePdfInspector
from ipguardian.pdf.exceptions import PdfInspectionError


class PdfPlumberAdapter(BasePdfInspector):
    """Inspects PDFs using pdfplumber."""

    def page_count(self, pdf_path: Path) -> int:
        try:
            with pdfplumber.open(pdf_path) as pdf:
                return len(pdf.pages)
        except Exception as exc:
            raise PdfInspectionError(f"pdfplumber inspection failed: {exc}") from exc
