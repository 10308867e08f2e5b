from abc import ABC, abstractmethod
from pathlib import Path


class BasePdfInspector(ABC):
    """Contract for all PDF inspection adapters."""

    @abstractmethod
    def page_count(self, pdf_path: Path) -> int:
        """Count pages in a PDF on disk.

        Args:
            pdf_path: Path to a staged PDF file.

        Returns:
            Number of pages.

        Raises:
            PdfInspectionError: if the file cannot be opened as a PDF.
        """
