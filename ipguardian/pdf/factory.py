from ipguardian.config.settings import Settings
from ipguardian.pdf.base import BasePdfInspector
from ipguardian.pdf.pdfplumber_adapter import PdfPlumberAdapter
from ipguardian.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfInspectorFactory:
    """Creates the correct PDF inspector based on settings."""

    ADAPTERS: dict[str, type[BasePdfInspector]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfInspector:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
