from __future__ import annotations

from pathlib import Path

import fitz  # type: ignore[import]


class PdfOpenError(Exception):
    """Raised when a PDF cannot be opened."""


class EncryptedPdfError(PdfOpenError):
    """Raised when a PDF is encrypted and cannot be read."""


class PdfDocument:
    def __init__(self, source: Path | str) -> None:
        self._path = Path(source)
        self._doc = self._open_document(self._path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    def load_page(self, index: int) -> fitz.Page:
        """Load a single page by zero-based index."""
        return self._doc.load_page(index)

    def close(self) -> None:
        """Close the PDF document and release file handles."""
        if hasattr(self, '_doc') and self._doc is not None:
            self._doc.close()
            self._doc = None

    def __enter__(self) -> PdfDocument:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _open_document(self, path: Path) -> fitz.Document:
        if not path.exists():
            raise PdfOpenError(f"PDF file does not exist: {path}")

        try:
            doc = fitz.open(path)
        except Exception as exc:
            raise PdfOpenError(f"Failed to open PDF: {path}") from exc

        if doc.needs_pass:
            doc.close()
            raise EncryptedPdfError(f"PDF is encrypted: {path}")

        if doc.page_count == 0:
            doc.close()
            raise PdfOpenError(f"PDF has no pages: {path}")

        return doc
