"""
Serialized access to a single opened PDF.

PyMuPDF documents are not safe to render from several threads at once, so
every call here holds one lock for its whole duration. Workers receive the
accessor explicitly and never touch the underlying document directly.
"""

from __future__ import annotations

import threading

import numpy as np

from .ingestion import PdfDocument
from ..regions.rendering import render_page_to_image, render_page_to_png
from ..logging import get_logger

logger = get_logger(__name__)


class PageRenderError(Exception):
    """Raised when a single page cannot be rendered."""

    def __init__(self, page_index: int, message: str) -> None:
        super().__init__(f"Page {page_index}: {message}")
        self.page_index = page_index


class ThreadSafeDocument:
    def __init__(self, document: PdfDocument) -> None:
        self._document = document
        self._lock = threading.Lock()

    @property
    def path(self):
        return self._document.path

    @property
    def page_count(self) -> int:
        with self._lock:
            return self._document.page_count

    def render_page(self, page_index: int, dpi: int) -> np.ndarray:
        """Render a page to an RGB array of shape (height, width, 3)."""
        with self._lock:
            page = self._load(page_index)
            try:
                return render_page_to_image(page, dpi=dpi)
            except Exception as exc:
                raise PageRenderError(page_index, f"render at {dpi} DPI failed: {exc}") from exc

    def render_page_png(self, page_index: int, dpi: int) -> bytes:
        """Render a page to PNG-encoded bytes."""
        with self._lock:
            page = self._load(page_index)
            try:
                return render_page_to_png(page, dpi=dpi)
            except Exception as exc:
                raise PageRenderError(page_index, f"PNG render at {dpi} DPI failed: {exc}") from exc

    def _load(self, page_index: int):
        # Caller holds the lock
        count = self._document.page_count
        if not 0 <= page_index < count:
            raise PageRenderError(page_index, f"out of range [0, {count})")
        try:
            return self._document.load_page(page_index)
        except Exception as exc:
            raise PageRenderError(page_index, f"failed to load: {exc}") from exc
