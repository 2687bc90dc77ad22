"""
Page rendering for layout detection.

Converts PDF pages to RGB arrays or PNG bytes at a requested resolution.
"""

import numpy as np
import fitz  # PyMuPDF

from ..logging import get_logger

logger = get_logger(__name__)


def _dpi_matrix(dpi: int) -> fitz.Matrix:
    # PyMuPDF default is 72 DPI
    zoom = dpi / 72.0
    return fitz.Matrix(zoom, zoom)


def render_page_to_image(page: fitz.Page, dpi: int = 150) -> np.ndarray:
    """
    Render a PDF page to a numpy array image.

    Args:
        page: PyMuPDF page object
        dpi: Resolution for rendering (default 150)

    Returns:
        numpy array of shape (height, width, 3), RGB, uint8
    """
    pix = page.get_pixmap(matrix=_dpi_matrix(dpi), colorspace=fitz.csRGB, alpha=False)

    # Copy out of the pixmap buffer so the array outlives the pixmap
    img = np.frombuffer(pix.samples, dtype=np.uint8).reshape(pix.height, pix.width, 3).copy()

    logger.debug(f"Rendered page {page.number} to {img.shape} at {dpi} DPI")

    return img


def render_page_to_png(page: fitz.Page, dpi: int = 300) -> bytes:
    """Render a PDF page and encode it as lossless PNG bytes."""
    pix = page.get_pixmap(matrix=_dpi_matrix(dpi), colorspace=fitz.csRGB, alpha=False)
    data = pix.tobytes("png")
    logger.debug(f"Rendered page {page.number} to {pix.width}x{pix.height} PNG at {dpi} DPI")
    return data
