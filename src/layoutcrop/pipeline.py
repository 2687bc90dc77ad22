"""
Page-parallel figure and table extraction.

A fixed pool of worker threads takes page indices and runs each page end to
end: low-resolution render, letterbox, inference, decoding, suppression and
high-resolution cropping. Pages that fail contribute no artifacts; the run
carries on with the rest of the document.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import cv2

from .config import Settings
from .logging import get_logger
from .pdf.accessor import PageRenderError, ThreadSafeDocument
from .pdf.ingestion import PdfDocument
from .regions.decoding import detect_page
from .regions.detector import DetectorError, InferenceGuard, load_detector
from .regions.extraction import ExtractedArtifact, extract_regions
from .regions.letterbox import letterbox

logger = get_logger(__name__)


@dataclass
class PageResult:
    page_index: int
    artifacts: List[ExtractedArtifact] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class ExtractionReport:
    """Outcome of one extraction run. Page order is not meaningful."""
    source: Optional[Path]
    images_dir: Path
    page_count: int
    pages: List[PageResult] = field(default_factory=list)

    @property
    def artifacts(self) -> List[ExtractedArtifact]:
        return [a for page in self.pages for a in page.artifacts]

    @property
    def paths(self) -> List[Path]:
        return [a.file_path for a in self.artifacts]

    @property
    def failed_pages(self) -> List[int]:
        return sorted(page.page_index for page in self.pages if page.failed)


class FigureExtractor:
    """
    Extracts Picture and Table regions from PDFs with a layout detector.

    The detector is shared by every worker. Calls to it go through an
    ``InferenceGuard`` sized by ``Settings.inference_permits``.
    """

    def __init__(self, detector, settings: Optional[Settings] = None) -> None:
        self.detector = detector
        self.settings = settings or Settings()
        self._guard = InferenceGuard(self.settings.inference_permits)

    def extract(self, pdf_path: Path | str, output_dir: Optional[Path | str] = None) -> ExtractionReport:
        """
        Extract all regions of a PDF into ``output_dir/<images_subdir>``.

        Raises:
            PdfOpenError: If the document cannot be opened at all
        """
        out = Path(output_dir) if output_dir is not None else self.settings.output_dir
        images_dir = out / self.settings.images_subdir

        logger.info(f"Opening PDF: {pdf_path}")
        with PdfDocument(pdf_path) as pdf:
            images_dir.mkdir(parents=True, exist_ok=True)
            report = self.extract_document(ThreadSafeDocument(pdf), images_dir)
        report.source = Path(pdf_path)
        return report

    def extract_document(self, document: ThreadSafeDocument, images_dir: Path) -> ExtractionReport:
        """Run the worker pool over every page of an opened document."""
        page_count = document.page_count
        report = ExtractionReport(source=None, images_dir=Path(images_dir), page_count=page_count)
        results_lock = threading.Lock()

        def work(page_index: int) -> None:
            result = self.process_page(document, page_index, images_dir)
            with results_lock:
                report.pages.append(result)

        workers = min(self.settings.workers, page_count) or 1
        logger.info(f"Processing {page_count} pages with {workers} workers")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="page") as executor:
            futures = [executor.submit(work, i) for i in range(page_count)]
            for future in futures:
                future.result()

        logger.info(
            f"Extracted {len(report.artifacts)} regions from {page_count} pages "
            f"({len(report.failed_pages)} failed)"
        )
        return report

    def process_page(self, document: ThreadSafeDocument, page_index: int, images_dir: Path) -> PageResult:
        """Run one page through render, detection and cropping."""
        s = self.settings
        try:
            image = document.render_page(page_index, s.detection_dpi)
            boxed = letterbox(image, s.input_size, s.pad_value)
            raw = self._guard.run(self.detector, boxed.tensor)
            detections = detect_page(
                raw,
                boxed,
                s.retained_labels,
                conf_threshold=s.conf_threshold,
                iou_threshold=s.iou_threshold,
                min_box_size=s.min_box_size,
            )
            artifacts = extract_regions(
                document,
                page_index,
                detections,
                source_size=boxed.original_size,
                output_dir=images_dir,
                dpi=s.extraction_dpi,
            )
        except (PageRenderError, DetectorError, ValueError, OSError, cv2.error) as exc:
            logger.warning(f"Skipping page {page_index}: {exc}")
            return PageResult(page_index=page_index, error=str(exc))

        logger.debug(f"Page {page_index}: {len(artifacts)} regions")
        return PageResult(page_index=page_index, artifacts=artifacts)


def extract_figures(
    pdf_path: Path | str,
    output_dir: Path | str,
    model_path: Optional[Path | str] = None,
    settings: Optional[Settings] = None,
) -> List[Path]:
    """
    Load the layout model and extract every Picture and Table of a PDF.

    Returns:
        Paths of the written PNG files, in no particular order

    Raises:
        ModelLoadError: If the model cannot be loaded
        PdfOpenError: If the PDF cannot be opened
    """
    settings = settings or Settings()
    detector = load_detector(model_path or settings.model_path)
    return FigureExtractor(detector, settings).extract(pdf_path, output_dir).paths
