"""
JSON manifest of extracted regions.

Workers finish pages in arbitrary order, so the manifest lists artifacts
sorted by page, label and left edge to give consumers a stable order.
"""

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import List, Dict, Any, Optional
from datetime import datetime

from ..pipeline import ExtractionReport
from ..regions.extraction import ExtractedArtifact
from ..logging import get_logger

logger = get_logger(__name__)

MANIFEST_VERSION = "1.0.0"


@dataclass(frozen=True)
class ManifestItem:
    """Single extracted region in the manifest."""
    file_name: str                          # Output file name
    file_path: str                          # Path to saved PNG
    page_index: int                         # Source page number
    label: str                              # Layout label (Picture / Table)
    confidence: float                       # Detector confidence
    source_box: List[int]                   # Box in detection-render pixels
    crop_box: List[int]                     # Box in extraction-render pixels
    dimensions: Dict[str, int]              # Crop size

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass(frozen=True)
class Manifest:
    """Complete manifest describing one extraction run."""
    version: str
    source_pdf: str
    extraction_timestamp: str
    page_count: int
    total_items: int
    summary: Dict[str, Any]
    failed_pages: List[int]
    items: List[ManifestItem]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": self.version,
            "source_pdf": self.source_pdf,
            "extraction_timestamp": self.extraction_timestamp,
            "page_count": self.page_count,
            "total_items": self.total_items,
            "summary": self.summary,
            "failed_pages": self.failed_pages,
            "items": [item.to_dict() for item in self.items],
        }


def artifact_sort_key(artifact: ExtractedArtifact):
    return (artifact.page_index, artifact.label.display_name, artifact.source_box[0], artifact.source_box[1])


def build_manifest(report: ExtractionReport, source_pdf: Optional[Path] = None) -> Manifest:
    """
    Build a manifest from an extraction report.

    Args:
        report: Result of ``FigureExtractor.extract``
        source_pdf: Overrides ``report.source`` when given

    Returns:
        Manifest with items in (page, label, x0, y0) order
    """
    items = []
    for artifact in sorted(report.artifacts, key=artifact_sort_key):
        x0, y0, x1, y1 = artifact.crop_box
        items.append(ManifestItem(
            file_name=artifact.file_name,
            file_path=str(artifact.file_path),
            page_index=artifact.page_index,
            label=artifact.label.display_name,
            confidence=round(artifact.confidence, 4),
            source_box=list(artifact.source_box),
            crop_box=list(artifact.crop_box),
            dimensions={"width": max(x1 - x0, 1), "height": max(y1 - y0, 1)},
        ))

    source = source_pdf or report.source
    manifest = Manifest(
        version=MANIFEST_VERSION,
        source_pdf=str(source) if source else "",
        extraction_timestamp=datetime.now().isoformat(),
        page_count=report.page_count,
        total_items=len(items),
        summary=_generate_summary(items),
        failed_pages=report.failed_pages,
        items=items,
    )

    logger.info(f"Built manifest with {len(items)} items")
    return manifest


def write_manifest_json(manifest: Manifest, output_dir: Path) -> Path:
    """
    Write manifest to JSON file in the output directory.

    Returns:
        Path to the written manifest file
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    manifest_path = output_dir / "manifest.json"

    try:
        with open(manifest_path, 'w', encoding='utf-8') as f:
            json.dump(manifest.to_dict(), f, indent=2, ensure_ascii=False)
    except OSError as exc:
        logger.error(f"Failed to write manifest to {manifest_path}: {exc}")
        raise

    logger.info(f"Wrote manifest to {manifest_path}")
    return manifest_path


def load_manifest_json(manifest_path: Path) -> Manifest:
    """Load a manifest previously written by ``write_manifest_json``."""
    with open(manifest_path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    items = [ManifestItem(**item_data) for item_data in data.get("items", [])]
    return Manifest(
        version=data["version"],
        source_pdf=data["source_pdf"],
        extraction_timestamp=data["extraction_timestamp"],
        page_count=data["page_count"],
        total_items=data["total_items"],
        summary=data["summary"],
        failed_pages=data.get("failed_pages", []),
        items=items,
    )


def _generate_summary(items: List[ManifestItem]) -> Dict[str, Any]:
    """Generate summary statistics for the manifest."""
    total = len(items)
    if total == 0:
        return {"total_items": 0}

    label_dist: Dict[str, int] = {}
    page_dist: Dict[int, int] = {}
    for item in items:
        label_dist[item.label] = label_dist.get(item.label, 0) + 1
        page_dist[item.page_index] = page_dist.get(item.page_index, 0) + 1

    return {
        "total_items": total,
        "average_confidence": sum(item.confidence for item in items) / total,
        "distributions": {
            "labels": label_dist,
            "pages": page_dist,
        },
    }
