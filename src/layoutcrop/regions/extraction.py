"""
High-resolution cropping of detected regions.

Detections are expressed in pixels of the low-resolution detection render.
Each page with survivors is re-rendered once at the extraction DPI, the
boxes are rescaled by the ratio of the two renders' actual pixel sizes and
each region is saved as a PNG.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Set, Tuple

from PIL import Image

from .decoding import Box, Detection
from .labels import LayoutLabel
from ..logging import get_logger

if TYPE_CHECKING:
    from ..pdf.accessor import ThreadSafeDocument

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExtractedArtifact:
    """A cropped region persisted to disk."""
    file_path: Path
    page_index: int
    label: LayoutLabel
    confidence: float
    source_box: Box        # in detection-render pixels
    crop_box: Box          # in extraction-render pixels, after clipping

    @property
    def file_name(self) -> str:
        return self.file_path.name


def remap_box(box: Box, source_size: Tuple[int, int], target_size: Tuple[int, int]) -> Box:
    """
    Rescale a box between two renders of the same page.

    Args:
        box: (x0, y0, x1, y1) in source pixels
        source_size: (width, height) of the source render
        target_size: (width, height) of the target render
    """
    scale_x = target_size[0] / source_size[0]
    scale_y = target_size[1] / source_size[1]
    x0, y0, x1, y1 = box
    return (
        int(x0 * scale_x),
        int(y0 * scale_y),
        int(x1 * scale_x),
        int(y1 * scale_y),
    )


def crop_to_bounds(image: Image.Image, box: Box) -> Tuple[Image.Image, Box]:
    """
    Crop ``image`` to ``box`` intersected with the image bounds.

    An empty intersection gives a 1x1 placeholder instead of an error.
    """
    width, height = image.size
    x0 = max(box[0], 0)
    y0 = max(box[1], 0)
    x1 = min(box[2], width)
    y1 = min(box[3], height)

    if x1 <= x0 or y1 <= y0:
        return Image.new("RGB", (1, 1)), (0, 0, 0, 0)

    return image.crop((x0, y0, x1, y1)), (x0, y0, x1, y1)


def artifact_name(page_index: int, label: LayoutLabel, left: int, top: Optional[int] = None) -> str:
    """File name for a crop; ``top`` is appended only to break a tie on the left edge."""
    if top is None:
        return f"p{page_index}_{label.display_name}_{left}.png"
    return f"p{page_index}_{label.display_name}_{left}_{top}.png"


def extract_regions(
    document: ThreadSafeDocument,
    page_index: int,
    detections: List[Detection],
    source_size: Tuple[int, int],
    output_dir: Path,
    dpi: int = 300,
) -> List[ExtractedArtifact]:
    """
    Crop every detection of a page out of a high-resolution render.

    Args:
        document: Shared accessor for the open PDF
        page_index: Page the detections belong to
        detections: Surviving detections in detection-render pixels
        source_size: (width, height) of the detection render
        output_dir: Directory receiving the PNG crops
        dpi: Extraction resolution

    Returns:
        Artifacts that were written successfully

    Raises:
        PageRenderError: If the high-resolution render fails
    """
    if not detections:
        return []

    png_bytes = document.render_page_png(page_index, dpi)
    with Image.open(io.BytesIO(png_bytes)) as decoded:
        page_image = decoded.convert("RGB")

    target_size = page_image.size
    logger.debug(
        f"Page {page_index}: remapping {len(detections)} boxes "
        f"{source_size[0]}x{source_size[1]} -> {target_size[0]}x{target_size[1]}"
    )

    output_dir = Path(output_dir)
    artifacts: List[ExtractedArtifact] = []
    used_names: Set[str] = set()
    for det in detections:
        label = det.label
        name = artifact_name(page_index, label, det.box[0])
        if name in used_names:
            name = artifact_name(page_index, label, det.box[0], top=det.box[1])
        if name in used_names:
            # Detections arrive by descending confidence; keep the first
            logger.debug(f"Page {page_index}: {name} already written, skipping {det.box}")
            continue
        used_names.add(name)

        crop, crop_box = crop_to_bounds(page_image, remap_box(det.box, source_size, target_size))
        path = output_dir / name

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            crop.save(path, format="PNG")
        except OSError as exc:
            logger.warning(f"Page {page_index}: failed to write {path.name} - {exc}")
            continue

        artifacts.append(ExtractedArtifact(
            file_path=path,
            page_index=page_index,
            label=label,
            confidence=det.confidence,
            source_box=det.box,
            crop_box=crop_box,
        ))

    return artifacts
