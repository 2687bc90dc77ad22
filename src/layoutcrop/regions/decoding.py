"""
Decoding and suppression of raw YOLO layout output.

Turns the (4 + num_classes, anchors) detector output into page-space
detections, removes overlapping duplicates and keeps only the layout
classes worth cropping.
"""

from dataclasses import dataclass
from typing import Collection, List, Tuple

import cv2
import numpy as np

from .labels import LayoutLabel, NUM_CLASSES
from .letterbox import LetterboxResult
from ..logging import get_logger

logger = get_logger(__name__)

# (x0, y0, x1, y1) in pixels of the detection render
Box = Tuple[int, int, int, int]


@dataclass(frozen=True)
class Detection:
    """A single decoded detection in page-pixel space."""

    box: Box
    class_id: int
    confidence: float

    @property
    def label(self) -> LayoutLabel:
        return LayoutLabel.from_class_id(self.class_id)

    @property
    def width(self) -> int:
        return self.box[2] - self.box[0]

    @property
    def height(self) -> int:
        return self.box[3] - self.box[1]


def decode_output(
    raw: np.ndarray,
    letterbox: LetterboxResult,
    conf_threshold: float = 0.30,
    num_classes: int = NUM_CLASSES,
) -> List[Detection]:
    """
    Decode raw detector output into candidate detections.

    For each anchor the best class score is compared against
    ``conf_threshold``. Boxes above it are mapped from canvas space back to
    the original render by undoing the letterbox offsets and scale.
    Negative coordinates are clamped to zero; the far edges are left as-is.

    Args:
        raw: Array of shape (4 + num_classes, anchors)
        letterbox: Transform used to build the detector input
        conf_threshold: Minimum best-class score (exclusive)
        num_classes: Number of class score channels

    Returns:
        Candidate detections in anchor order
    """
    if raw.ndim != 2 or raw.shape[0] < 4 + num_classes:
        raise ValueError(f"Raw output shape {raw.shape} does not hold {num_classes} classes")

    scores = raw[4:4 + num_classes]
    class_ids = np.argmax(scores, axis=0)
    best = scores[class_ids, np.arange(scores.shape[1])]

    keep = best > conf_threshold
    if not np.any(keep):
        return []

    geometry = raw[:4, keep].astype(np.float64)
    cx, cy, w, h = letterbox.to_original(geometry[0], geometry[1], geometry[2], geometry[3])

    corners = np.stack([cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2], axis=1)
    corners = np.maximum(corners, 0.0)
    corners = np.trunc(corners).astype(np.int64)

    detections = [
        Detection(
            box=(int(x0), int(y0), int(x1), int(y1)),
            class_id=int(class_id),
            confidence=float(score),
        )
        for (x0, y0, x1, y1), class_id, score in zip(corners, class_ids[keep], best[keep])
    ]

    logger.debug(f"Decoded {len(detections)} candidates above {conf_threshold}")
    return detections


def non_max_suppression(detections: List[Detection], iou_threshold: float = 0.45) -> List[Detection]:
    """
    Class-agnostic non-maximum suppression.

    Keeps the highest-confidence box of every cluster whose pairwise IoU
    exceeds ``iou_threshold``. Survivors are returned by descending
    confidence. Running it again on its own output changes nothing.
    """
    if len(detections) <= 1:
        return list(detections)

    rects = [(d.box[0], d.box[1], d.width, d.height) for d in detections]
    scores = [d.confidence for d in detections]

    indices = cv2.dnn.NMSBoxes(rects, scores, 0.0, iou_threshold)
    kept = [detections[i] for i in np.array(indices, dtype=np.int64).flatten()]

    logger.debug(f"NMS kept {len(kept)}/{len(detections)} detections")
    return kept


def filter_detections(
    detections: List[Detection],
    retained_labels: Collection[LayoutLabel],
    min_box_size: int = 30,
) -> List[Detection]:
    """Drop detections of unwanted classes and boxes smaller than ``min_box_size``."""
    kept = []
    for det in detections:
        if det.label not in retained_labels:
            continue
        if det.width < min_box_size or det.height < min_box_size:
            logger.debug(f"Dropping {det.label.display_name} {det.box}: below {min_box_size}px")
            continue
        kept.append(det)
    return kept


def detect_page(
    raw: np.ndarray,
    letterbox: LetterboxResult,
    retained_labels: Collection[LayoutLabel],
    conf_threshold: float = 0.30,
    iou_threshold: float = 0.45,
    min_box_size: int = 30,
) -> List[Detection]:
    """Decode, suppress and filter one page worth of raw output."""
    candidates = decode_output(raw, letterbox, conf_threshold)
    survivors = non_max_suppression(candidates, iou_threshold)
    return filter_detections(survivors, retained_labels, min_box_size)
