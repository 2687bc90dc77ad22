"""
Letterbox preprocessing for the layout detector.

The detector takes a fixed square input. Pages are resized to fit while
keeping their aspect ratio, centered on a gray canvas, and converted to a
normalized channel-planar float tensor.
"""

from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from ..logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class LetterboxResult:
    """Detector input plus what is needed to undo the letterbox."""

    # (1, 3, input_size, input_size) float32 in [0, 1]
    tensor: np.ndarray

    # Resize factor applied to the original render
    scale: float

    # Offsets of the resized image inside the canvas
    dx: int
    dy: int

    # Pixel size of the render that was letterboxed
    original_width: int
    original_height: int

    @property
    def original_size(self) -> Tuple[int, int]:
        return (self.original_width, self.original_height)

    def to_original(self, cx: float, cy: float, w: float, h: float) -> Tuple[float, float, float, float]:
        """Map a canvas-space center box back to original-render pixels."""
        return (
            (cx - self.dx) / self.scale,
            (cy - self.dy) / self.scale,
            w / self.scale,
            h / self.scale,
        )


def letterbox(image: np.ndarray, input_size: int = 1024, pad_value: int = 114) -> LetterboxResult:
    """
    Letterbox an RGB page render into the detector's square input.

    Args:
        image: uint8 array of shape (H, W, 3)
        input_size: Side of the square detector input
        pad_value: Gray level used for padding on every channel

    Returns:
        LetterboxResult with the tensor, scale and canvas offsets
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")

    original_h, original_w = image.shape[:2]
    if original_w == 0 or original_h == 0:
        raise ValueError("Cannot letterbox an empty image")

    scale = input_size / max(original_w, original_h)
    # Ribbon-shaped pages keep at least one pixel on the short side
    new_w = max(1, int(original_w * scale))
    new_h = max(1, int(original_h * scale))

    resized = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LINEAR)

    canvas = np.full((input_size, input_size, 3), pad_value, dtype=np.uint8)
    dx = (input_size - new_w) // 2
    dy = (input_size - new_h) // 2
    canvas[dy:dy + new_h, dx:dx + new_w] = resized

    # HWC uint8 -> 1xCxHxW float32, one contiguous plane per channel
    planes = canvas.astype(np.float32) * (1.0 / 255.0)
    tensor = np.ascontiguousarray(planes.transpose(2, 0, 1)[np.newaxis])

    logger.debug(
        f"Letterboxed {original_w}x{original_h} -> {new_w}x{new_h} "
        f"(scale={scale:.4f}, dx={dx}, dy={dy})"
    )

    return LetterboxResult(
        tensor=tensor,
        scale=scale,
        dx=dx,
        dy=dy,
        original_width=original_w,
        original_height=original_h,
    )
