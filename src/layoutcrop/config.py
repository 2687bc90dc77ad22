import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

from .regions.labels import LayoutLabel, DEFAULT_RETAINED_LABELS


def _default_workers() -> int:
    return os.cpu_count() or 1


@dataclass
class Settings:
    output_dir: Path = Path("output")
    images_subdir: str = "extracted_images"
    model_path: Path = Path("yolov8n-doclaynet.onnx")

    # Decoder / suppressor
    conf_threshold: float = 0.30
    iou_threshold: float = 0.45
    min_box_size: int = 30
    retained_labels: FrozenSet[LayoutLabel] = DEFAULT_RETAINED_LABELS

    # Letterbox input; the pad value must match what the model was trained with
    input_size: int = 1024
    pad_value: int = 114

    # Render resolutions
    detection_dpi: int = 150
    extraction_dpi: int = 300

    # Concurrency
    workers: int = field(default_factory=_default_workers)
    max_concurrent_inference: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("conf_threshold", "iou_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        for name in ("input_size", "detection_dpi", "extraction_dpi", "workers"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.min_box_size < 0:
            raise ValueError(f"min_box_size must be non-negative, got {self.min_box_size}")
        if not 0 <= self.pad_value <= 255:
            raise ValueError(f"pad_value must be within [0, 255], got {self.pad_value}")
        if self.max_concurrent_inference is not None and self.max_concurrent_inference <= 0:
            raise ValueError(
                f"max_concurrent_inference must be positive, got {self.max_concurrent_inference}"
            )
        self.retained_labels = frozenset(self.retained_labels)

    @property
    def inference_permits(self) -> int:
        """Number of detector calls allowed to run at the same time."""
        if self.max_concurrent_inference is None:
            return self.workers
        return self.max_concurrent_inference
