"""
ONNX Runtime wrapper for the YOLO DocLayNet layout model.

The model is an opaque artifact: one image input of shape (1, 3, S, S) and
one output of shape (1, 4 + num_classes, anchors). ONNX Runtime sessions
accept concurrent ``run`` calls, so a single session is shared by every
worker; ``InferenceGuard`` bounds how many calls run at once.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import onnxruntime as ort

from .labels import NUM_CLASSES
from ..logging import get_logger

logger = get_logger(__name__)


class ModelLoadError(Exception):
    """Raised when the detection model cannot be loaded."""


class DetectorError(Exception):
    """Raised when a single inference call fails."""


class OnnxDetector:
    def __init__(self, session: ort.InferenceSession, num_classes: int = NUM_CLASSES) -> None:
        self._session = session
        self._num_classes = num_classes
        self._input_name = session.get_inputs()[0].name
        self._output_name = session.get_outputs()[0].name

    @property
    def input_name(self) -> str:
        return self._input_name

    @property
    def num_classes(self) -> int:
        return self._num_classes

    def run(self, tensor: np.ndarray) -> np.ndarray:
        """
        Run one forward pass.

        Args:
            tensor: (1, 3, S, S) float32 letterboxed page

        Returns:
            Raw output of shape (4 + num_classes, anchors)

        Raises:
            DetectorError: If the runtime fails or the output shape is wrong
        """
        try:
            outputs = self._session.run([self._output_name], {self._input_name: tensor})
        except Exception as exc:
            raise DetectorError(f"Inference failed: {exc}") from exc

        return squeeze_output(outputs[0], self._num_classes)


def squeeze_output(raw: np.ndarray, num_classes: int = NUM_CLASSES) -> np.ndarray:
    """Drop the batch axis and check the channel count against the taxonomy."""
    raw = np.asarray(raw, dtype=np.float32)
    if raw.ndim == 3 and raw.shape[0] == 1:
        raw = raw[0]
    expected_channels = 4 + num_classes
    if raw.ndim != 2 or raw.shape[0] != expected_channels:
        raise DetectorError(
            f"Unexpected detector output shape {raw.shape}, "
            f"expected ({expected_channels}, anchors)"
        )
    return raw


def load_detector(
    model_path: Path | str,
    providers: Optional[Sequence[str]] = None,
    intra_op_threads: Optional[int] = None,
) -> OnnxDetector:
    """
    Load the layout model into a shared inference session.

    Raises:
        ModelLoadError: If the file is missing or the runtime rejects it
    """
    path = Path(model_path)
    if not path.exists():
        raise ModelLoadError(f"Model file does not exist: {path}")

    opts = ort.SessionOptions()
    opts.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
    opts.log_severity_level = 3  # Only show errors
    if intra_op_threads:
        opts.intra_op_num_threads = intra_op_threads

    try:
        session = ort.InferenceSession(
            str(path), opts,
            providers=list(providers or ["CPUExecutionProvider"]),
        )
    except Exception as exc:
        raise ModelLoadError(f"Failed to load model: {path}") from exc

    logger.info(f"Loaded layout model {path.name}")
    return OnnxDetector(session)


class InferenceGuard:
    """Counting permit around detector calls."""

    def __init__(self, permits: int) -> None:
        if permits <= 0:
            raise ValueError(f"permits must be positive, got {permits}")
        self._permits = permits
        self._semaphore = threading.BoundedSemaphore(permits)

    @property
    def permits(self) -> int:
        return self._permits

    def run(self, detector, tensor: np.ndarray) -> np.ndarray:
        with self._semaphore:
            try:
                raw = detector.run(tensor)
            except DetectorError:
                raise
            except Exception as exc:
                raise DetectorError(f"Inference failed: {exc}") from exc
        return squeeze_output(raw)
