"""
Layout detection and region cropping.

Page rendering, letterbox preprocessing, YOLO output decoding with
non-maximum suppression, and high-resolution cropping of the regions that
survive.
"""

from .labels import LayoutLabel, DEFAULT_RETAINED_LABELS
from .letterbox import letterbox, LetterboxResult
from .decoding import Detection, decode_output, non_max_suppression, filter_detections, detect_page
from .detector import OnnxDetector, InferenceGuard, load_detector, ModelLoadError, DetectorError
from .extraction import ExtractedArtifact, extract_regions, remap_box
from .rendering import render_page_to_image, render_page_to_png

__all__ = [
    'LayoutLabel',
    'DEFAULT_RETAINED_LABELS',
    'letterbox',
    'LetterboxResult',
    'Detection',
    'decode_output',
    'non_max_suppression',
    'filter_detections',
    'detect_page',
    'OnnxDetector',
    'InferenceGuard',
    'load_detector',
    'ModelLoadError',
    'DetectorError',
    'ExtractedArtifact',
    'extract_regions',
    'remap_box',
    'render_page_to_image',
    'render_page_to_png',
]
