"""
Tag Detection & Perspective Rectification

Locates a small rectangular inspection tag in a still frame and warps it to
an axis-aligned grayscale rectangle, falling back to a scaled grayscale copy
when detection is not confident.

Pipeline stages:
1. ROI selection (optional overlay rectangle)
2. Segmentation (edge-based or color-based mask)
3. Contour extraction and quad selection (area/aspect gates)
4. Corner canonicalization and geometry check
5. Perspective rectification, clamping and margin crop
"""

from src.rectification.config_loader import get_default_config, load_config
from src.rectification.engine import EngineState, VisionEngine, VisionNotReadyError
from src.rectification.image_rectification import (
    calculate_output_size,
    crop_margins,
    order_points,
    rectify_quad,
)
from src.rectification.processor import TagRectifier, detect_and_rectify
from src.rectification.types import (
    DetectionOutcome,
    OutcomeStatus,
    RectificationConfig,
    RejectReason,
    SegmenterStrategy,
)

__all__ = [
    "TagRectifier",
    "detect_and_rectify",
    "load_config",
    "get_default_config",
    "order_points",
    "calculate_output_size",
    "rectify_quad",
    "crop_margins",
    "VisionEngine",
    "EngineState",
    "VisionNotReadyError",
    "DetectionOutcome",
    "OutcomeStatus",
    "RectificationConfig",
    "RejectReason",
    "SegmenterStrategy",
]
