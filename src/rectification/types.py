"""
Data types and structures for the Rectification module.

Provides type-safe containers for configuration and pipeline outcomes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional, Tuple

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator

from src.common.types import ROIRect


class OutcomeStatus(Enum):
    """Which branch of the pipeline produced the output image."""

    RECTIFIED = "RECTIFIED"
    FALLBACK = "FALLBACK"


class RejectReason(Enum):
    """Why the pipeline fell back to a plain grayscale copy."""

    NO_REGION_FOUND = "No Region Found"  # Mask has no external contour
    SHAPE_REJECTED = "Shape Rejected"  # Best contour fails area/aspect gates
    DEGENERATE_GEOMETRY = "Degenerate Geometry"  # Zero-length edge, folded quad
    PROCESSING_ERROR = "Processing Error"  # Internal fault during detection


class SegmenterStrategy(str, Enum):
    """Mask strategies selectable from configuration."""

    EDGE = "edge"
    COLOR = "color"


# ============================================================================
# Configuration
# ============================================================================


def _check_kernel(v: int) -> int:
    if v < 1 or v % 2 == 0:
        raise ValueError(f"Kernel size must be a positive odd integer, got {v}")
    return v


class EdgeConfig(BaseModel):
    """Edge-based segmentation parameters.

    Attributes:
        blur_kernel: Gaussian blur kernel size (odd).
        canny_low: Lower hysteresis threshold.
        canny_high: Upper hysteresis threshold.
        dilate_iterations: Optional 3x3 dilation passes to close edge gaps.
    """

    blur_kernel: int = 5
    canny_low: float = Field(default=50.0, ge=0.0)
    canny_high: float = Field(default=150.0, gt=0.0)
    dilate_iterations: int = Field(default=0, ge=0)

    @field_validator("blur_kernel")
    @classmethod
    def _validate_kernel(cls, v: int) -> int:
        return _check_kernel(v)

    @model_validator(mode="after")
    def _validate_thresholds(self) -> "EdgeConfig":
        if self.canny_low >= self.canny_high:
            raise ValueError(
                f"canny_low ({self.canny_low}) must be less than "
                f"canny_high ({self.canny_high})"
            )
        return self


class ColorConfig(BaseModel):
    """Region-based segmentation parameters.

    Attributes:
        color_space: Perceptual color space the frame is converted to.
        channel: Channel index (0-2) to threshold, or "auto" to pick the
            channel whose Otsu split separates best.
        blur_kernel: Gaussian blur kernel size (odd).
        close_kernel: Structuring element size for morphological closing (odd).
    """

    color_space: Literal["lab", "hsv"] = "lab"
    channel: Literal["auto", 0, 1, 2] = "auto"
    blur_kernel: int = 5
    close_kernel: int = 25

    @field_validator("blur_kernel", "close_kernel")
    @classmethod
    def _validate_kernel(cls, v: int) -> int:
        return _check_kernel(v)


class QuadConfig(BaseModel):
    """Polygon approximation parameters."""

    approx_epsilon_fraction: float = Field(default=0.02, gt=0.0, lt=1.0)


class RectificationConfig(BaseModel):
    """Complete rectification pipeline configuration.

    Attributes:
        max_dimension: Cap on the long side of every output image.
        segmenter_strategy: Which mask strategy to run.
        min_area_fraction: Minimum quad area relative to the ROI area.
        aspect_ratio_bounds: (min, max) accepted height/width ratio of the
            quad, or None to disable the aspect gate.
        margin_crop_fraction: (horizontal, vertical) fraction cropped from
            each side of the output, or None to disable cropping.
        crop_fallback: Apply the margin crop to fallback images too.
        min_crop_size: Images with a side below this are never cropped.
        warp_interpolation: Resampling used by the perspective warp.
    """

    max_dimension: int = Field(default=1600, ge=1)
    segmenter_strategy: SegmenterStrategy = SegmenterStrategy.EDGE
    min_area_fraction: float = Field(default=0.01, ge=0.0, le=1.0)
    aspect_ratio_bounds: Optional[Tuple[float, float]] = (1.2, 4.0)
    margin_crop_fraction: Optional[Tuple[float, float]] = None
    crop_fallback: bool = True
    min_crop_size: int = Field(default=40, ge=1)
    warp_interpolation: Literal["linear", "cubic", "nearest", "area", "lanczos"] = (
        "linear"
    )

    edge: EdgeConfig = Field(default_factory=EdgeConfig)
    color: ColorConfig = Field(default_factory=ColorConfig)
    quad: QuadConfig = Field(default_factory=QuadConfig)

    @field_validator("aspect_ratio_bounds")
    @classmethod
    def _validate_aspect_bounds(cls, v):
        if v is None:
            return v
        min_val, max_val = v
        if min_val <= 0:
            raise ValueError(f"aspect_ratio_bounds min ({min_val}) must be positive")
        if min_val >= max_val:
            raise ValueError(
                f"aspect_ratio_bounds min ({min_val}) must be less than max ({max_val})"
            )
        return v

    @field_validator("margin_crop_fraction")
    @classmethod
    def _validate_margin(cls, v):
        if v is None:
            return v
        for fraction in v:
            if not 0.0 <= fraction < 0.5:
                raise ValueError(
                    f"margin_crop_fraction values must be in [0, 0.5), got {v}"
                )
        return v


# ============================================================================
# Results
# ============================================================================


@dataclass
class QuadSelection:
    """
    Result of contour extraction and quad selection.

    Attributes:
        quad: Ordered corners [TL, TR, BR, BL] in mask coordinates, or None
            when no contour exists at all.
        reason: None if the quad passed the area/aspect gates, otherwise
            NO_REGION_FOUND or SHAPE_REJECTED.
        method: "polygon" (approxPolyDP) or "min_area_rect".
        area: Area of the derived quad in pixels.
        area_fraction: Quad area relative to the mask area.
        aspect_ratio: Height / width of the ordered quad.
    """

    quad: Optional[np.ndarray]
    reason: Optional[RejectReason]
    method: Optional[str] = None
    area: float = 0.0
    area_fraction: float = 0.0
    aspect_ratio: float = 0.0

    def is_accepted(self) -> bool:
        return self.reason is None and self.quad is not None


_STATUS_MESSAGES = {
    None: "Captured and auto-straightened. The tag is aligned like a straight-on shot.",
    RejectReason.NO_REGION_FOUND: (
        "Captured, but no tag edges were found. Showing best grayscale capture."
    ),
    RejectReason.SHAPE_REJECTED: (
        "Captured, but could not confidently find the tag edges. "
        "Showing best grayscale capture."
    ),
    RejectReason.DEGENERATE_GEOMETRY: (
        "Captured, but the detected tag outline was unusable. "
        "Showing best grayscale capture."
    ),
    RejectReason.PROCESSING_ERROR: (
        "Captured, but auto-straighten failed. Showing uncorrected grayscale preview."
    ),
}


@dataclass
class DetectionOutcome:
    """
    Output from the rectification pipeline.

    Always carries a usable grayscale image. ``status`` tells which branch
    produced it.

    Attributes:
        status: RECTIFIED or FALLBACK.
        image: Final single-channel uint8 image.
        used_perspective: True only for the RECTIFIED branch.
        quad: Ordered corners [TL, TR, BR, BL] in full-frame coordinates
            (RECTIFIED only).
        reason: Why the pipeline fell back (FALLBACK only).
        roi: The ROI actually searched, None when the full frame was used.
    """

    status: OutcomeStatus
    image: np.ndarray
    used_perspective: bool
    quad: Optional[np.ndarray] = None
    reason: Optional[RejectReason] = None
    roi: Optional[ROIRect] = None

    @classmethod
    def rectified(
        cls, image: np.ndarray, quad: np.ndarray, roi: Optional[ROIRect] = None
    ) -> "DetectionOutcome":
        return cls(
            status=OutcomeStatus.RECTIFIED,
            image=image,
            used_perspective=True,
            quad=quad,
            roi=roi,
        )

    @classmethod
    def fallback(
        cls, image: np.ndarray, reason: RejectReason, roi: Optional[ROIRect] = None
    ) -> "DetectionOutcome":
        return cls(
            status=OutcomeStatus.FALLBACK,
            image=image,
            used_perspective=False,
            reason=reason,
            roi=roi,
        )

    def is_rectified(self) -> bool:
        """Check if the perspective branch produced the image."""
        return self.status == OutcomeStatus.RECTIFIED

    def get_status_message(self) -> str:
        """Get human-readable status message for the capture screen."""
        return _STATUS_MESSAGES[self.reason]
