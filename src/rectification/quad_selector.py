"""
Contour extraction and quad selection for the Rectification module.

Finds the largest external boundary in a mask, derives 4 corners from it and
checks them against the area/aspect gates.
"""

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from src.rectification.image_rectification import (
    calculate_edge_lengths,
    order_points,
)
from src.rectification.types import QuadSelection, RectificationConfig, RejectReason

logger = logging.getLogger(__name__)


def find_largest_contour(mask: np.ndarray) -> Tuple[Optional[np.ndarray], int]:
    """
    Extract external contours and keep the one with maximum area.

    Ties are broken in favour of the first contour encountered.

    Returns:
        Tuple of (largest_contour or None, number_of_contours).
    """
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    best = None
    best_area = -1.0
    for contour in contours:
        area = cv2.contourArea(contour)
        if area > best_area:
            best = contour
            best_area = area

    return best, len(contours)


def approximate_corners(
    contour: np.ndarray, epsilon_fraction: float
) -> Tuple[np.ndarray, str]:
    """
    Derive 4 corner points from a contour.

    Tries polygon simplification at ``epsilon_fraction`` of the perimeter
    first; if that does not give exactly 4 vertices, falls back to the
    corners of the minimum-area enclosing rectangle.

    Returns:
        Tuple of (unordered (4, 2) float32 corners, method name).
    """
    perimeter = cv2.arcLength(contour, True)
    approx = cv2.approxPolyDP(contour, epsilon_fraction * perimeter, True)

    if len(approx) == 4:
        return approx.reshape(4, 2).astype(np.float32), "polygon"

    logger.debug(
        f"Polygon approximation gave {len(approx)} vertices, using minAreaRect"
    )
    box = cv2.boxPoints(cv2.minAreaRect(contour))
    return np.asarray(box, dtype=np.float32), "min_area_rect"


def quad_aspect_ratio(quad: np.ndarray) -> float:
    """Height / width of an ordered quad, from its longest opposite edges."""
    top, right, bottom, left = calculate_edge_lengths(quad)
    width = max(top, bottom)
    height = max(left, right)
    if width <= 0:
        return float("inf")
    return height / width


def select_quad(mask: np.ndarray, config: RectificationConfig) -> QuadSelection:
    """
    Choose the best candidate quad in a mask.

    Args:
        mask: Binary mask from a segmenter.
        config: Pipeline configuration (area/aspect gates, epsilon).

    Returns:
        QuadSelection. ``reason`` is NO_REGION_FOUND when the mask has no
        contour, SHAPE_REJECTED when the largest contour fails a gate, and
        None when the quad is accepted.
    """
    contour, count = find_largest_contour(mask)

    if contour is None:
        logger.warning("No contours found in mask")
        return QuadSelection(quad=None, reason=RejectReason.NO_REGION_FOUND)

    logger.debug(f"Found {count} external contours")

    corners, method = approximate_corners(
        contour, config.quad.approx_epsilon_fraction
    )
    quad = order_points(corners)

    mask_area = float(mask.shape[0] * mask.shape[1])
    area = float(abs(cv2.contourArea(quad)))
    area_fraction = area / mask_area if mask_area > 0 else 0.0
    aspect_ratio = quad_aspect_ratio(quad)

    selection = QuadSelection(
        quad=quad,
        reason=None,
        method=method,
        area=area,
        area_fraction=area_fraction,
        aspect_ratio=aspect_ratio,
    )

    if area_fraction < config.min_area_fraction:
        logger.warning(
            f"Quad area fraction {area_fraction:.4f} below minimum "
            f"{config.min_area_fraction}"
        )
        selection.reason = RejectReason.SHAPE_REJECTED
        return selection

    bounds = config.aspect_ratio_bounds
    if bounds is not None:
        EPSILON = 1e-6
        min_ratio, max_ratio = bounds
        if not (min_ratio - EPSILON <= aspect_ratio <= max_ratio + EPSILON):
            logger.warning(
                f"Quad aspect ratio {aspect_ratio:.2f} out of bounds {bounds}"
            )
            selection.reason = RejectReason.SHAPE_REJECTED
            return selection

    logger.info(
        f"Accepted quad ({method}): area fraction {area_fraction:.3f}, "
        f"aspect ratio {aspect_ratio:.2f}"
    )
    return selection
