"""
Image Rectification Utilities

Provides corner canonicalization, output sizing, perspective warping and
margin cropping. Used to turn a tilted tag quadrilateral into an
axis-aligned, grayscale top-down view.
"""

import logging
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from src.rectification.types import RejectReason

logger = logging.getLogger(__name__)

INTERPOLATION_FLAGS = {
    "linear": cv2.INTER_LINEAR,
    "cubic": cv2.INTER_CUBIC,
    "nearest": cv2.INTER_NEAREST,
    "area": cv2.INTER_AREA,
    "lanczos": cv2.INTER_LANCZOS4,
}

# Edges shorter than this are treated as collapsed
MIN_EDGE_LENGTH = 1.0


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Convert a BGR, BGRA or single-channel image to a 2D grayscale array.

    Raises:
        ValueError: If the channel layout is not supported.
    """
    if image.ndim == 2:
        return image
    if image.ndim == 3 and image.shape[2] == 1:
        return image[:, :, 0]
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    raise ValueError(f"Unsupported image shape for grayscale conversion: {image.shape}")


def order_points(pts: Union[np.ndarray, list]) -> np.ndarray:
    """
    Order 4 points as Top-Left, Top-Right, Bottom-Right, Bottom-Left.

    The algorithm is purely positional:
    - the two points with the smallest y form the top pair,
      the remaining two the bottom pair;
    - within each pair the smaller x is the left point.
    Ties are broken on the other coordinate, so every permutation of the
    same 4 points yields the same result. Correct for axis-aligned quads and
    rotations up to 45 degrees.

    Args:
        pts: Array of 4 points with shape (4, 2) or list of [x, y] coordinates.

    Returns:
        Ordered float32 array of shape (4, 2): [TL, TR, BR, BL].

    Raises:
        ValueError: If input does not contain exactly 4 points.

    Example:
        >>> order_points([[110, 60], [10, 50], [60, 110], [60, 10]])
        array([[ 10.,  50.],
               [ 60.,  10.],
               [110.,  60.],
               [ 60., 110.]], dtype=float32)
    """
    pts = np.array(pts, dtype=np.float32)

    if pts.shape != (4, 2):
        raise ValueError(
            f"Expected exactly 4 points with shape (4, 2), got shape {pts.shape}"
        )

    # Primary key y, secondary key x
    by_y = pts[np.lexsort((pts[:, 0], pts[:, 1]))]
    top, bottom = by_y[:2], by_y[2:]

    # Primary key x, secondary key y
    tl, tr = top[np.lexsort((top[:, 1], top[:, 0]))]
    bl, br = bottom[np.lexsort((bottom[:, 1], bottom[:, 0]))]

    rect = np.array([tl, tr, br, bl], dtype=np.float32)

    logger.debug(
        f"Ordered points: TL={rect[0]}, TR={rect[1]}, BR={rect[2]}, BL={rect[3]}"
    )

    return rect


def calculate_edge_lengths(
    quad: Union[np.ndarray, list],
) -> Tuple[float, float, float, float]:
    """
    Calculate the length of all 4 edges of an ordered quadrilateral.

    Args:
        quad: 4 corner points in order [TL, TR, BR, BL].

    Returns:
        Tuple of (top, right, bottom, left) edge lengths.

    Example:
        >>> calculate_edge_lengths([[0, 0], [100, 0], [100, 50], [0, 50]])
        (100.0, 50.0, 100.0, 50.0)
    """
    quad = np.array(quad, dtype=np.float64)

    if quad.shape != (4, 2):
        raise ValueError(f"Expected 4 points with shape (4, 2), got {quad.shape}")

    tl, tr, br, bl = quad

    top = float(np.linalg.norm(tr - tl))
    right = float(np.linalg.norm(br - tr))
    bottom = float(np.linalg.norm(br - bl))
    left = float(np.linalg.norm(bl - tl))

    return top, right, bottom, left


def clamp_dimensions(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """
    Scale (width, height) down so the long side equals ``max_dimension``.

    Sizes already within the limit are returned unchanged (no upscaling).
    Both the perspective branch and the fallback branch size their output
    with this function.

    Example:
        >>> clamp_dimensions(3000, 4000, 1600)
        (1200, 1600)
    """
    long_side = max(width, height)
    if long_side <= max_dimension:
        return width, height

    scale = max_dimension / long_side
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


def calculate_output_size(
    quad: Union[np.ndarray, list], max_dimension: int
) -> Tuple[int, int]:
    """
    Size of the rectified image implied by an ordered quad.

    Width is the longer of the top and bottom edges, height the longer of
    the left and right edges, so no content is lost; the result is then
    clamped to ``max_dimension``.

    Returns:
        Tuple of (width, height). Either may be 0 for a collapsed quad.
    """
    top, right, bottom, left = calculate_edge_lengths(quad)

    width = int(round(max(top, bottom)))
    height = int(round(max(left, right)))

    logger.debug(f"Natural output size: {width}x{height}")

    if width <= 0 or height <= 0:
        return width, height

    return clamp_dimensions(width, height, max_dimension)


def check_quad_geometry(quad: Union[np.ndarray, list]) -> Optional[RejectReason]:
    """
    Check that an ordered quad can be warped.

    A quad is degenerate when an edge is shorter than one pixel (coincident
    corners) or when the ordered corners do not form a convex polygon
    (self-intersecting or folded outline).

    Args:
        quad: 4 corner points in order [TL, TR, BR, BL].

    Returns:
        None if the geometry is usable, RejectReason.DEGENERATE_GEOMETRY otherwise.
    """
    quad = np.array(quad, dtype=np.float64)

    if not np.isfinite(quad).all():
        logger.warning("Quad has non-finite coordinates")
        return RejectReason.DEGENERATE_GEOMETRY

    edges = calculate_edge_lengths(quad)
    if min(edges) < MIN_EDGE_LENGTH:
        logger.warning(f"Quad has a collapsed edge: {[round(e, 2) for e in edges]}")
        return RejectReason.DEGENERATE_GEOMETRY

    if not _is_convex_quadrilateral(quad):
        return RejectReason.DEGENERATE_GEOMETRY

    return None


def _is_convex_quadrilateral(rect: np.ndarray) -> bool:
    """
    Check if 4 ordered points form a convex quadrilateral.

    For each consecutive edge pair (P1->P2, P2->P3) the 2D cross product
    must have the same sign; mixed signs mean a concave or self-intersecting
    outline, a near-zero product means three collinear corners.
    """
    cross_products = []

    for i in range(4):
        p1 = rect[i]
        p2 = rect[(i + 1) % 4]
        p3 = rect[(i + 2) % 4]

        v1 = p2 - p1
        v2 = p3 - p2
        cross_products.append(v1[0] * v2[1] - v1[1] * v2[0])

    if any(abs(cp) < 1e-6 for cp in cross_products):
        logger.warning(f"Collinear quad corners. Cross products: {cross_products}")
        return False

    signs = [cp > 0 for cp in cross_products]
    is_convex = all(signs) or not any(signs)

    if not is_convex:
        logger.warning(
            f"Non-convex quadrilateral detected. Cross products: {cross_products}"
        )

    return is_convex


def rectify_quad(
    image: np.ndarray,
    quad: Union[np.ndarray, list],
    max_dimension: int,
    interpolation: str = "linear",
) -> np.ndarray:
    """
    Warp an ordered quadrilateral to an axis-aligned grayscale rectangle.

    Args:
        image: Image containing the quad (color or grayscale).
        quad: 4 corner points in order [TL, TR, BR, BL], image coordinates.
        max_dimension: Cap on the long side of the output.
        interpolation: Resampling method name, see INTERPOLATION_FLAGS.

    Returns:
        Rectified single-channel uint8 image of the size given by
        calculate_output_size().

    Raises:
        ValueError: If the image is empty, the quad is not (4, 2), or the
            output size collapses to zero.

    Example:
        >>> quad = order_points([[120, 180], [300, 165], [320, 560], [100, 570]])
        >>> rectified = rectify_quad(image, quad, max_dimension=1600)
    """
    if image is None or image.size == 0:
        raise ValueError("Invalid input image: image is None or empty")

    src = np.array(quad, dtype=np.float32)
    if src.shape != (4, 2):
        raise ValueError(
            f"Expected exactly 4 quad points with shape (4, 2), got shape {src.shape}"
        )

    width, height = calculate_output_size(src, max_dimension)
    if width <= 0 or height <= 0:
        raise ValueError(
            f"Rectified dimensions collapsed: width={width}, height={height}"
        )

    dst = np.array(
        [
            [0, 0],
            [width - 1, 0],
            [width - 1, height - 1],
            [0, height - 1],
        ],
        dtype=np.float32,
    )

    M = cv2.getPerspectiveTransform(src, dst)
    warped = cv2.warpPerspective(
        image,
        M,
        (width, height),
        flags=INTERPOLATION_FLAGS[interpolation],
    )

    rectified = to_grayscale(warped)
    logger.info(f"Rectified quad to {width}x{height} rectangle")
    return rectified


def resize_to_max(image: np.ndarray, max_dimension: int) -> np.ndarray:
    """
    Downscale an image so its long side is at most ``max_dimension``.

    Uses INTER_AREA (anti-aliasing). Images already within the limit are
    returned unchanged.
    """
    height, width = image.shape[:2]
    target_w, target_h = clamp_dimensions(width, height, max_dimension)
    if (target_w, target_h) == (width, height):
        return image

    logger.debug(f"Resizing {width}x{height} -> {target_w}x{target_h}")
    return cv2.resize(image, (target_w, target_h), interpolation=cv2.INTER_AREA)


def crop_margins(
    image: np.ndarray,
    margin_fraction: Optional[Tuple[float, float]],
    min_size: int = 40,
) -> np.ndarray:
    """
    Crop a symmetric margin to drop background bleed at the tag edges.

    Args:
        image: Rectified or fallback image.
        margin_fraction: (horizontal, vertical) fraction removed from each
            side, e.g. (0.05, 0.08). None disables cropping.
        min_size: Images with a side smaller than this are returned as-is.

    Returns:
        Cropped image, or the input when cropping is disabled or would leave
        nothing.
    """
    if margin_fraction is None:
        return image

    height, width = image.shape[:2]
    if width < min_size or height < min_size:
        logger.debug(f"Skipping margin crop for small image {width}x{height}")
        return image

    fx, fy = margin_fraction
    dx = int(round(width * fx))
    dy = int(round(height * fy))

    if width - 2 * dx <= 0 or height - 2 * dy <= 0:
        logger.debug(f"Margin crop {margin_fraction} would empty {width}x{height}")
        return image

    return image[dy : height - dy, dx : width - dx].copy()
