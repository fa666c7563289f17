"""
Mask segmentation for the Rectification module.

Two interchangeable strategies produce a binary mask of tag-like pixels:

1. Edge-based: grayscale -> Gaussian blur -> Canny hysteresis
2. Region-based: perceptual color space -> best channel -> blur -> Otsu
   -> morphological closing into one solid blob

Both return a single-channel uint8 mask (0 or 255) with the same height and
width as the input, suitable for external contour extraction.
"""

import logging
from typing import Callable, Dict, Union

import cv2
import numpy as np

from src.rectification.image_rectification import to_grayscale
from src.rectification.types import (
    ColorConfig,
    EdgeConfig,
    RectificationConfig,
    SegmenterStrategy,
)

logger = logging.getLogger(__name__)

Segmenter = Callable[[np.ndarray, RectificationConfig], np.ndarray]


def edge_mask(image: np.ndarray, config: EdgeConfig) -> np.ndarray:
    """
    Build an edge map of the image.

    Args:
        image: Color (BGR/BGRA) or grayscale image.
        config: Edge segmentation parameters.

    Returns:
        Binary edge mask, same height and width as ``image``.
    """
    gray = to_grayscale(image)
    k = config.blur_kernel
    blurred = cv2.GaussianBlur(gray, (k, k), 0)
    edges = cv2.Canny(blurred, config.canny_low, config.canny_high)

    if config.dilate_iterations > 0:
        kernel = np.ones((3, 3), dtype=np.uint8)
        edges = cv2.dilate(edges, kernel, iterations=config.dilate_iterations)

    logger.debug(f"Edge mask: {int(np.count_nonzero(edges))} edge pixels")
    return edges


def _otsu_separability(channel: np.ndarray) -> float:
    """
    Ratio of between-class to total variance of the Otsu split (0..1).

    Higher values mean the channel splits into two well-separated classes.
    """
    total_var = float(channel.var())
    if total_var <= 0.0:
        return 0.0

    threshold, _ = cv2.threshold(channel, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    above = channel > threshold
    w1 = float(above.mean())
    w0 = 1.0 - w1
    if w0 == 0.0 or w1 == 0.0:
        return 0.0

    mu0 = float(channel[~above].mean())
    mu1 = float(channel[above].mean())
    return w0 * w1 * (mu0 - mu1) ** 2 / total_var


def select_channel(converted: np.ndarray, channel: Union[str, int]) -> int:
    """
    Pick the channel of a 3-channel image that best separates tag from
    background.

    Args:
        converted: Image already in the target color space.
        channel: Fixed channel index, or "auto".

    Returns:
        Channel index 0-2.
    """
    if channel != "auto":
        return int(channel)

    scores = [_otsu_separability(converted[:, :, i]) for i in range(3)]
    best = int(np.argmax(scores))
    logger.debug(
        f"Channel separability scores: {[round(s, 3) for s in scores]} -> {best}"
    )
    return best


def color_mask(image: np.ndarray, config: ColorConfig) -> np.ndarray:
    """
    Build a solid region mask from color information.

    Args:
        image: Color image (BGR or BGRA).
        config: Region segmentation parameters.

    Returns:
        Binary mask, same height and width as ``image``.

    Raises:
        cv2.error: If the input is not a color image.
    """
    if image.ndim == 3 and image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)

    code = cv2.COLOR_BGR2LAB if config.color_space == "lab" else cv2.COLOR_BGR2HSV
    converted = cv2.cvtColor(image, code)

    index = select_channel(converted, config.channel)
    channel = converted[:, :, index]

    k = config.blur_kernel
    blurred = cv2.GaussianBlur(channel, (k, k), 0)
    _, binary = cv2.threshold(blurred, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)

    # The tag is the minority class; Otsu's polarity depends on which side is
    # brighter in the chosen channel.
    if np.count_nonzero(binary) > binary.size / 2:
        binary = cv2.bitwise_not(binary)

    kernel = cv2.getStructuringElement(
        cv2.MORPH_RECT, (config.close_kernel, config.close_kernel)
    )
    closed = cv2.morphologyEx(binary, cv2.MORPH_CLOSE, kernel)

    logger.debug(
        f"Color mask ({config.color_space}, channel {index}): "
        f"{int(np.count_nonzero(closed))} foreground pixels"
    )
    return closed


def _run_edge(image: np.ndarray, config: RectificationConfig) -> np.ndarray:
    return edge_mask(image, config.edge)


def _run_color(image: np.ndarray, config: RectificationConfig) -> np.ndarray:
    return color_mask(image, config.color)


_SEGMENTERS: Dict[SegmenterStrategy, Segmenter] = {
    SegmenterStrategy.EDGE: _run_edge,
    SegmenterStrategy.COLOR: _run_color,
}


def get_segmenter(strategy: Union[SegmenterStrategy, str]) -> Segmenter:
    """
    Look up a segmenter by strategy.

    Raises:
        ValueError: If the strategy is unknown.
    """
    try:
        return _SEGMENTERS[SegmenterStrategy(strategy)]
    except ValueError as e:
        raise ValueError(
            f"Unknown segmenter strategy: {strategy}. "
            f"Must be one of {[s.value for s in SegmenterStrategy]}"
        ) from e


def segment(image: np.ndarray, config: RectificationConfig) -> np.ndarray:
    """
    Run the configured segmenter and check its mask.

    Raises:
        ValueError: If the segmenter returned something that is not a
            single-channel mask matching the input size.
    """
    mask = get_segmenter(config.segmenter_strategy)(image, config)

    if (
        not isinstance(mask, np.ndarray)
        or mask.ndim != 2
        or mask.shape != image.shape[:2]
        or mask.dtype != np.uint8
    ):
        raise ValueError(
            f"Segmenter returned an invalid mask for image of shape {image.shape}"
        )

    return mask
