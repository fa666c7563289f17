"""
ROI selection for the Rectification module.

Restricts the tag search to the caller's overlay rectangle.
"""

import logging
from typing import Optional, Tuple, Union

import numpy as np

from src.common.types import Frame, ROIRect

logger = logging.getLogger(__name__)


def select_roi(
    frame: Union[Frame, np.ndarray], roi: Optional[ROIRect] = None
) -> Tuple[np.ndarray, Optional[ROIRect]]:
    """
    Cut the region of interest out of a frame.

    The returned array is a copy, so later stages never write through to
    the caller's frame.

    Args:
        frame: Source frame (color or grayscale).
        roi: Rectangle in source-pixel coordinates, or None.

    Returns:
        Tuple of (roi_image, used_roi). ``used_roi`` is the rectangle after
        clipping to the frame, or None when the full frame was used.

    Example:
        >>> image, used = select_roi(frame, ROIRect(x=100, y=80, w=300, h=500))
        >>> image.shape[:2]
        (500, 300)
    """
    frame = Frame.from_any(frame)
    data = frame.to_numpy()

    if roi is None:
        return data.copy(), None

    clipped = roi.clip_to(frame.width, frame.height)
    if clipped.is_empty:
        logger.warning(
            f"ROI {roi} does not overlap frame {frame.width}x{frame.height}, "
            "searching the full frame"
        )
        return data.copy(), None

    if clipped != roi:
        logger.debug(f"ROI {roi} clipped to {clipped}")

    sub = data[clipped.y : clipped.y + clipped.h, clipped.x : clipped.x + clipped.w]
    return sub.copy(), clipped
