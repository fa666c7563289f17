"""
Main processor for the Rectification module.

Orchestrates the complete pipeline and acts as the confidence gate:
1. ROI selection
2. Segmentation (edge-based or color-based mask)
3. Contour extraction and quad selection (area/aspect gates)
4. Geometry check of the ordered quad
5. Perspective rectification and margin crop

Every rejection, and every internal fault, degrades to a grayscale copy of
the searched region sized by the same rules as the rectified output. The
caller always receives a usable image.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

import numpy as np

from src.common.types import Frame, ROIRect
from src.rectification.config_loader import get_default_config, load_config
from src.rectification.engine import VisionEngine
from src.rectification.image_rectification import (
    check_quad_geometry,
    crop_margins,
    rectify_quad,
    resize_to_max,
    to_grayscale,
)
from src.rectification.quad_selector import select_quad
from src.rectification.roi import select_roi
from src.rectification.segmentation import segment
from src.rectification.types import (
    DetectionOutcome,
    RectificationConfig,
    RejectReason,
)

logger = logging.getLogger(__name__)


@contextmanager
def scratch_buffers() -> Iterator[Dict[str, object]]:
    """
    Per-invocation holder for intermediate buffers (masks, quads).

    The holder is cleared on every exit path, including early returns and
    exceptions, so no intermediate outlives the invocation that made it.
    """
    scratch: Dict[str, object] = {}
    try:
        yield scratch
    finally:
        logger.debug(f"Releasing {len(scratch)} intermediate buffer(s)")
        scratch.clear()


class TagRectifier:
    """
    Detect a tag in a still frame and straighten it.

    Example:
        >>> engine = VisionEngine().initialize()
        >>> rectifier = TagRectifier(engine=engine)
        >>> outcome = rectifier.process(cv2.imread("tag.jpg"))
        >>> cv2.imwrite("tag_corrected.jpg", outcome.image)
        >>> print(outcome.get_status_message())
    """

    def __init__(
        self,
        config: Optional[RectificationConfig] = None,
        config_path: Optional[Path] = None,
        engine: Optional[VisionEngine] = None,
    ):
        """
        Initialize the rectifier.

        Args:
            config: Pre-loaded configuration object. If None, will load from file.
            config_path: Path to config file. If None, uses the bundled default.
            engine: Vision engine handle. If None, a new engine is created and
                initialized; a provided engine is used as-is and must be READY
                by the time process() is called.
        """
        if config is not None:
            self.config = config
            logger.info("Using provided configuration")
        elif config_path is not None:
            self.config = load_config(config_path)
            logger.info(f"Loaded configuration from {config_path}")
        else:
            self.config = get_default_config()
            logger.info("Using default configuration")

        self.engine = engine if engine is not None else VisionEngine().initialize()

    def process(
        self,
        frame: Union[Frame, np.ndarray],
        roi: Optional[ROIRect] = None,
    ) -> DetectionOutcome:
        """
        Run detection and rectification on one frame.

        Args:
            frame: Raw capture (BGR, BGRA or grayscale uint8).
            roi: Optional search rectangle in frame pixel coordinates.

        Returns:
            DetectionOutcome, RECTIFIED or FALLBACK. Never raises for
            detection problems.

        Raises:
            VisionNotReadyError: If the engine is not READY.
            ValueError: If ``frame`` is not a valid image buffer.
        """
        self.engine.require_ready()
        frame = Frame.from_any(frame)

        logger.info("=" * 60)
        logger.info(
            f"Starting tag rectification on {frame.width}x{frame.height} frame "
            f"({self.config.segmenter_strategy.value} segmenter)"
        )
        logger.info("=" * 60)

        logger.info("[Stage 1/5] ROI Selection")
        roi_image, used_roi = select_roi(frame, roi)

        with scratch_buffers() as scratch:
            try:
                return self._detect(roi_image, used_roi, scratch)
            except Exception as e:
                logger.error(f"Rectification failed: {e}")
                return self._fallback(
                    roi_image, used_roi, RejectReason.PROCESSING_ERROR
                )

    def _detect(
        self,
        roi_image: np.ndarray,
        used_roi: Optional[ROIRect],
        scratch: Dict[str, object],
    ) -> DetectionOutcome:
        config = self.config

        logger.info("[Stage 2/5] Segmentation")
        scratch["mask"] = segment(roi_image, config)

        logger.info("[Stage 3/5] Quad Selection")
        selection = select_quad(scratch["mask"], config)
        if not selection.is_accepted():
            logger.warning(f"Pipeline FELL BACK at Stage 3: {selection.reason.value}")
            return self._fallback(roi_image, used_roi, selection.reason)
        scratch["quad"] = selection.quad

        logger.info("[Stage 4/5] Geometry Check")
        reason = check_quad_geometry(selection.quad)
        if reason is not None:
            logger.warning(f"Pipeline FELL BACK at Stage 4: {reason.value}")
            return self._fallback(roi_image, used_roi, reason)

        logger.info("[Stage 5/5] Perspective Rectification")
        rectified = rectify_quad(
            roi_image,
            selection.quad,
            config.max_dimension,
            interpolation=config.warp_interpolation,
        )
        image = crop_margins(
            rectified, config.margin_crop_fraction, config.min_crop_size
        )

        quad = selection.quad.copy()
        if used_roi is not None:
            quad += np.array([used_roi.x, used_roi.y], dtype=np.float32)

        logger.info(
            f"Pipeline RECTIFIED - output {image.shape[1]}x{image.shape[0]}"
        )
        return DetectionOutcome.rectified(image, quad, roi=used_roi)

    def _fallback(
        self,
        roi_image: np.ndarray,
        used_roi: Optional[ROIRect],
        reason: RejectReason,
    ) -> DetectionOutcome:
        """Plain scaled grayscale copy of the searched region."""
        config = self.config

        image = resize_to_max(to_grayscale(roi_image), config.max_dimension)
        if config.crop_fallback:
            image = crop_margins(
                image, config.margin_crop_fraction, config.min_crop_size
            )

        logger.info(
            f"Fallback ({reason.value}) - output {image.shape[1]}x{image.shape[0]}"
        )
        return DetectionOutcome.fallback(image, reason, roi=used_roi)


def detect_and_rectify(
    frame: Union[Frame, np.ndarray],
    roi: Optional[ROIRect] = None,
    config: Optional[RectificationConfig] = None,
    engine: Optional[VisionEngine] = None,
) -> DetectionOutcome:
    """
    Convenience function for one-shot rectification.

    Args:
        frame: Raw capture.
        roi: Optional search rectangle.
        config: Optional custom configuration. Uses default if None.
        engine: Optional vision engine handle; must be READY if given.

    Returns:
        DetectionOutcome object.

    Example:
        >>> outcome = detect_and_rectify(cv2.imread("tag.jpg"))
        >>> if outcome.is_rectified():
        ...     print("Tag straightened")
    """
    rectifier = TagRectifier(config=config, engine=engine)
    return rectifier.process(frame, roi)
