"""
Vision engine handle for the Rectification module.

The processor needs a working OpenCV runtime. Instead of polling a global
"is it ready" flag, callers own a VisionEngine and hand it to the processor
explicitly; the processor refuses to run on an engine that is not READY.
"""

import logging
from enum import Enum
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class EngineState(Enum):
    """Initialization states of the vision engine."""

    UNINITIALIZED = "UNINITIALIZED"
    READY = "READY"
    FAILED = "FAILED"


class VisionNotReadyError(RuntimeError):
    """Raised when the pipeline is invoked with an engine that is not READY."""

    def __init__(self, state: EngineState, detail: Optional[str] = None):
        self.state = state
        self.detail = detail
        message = f"Vision engine is not ready (state={state.value})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class VisionEngine:
    """
    Explicit initialization state machine for the image-processing runtime.

    Transitions: UNINITIALIZED -> READY or UNINITIALIZED -> FAILED.
    ``initialize()`` is idempotent once READY; a FAILED engine may be retried.

    Example:
        >>> engine = VisionEngine()
        >>> engine.initialize().state
        <EngineState.READY: 'READY'>
    """

    def __init__(self):
        self._state = EngineState.UNINITIALIZED
        self._error: Optional[str] = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def error(self) -> Optional[str]:
        """Failure detail recorded by the last initialization attempt."""
        return self._error

    @property
    def is_ready(self) -> bool:
        return self._state == EngineState.READY

    def initialize(self) -> "VisionEngine":
        """
        Bring the engine to READY by exercising the OpenCV calls the
        pipeline depends on.

        Returns:
            self, for chaining.
        """
        if self._state == EngineState.READY:
            return self

        try:
            self._smoke_test()
        except Exception as e:
            self._state = EngineState.FAILED
            self._error = str(e)
            logger.error(f"Vision engine initialization failed: {e}")
            return self

        self._state = EngineState.READY
        self._error = None
        logger.info(f"Vision engine ready (OpenCV {cv2.__version__})")
        return self

    def require_ready(self) -> None:
        """
        Raises:
            VisionNotReadyError: If the engine is not READY.
        """
        if self._state != EngineState.READY:
            raise VisionNotReadyError(self._state, self._error)

    @staticmethod
    def _smoke_test() -> None:
        probe = np.zeros((16, 16, 3), dtype=np.uint8)
        probe[4:12, 4:12] = 255
        gray = cv2.cvtColor(probe, cv2.COLOR_BGR2GRAY)
        edges = cv2.Canny(cv2.GaussianBlur(gray, (5, 5), 0), 50, 150)
        contours, _ = cv2.findContours(
            edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE
        )
        if len(contours) == 0:
            raise RuntimeError("OpenCV smoke test found no contour in probe image")

    def __repr__(self) -> str:
        return f"VisionEngine(state={self._state.value})"
