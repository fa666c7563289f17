"""
Common type definitions for the tag rectification pipeline.

This module provides Pydantic-based type definitions for the core data
structures passed between pipeline stages: frames, points and ROI rectangles.

These types provide:
- Type validation and conversion
- Consistent interfaces across modules
- Helper methods for common operations
- Integration with numpy arrays and OpenCV
"""

from typing import Tuple, Union

import numpy as np
from pydantic import BaseModel, Field, field_validator


class Frame(BaseModel):
    """
    Type-safe wrapper for a still frame (numpy.ndarray).

    A frame is either a camera capture or a decoded upload. Color frames are
    in OpenCV channel order (BGR, or BGRA when an alpha channel is present).

    Attributes:
        data: The underlying numpy array containing image data.
            Shape: (H, W, C) for color images, (H, W) for grayscale.
            Dtype: uint8 (0-255).

    Example:
        >>> import cv2
        >>> frame = Frame(data=cv2.imread("tag.jpg"))
        >>> print(frame.width, frame.height)  # 1280, 960
    """

    data: np.ndarray = Field(..., description="Image data as numpy array")

    model_config = {"arbitrary_types_allowed": True}

    @field_validator("data")
    @classmethod
    def _validate_image(cls, v: np.ndarray) -> np.ndarray:
        """
        Validate that the numpy array is a usable frame.

        Raises:
            ValueError: If array is not a valid image format.
        """
        if not isinstance(v, np.ndarray):
            raise ValueError(f"Expected numpy.ndarray, got {type(v)}")

        if v.size == 0:
            raise ValueError("Image array is empty")

        if len(v.shape) not in (2, 3):
            raise ValueError(
                f"Expected 2D (grayscale) or 3D (color) image, got shape {v.shape}"
            )

        if len(v.shape) == 3 and v.shape[2] not in (1, 3, 4):
            raise ValueError(
                f"Expected 1, 3, or 4 channels for color image, got {v.shape[2]}"
            )

        if v.dtype != np.uint8:
            raise ValueError(
                f"Expected uint8 dtype for image, got {v.dtype}. "
                "Images should be in range [0, 255]"
            )

        return v

    @classmethod
    def from_any(cls, image: Union["Frame", np.ndarray]) -> "Frame":
        """Wrap a raw array as a Frame; Frames are returned unchanged."""
        if isinstance(image, Frame):
            return image
        return cls(data=image)

    @property
    def shape(self) -> Tuple[int, ...]:
        """Get image shape (H, W) or (H, W, C)."""
        return self.data.shape

    @property
    def height(self) -> int:
        """Get image height in pixels."""
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        """Get image width in pixels."""
        return int(self.data.shape[1])

    @property
    def channels(self) -> int:
        """Get number of channels (1 for grayscale, 3 for BGR, 4 for BGRA)."""
        if len(self.data.shape) == 2:
            return 1
        return int(self.data.shape[2])

    @property
    def is_grayscale(self) -> bool:
        """Check if the frame carries a single channel."""
        return self.channels == 1

    @property
    def is_color(self) -> bool:
        """Check if image is color (3 or 4 channels)."""
        return self.channels in (3, 4)

    def to_numpy(self) -> np.ndarray:
        """Get underlying numpy array."""
        return self.data

    def copy(self) -> "Frame":
        """Create a deep copy of the frame."""
        return Frame(data=self.data.copy())

    def __repr__(self) -> str:
        return f"Frame(shape={self.shape}, dtype={self.data.dtype})"


class Point(BaseModel):
    """
    A 2D floating-point coordinate in source-pixel space.

    Example:
        >>> point = Point(x=100.5, y=200)
        >>> point.to_numpy()  # array([100.5, 200. ], dtype=float32)
    """

    x: float = Field(..., description="X-coordinate (horizontal)")
    y: float = Field(..., description="Y-coordinate (vertical)")

    @classmethod
    def from_numpy(cls, arr: np.ndarray) -> "Point":
        """
        Create Point from numpy array.

        Raises:
            ValueError: If array shape is not (2,).
        """
        arr = np.asarray(arr)
        if arr.shape != (2,):
            raise ValueError(f"Expected array of shape (2,), got {arr.shape}")
        return cls(x=float(arr[0]), y=float(arr[1]))

    def to_numpy(self, dtype: type = np.float32) -> np.ndarray:
        """Convert Point to numpy array of shape (2,)."""
        return np.array([self.x, self.y], dtype=dtype)

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def distance_to(self, other: "Point") -> float:
        """Euclidean distance to another point."""
        dx = self.x - other.x
        dy = self.y - other.y
        return float(np.sqrt(dx * dx + dy * dy))

    def __repr__(self) -> str:
        return f"Point(x={self.x}, y={self.y})"


class ROIRect(BaseModel):
    """
    Integer pixel rectangle (x, y, w, h) restricting the tag search.

    The rectangle is usually the on-screen overlay translated into source
    pixel coordinates by the caller. It is not validated for positivity:
    an empty or out-of-frame rectangle is a legal value and simply means
    "no usable ROI" to the pipeline.

    Example:
        >>> roi = ROIRect(x=100, y=50, w=400, h=600)
        >>> roi.clip_to(480, 640)
        ROIRect(x=100, y=50, w=380, h=590)
    """

    x: int = Field(..., description="Left edge")
    y: int = Field(..., description="Top edge")
    w: int = Field(..., description="Width in pixels")
    h: int = Field(..., description="Height in pixels")

    @field_validator("x", "y", "w", "h", mode="before")
    @classmethod
    def _convert_to_int(cls, v: Union[int, float]) -> int:
        """Convert coordinate to int, rounding if float."""
        if isinstance(v, (int, float, np.integer, np.floating)):
            return int(round(float(v)))
        raise ValueError(f"Coordinate must be numeric, got {type(v)}")

    @classmethod
    def from_tuple(cls, coords: Tuple[int, int, int, int]) -> "ROIRect":
        """
        Create ROIRect from (x, y, w, h).

        Raises:
            ValueError: If tuple does not contain exactly 4 elements.
        """
        if len(coords) != 4:
            raise ValueError(f"Expected tuple with 4 elements, got {len(coords)}")
        return cls(x=coords[0], y=coords[1], w=coords[2], h=coords[3])

    @property
    def is_empty(self) -> bool:
        """True when the rectangle has no area."""
        return self.w <= 0 or self.h <= 0

    @property
    def area(self) -> int:
        return max(0, self.w) * max(0, self.h)

    def to_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.w, self.h)

    def clip_to(self, image_width: int, image_height: int) -> "ROIRect":
        """
        Intersect the rectangle with the frame bounds.

        Args:
            image_width: Frame width in pixels.
            image_height: Frame height in pixels.

        Returns:
            New ROIRect fully inside the frame. Width or height is 0 when the
            rectangle does not overlap the frame at all.
        """
        x0 = min(max(self.x, 0), image_width)
        y0 = min(max(self.y, 0), image_height)
        x1 = min(max(self.x + self.w, 0), image_width)
        y1 = min(max(self.y + self.h, 0), image_height)
        return ROIRect(x=x0, y=y0, w=max(0, x1 - x0), h=max(0, y1 - y0))

    def __repr__(self) -> str:
        return f"ROIRect(x={self.x}, y={self.y}, w={self.w}, h={self.h})"
