"""
Unit tests for shared Pydantic types.
"""

import numpy as np
import pytest
from pydantic import ValidationError

from src.common.types import Frame, Point, ROIRect


class TestFrame:
    """Tests for the Frame wrapper."""

    def test_color_frame(self):
        frame = Frame(data=np.zeros((480, 640, 3), dtype=np.uint8))

        assert frame.width == 640
        assert frame.height == 480
        assert frame.channels == 3
        assert frame.is_color
        assert not frame.is_grayscale

    def test_grayscale_frame(self):
        frame = Frame(data=np.zeros((10, 20), dtype=np.uint8))

        assert frame.channels == 1
        assert frame.is_grayscale

    def test_bgra_frame(self):
        assert Frame(data=np.zeros((10, 20, 4), dtype=np.uint8)).is_color

    @pytest.mark.parametrize(
        "data",
        [
            np.zeros((10, 10), dtype=np.float32),
            np.zeros((0, 10), dtype=np.uint8),
            np.zeros((10, 10, 2), dtype=np.uint8),
            np.zeros((2, 2, 2, 2), dtype=np.uint8),
        ],
    )
    def test_invalid_arrays(self, data):
        with pytest.raises(ValidationError):
            Frame(data=data)

    def test_from_any(self):
        frame = Frame(data=np.zeros((5, 5), dtype=np.uint8))

        assert Frame.from_any(frame) is frame
        assert Frame.from_any(np.zeros((5, 5), dtype=np.uint8)).shape == (5, 5)

    def test_copy_is_independent(self):
        frame = Frame(data=np.zeros((5, 5), dtype=np.uint8))
        clone = frame.copy()
        clone.data[0, 0] = 9

        assert frame.data[0, 0] == 0


class TestPoint:
    def test_numpy_roundtrip(self):
        point = Point.from_numpy(np.array([1.5, 2.5]))

        assert point.to_tuple() == (1.5, 2.5)
        assert point.to_numpy().dtype == np.float32

    def test_from_numpy_wrong_shape(self):
        with pytest.raises(ValueError, match="shape"):
            Point.from_numpy(np.array([1.0, 2.0, 3.0]))

    def test_distance(self):
        assert Point(x=0, y=0).distance_to(Point(x=3, y=4)) == pytest.approx(5.0)


class TestROIRect:
    """Tests for ROIRect."""

    def test_float_coordinates_are_rounded(self):
        roi = ROIRect(x=10.6, y=20.2, w=100.5, h=50)

        assert roi.to_tuple() == (11, 20, 100, 50)

    def test_from_tuple(self):
        assert ROIRect.from_tuple((1, 2, 3, 4)).to_tuple() == (1, 2, 3, 4)
        with pytest.raises(ValueError):
            ROIRect.from_tuple((1, 2, 3))

    def test_non_numeric(self):
        with pytest.raises(ValidationError):
            ROIRect(x="left", y=0, w=1, h=1)

    def test_negative_size_is_allowed_but_empty(self):
        roi = ROIRect(x=0, y=0, w=-5, h=10)

        assert roi.is_empty
        assert roi.area == 0

    def test_clip_inside(self):
        roi = ROIRect(x=10, y=10, w=50, h=50)
        assert roi.clip_to(100, 100) == roi

    def test_clip_partial(self):
        roi = ROIRect(x=100, y=50, w=400, h=600)
        assert roi.clip_to(480, 640) == ROIRect(x=100, y=50, w=380, h=590)

    def test_clip_negative_origin(self):
        roi = ROIRect(x=-20, y=-30, w=100, h=100)
        assert roi.clip_to(640, 480) == ROIRect(x=0, y=0, w=80, h=70)

    def test_clip_disjoint(self):
        clipped = ROIRect(x=700, y=10, w=50, h=50).clip_to(640, 480)
        assert clipped.is_empty
