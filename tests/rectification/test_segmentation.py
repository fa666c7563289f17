"""
Unit tests for segmentation module.
"""

import cv2
import numpy as np
import pytest

from src.rectification import segmentation
from src.rectification.segmentation import (
    color_mask,
    edge_mask,
    get_segmenter,
    segment,
    select_channel,
)
from src.rectification.types import (
    ColorConfig,
    EdgeConfig,
    RectificationConfig,
    SegmenterStrategy,
)


class TestEdgeMask:
    """Tests for the edge-based strategy."""

    def test_mask_shape_and_values(self, rotated_tag_frame):
        image, _ = rotated_tag_frame
        mask = edge_mask(image, EdgeConfig())

        assert mask.shape == image.shape[:2]
        assert mask.dtype == np.uint8
        assert set(np.unique(mask)) <= {0, 255}
        assert np.count_nonzero(mask) > 0

    def test_uniform_image_has_no_edges(self, uniform_frame):
        mask = edge_mask(uniform_frame, EdgeConfig())
        assert np.count_nonzero(mask) == 0

    def test_grayscale_input(self, rotated_tag_frame):
        image, _ = rotated_tag_frame
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

        mask = edge_mask(gray, EdgeConfig())
        assert mask.shape == gray.shape

    def test_dilation_thickens_edges(self, rotated_tag_frame):
        image, _ = rotated_tag_frame
        thin = edge_mask(image, EdgeConfig())
        thick = edge_mask(image, EdgeConfig(dilate_iterations=1))

        assert np.count_nonzero(thick) > np.count_nonzero(thin)


class TestColorMask:
    """Tests for the region-based strategy."""

    def test_tag_becomes_solid_blob(self, tag_factory):
        image, corners = tag_factory(fg=(0, 200, 255), bg=(40, 40, 40), angle=10.0)
        mask = color_mask(image, ColorConfig())

        expected = np.zeros(image.shape[:2], dtype=np.uint8)
        cv2.fillPoly(expected, [np.round(corners).astype(np.int32)], 255)

        overlap = np.count_nonzero(mask & expected) / np.count_nonzero(expected)
        assert overlap > 0.95
        # Background stays clear
        assert np.count_nonzero(mask & ~expected) < 0.05 * np.count_nonzero(expected)

    def test_dark_tag_on_bright_background(self, tag_factory):
        """Minority class is the tag regardless of Otsu polarity."""
        image, _ = tag_factory(fg=(30, 30, 30), bg=(220, 220, 220))
        mask = color_mask(image, ColorConfig())

        assert np.count_nonzero(mask) < mask.size / 2
        assert mask[500, 500] == 255

    def test_hsv_color_space(self, tag_factory):
        image, _ = tag_factory(fg=(0, 200, 255), bg=(40, 40, 40))
        mask = color_mask(image, ColorConfig(color_space="hsv"))

        assert mask[500, 500] == 255
        assert mask[10, 10] == 0

    def test_bgra_input(self, tag_factory):
        image, _ = tag_factory()
        bgra = cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)

        mask = color_mask(bgra, ColorConfig())
        assert mask.shape == image.shape[:2]

    def test_grayscale_input_raises(self, rotated_tag_frame):
        image, _ = rotated_tag_frame
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

        with pytest.raises(cv2.error):
            color_mask(gray, ColorConfig())


class TestSelectChannel:
    """Tests for channel selection."""

    def test_fixed_channel(self):
        converted = np.zeros((10, 10, 3), dtype=np.uint8)
        assert select_channel(converted, 2) == 2

    def test_auto_picks_separating_channel(self):
        """Only channel 1 carries a two-level pattern."""
        converted = np.full((100, 100, 3), 128, dtype=np.uint8)
        converted[:, :, 0] = np.random.default_rng(0).integers(120, 136, (100, 100))
        converted[20:60, 30:50, 1] = 230

        assert select_channel(converted, "auto") == 1


class TestSegmenterRegistry:
    """Tests for strategy lookup and mask validation."""

    def test_get_segmenter_by_name(self):
        assert get_segmenter("edge") is get_segmenter(SegmenterStrategy.EDGE)
        assert get_segmenter("color") is get_segmenter(SegmenterStrategy.COLOR)

    def test_unknown_strategy(self):
        with pytest.raises(ValueError, match="Unknown segmenter strategy"):
            get_segmenter("watershed")

    @pytest.mark.parametrize("strategy", ["edge", "color"])
    def test_segment_matches_input_size(self, rotated_tag_frame, strategy):
        image, _ = rotated_tag_frame
        config = RectificationConfig(segmenter_strategy=strategy)

        mask = segment(image, config)
        assert mask.shape == image.shape[:2]
        assert mask.dtype == np.uint8

    def test_segment_rejects_invalid_mask(self, rotated_tag_frame, monkeypatch):
        image, _ = rotated_tag_frame
        monkeypatch.setitem(
            segmentation._SEGMENTERS,
            SegmenterStrategy.EDGE,
            lambda img, cfg: np.zeros((5, 5, 3), dtype=np.uint8),
        )

        with pytest.raises(ValueError, match="invalid mask"):
            segment(image, RectificationConfig())
