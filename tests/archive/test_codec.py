"""
Unit tests for the archive image codec.
"""

import numpy as np
import pytest

from src.archive.codec import decode_image, encode_image
from src.common.types import Frame


class TestEncodeImage:
    def test_jpeg_signature(self):
        data = encode_image(np.full((40, 60, 3), 120, dtype=np.uint8))
        assert data[:2] == b"\xff\xd8"

    def test_png(self):
        data = encode_image(np.zeros((8, 8), dtype=np.uint8), ext=".png")
        assert data[:8] == b"\x89PNG\r\n\x1a\n"

    def test_accepts_frame(self):
        frame = Frame(data=np.zeros((8, 8, 3), dtype=np.uint8))
        assert len(encode_image(frame)) > 0

    def test_quality_affects_size(self, rotated_tag_frame):
        image, _ = rotated_tag_frame
        noisy = image.copy()
        noisy[::2, ::2] = 255

        assert len(encode_image(noisy, quality=95)) > len(encode_image(noisy, quality=20))

    @pytest.mark.parametrize("quality", [-1, 101])
    def test_quality_out_of_range(self, quality):
        with pytest.raises(ValueError, match="quality"):
            encode_image(np.zeros((8, 8), dtype=np.uint8), quality=quality)


class TestDecodeImage:
    def test_decode_encoded(self):
        image = np.full((30, 50, 3), 200, dtype=np.uint8)
        frame = decode_image(encode_image(image, ext=".png"))

        assert isinstance(frame, Frame)
        np.testing.assert_array_equal(frame.to_numpy(), image)

    def test_grayscale_decodes_as_bgr(self):
        frame = decode_image(encode_image(np.zeros((10, 12), dtype=np.uint8), ext=".png"))
        assert frame.shape == (10, 12, 3)

    def test_empty(self):
        with pytest.raises(ValueError, match="empty"):
            decode_image(b"")

    def test_garbage(self):
        with pytest.raises(ValueError, match="Failed to decode"):
            decode_image(b"not an image at all")
