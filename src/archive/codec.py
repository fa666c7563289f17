"""
Image codec for the archive.

Decodes uploaded bytes into frames and encodes frames to JPEG for storage.
"""

import logging
from typing import Union

import cv2
import numpy as np

from src.common.types import Frame

logger = logging.getLogger(__name__)

DEFAULT_JPEG_QUALITY = 85


def decode_image(data: bytes) -> Frame:
    """
    Decode compressed image bytes (JPEG, PNG, ...) into a BGR frame.

    Raises:
        ValueError: If the bytes are empty or not a decodable image.
    """
    if not data:
        raise ValueError("Cannot decode empty image data")

    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError("Failed to decode image data")

    logger.debug(f"Decoded {len(data)} bytes to {image.shape[1]}x{image.shape[0]}")
    return Frame(data=image)


def encode_image(
    image: Union[Frame, np.ndarray],
    quality: int = DEFAULT_JPEG_QUALITY,
    ext: str = ".jpg",
) -> bytes:
    """
    Encode a frame for transport or storage.

    Args:
        image: Frame or raw array.
        quality: JPEG quality 0-100 (ignored for other formats).
        ext: Target format extension understood by OpenCV.

    Returns:
        Encoded bytes.

    Raises:
        ValueError: If quality is out of range or encoding fails.
    """
    if not 0 <= quality <= 100:
        raise ValueError(f"JPEG quality must be in [0, 100], got {quality}")

    data = Frame.from_any(image).to_numpy()

    params = []
    if ext.lower() in (".jpg", ".jpeg"):
        params = [cv2.IMWRITE_JPEG_QUALITY, int(quality)]

    ok, encoded = cv2.imencode(ext, data, params)
    if not ok:
        raise ValueError(f"Failed to encode image as {ext}")

    return encoded.tobytes()
