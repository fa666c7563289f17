"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all test modules.
"""

import cv2
import numpy as np
import pytest


def draw_tag(
    size=(1000, 1000),
    tag_size=(200, 400),
    angle=0.0,
    center=None,
    fg=(230, 230, 230),
    bg=(30, 30, 30),
):
    """
    Draw a filled rotated rectangle on a uniform background.

    Args:
        size: Frame (width, height).
        tag_size: Tag (width, height) before rotation.
        angle: Rotation in degrees.
        center: Tag center, defaults to frame center.
        fg: Tag BGR color.
        bg: Background BGR color.

    Returns:
        Tuple of (BGR image, (4, 2) float32 tag corners).
    """
    width, height = size
    if center is None:
        center = (width / 2, height / 2)

    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:] = bg

    corners = cv2.boxPoints((center, tag_size, angle)).astype(np.float32)
    cv2.fillPoly(image, [np.round(corners).astype(np.int32)], fg)
    return image, corners


@pytest.fixture
def tag_factory():
    """Fixture exposing draw_tag to tests that need custom layouts."""
    return draw_tag


@pytest.fixture
def rotated_tag_frame():
    """1000x1000 frame with a bright 200x400 tag rotated 15 degrees."""
    return draw_tag(angle=15.0)


@pytest.fixture
def uniform_frame():
    """500x500 frame of a single color (no edges at all)."""
    return np.full((500, 500, 3), 128, dtype=np.uint8)


@pytest.fixture
def diamond_points():
    """4 corners of a tilted quad, deliberately unordered."""
    return np.array(
        [[110, 60], [10, 50], [60, 110], [60, 10]],
        dtype=np.float32,
    )
