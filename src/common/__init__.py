"""
Common types shared across modules.

Standardized data types for the tag rectification pipeline, ensuring
consistency between the rectification core and the archive collaborators.
"""

from src.common.types import Frame, Point, ROIRect

__all__ = ["Frame", "Point", "ROIRect"]
