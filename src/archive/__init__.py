"""
Archive collaborators for the rectification pipeline.

Encode/decode images and keep (original, corrected) pairs on disk.
"""

from src.archive.codec import decode_image, encode_image
from src.archive.store import ArchiveEntry, ArchiveStore, format_bytes

__all__ = [
    "decode_image",
    "encode_image",
    "ArchiveEntry",
    "ArchiveStore",
    "format_bytes",
]
