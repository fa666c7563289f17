"""
On-disk archive of (original, corrected) image pairs.

Layout::

    <base_dir>/<id>/original.jpg
    <base_dir>/<id>/corrected.jpg

The identifier is a millisecond timestamp, so lexical order of identifiers
follows capture order.
"""

import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

ORIGINAL_NAME = "original.jpg"
CORRECTED_NAME = "corrected.jpg"
DEFAULT_MAX_FILE_SIZE = 20 * 1024 * 1024  # 20 MB per image


@dataclass
class ArchiveEntry:
    """
    One archived pair.

    Attributes:
        id: Millisecond timestamp identifier.
        original_url: Relative URL of the unmodified capture.
        corrected_url: Relative URL of the rectified image.
        original_size: Size of the original in bytes.
        corrected_size: Size of the corrected image in bytes.
    """

    id: str
    original_url: str
    corrected_url: str
    original_size: int
    corrected_size: int

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys the listing endpoint returns."""
        data = asdict(self)
        return {
            "id": data["id"],
            "originalUrl": data["original_url"],
            "correctedUrl": data["corrected_url"],
            "originalSize": data["original_size"],
            "correctedSize": data["corrected_size"],
        }


def format_bytes(num_bytes: Optional[int]) -> str:
    """
    Human-readable size.

    Example:
        >>> format_bytes(2048)
        '2.0 KB'
        >>> format_bytes(3 * 1024 * 1024)
        '3.00 MB'
    """
    if num_bytes is None:
        return ""
    kb = num_bytes / 1024
    if kb < 1024:
        return f"{kb:.1f} KB"
    return f"{kb / 1024:.2f} MB"


class ArchiveStore:
    """
    Filesystem-backed archive of image pairs.

    Example:
        >>> store = ArchiveStore(Path("uploads/archive"))
        >>> entry = store.save_pair(original_bytes, corrected_bytes)
        >>> [e.id for e in store.list_entries()]
        ['1760850000123']
    """

    def __init__(
        self,
        base_dir: Union[str, Path],
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        url_prefix: str = "/files",
    ):
        self.base_dir = Path(base_dir)
        self.max_file_size = max_file_size
        self.url_prefix = url_prefix.rstrip("/")
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _new_id(self) -> str:
        entry_id = time.time_ns() // 1_000_000
        while (self.base_dir / str(entry_id)).exists():
            entry_id += 1
        return str(entry_id)

    def _entry(self, entry_id: str, pair_dir: Path) -> ArchiveEntry:
        return ArchiveEntry(
            id=entry_id,
            original_url=f"{self.url_prefix}/{entry_id}/{ORIGINAL_NAME}",
            corrected_url=f"{self.url_prefix}/{entry_id}/{CORRECTED_NAME}",
            original_size=(pair_dir / ORIGINAL_NAME).stat().st_size,
            corrected_size=(pair_dir / CORRECTED_NAME).stat().st_size,
        )

    def save_pair(self, original: bytes, corrected: bytes) -> ArchiveEntry:
        """
        Store an original capture next to its corrected image.

        Args:
            original: Encoded original image.
            corrected: Encoded corrected image.

        Returns:
            ArchiveEntry describing the stored pair.

        Raises:
            ValueError: If either image is missing or exceeds max_file_size.
        """
        if not original or not corrected:
            raise ValueError("Both 'original' and 'corrected' images are required.")

        for name, payload in (("original", original), ("corrected", corrected)):
            if len(payload) > self.max_file_size:
                raise ValueError(
                    f"'{name}' image is {format_bytes(len(payload))}, "
                    f"limit is {format_bytes(self.max_file_size)}"
                )

        entry_id = self._new_id()
        pair_dir = self.base_dir / entry_id
        pair_dir.mkdir(parents=True)

        (pair_dir / ORIGINAL_NAME).write_bytes(original)
        (pair_dir / CORRECTED_NAME).write_bytes(corrected)

        entry = self._entry(entry_id, pair_dir)
        logger.info(
            f"Saved pair {entry_id}: original {format_bytes(entry.original_size)}, "
            f"corrected {format_bytes(entry.corrected_size)}"
        )
        return entry

    def list_entries(self) -> List[ArchiveEntry]:
        """
        List archived pairs, newest first.

        Directories missing either image are skipped.
        """
        if not self.base_dir.exists():
            return []

        entries = []
        for pair_dir in self.base_dir.iterdir():
            if not pair_dir.is_dir():
                continue
            if not (pair_dir / ORIGINAL_NAME).exists() or not (
                pair_dir / CORRECTED_NAME
            ).exists():
                logger.debug(f"Skipping incomplete pair {pair_dir.name}")
                continue
            entries.append(self._entry(pair_dir.name, pair_dir))

        entries.sort(key=_sort_key, reverse=True)
        return entries


def _sort_key(entry: ArchiveEntry):
    # Numeric ids sort by value; anything else sorts below them by name
    if entry.id.isdigit():
        return (1, int(entry.id), entry.id)
    return (0, 0, entry.id)
