"""
Rectify a tag photo from the command line.

Usage:
    # Straighten a photo and write the result next to it
    python scripts/rectify_tag.py photos/tag.jpg

    # Restrict the search to the overlay rectangle and archive the pair
    python scripts/rectify_tag.py photos/tag.jpg --roi 320 120 640 960 \
        --archive-dir uploads/archive

    # Use the color segmenter with a custom config
    python scripts/rectify_tag.py photos/tag.jpg --strategy color \
        --config my_config.yaml
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.archive import ArchiveStore, decode_image, encode_image, format_bytes  # noqa: E402
from src.common.types import ROIRect  # noqa: E402
from src.rectification import (  # noqa: E402
    TagRectifier,
    VisionEngine,
    VisionNotReadyError,
    get_default_config,
    load_config,
)

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Detect an inspection tag in a photo and straighten it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("input", type=Path, help="Input image file")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output image path (default: <input>_corrected.jpg)",
    )
    parser.add_argument(
        "--roi",
        type=int,
        nargs=4,
        metavar=("X", "Y", "W", "H"),
        default=None,
        help="Search rectangle in image pixel coordinates",
    )
    parser.add_argument("--config", type=Path, default=None, help="Config YAML")
    parser.add_argument(
        "--strategy",
        choices=["edge", "color"],
        default=None,
        help="Override the segmenter strategy",
    )
    parser.add_argument(
        "--max-dimension",
        type=int,
        default=None,
        help="Override the output long-side cap",
    )
    parser.add_argument(
        "--archive-dir",
        type=Path,
        default=None,
        help="Also store the (original, corrected) pair in this archive",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = load_config(args.config) if args.config else get_default_config()
    overrides = {}
    if args.strategy:
        overrides["segmenter_strategy"] = args.strategy
    if args.max_dimension:
        overrides["max_dimension"] = args.max_dimension
    if overrides:
        config = config.model_validate({**config.model_dump(), **overrides})

    try:
        frame = decode_image(args.input.read_bytes())
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read {args.input}: {e}")
        return 1

    engine = VisionEngine().initialize()
    rectifier = TagRectifier(config=config, engine=engine)
    roi = ROIRect.from_tuple(args.roi) if args.roi else None

    try:
        outcome = rectifier.process(frame, roi)
    except VisionNotReadyError as e:
        logger.error(str(e))
        return 1

    output = args.output or args.input.with_name(f"{args.input.stem}_corrected.jpg")
    corrected_bytes = encode_image(outcome.image, ext=output.suffix or ".jpg")
    output.write_bytes(corrected_bytes)
    print(outcome.get_status_message())
    print(f"Corrected image written to {output}")

    if args.archive_dir:
        store = ArchiveStore(args.archive_dir)
        entry = store.save_pair(encode_image(frame), corrected_bytes)
        print(
            f"Saved pair {entry.id}. Original: {format_bytes(entry.original_size)}, "
            f"Corrected: {format_bytes(entry.corrected_size)}."
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
