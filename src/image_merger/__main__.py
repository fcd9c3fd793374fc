import argparse
import logging
import math
from typing import Optional

from PIL import Image

from image_merger import Merger
from image_merger.exceptions import MergerError
from image_merger.pixel_format import PIL_MODES
from image_merger.version import __version__

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="image-merger command line utility.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Be more verbose.")
    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", required=True)

    merge_parser = subparsers.add_parser(
        "merge", help="Merge equally sized images into a grid"
    )
    merge_parser.add_argument("output_file", help="Output image file")
    merge_parser.add_argument("input_files", nargs="+", help="Input image files")
    merge_parser.add_argument(
        "-c", "--columns", type=_positive_int, required=True, help="Images per row"
    )
    merge_parser.add_argument(
        "-r",
        "--rows",
        type=_positive_int,
        help="Number of rows (default: fit all inputs)",
    )
    merge_parser.add_argument(
        "--mode", help="Pillow mode of the output (default: mode of the first input)"
    )
    merge_parser.add_argument(
        "--background", type=int, default=0, help="Background value (default: 0)"
    )
    merge_parser.add_argument("--workers", type=_positive_int, help="Threads per paste")

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> Optional[int]:
    args = parse_args(argv)

    logging.basicConfig(level=logging.WARNING)
    level = logging.DEBUG if args.verbose else logging.INFO
    logger.setLevel(level)
    logging.getLogger("image_merger").setLevel(level)

    if args.command == "merge":
        with Image.open(args.input_files[0]) as first:
            cell_size = first.size
            mode = args.mode or (first.mode if first.mode in PIL_MODES else "RGBA")
        rows = args.rows or math.ceil(len(args.input_files) / args.columns)
        try:
            with Merger(
                cell_size,
                args.columns,
                rows,
                mode=mode,
                color=args.background,
                workers=args.workers,
            ) as merger:
                for input_file in args.input_files:
                    with Image.open(input_file) as image:
                        if image.mode != mode:
                            image = image.convert(mode)
                        merger.push(image)
                    logger.debug("Pushed %s", input_file)
        except (MergerError, ValueError) as e:
            logger.error(str(e))
            return 1
        merger.topil().save(args.output_file)
        logger.info(
            "Saved %d image(s) to %s", merger.get_num_images(), args.output_file
        )

    return None


if __name__ == "__main__":
    main()
