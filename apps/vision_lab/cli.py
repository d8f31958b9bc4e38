"""
Command line shell around the region detection engine.

Examples:
    vision-lab colors board.png --min-coverage 50 --output board_annotated.png
    vision-lab templates shelf.png --template part.png --scales 1.0 0.8 --report shelf.txt
"""

import argparse
import logging
import sys

import cv2

from . import settings
from .modules.region_detector import InputError, detect_color_regions, detect_template_matches
from .modules.region_detector.report import format_summary

logger = logging.getLogger("vision_lab")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vision-lab",
        description="Find colored regions or template instances in an image",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    colors = subparsers.add_parser("colors", help="Detect regions of configured colors")
    colors.add_argument("image", help="Path to the image to analyze")
    colors.add_argument("--ranges", default=None,
                        help="JSON file of color ranges (default: built-in Red/Yellow/Green/Blue)")
    colors.add_argument("--min-coverage", type=float, default=settings.DEFAULT_MIN_COVERAGE_PERCENT,
                        help="Minimum percent of matching pixels inside a region")
    colors.add_argument("--kernel-size", type=int, default=settings.DEFAULT_KERNEL_SIZE)
    colors.add_argument("--min-area", type=float, default=settings.DEFAULT_MIN_AREA)
    colors.add_argument("--max-distance", type=float, default=settings.DEFAULT_MAX_DISTANCE)
    colors.add_argument("--union-close", action="store_true",
                        help="Enclose nearby candidates instead of dropping the later one")
    _add_output_args(colors)

    templates = subparsers.add_parser("templates", help="Detect instances of a reference pattern")
    templates.add_argument("image", help="Path to the image to analyze")
    templates.add_argument("--template", required=True, help="Path to the reference pattern")
    templates.add_argument("--scales", type=float, nargs="+", default=list(settings.DEFAULT_SCALES))
    templates.add_argument("--rotations", type=float, nargs="+", default=list(settings.DEFAULT_ROTATIONS))
    templates.add_argument("--threshold", type=float, default=settings.DEFAULT_MATCH_THRESHOLD)
    templates.add_argument("--workers", type=int, default=None,
                           help="Worker threads (default: number of CPUs)")
    _add_output_args(templates)

    return parser


def _add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--output", default=None, help="Where to write the annotated image")
    parser.add_argument("--report", default=None, help="Where to write the text summary")


def run(args: argparse.Namespace):
    if args.command == "colors":
        if args.ranges:
            color_ranges = settings.load_color_ranges(args.ranges)
        else:
            color_ranges = settings.configured_color_ranges()
        return detect_color_regions(
            args.image,
            color_ranges,
            args.min_coverage,
            kernel_size=args.kernel_size,
            min_area=args.min_area,
            max_distance=args.max_distance,
            union_close=args.union_close,
        )

    return detect_template_matches(
        args.image,
        args.template,
        scales=args.scales,
        rotations=args.rotations,
        match_threshold=args.threshold,
        workers=args.workers,
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        result = run(args)
    except (InputError, ValueError, OSError) as e:
        logger.error("Analysis failed: %s", e)
        return 2

    summary = format_summary(result)
    print(summary, end="")

    if args.output:
        if not cv2.imwrite(args.output, result.annotated_image):
            logger.error("Could not write annotated image to %s", args.output)
            return 1
        logger.info("Annotated image saved to %s", args.output)

    if args.report:
        with open(args.report, 'w') as f:
            f.write(summary)
        logger.info("Report saved to %s", args.report)

    return 0


if __name__ == "__main__":
    sys.exit(main())
