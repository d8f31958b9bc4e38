import logging
import os
import time
from collections.abc import Mapping
from typing import Dict, Iterable, List, Optional, Union

import cv2
import numpy as np

from ...settings import (
    DEFAULT_COLOR_RANGES,
    DEFAULT_KERNEL_SIZE,
    DEFAULT_MAX_DISTANCE,
    DEFAULT_MIN_AREA,
    DEFAULT_MIN_COVERAGE_PERCENT,
)
from .color import bgr_to_hsv, build_mask, clean_mask, mask_coverage
from .errors import InputError
from .geometry import center_distance, clamp_region, union
from .loader import image_size, load_image, to_bgr
from .overlay import draw_color_regions
from .schemas import ColorRange, DetectionResult, Region

logger = logging.getLogger(__name__)

ColorRanges = Union[Mapping[str, tuple], Iterable[ColorRange]]


def parse_color_ranges(color_ranges: Optional[ColorRanges]) -> List[ColorRange]:
    """
    Normalize a color range table.

    Accepts a mapping of name -> (lower, upper), an iterable of ColorRange,
    or None for the built-in Red/Yellow/Green/Blue table.
    """
    if color_ranges is None:
        color_ranges = DEFAULT_COLOR_RANGES

    if isinstance(color_ranges, Mapping):
        parsed = []
        for name, bounds in color_ranges.items():
            try:
                lower, upper = bounds
            except (TypeError, ValueError):
                raise InputError(f"Color range '{name}' needs a lower and an upper bound") from None
            parsed.append(ColorRange(name, tuple(lower), tuple(upper)))
    else:
        parsed = list(color_ranges)
        for item in parsed:
            if not isinstance(item, ColorRange):
                raise InputError(f"Expected ColorRange, got {type(item).__name__}")

    if not parsed:
        raise InputError("At least one color range is required")
    return parsed


def find_candidates(mask: np.ndarray, min_area: float = DEFAULT_MIN_AREA) -> List[Region]:
    """
    Bounding rectangles of the outer contours of a mask.
    Contours enclosing no more than min_area pixels are dropped as speckle.
    """
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    candidates = []
    for cnt in contours:
        if cv2.contourArea(cnt) <= min_area:
            continue
        x, y, w, h = cv2.boundingRect(cnt)
        candidates.append(Region(x=x, y=y, w=w, h=h))
    return candidates


def merge_close_regions(regions: List[Region], max_distance: float = DEFAULT_MAX_DISTANCE,
                        *, use_union: bool = False) -> List[Region]:
    """
    Collapse regions whose centers are closer than max_distance.

    Regions are visited in order. With use_union=False a close later region
    is simply dropped and the earlier one keeps its own geometry. With
    use_union=True the earlier region grows to enclose every region it absorbs.
    Distances are always measured against the earlier region's original box.
    """
    merged = []
    visited = [False] * len(regions)

    for i, current in enumerate(regions):
        if visited[i]:
            continue

        result = current
        for j in range(i + 1, len(regions)):
            if visited[j]:
                continue
            if center_distance(current, regions[j]) < max_distance:
                visited[j] = True
                if use_union:
                    result = union(result, regions[j])

        merged.append(result)
    return merged


def detect_color_regions(
    image,
    color_ranges: Optional[ColorRanges] = None,
    min_coverage_percent: float = DEFAULT_MIN_COVERAGE_PERCENT,
    *,
    kernel_size: int = DEFAULT_KERNEL_SIZE,
    min_area: float = DEFAULT_MIN_AREA,
    max_distance: float = DEFAULT_MAX_DISTANCE,
    union_close: bool = False,
) -> DetectionResult:
    """
    Find regions of each configured color and annotate them.

    Args:
        image: Path to an image file or a decoded BGR/gray array
        color_ranges: Named HSV ranges, see parse_color_ranges
        min_coverage_percent: Minimum share (0-100) of matching pixels inside
            a region's bounding box for the region to be accepted
        kernel_size: Side of the square morphology kernel
        min_area: Contours with an area at or below this are ignored
        max_distance: Center distance below which candidates collapse
        union_close: Enclose collapsed candidates instead of dropping them

    Returns:
        DetectionResult with one accepted-region count per color

    Raises:
        InputError: If the image cannot be loaded or a parameter is invalid
    """
    start_time = time.time()

    if not 0.0 <= min_coverage_percent <= 100.0:
        raise InputError(f"Minimum coverage must be between 0 and 100, got {min_coverage_percent}")
    if kernel_size < 1:
        raise InputError(f"Kernel size must be at least 1, got {kernel_size}")

    ranges = parse_color_ranges(color_ranges)
    source_name = os.path.basename(os.fspath(image)) if isinstance(image, (str, os.PathLike)) else None

    bgr_image = to_bgr(load_image(image))
    w_img, h_img = image_size(bgr_image)
    hsv_image = bgr_to_hsv(bgr_image)

    accepted: List[Region] = []
    color_counts: Dict[str, int] = {}

    for color_range in ranges:
        mask = clean_mask(build_mask(hsv_image, color_range), kernel_size)

        candidates = find_candidates(mask, min_area)
        merged = merge_close_regions(candidates, max_distance, use_union=union_close)

        count = 0
        for region in merged:
            region = clamp_region(region, w_img, h_img)
            if region is None:
                continue
            coverage = mask_coverage(mask, region)
            if coverage * 100.0 < min_coverage_percent:
                continue
            accepted.append(Region(region.x, region.y, region.w, region.h,
                                   label=color_range.name, coverage=coverage))
            count += 1

        color_counts[color_range.name] = count
        logger.debug("%s: %d candidates, %d after merge, %d accepted",
                     color_range.name, len(candidates), len(merged), count)

    annotated = draw_color_regions(bgr_image, accepted)
    processing_time = (time.time() - start_time) * 1000

    logger.info("Color detection on %dx%d image found %d regions in %.1f ms",
                w_img, h_img, len(accepted), processing_time)

    return DetectionResult(
        annotated_image=annotated,
        processing_time_ms=processing_time,
        image_size=(w_img, h_img),
        regions=tuple(accepted),
        label_counts=color_counts,
        source_name=source_name,
    )
