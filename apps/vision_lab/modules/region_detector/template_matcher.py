import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Sequence

import cv2
import numpy as np

from ...settings import (
    DEFAULT_MATCH_THRESHOLD,
    DEFAULT_ROTATIONS,
    DEFAULT_SCALES,
    MAX_WORKERS,
    MIN_TEMPLATE_SIZE,
)
from .errors import InputError
from .geometry import intersects, union
from .loader import image_size, load_image, to_bgr, to_gray
from .overlay import draw_template_matches
from .schemas import DetectionResult, Region, TransformSpec

logger = logging.getLogger(__name__)

SCORE_TOLERANCE = 1e-5


def build_transform_grid(scales: Optional[Sequence[float]] = None,
                         rotations: Optional[Sequence[float]] = None) -> List[TransformSpec]:
    """Cartesian product of scales and rotations, scale-major."""
    scales = DEFAULT_SCALES if scales is None else scales
    rotations = DEFAULT_ROTATIONS if rotations is None else rotations
    if len(scales) == 0 or len(rotations) == 0:
        raise InputError("At least one scale and one rotation are required")
    return [TransformSpec(scale, angle) for scale in scales for angle in rotations]


def transform_template(template: np.ndarray, spec: TransformSpec) -> np.ndarray:
    """
    Resize the template by spec.scale, then rotate it about its own center.
    The canvas keeps the resized size; exposed corners are filled with black.
    """
    h, w = template.shape[:2]
    new_size = (int(round(w * spec.scale)), int(round(h * spec.scale)))
    if new_size[0] < 1 or new_size[1] < 1:
        return template[:0, :0]

    resized = cv2.resize(template, new_size, interpolation=cv2.INTER_LINEAR)
    if spec.rotation_degrees == 0.0:
        return resized

    center = (resized.shape[1] / 2.0, resized.shape[0] / 2.0)
    rotation_matrix = cv2.getRotationMatrix2D(center, spec.rotation_degrees, 1.0)
    return cv2.warpAffine(resized, rotation_matrix, (resized.shape[1], resized.shape[0]),
                          flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_CONSTANT, borderValue=0)


def match_candidates(image: np.ndarray, pattern: np.ndarray, threshold: float) -> List[Region]:
    """
    Every offset where the normalized correlation coefficient of pattern
    against image reaches threshold, as a Region of the pattern's size.
    """
    result = cv2.matchTemplate(image, pattern, cv2.TM_CCOEFF_NORMED)
    # Flat windows can produce inf/nan scores
    result = np.where(np.isfinite(result), result, -1.0)
    # float32 correlation can land just under 1.0 for a perfect match
    result = np.minimum(result, 1.0)

    ys, xs = np.nonzero(result >= threshold - SCORE_TOLERANCE)
    p_h, p_w = pattern.shape[:2]
    return [Region(x=int(x), y=int(y), w=p_w, h=p_h, score=float(result[y, x]))
            for y, x in zip(ys, xs)]


def _is_degenerate(pattern: np.ndarray, image: np.ndarray, min_size: int) -> bool:
    p_h, p_w = pattern.shape[:2]
    i_h, i_w = image.shape[:2]
    return p_w < min_size or p_h < min_size or p_w > i_w or p_h > i_h


def _match_scale(image: np.ndarray, template: np.ndarray, scale: float,
                 rotations: Sequence[float], threshold: float, min_size: int) -> List[Region]:
    """All candidates for one scale; rotations run in order on the calling worker."""
    found = []
    for angle in rotations:
        spec = TransformSpec(scale, angle)
        pattern = transform_template(template, spec)
        if _is_degenerate(pattern, image, min_size):
            logger.debug("Skipping scale=%.2f rotation=%.1f: pattern %s unusable for image %s",
                         spec.scale, spec.rotation_degrees, pattern.shape[:2], image.shape[:2])
            continue
        found.extend(match_candidates(image, pattern, threshold))
    return found


def merge_overlapping_regions(regions: Iterable[Region]) -> List[Region]:
    """
    Greedy left-to-right merge of overlapping rectangles.

    Regions are sorted by (x, y, w, h) and swept once; each region that
    intersects the current one is folded into it with union(), otherwise the
    current region is emitted and a new one starts. Two overlapping regions
    can stay separate if a non-overlapping region sits between them in sort
    order.
    """
    ordered = sorted(regions, key=lambda r: (r.x, r.y, r.w, r.h))
    if not ordered:
        return []

    merged = []
    current = ordered[0]
    for region in ordered[1:]:
        if intersects(current, region):
            current = union(current, region)
        else:
            merged.append(current)
            current = region
    merged.append(current)
    return merged


def _prepare_pair(image: np.ndarray, template: np.ndarray):
    # matchTemplate needs both inputs in the same channel layout
    if image.ndim == 2:
        return image, to_gray(template)
    return to_bgr(image), to_bgr(template)


def detect_template_matches(
    image,
    template,
    scales: Optional[Sequence[float]] = None,
    rotations: Optional[Sequence[float]] = None,
    match_threshold: float = DEFAULT_MATCH_THRESHOLD,
    *,
    min_template_size: int = MIN_TEMPLATE_SIZE,
    workers: Optional[int] = None,
) -> DetectionResult:
    """
    Locate instances of a template under scale and rotation changes.

    Each scale is handled by one pool worker which tries every rotation in
    turn. Candidates from all workers are gathered once the pool has shut
    down, merged, and drawn onto a copy of the image.

    Raises:
        InputError: If either image cannot be loaded or a parameter is invalid
    """
    start_time = time.time()

    if not -1.0 < match_threshold <= 1.0:
        raise InputError(f"Match threshold must be in (-1, 1], got {match_threshold}")
    if workers is not None and workers < 1:
        raise InputError(f"Worker count must be at least 1, got {workers}")

    grid = build_transform_grid(scales, rotations)
    scale_list = list(dict.fromkeys(spec.scale for spec in grid))
    rotation_list = list(dict.fromkeys(spec.rotation_degrees for spec in grid))

    source_name = os.path.basename(os.fspath(image)) if isinstance(image, (str, os.PathLike)) else None
    source = load_image(image, name="image")
    pattern = load_image(template, name="template")
    source, pattern = _prepare_pair(source, pattern)
    w_img, h_img = image_size(source)

    pool_size = workers or MAX_WORKERS
    with ThreadPoolExecutor(max_workers=pool_size) as executor:
        futures = [
            executor.submit(_match_scale, source, pattern, scale, rotation_list,
                            match_threshold, min_template_size)
            for scale in scale_list
        ]
    # Leaving the with-block waits for every worker
    candidates = []
    for future in futures:
        candidates.extend(future.result())

    merged = merge_overlapping_regions(candidates)

    annotated = draw_template_matches(source, merged)
    processing_time = (time.time() - start_time) * 1000

    logger.info("Template matching over %d transforms: %d candidates, %d objects in %.1f ms",
                len(grid), len(candidates), len(merged), processing_time)

    return DetectionResult(
        annotated_image=annotated,
        processing_time_ms=processing_time,
        image_size=(w_img, h_img),
        regions=tuple(merged),
        label_counts={},
        source_name=source_name,
    )
