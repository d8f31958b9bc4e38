import math
from dataclasses import replace
from typing import Optional, Tuple

from .schemas import Region


def intersects(a: Region, b: Region) -> bool:
    """
    Axis-aligned overlap test. Rectangles that only touch along an edge
    do not intersect.
    """
    x_overlap = a.x < b.x + b.w and a.x + a.w > b.x
    y_overlap = a.y < b.y + b.h and a.y + a.h > b.y
    return x_overlap and y_overlap


def union(a: Region, b: Region) -> Region:
    """
    Smallest rectangle enclosing both regions. Metadata is taken from `a`,
    except the score which keeps the best of the two.
    """
    x1 = min(a.x, b.x)
    y1 = min(a.y, b.y)
    x2 = max(a.x + a.w, b.x + b.w)
    y2 = max(a.y + a.h, b.y + b.h)

    score = a.score
    if b.score is not None and (score is None or b.score > score):
        score = b.score

    return replace(a, x=x1, y=y1, w=x2 - x1, h=y2 - y1, score=score)


def center(region: Region) -> Tuple[float, float]:
    # Integer halves, the way OpenCV's Rect center was computed
    return float(region.x + region.w // 2), float(region.y + region.h // 2)


def center_distance(a: Region, b: Region) -> float:
    ax, ay = center(a)
    bx, by = center(b)
    return math.hypot(ax - bx, ay - by)


def contains(outer: Region, inner: Region) -> bool:
    return (outer.x <= inner.x and outer.y <= inner.y and
            outer.x + outer.w >= inner.x + inner.w and
            outer.y + outer.h >= inner.y + inner.h)


def clamp_region(region: Region, width: int, height: int) -> Optional[Region]:
    """
    Clip a region to an image of the given size.
    Returns None when no part of the region lies inside the image.
    """
    x1 = max(0, region.x)
    y1 = max(0, region.y)
    x2 = min(width, region.x + region.w)
    y2 = min(height, region.y + region.h)

    if x1 >= x2 or y1 >= y2:
        return None

    return replace(region, x=x1, y=y1, w=x2 - x1, h=y2 - y1)
