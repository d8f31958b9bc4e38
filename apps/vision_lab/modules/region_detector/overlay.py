import cv2
import numpy as np
from typing import Iterable

from .loader import to_bgr
from .schemas import Region

BOX_COLOR = (0, 255, 0)
LABEL_COLOR = (0, 0, 0)


def draw_color_regions(original_image: np.ndarray, regions: Iterable[Region]) -> np.ndarray:
    """
    Draws bounding boxes and "<Color>: <percent>%" labels on a copy of the original image.
    """
    overlay = to_bgr(original_image).copy()

    for region in regions:
        cv2.rectangle(overlay, (region.x, region.y), (region.x + region.w, region.y + region.h), BOX_COLOR, 2)
        percent = (region.coverage or 0.0) * 100.0
        label = f"{region.label}: {percent:.2f}%"
        # Keep the text inside the image when the box touches the top edge
        text_y = region.y - 10 if region.y >= 20 else region.y + region.h + 15
        cv2.putText(overlay, label, (region.x, text_y), cv2.FONT_HERSHEY_SIMPLEX, 0.5, LABEL_COLOR, 1)

    return overlay


def draw_template_matches(original_image: np.ndarray, regions: Iterable[Region]) -> np.ndarray:
    """
    Draws a bounding box for every matched object on a copy of the original image.
    """
    overlay = to_bgr(original_image).copy()

    for region in regions:
        cv2.rectangle(overlay, (region.x, region.y), (region.x + region.w, region.y + region.h), BOX_COLOR, 2)

    return overlay
