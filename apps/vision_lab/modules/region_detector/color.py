import cv2
import numpy as np

from .schemas import ColorRange, Region


def bgr_to_hsv(image: np.ndarray) -> np.ndarray:
    """
    Convert a BGR image to OpenCV HSV.
    OpenCV scales H to 0..180 and S, V to 0..255 for uint8 input, which is
    the scale the configured color ranges are written in.
    """
    return cv2.cvtColor(image, cv2.COLOR_BGR2HSV)


def build_mask(hsv_image: np.ndarray, color_range: ColorRange) -> np.ndarray:
    """
    Binary mask of the pixels inside the range (bounds inclusive).
    Set pixels are 255, everything else 0.
    """
    lower = np.array(color_range.lower, dtype=np.uint8)
    upper = np.array(color_range.upper, dtype=np.uint8)
    return cv2.inRange(hsv_image, lower, upper)


def clean_mask(mask: np.ndarray, kernel_size: int = 5) -> np.ndarray:
    """
    Close small gaps, then remove isolated specks.
    Uses a square kernel_size x kernel_size structuring element.
    """
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (kernel_size, kernel_size))
    closed = cv2.morphologyEx(mask, cv2.MORPH_CLOSE, kernel)
    return cv2.morphologyEx(closed, cv2.MORPH_OPEN, kernel)


def mask_coverage(mask: np.ndarray, region: Region) -> float:
    """Fraction (0..1) of set mask pixels inside the region's bounding box."""
    roi = mask[region.y:region.y + region.h, region.x:region.x + region.w]
    if roi.size == 0:
        return 0.0
    return cv2.countNonZero(roi) / float(roi.size)
