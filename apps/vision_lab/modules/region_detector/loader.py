import os

import cv2
import numpy as np

from .errors import InputError
from ...settings import SUPPORTED_EXTENSIONS


def load_image(source, *, grayscale: bool = False, name: str = "image") -> np.ndarray:
    """
    Load an image for analysis.

    Args:
        source: Path to an image file, or an already decoded numpy array
        grayscale: Decode as a single channel image (paths only)
        name: Used in error messages ("image", "template", ...)

    Returns:
        uint8 array of shape (h, w) or (h, w, 3)

    Raises:
        InputError: If the file is missing, of an unsupported type,
            cannot be decoded, or the array is empty.
    """
    if isinstance(source, np.ndarray):
        return _validate_array(source, name)

    if not isinstance(source, (str, os.PathLike)):
        raise InputError(f"Unsupported {name} source: {type(source).__name__}")

    path = os.fspath(source)
    ext = os.path.splitext(path)[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise InputError(f"Invalid file type for {name}: '{ext or path}'")
    if not os.path.isfile(path):
        raise InputError(f"{name.capitalize()} file not found: {path}")

    flags = cv2.IMREAD_GRAYSCALE if grayscale else cv2.IMREAD_COLOR
    image = cv2.imread(path, flags)
    if image is None:
        raise InputError(f"Could not load {name}: {path}")

    return _validate_array(image, name)


def _validate_array(image: np.ndarray, name: str) -> np.ndarray:
    if image.size == 0 or image.ndim not in (2, 3):
        raise InputError(f"The {name} is empty")
    if image.ndim == 3 and image.shape[2] not in (1, 3, 4):
        raise InputError(f"The {name} has an unsupported channel count: {image.shape[2]}")
    if image.dtype != np.uint8:
        image = cv2.convertScaleAbs(image)
    return image


def to_bgr(image: np.ndarray) -> np.ndarray:
    """Return a 3-channel BGR view of a gray, BGR or BGRA image."""
    if image.ndim == 2 or image.shape[2] == 1:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image


def to_gray(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    if image.shape[2] == 1:
        return image[:, :, 0]
    return cv2.cvtColor(to_bgr(image), cv2.COLOR_BGR2GRAY)


def image_size(image: np.ndarray):
    """(width, height) of an image."""
    height, width = image.shape[:2]
    return width, height
