import os
import json

# Image formats accepted by the loader
SUPPORTED_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.webp', '.bmp')

# Color thresholding, bounds are inclusive OpenCV HSV (H 0-180, S/V 0-255)
DEFAULT_COLOR_RANGES = {
    "Red": ((0, 100, 100), (10, 255, 255)),
    "Yellow": ((20, 100, 100), (30, 255, 255)),
    "Green": ((35, 100, 100), (85, 255, 255)),
    "Blue": ((100, 100, 100), (140, 255, 255)),
}
DEFAULT_MIN_COVERAGE_PERCENT = 10.0
DEFAULT_KERNEL_SIZE = 5
DEFAULT_MIN_AREA = 500.0
DEFAULT_MAX_DISTANCE = 20.0

# Template matching
DEFAULT_SCALES = (1.0, 0.8, 0.6)
DEFAULT_ROTATIONS = tuple(float(angle) for angle in range(0, 360, 10))
DEFAULT_MATCH_THRESHOLD = 0.8
MIN_TEMPLATE_SIZE = 10

MAX_WORKERS = int(os.environ.get("VISION_LAB_WORKERS", 0)) or os.cpu_count() or 1
COLOR_RANGES_FILE = os.environ.get("VISION_LAB_COLOR_RANGES")
LOG_LEVEL = os.environ.get("VISION_LAB_LOG_LEVEL", "WARNING")


def load_color_ranges(path):
    """
    Read a color range table from a JSON file.

    Expected layout: {"Red": [[0, 100, 100], [10, 255, 255]], ...}
    """
    with open(path, 'r') as f:
        data = json.load(f)

    if not isinstance(data, dict) or not data:
        raise ValueError(f"Color range file {path} must contain a non-empty object")

    ranges = {}
    for name, bounds in data.items():
        if len(bounds) != 2:
            raise ValueError(f"Color range '{name}' needs exactly a lower and an upper bound")
        lower, upper = bounds
        ranges[name] = (tuple(lower), tuple(upper))
    return ranges


def configured_color_ranges():
    """Color ranges from VISION_LAB_COLOR_RANGES if set, otherwise the built-in table."""
    if COLOR_RANGES_FILE:
        return load_color_ranges(COLOR_RANGES_FILE)
    return dict(DEFAULT_COLOR_RANGES)
