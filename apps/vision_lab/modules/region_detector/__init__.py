from .color_detector import detect_color_regions
from .errors import InputError, VisionLabError
from .schemas import ColorRange, DetectionResult, Region, TransformSpec
from .template_matcher import detect_template_matches

__all__ = [
    "detect_color_regions",
    "detect_template_matches",
    "ColorRange",
    "DetectionResult",
    "Region",
    "TransformSpec",
    "InputError",
    "VisionLabError",
]
