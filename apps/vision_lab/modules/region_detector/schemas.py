from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np

from .errors import InputError

HSV = Tuple[int, int, int]


@dataclass(frozen=True)
class Region:
    x: int
    y: int
    w: int
    h: int
    label: Optional[str] = None
    coverage: Optional[float] = None  # fraction of mask pixels set, 0..1
    score: Optional[float] = None  # correlation score for template matches

    @property
    def area(self) -> int:
        return self.w * self.h


@dataclass(frozen=True)
class ColorRange:
    name: str
    lower: HSV
    upper: HSV

    def __post_init__(self):
        if len(self.lower) != 3 or len(self.upper) != 3:
            raise InputError(f"Color range '{self.name}' bounds must have three components")
        if any(not 0 <= v <= 255 for v in tuple(self.lower) + tuple(self.upper)):
            raise InputError(f"Color range '{self.name}' bounds must lie in 0..255")
        object.__setattr__(self, 'lower', tuple(int(v) for v in self.lower))
        object.__setattr__(self, 'upper', tuple(int(v) for v in self.upper))
        if any(lo > hi for lo, hi in zip(self.lower, self.upper)):
            raise InputError(f"Color range '{self.name}' has a lower bound above its upper bound")


@dataclass(frozen=True)
class TransformSpec:
    scale: float
    rotation_degrees: float = 0.0

    def __post_init__(self):
        if not self.scale > 0:
            raise InputError(f"Scale must be positive, got {self.scale}")
        # frozen, so normalize through object.__setattr__
        object.__setattr__(self, 'rotation_degrees', float(self.rotation_degrees) % 360.0)


@dataclass(frozen=True)
class DetectionResult:
    annotated_image: np.ndarray
    processing_time_ms: float
    image_size: Tuple[int, int]  # (width, height)
    regions: Tuple[Region, ...]
    label_counts: Dict[str, int] = field(default_factory=dict)
    source_name: Optional[str] = None

    @property
    def detected_count(self) -> int:
        return len(self.regions)
