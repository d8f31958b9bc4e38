"""Exceptions raised by the region detection engine."""


class VisionLabError(Exception):
    """Base error for the detection engine."""
    pass


class InputError(VisionLabError, ValueError):
    """An image, pattern or parameter that cannot be analyzed."""
    pass
