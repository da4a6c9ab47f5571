"""Exception types raised by the Lumina rendering pipeline."""

from typing import Any, Optional, Tuple


class LuminaError(Exception):
    """Base class for all Lumina errors."""


class InvalidImage(LuminaError, ValueError):
    """Raised when a source image is empty, degenerate or cannot be decoded."""


class OutOfRange(LuminaError, ValueError):
    """Raised when an adjustment value falls outside its declared domain."""

    def __init__(self, field: str, value: Any, bounds: Optional[Tuple[float, float]] = None):
        self.field = field
        self.value = value
        self.bounds = bounds
        if bounds is not None:
            message = f"{field}={value!r} is outside [{bounds[0]}, {bounds[1]}]"
        else:
            message = f"{field}={value!r} is out of range"
        super().__init__(message)


class EncodeFailure(LuminaError, RuntimeError):
    """Raised when encoding a rendered image produced no artifact."""
