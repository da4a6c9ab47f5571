"""Auto-straighten strategies.

These strategies supply the rotation used by the "auto-straighten" actions.
None of them inspects the horizon: :class:`BoundedRandom` applies a small
random tilt per photo. The interface takes the image so a real horizon
detector can be dropped in without touching the pipeline.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np

from .adjustments import clamp_value

# Rotation range used per item in batch runs
BATCH_STRAIGHTEN_RANGE: Tuple[float, float] = (-1.0, 1.0)

# Rotation range used by the one-click action in the editor
SESSION_STRAIGHTEN_RANGE: Tuple[float, float] = (-3.0, 3.0)


class StraightenStrategy(ABC):
    """Produces a rotation angle in degrees for an image."""

    @abstractmethod
    def estimate(self, image: Optional[np.ndarray] = None) -> float:
        """Return the rotation to apply to *image*, in degrees."""
        pass


class FixedZero(StraightenStrategy):
    """Never rotates."""

    def estimate(self, image: Optional[np.ndarray] = None) -> float:
        return 0.0

    def __repr__(self) -> str:
        return "FixedZero()"


class BoundedRandom(StraightenStrategy):
    """Draws a rotation uniformly from ``[low, high)`` on every call.

    Args:
        low: Lower bound in degrees
        high: Upper bound in degrees
        decimals: Round the angle to this many decimals (None keeps full precision)
        seed: Seed or generator for reproducible draws
    """

    def __init__(self, low: float, high: float, decimals: Optional[int] = None,
                 seed: Optional[int] = None, rng: Optional[np.random.Generator] = None):
        if low > high:
            raise ValueError(f"Invalid rotation range: [{low}, {high}]")
        # Keep draws inside the rotate domain
        self.low = clamp_value("rotate", low)
        self.high = clamp_value("rotate", high)
        self.decimals = decimals
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def estimate(self, image: Optional[np.ndarray] = None) -> float:
        angle = float(self.rng.uniform(self.low, self.high))
        if self.decimals is not None:
            angle = round(angle, self.decimals)
        return clamp_value("rotate", angle)

    def __repr__(self) -> str:
        return f"BoundedRandom(low={self.low}, high={self.high})"


def batch_straightener(seed: Optional[int] = None) -> BoundedRandom:
    """Default per-item tilt for batch runs."""
    low, high = BATCH_STRAIGHTEN_RANGE
    return BoundedRandom(low, high, seed=seed)


def session_straightener(seed: Optional[int] = None) -> BoundedRandom:
    """Default tilt for the editor's one-click action, rounded to 0.1 degrees."""
    low, high = SESSION_STRAIGHTEN_RANGE
    return BoundedRandom(low, high, decimals=1, seed=seed)
