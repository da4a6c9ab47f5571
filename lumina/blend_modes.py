"""Blend modes used when compositing overlay layers onto a rendered image.

All functions work on float images normalized to [0, 1]. The formulas follow
the separable blend modes of the W3C compositing model, so results match what
a browser canvas produces for the same layer.
"""

from enum import Enum
from typing import Callable, Dict, Sequence, Union

import numpy as np


class BlendMode(Enum):
    """Supported per-channel blend modes."""
    NORMAL = "normal"
    OVERLAY = "overlay"
    MULTIPLY = "multiply"


def _normal(backdrop: np.ndarray, source: np.ndarray) -> np.ndarray:
    return np.broadcast_to(source, backdrop.shape)


def _multiply(backdrop: np.ndarray, source: np.ndarray) -> np.ndarray:
    return backdrop * source


def _overlay(backdrop: np.ndarray, source: np.ndarray) -> np.ndarray:
    # Hard light with the layers swapped: the backdrop picks the branch
    low = 2.0 * backdrop * source
    high = 1.0 - 2.0 * (1.0 - backdrop) * (1.0 - source)
    return np.where(backdrop <= 0.5, low, high)


BLEND_FUNCTIONS: Dict[BlendMode, Callable[[np.ndarray, np.ndarray], np.ndarray]] = {
    BlendMode.NORMAL: _normal,
    BlendMode.MULTIPLY: _multiply,
    BlendMode.OVERLAY: _overlay,
}


def composite(backdrop: np.ndarray,
              color: Union[Sequence[float], np.ndarray],
              alpha: Union[float, np.ndarray],
              mode: BlendMode = BlendMode.NORMAL) -> np.ndarray:
    """Composite a colour layer over an opaque backdrop.

    Args:
        backdrop: Base image, float array of shape (H, W, 3) in [0, 1]
        color: Layer colour in [0, 1], either an RGB triple or an (H, W, 3) array
        alpha: Layer opacity, a scalar or an (H, W) map in [0, 1]
        mode: Blend mode used to mix layer and backdrop

    Returns:
        New float image of the same shape, clipped to [0, 1]
    """
    if mode not in BLEND_FUNCTIONS:
        raise ValueError(f"Unsupported blend mode: {mode}")

    source = np.asarray(color, dtype=np.float32)
    if source.ndim == 1:
        source = source.reshape(1, 1, 3)

    alpha = np.asarray(alpha, dtype=np.float32)
    if alpha.ndim == 2:
        alpha = alpha[:, :, np.newaxis]

    blended = BLEND_FUNCTIONS[mode](backdrop, source)
    result = (1.0 - alpha) * backdrop + alpha * blended
    return np.clip(result, 0.0, 1.0).astype(np.float32)
