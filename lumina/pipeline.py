"""Rendering pipeline for the Lumina photo editor.

This module maps a source image and an :class:`AdjustmentSet` to a rendered
image. Stages always run in the same order:

1. geometry (rotation with a fill scale)
2. tone and colour (brightness, contrast, saturation, blur, sepia, hue rotation)
3. sharpening
4. warmth overlay (``overlay`` blend)
5. vignette (``multiply`` blend)

Reordering the stages changes the visual result. Blend modes are passed to
:func:`composite` explicitly per layer, so nothing carries over between calls.
"""

import math
import logging
from typing import Dict, List, Any, Mapping, Optional, Union

import cv2
import numpy as np

from .adjustments import AdjustmentSet
from .blend_modes import BlendMode, composite
from .errors import InvalidImage
from .utils import flatten_alpha, normalize_image, denormalize_image

# Set up logging
logger = logging.getLogger(__name__)

# Relative luminance weights shared by the saturate and hue-rotate matrices
LUMA_WEIGHTS = np.array([0.213, 0.715, 0.072], dtype=np.float32)

SEPIA_MATRIX = np.array([
    [0.393, 0.769, 0.189],
    [0.349, 0.686, 0.168],
    [0.272, 0.534, 0.131]
], dtype=np.float32)

WARM_OVERLAY_RGB = (255, 180, 0)
COOL_OVERLAY_RGB = (0, 100, 255)

# Extra zoom applied per unit of |sin(angle)| so rotated corners are mostly covered
ROTATION_FILL_FACTOR = 0.8

VIGNETTE_INNER_RATIO = 0.3
VIGNETTE_OUTER_RATIO = 0.8

AdjustmentInput = Union[AdjustmentSet, Mapping[str, float]]


class PixelPipeline:
    """Renders adjustment sets onto images."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize the pipeline.

        Args:
            config: Configuration dictionary
        """
        self.config = dict(config or {})
        self._validate_config()

    def _validate_config(self) -> None:
        """Validate and set default configuration parameters."""
        self.config.setdefault('sharpen_sigma', 3.0)  # Gaussian sigma of the unsharp mask
        self.config.setdefault('sharpen_max_strength', 1.0)  # Mask weight at sharpness=50
        self.config.setdefault('border_value', 0)  # Fill for areas exposed by rotation (0-255)

        if self.config['sharpen_sigma'] <= 0:
            raise ValueError("sharpen_sigma must be positive")
        if not 0 <= self.config['border_value'] <= 255:
            raise ValueError("border_value must be within 0-255")

    def render(self, image: np.ndarray, adjustments: AdjustmentInput) -> np.ndarray:
        """Render adjustments onto an image.

        Args:
            image: Source image as an (H, W, 3) uint8 RGB array. Grayscale
                arrays are accepted and expanded to RGB. RGBA arrays are
                composited onto black before the alpha channel is dropped,
                so transparent areas render black.
            adjustments: Adjustment set, or a mapping of field names to values

        Returns:
            New uint8 RGB array with the same dimensions as the source

        Raises:
            InvalidImage: If the image is empty or not an 8-bit pixel buffer
            OutOfRange: If any adjustment is outside its declared domain
        """
        source = self._check_image(image)
        adjustments = coerce_adjustments(adjustments).validate()

        if adjustments.is_neutral():
            return source.copy()

        logger.debug(f"Rendering {source.shape[1]}x{source.shape[0]} image, stages: {active_stages(adjustments)}")

        result = normalize_image(source)

        if adjustments.rotate != 0:
            result = self._apply_geometry(result, adjustments.rotate)

        result = self._apply_tone_color(result, adjustments)

        if adjustments.sharpness > 0:
            result = self._apply_sharpening(result, adjustments.sharpness)

        if adjustments.warmth != 0:
            result = self._apply_warmth_overlay(result, adjustments.warmth)

        if adjustments.vignette > 0:
            result = self._apply_vignette(result, adjustments.vignette)

        return denormalize_image(result)

    def _check_image(self, image: np.ndarray) -> np.ndarray:
        if not isinstance(image, np.ndarray):
            raise InvalidImage(f"Expected a numpy array, got {type(image).__name__}")
        if image.ndim not in (2, 3) or image.shape[0] == 0 or image.shape[1] == 0:
            raise InvalidImage(f"Image has degenerate shape {image.shape}")
        if image.dtype != np.uint8:
            raise InvalidImage(f"Expected an 8-bit image, got {image.dtype}")

        if image.ndim == 2:
            return np.repeat(image[:, :, np.newaxis], 3, axis=2)

        channels = image.shape[2]
        if channels == 4:
            return flatten_alpha(image)
        if channels == 1:
            return np.repeat(image, 3, axis=2)
        if channels != 3:
            raise InvalidImage(f"Unsupported channel count: {channels}")
        return image

    def _apply_geometry(self, image: np.ndarray, angle: float) -> np.ndarray:
        """Rotate the canvas about its centre and zoom to cover the corners.

        Args:
            image: Float image in [0, 1]
            angle: Rotation in degrees, positive is clockwise

        Returns:
            Rotated image of the same size
        """
        height, width = image.shape[:2]
        scale = 1.0 + abs(math.sin(math.radians(angle))) * ROTATION_FILL_FACTOR
        center = ((width - 1) / 2.0, (height - 1) / 2.0)

        # OpenCV rotates counter-clockwise for positive angles
        matrix = cv2.getRotationMatrix2D(center, -angle, scale)
        fill = self.config['border_value'] / 255.0

        return cv2.warpAffine(
            image, matrix, (width, height),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(fill, fill, fill)
        )

    def _apply_tone_color(self, image: np.ndarray, adjustments: AdjustmentSet) -> np.ndarray:
        """Apply the combined tone and colour filter.

        Each sub-step is clamped to [0, 1] before the next one runs.
        """
        result = image

        if adjustments.exposure != 0:
            result = apply_brightness(result, 1.0 + adjustments.exposure / 100.0)

        if adjustments.contrast != 0:
            result = apply_contrast(result, 1.0 + adjustments.contrast / 100.0)

        if adjustments.saturation != 0:
            result = apply_saturation(result, 1.0 + adjustments.saturation / 100.0)

        if adjustments.blur > 0:
            result = cv2.GaussianBlur(result, (0, 0), adjustments.blur)

        # Only warm casts contribute sepia; cool casts are handled by the overlay
        if adjustments.warmth > 0:
            result = apply_sepia(result, adjustments.warmth * 0.5 / 100.0)

        if adjustments.tint != 0:
            result = apply_hue_rotation(result, adjustments.tint)

        return result

    def _apply_sharpening(self, image: np.ndarray, sharpness: float) -> np.ndarray:
        """Apply an unsharp mask whose weight grows linearly with sharpness."""
        strength = (sharpness / 50.0) * self.config['sharpen_max_strength']
        blurred = cv2.GaussianBlur(image, (0, 0), self.config['sharpen_sigma'])
        sharpened = cv2.addWeighted(image, 1.0 + strength, blurred, -strength, 0)
        return np.clip(sharpened, 0.0, 1.0)

    def _apply_warmth_overlay(self, image: np.ndarray, warmth: float) -> np.ndarray:
        """Overlay a flat amber (warm) or blue (cool) layer over the whole canvas."""
        rgb = WARM_OVERLAY_RGB if warmth > 0 else COOL_OVERLAY_RGB
        color = np.array(rgb, dtype=np.float32) / 255.0
        return composite(image, color, abs(warmth) / 200.0, BlendMode.OVERLAY)

    def _apply_vignette(self, image: np.ndarray, vignette: float) -> np.ndarray:
        """Darken the image with a black radial gradient in multiply mode."""
        height, width = image.shape[:2]
        alpha = radial_gradient_alpha(width, height, vignette / 100.0)
        return composite(image, (0.0, 0.0, 0.0), alpha, BlendMode.MULTIPLY)


def apply_brightness(image: np.ndarray, multiplier: float) -> np.ndarray:
    return np.clip(image * multiplier, 0.0, 1.0)


def apply_contrast(image: np.ndarray, multiplier: float) -> np.ndarray:
    """Scale distances from mid-gray by *multiplier*."""
    return np.clip((image - 0.5) * multiplier + 0.5, 0.0, 1.0)


def apply_saturation(image: np.ndarray, multiplier: float) -> np.ndarray:
    """Scale chroma around each pixel's luminance.

    A multiplier of 0 copies the luminance into every channel, which yields an
    exactly gray image.
    """
    luma = (image @ LUMA_WEIGHTS)[:, :, np.newaxis]
    return np.clip(luma + multiplier * (image - luma), 0.0, 1.0).astype(np.float32)


def apply_sepia(image: np.ndarray, amount: float) -> np.ndarray:
    """Blend towards the sepia matrix by *amount* (0-1)."""
    amount = min(max(amount, 0.0), 1.0)
    matrix = (1.0 - amount) * np.eye(3, dtype=np.float32) + amount * SEPIA_MATRIX
    return np.clip(image @ matrix.T, 0.0, 1.0).astype(np.float32)


def hue_rotation_matrix(degrees: float) -> np.ndarray:
    """Build the luminance-preserving hue rotation matrix for *degrees*."""
    cos = math.cos(math.radians(degrees))
    sin = math.sin(math.radians(degrees))
    return np.array([
        [0.213 + cos * 0.787 - sin * 0.213, 0.715 - cos * 0.715 - sin * 0.715, 0.072 - cos * 0.072 + sin * 0.928],
        [0.213 - cos * 0.213 + sin * 0.143, 0.715 + cos * 0.285 + sin * 0.140, 0.072 - cos * 0.072 - sin * 0.283],
        [0.213 - cos * 0.213 - sin * 0.787, 0.715 - cos * 0.715 + sin * 0.715, 0.072 + cos * 0.928 + sin * 0.072]
    ], dtype=np.float32)


def apply_hue_rotation(image: np.ndarray, degrees: float) -> np.ndarray:
    matrix = hue_rotation_matrix(degrees)
    return np.clip(image @ matrix.T, 0.0, 1.0).astype(np.float32)


def radial_gradient_alpha(width: int, height: int, max_alpha: float) -> np.ndarray:
    """Opacity map of the vignette gradient.

    Transparent inside ``0.3 * min(width, height)`` from the centre, rising
    linearly to *max_alpha* at ``0.8 * max(width, height)`` and held beyond.

    Args:
        width: Canvas width in pixels
        height: Canvas height in pixels
        max_alpha: Opacity at the outer radius (0-1)

    Returns:
        Float32 array of shape (height, width)
    """
    inner = VIGNETTE_INNER_RATIO * min(width, height)
    outer = VIGNETTE_OUTER_RATIO * max(width, height)

    # Sample at pixel centres
    x = np.arange(width, dtype=np.float32) + 0.5 - width / 2.0
    y = np.arange(height, dtype=np.float32) + 0.5 - height / 2.0
    distance = np.sqrt(x[np.newaxis, :] ** 2 + y[:, np.newaxis] ** 2)

    t = np.clip((distance - inner) / (outer - inner), 0.0, 1.0)
    return (t * max_alpha).astype(np.float32)


def coerce_adjustments(adjustments: AdjustmentInput) -> AdjustmentSet:
    """Accept an AdjustmentSet or a mapping of field values."""
    if isinstance(adjustments, AdjustmentSet):
        return adjustments
    if isinstance(adjustments, Mapping):
        return AdjustmentSet.from_dict(adjustments)
    raise TypeError(f"Expected AdjustmentSet or mapping, got {type(adjustments).__name__}")


def active_stages(adjustments: AdjustmentSet) -> List[str]:
    """List the pipeline stages a given adjustment set will run."""
    stages = []
    if adjustments.rotate != 0:
        stages.append("geometry")
    if any(getattr(adjustments, field) != 0 for field in ("exposure", "contrast", "saturation", "blur", "tint")) \
            or adjustments.warmth > 0:
        stages.append("tone")
    if adjustments.sharpness > 0:
        stages.append("sharpen")
    if adjustments.warmth != 0:
        stages.append("warmth")
    if adjustments.vignette > 0:
        stages.append("vignette")
    return stages


def render(image: np.ndarray, adjustments: AdjustmentInput,
           config: Optional[Dict[str, Any]] = None) -> np.ndarray:
    """Render adjustments onto an image with a default pipeline.

    Args:
        image: Source image as a uint8 RGB array
        adjustments: Adjustment set or mapping
        config: Optional pipeline configuration

    Returns:
        Rendered image as a uint8 RGB array
    """
    return PixelPipeline(config).render(image, adjustments)
