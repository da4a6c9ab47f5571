"""Lumina photo editor.

Applies film-style presets and parametrized adjustments (exposure, contrast,
saturation, warmth, tint, blur, vignette, sharpness, rotation) to a single
image interactively, or to a queue of images in an unattended batch.
"""

__version__ = "0.1.0"

from .adjustments import AdjustmentSet, ADJUSTMENT_RANGES
from .batch import BatchItem, BatchPolicy, BatchQueue, BatchRunner, BatchStatus, package_results
from .blender import blend, merge
from .errors import LuminaError, InvalidImage, OutOfRange, EncodeFailure
from .pipeline import PixelPipeline, render
from .presets import FilterPreset, get_available_presets, get_preset
from .session import EditSession
from .straighten import BoundedRandom, FixedZero
from .utils import load_image, save_image, encode_png, encode_jpeg

from .web import run_web_app


def apply_preset(image_source, preset, intensity=100.0, **overrides):
    """Render a preset onto an image.

    Args:
        image_source: Path, encoded bytes, or a numpy array
        preset: Preset id or name
        intensity: Blend factor from 0 to 100
        **overrides: Individual adjustments applied on top of the blend

    Returns:
        Processed image as a numpy array
    """
    image = load_image(image_source)
    adjustments = blend(AdjustmentSet(), get_preset(preset), intensity)
    if overrides:
        adjustments = adjustments.replace(**overrides)
    return render(image, adjustments)
