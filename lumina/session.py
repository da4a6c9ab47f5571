"""Interactive editing session.

:class:`EditSession` owns the state of a single-image edit: the source image,
the live adjustment set, the active preset and its intensity. UI layers keep
one session per user and call :meth:`EditSession.render` after every change.
"""

import logging
from typing import Dict, Any, Optional, Union

import numpy as np

from .adjustments import AdjustmentSet, check_value
from .blender import blend, check_intensity, merge
from .pipeline import PixelPipeline
from .presets import FilterPreset, NEUTRAL_PRESET_ID, get_preset
from .straighten import StraightenStrategy, session_straightener
from .utils import ImageSource, encode_png, load_image

# Set up logging
logger = logging.getLogger(__name__)

DEFAULT_EXPORT_FILENAME = "lumina-edit.png"


class EditSession:
    """State of one interactive edit."""

    def __init__(self,
                 pipeline: Optional[PixelPipeline] = None,
                 straighten: Optional[StraightenStrategy] = None):
        """Initialize an empty session.

        Args:
            pipeline: Pipeline used to render previews and exports
            straighten: Strategy behind the auto-straighten action
        """
        self.pipeline = pipeline or PixelPipeline()
        self.straighten = straighten or session_straightener()
        self.image: Optional[np.ndarray] = None
        self.neutral = AdjustmentSet()
        self.adjustments = AdjustmentSet()
        self.active_preset_id = NEUTRAL_PRESET_ID
        self.active_preset: Optional[FilterPreset] = None
        self.intensity = 100.0

    @property
    def has_image(self) -> bool:
        return self.image is not None

    def load_image(self, source: ImageSource) -> np.ndarray:
        """Load a new source image and reset every adjustment."""
        self.image = load_image(source)
        self.reset()
        logger.info(f"Loaded image of size {self.image.shape[1]}x{self.image.shape[0]}")
        return self.image

    def reset(self) -> None:
        """Return to the neutral state with no preset selected."""
        self.adjustments = self.neutral.copy()
        self.active_preset_id = NEUTRAL_PRESET_ID
        self.active_preset = None
        self.intensity = 100.0

    def update_adjustment(self, field: str, value: float) -> AdjustmentSet:
        """Set a single adjustment.

        Raises:
            ValueError: If the field is unknown
            OutOfRange: If the value is outside the field's domain
        """
        self.adjustments = self.adjustments.replace(**{field: check_value(field, value)})
        return self.adjustments

    def apply_preset(self, preset: Union[FilterPreset, str]) -> AdjustmentSet:
        """Select a preset at full intensity.

        Args:
            preset: Preset or preset id/name

        Returns:
            The new adjustment set
        """
        if isinstance(preset, str):
            preset = get_preset(preset)
        self.active_preset_id = preset.id
        self.active_preset = preset
        self.intensity = 100.0
        self.adjustments = merge(self.neutral, preset)
        logger.debug(f"Applied preset {preset.id}")
        return self.adjustments

    def set_intensity(self, intensity: float) -> AdjustmentSet:
        """Re-blend the active preset at a new intensity.

        The blend is always computed from the neutral baseline. With the
        original (neutral) preset active only the intensity is stored.
        """
        value = check_intensity(intensity)
        if self.active_preset is None or self.active_preset_id == NEUTRAL_PRESET_ID:
            self.intensity = value
            return self.adjustments
        self.adjustments = blend(self.neutral, self.active_preset, value)
        self.intensity = value
        return self.adjustments

    def auto_straighten(self) -> float:
        """Apply the straighten strategy's rotation and return it."""
        rotation = self.straighten.estimate(self.image)
        self.update_adjustment("rotate", rotation)
        return rotation

    def render(self) -> np.ndarray:
        """Render the current adjustments.

        Raises:
            InvalidImage: If no image is loaded
        """
        return self.pipeline.render(self.image, self.adjustments)

    def export_png(self) -> bytes:
        """Render and encode the current edit as PNG bytes."""
        return encode_png(self.render())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_image": self.has_image,
            "active_preset": self.active_preset_id,
            "intensity": self.intensity,
            "adjustments": self.adjustments.to_dict(),
        }
