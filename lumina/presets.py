"""Presets module for the Lumina photo editor.

This module defines the film-style presets. A preset is a partial adjustment
set: fields it leaves out stay neutral when it is merged or blended.
"""

import logging
from types import MappingProxyType
from typing import Dict, List, Any, Mapping, Optional

from .adjustments import NEUTRAL_VALUES, check_value

# Set up logging
logger = logging.getLogger(__name__)


class FilterPreset:
    """A named, immutable partial adjustment set."""

    __slots__ = ('_id', '_name', '_description', '_color', '_values')

    def __init__(self, id: str, name: str, description: str, color: str, values: Mapping[str, float]):
        """Initialize a filter preset.

        Args:
            id: Stable identifier of the preset
            name: Display name
            description: Short description of the look
            color: CSS colour used to represent the preset in the UI
            values: Adjustments the preset overrides

        Raises:
            ValueError: If a field is unknown
            OutOfRange: If a value is outside its domain
        """
        validated = {field: check_value(field, value) for field, value in values.items()}
        object.__setattr__(self, '_id', id)
        object.__setattr__(self, '_name', name)
        object.__setattr__(self, '_description', description)
        object.__setattr__(self, '_color', color)
        object.__setattr__(self, '_values', MappingProxyType(validated))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("FilterPreset is immutable")

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def color(self) -> str:
        return self._color

    @property
    def values(self) -> Mapping[str, float]:
        """Read-only view of the overridden fields."""
        return self._values

    def to_dict(self) -> Dict[str, Any]:
        """Convert the preset to a dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "values": dict(self.values)
        }

    def __repr__(self) -> str:
        return f"FilterPreset(id={self.id!r}, name={self.name!r})"


NEUTRAL_PRESET_ID = "none"

# Define the film presets, in display order
FILM_PRESETS: Dict[str, FilterPreset] = {
    "none": FilterPreset(
        id="none",
        name="Original",
        description="Unedited photo",
        color="#e5e7eb",
        values=NEUTRAL_VALUES
    ),

    "portra-400": FilterPreset(
        id="portra-400",
        name="Portra 400",
        description="Portrait favourite with clean, luminous skin tones",
        color="#fca5a5",
        values={"exposure": 8, "contrast": -5, "saturation": 12, "warmth": 10, "tint": -6, "sharpness": 5}
    ),

    "kodak-gold": FilterPreset(
        id="kodak-gold",
        name="Gold 200",
        description="Classic warm everyday film",
        color="#fbbf24",
        values={"exposure": 5, "contrast": 8, "saturation": 18, "warmth": 20, "tint": 0, "vignette": 10}
    ),

    "fuji-pro": FilterPreset(
        id="fuji-pro",
        name="Fuji 400H",
        description="Airy and cool with a cyan-green lean",
        color="#86efac",
        values={"exposure": 10, "contrast": 5, "saturation": 5, "warmth": -5, "tint": 12}
    ),

    "cinestill": FilterPreset(
        id="cinestill",
        name="Cinestill 800",
        description="Cinematic night film with cool halation",
        color="#93c5fd",
        values={"exposure": 0, "contrast": 15, "saturation": -5, "warmth": -15, "tint": -5, "vignette": 20}
    ),

    "ilford-bw": FilterPreset(
        id="ilford-bw",
        name="Ilford HP5",
        description="Classic black and white with wide latitude",
        color="#525252",
        values={"saturation": -100, "contrast": 20, "exposure": 5, "vignette": 25, "sharpness": 10}
    ),
}

# One-click enhancement offered outside the preset list and used by batch runs
AUTO_PORTRA_PRESET = FilterPreset(
    id="auto-portra",
    name="Portra Auto",
    description="Automatic film-look enhancement",
    color="#ff7e5f",
    values={"exposure": 12, "contrast": -8, "saturation": 15, "warmth": 15, "tint": -8, "vignette": 8}
)

_ALL_PRESETS: Dict[str, FilterPreset] = {**FILM_PRESETS, AUTO_PORTRA_PRESET.id: AUTO_PORTRA_PRESET}


def _normalize(name: str) -> str:
    return name.strip().lower().replace(' ', '-')


def get_preset(name: str) -> FilterPreset:
    """Get a preset by id or display name.

    Args:
        name: The preset id (e.g. "portra-400") or display name (e.g. "Portra 400")

    Returns:
        The preset

    Raises:
        ValueError: If the preset is not found
    """
    normalized_name = _normalize(name)

    if normalized_name in _ALL_PRESETS:
        return _ALL_PRESETS[normalized_name]

    for preset in _ALL_PRESETS.values():
        if _normalize(preset.name) == normalized_name:
            return preset

    raise ValueError(f"Preset '{name}' not found")


def find_preset(name: Optional[str]) -> Optional[FilterPreset]:
    """Like :func:`get_preset` but returns None for a missing or unknown name."""
    if not name:
        return None
    try:
        return get_preset(name)
    except ValueError:
        logger.warning(f"Unknown preset: {name}")
        return None


def get_available_presets(include_auto: bool = False) -> List[FilterPreset]:
    """Get the presets in display order.

    Args:
        include_auto: Also include the Portra Auto preset at the end

    Returns:
        A list of presets
    """
    presets = list(FILM_PRESETS.values())
    if include_auto:
        presets.append(AUTO_PORTRA_PRESET)
    return presets


def get_preset_ids(include_auto: bool = False) -> List[str]:
    return [preset.id for preset in get_available_presets(include_auto)]


def get_preset_description(name: str) -> str:
    """Get the description of a preset.

    Raises:
        ValueError: If the preset is not found
    """
    return get_preset(name).description
