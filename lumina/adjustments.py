"""Adjustment model for the Lumina photo editor.

An :class:`AdjustmentSet` is the nine-parameter vector that fully describes one
edit. It carries no rendering behaviour; the pipeline reads it and the preset
blender produces it.
"""

import math
from enum import Enum
from typing import Dict, List, Any, Mapping, Optional, Tuple

from .errors import OutOfRange

# Declared domain for every field, in canonical order
ADJUSTMENT_RANGES: Dict[str, Tuple[float, float]] = {
    "exposure": (-100.0, 100.0),
    "contrast": (-100.0, 100.0),
    "saturation": (-100.0, 100.0),
    "warmth": (-100.0, 100.0),
    "tint": (-100.0, 100.0),
    "blur": (0.0, 20.0),
    "vignette": (0.0, 100.0),
    "sharpness": (0.0, 50.0),
    "rotate": (-45.0, 45.0),
}

ADJUSTMENT_FIELDS: Tuple[str, ...] = tuple(ADJUSTMENT_RANGES)

NEUTRAL_VALUES: Dict[str, float] = {field: 0.0 for field in ADJUSTMENT_FIELDS}


def check_field(field: str) -> None:
    """Raise ``ValueError`` if *field* is not an adjustment name."""
    if field not in ADJUSTMENT_RANGES:
        raise ValueError(f"Unknown adjustment '{field}'")


def check_value(field: str, value: Any) -> float:
    """Validate a single value against its field's domain.

    Args:
        field: Adjustment name
        value: Candidate value

    Returns:
        The value as a float

    Raises:
        ValueError: If the field is unknown
        OutOfRange: If the value is not a finite number inside the domain
    """
    check_field(field)
    low, high = ADJUSTMENT_RANGES[field]
    number = _as_float(field, value)
    if not math.isfinite(number) or number < low or number > high:
        raise OutOfRange(field, value, (low, high))
    return number


def _as_float(field: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise OutOfRange(field, value, ADJUSTMENT_RANGES[field])


def clamp_value(field: str, value: float) -> float:
    """Clamp *value* into the domain of *field*."""
    check_field(field)
    low, high = ADJUSTMENT_RANGES[field]
    return min(max(float(value), low), high)


class AdjustmentSet:
    """The full set of scalar adjustments for one edit state.

    Fields that are not passed take their neutral value, so ``AdjustmentSet()``
    is the neutral vector. Values are stored as given; call :meth:`validate`
    (the pipeline always does) to enforce the declared domains.
    """

    __slots__ = ADJUSTMENT_FIELDS

    def __init__(self, **values: float):
        for name in values:
            check_field(name)
        for field in ADJUSTMENT_FIELDS:
            object.__setattr__(self, field, _as_float(field, values.get(field, NEUTRAL_VALUES[field])))

    @classmethod
    def neutral(cls) -> 'AdjustmentSet':
        """Return a fresh neutral adjustment set."""
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, float]) -> 'AdjustmentSet':
        """Create an adjustment set from a (possibly partial) mapping."""
        return cls(**dict(data))

    def to_dict(self) -> Dict[str, float]:
        """Convert the adjustment set to a dictionary."""
        return {field: getattr(self, field) for field in ADJUSTMENT_FIELDS}

    def copy(self) -> 'AdjustmentSet':
        return AdjustmentSet(**self.to_dict())

    def replace(self, **changes: float) -> 'AdjustmentSet':
        """Return a copy with the given fields changed."""
        values = self.to_dict()
        for name, value in changes.items():
            check_field(name)
            values[name] = value
        return AdjustmentSet(**values)

    def merged(self, partial: Mapping[str, float]) -> 'AdjustmentSet':
        """Return a copy with every field present in *partial* overridden."""
        return self.replace(**dict(partial))

    def validate(self) -> 'AdjustmentSet':
        """Check every field against its domain.

        Returns:
            The adjustment set itself, for chaining

        Raises:
            OutOfRange: On the first field outside its domain
        """
        for field in ADJUSTMENT_FIELDS:
            check_value(field, getattr(self, field))
        return self

    def clamped(self) -> 'AdjustmentSet':
        """Return a copy with every field clamped into its domain."""
        return AdjustmentSet(**{
            field: clamp_value(field, value) for field, value in self.to_dict().items()
        })

    def is_neutral(self) -> bool:
        return all(getattr(self, field) == NEUTRAL_VALUES[field] for field in ADJUSTMENT_FIELDS)

    def __getitem__(self, field: str) -> float:
        check_field(field)
        return getattr(self, field)

    def __setattr__(self, name: str, value: Any) -> None:
        check_field(name)
        object.__setattr__(self, name, _as_float(name, value))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AdjustmentSet):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        changed = ", ".join(
            f"{field}={value:g}" for field, value in self.to_dict().items() if value != 0
        )
        return f"AdjustmentSet({changed})"


class EditorCategory(Enum):
    """Groups of adjustments shown together in the editor."""
    PRESETS = "Presets"
    LIGHT = "Light"
    COLOR = "Color"
    DETAIL = "Detail"
    GEOMETRY = "Geometry"
    EFFECTS = "Effects"


class SliderSpec:
    """Describes how a single adjustment is exposed as a slider."""

    def __init__(self, field: str, label: str, category: EditorCategory, step: float = 1.0):
        check_field(field)
        self.field = field
        self.label = label
        self.category = category
        self.step = step
        self.minimum, self.maximum = ADJUSTMENT_RANGES[field]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "label": self.label,
            "category": self.category.value,
            "min": self.minimum,
            "max": self.maximum,
            "step": self.step,
        }


SLIDERS: List[SliderSpec] = [
    SliderSpec("exposure", "Exposure", EditorCategory.LIGHT),
    SliderSpec("contrast", "Contrast", EditorCategory.LIGHT),
    SliderSpec("saturation", "Saturation", EditorCategory.COLOR),
    SliderSpec("warmth", "Warmth", EditorCategory.COLOR),
    SliderSpec("tint", "Tint", EditorCategory.COLOR),
    SliderSpec("vignette", "Vignette", EditorCategory.DETAIL),
    SliderSpec("sharpness", "Sharpness", EditorCategory.DETAIL),
    SliderSpec("rotate", "Rotate", EditorCategory.GEOMETRY, step=0.1),
    SliderSpec("blur", "Blur", EditorCategory.EFFECTS, step=0.5),
]


def sliders_for_category(category: EditorCategory) -> List[SliderSpec]:
    """Get the sliders shown under an editor category.

    Args:
        category: The editor category

    Returns:
        Slider specs in display order (empty for the presets category)
    """
    return [slider for slider in SLIDERS if slider.category == category]


def get_slider(field: str) -> Optional[SliderSpec]:
    for slider in SLIDERS:
        if slider.field == field:
            return slider
    return None
