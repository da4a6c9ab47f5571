"""Preset intensity blending.

Blending interpolates every field linearly between a neutral baseline and a
preset's target. It is always computed from the baseline, so changing the
preset or the intensity never accumulates drift from an earlier blend.
"""

from typing import Mapping, Union

from .adjustments import ADJUSTMENT_FIELDS, AdjustmentSet, check_field
from .errors import OutOfRange
from .presets import FilterPreset

BlendTarget = Union[FilterPreset, AdjustmentSet, Mapping[str, float]]

INTENSITY_RANGE = (0.0, 100.0)


def _target_values(target: BlendTarget) -> Mapping[str, float]:
    if isinstance(target, FilterPreset):
        return target.values
    if isinstance(target, AdjustmentSet):
        return target.to_dict()
    for field in target:
        check_field(field)
    return target


def check_intensity(intensity: float) -> float:
    """Validate a blend intensity and return it as a float."""
    low, high = INTENSITY_RANGE
    try:
        value = float(intensity)
    except (TypeError, ValueError):
        raise OutOfRange("intensity", intensity, INTENSITY_RANGE)
    if not low <= value <= high:
        raise OutOfRange("intensity", intensity, INTENSITY_RANGE)
    return value


def blend(neutral: AdjustmentSet, target: BlendTarget, intensity: float) -> AdjustmentSet:
    """Interpolate between a neutral baseline and a preset target.

    For every field ``k``::

        result[k] = neutral[k] + (target[k] - neutral[k]) * intensity / 100

    where fields the target omits keep their neutral value.

    Args:
        neutral: Baseline adjustment set (never modified)
        target: Preset, full adjustment set, or partial mapping of fields
        intensity: Blend factor from 0 (baseline) to 100 (full preset)

    Returns:
        A new adjustment set

    Raises:
        OutOfRange: If intensity is outside [0, 100]
        ValueError: If the target names an unknown field
    """
    factor = check_intensity(intensity)

    values = _target_values(target)
    if factor == INTENSITY_RANGE[1]:
        return neutral.merged(values)

    factor /= 100.0
    result = {}
    for field in ADJUSTMENT_FIELDS:
        base = neutral[field]
        goal = float(values.get(field, base))
        result[field] = base + (goal - base) * factor
    return AdjustmentSet(**result)


def merge(neutral: AdjustmentSet, target: BlendTarget) -> AdjustmentSet:
    """Apply a preset at full intensity."""
    return blend(neutral, target, 100)
