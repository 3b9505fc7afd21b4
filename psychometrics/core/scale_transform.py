"""
Scale transforms for ordinal (Likert) responses.

Pure functions used by every scoring component:
- ``to_unit_scale``: linear rescaling from the response scale (default 1-7)
  onto the reporting scale (default 0-100)
- ``reverse``: reverse scoring for negatively keyed items

This layer does not clamp or reject out-of-range values; filtering happens
upstream and clamping happens at the aggregate level.

Examples:
    >>> to_unit_scale(1)
    0.0
    >>> to_unit_scale(4)
    50.0
    >>> reverse(2)
    6
"""

from typing import Optional

from psychometrics.core.config import ScaleLike, ScaleRange, resolve_range

DEFAULT_SOURCE_RANGE = ScaleRange(min=1, max=7)
DEFAULT_TARGET_RANGE = ScaleRange(min=0, max=100)


def to_unit_scale(
    value: float,
    source_range: Optional[ScaleLike] = None,
    target_range: Optional[ScaleLike] = None,
) -> float:
    """
    Linearly map ``value`` from the source range onto the target range.

    Formula:
        (value - src_min) / (src_max - src_min) * (tgt_max - tgt_min) + tgt_min

    Endpoints map exactly onto the target endpoints; intermediate values are
    not rounded.

    Args:
        value: Response value on the source scale
        source_range: Source scale, default 1-7
        target_range: Target scale, default 0-100

    Returns:
        The rescaled value as a float
    """
    src = resolve_range(source_range) if source_range is not None else DEFAULT_SOURCE_RANGE
    tgt = resolve_range(target_range) if target_range is not None else DEFAULT_TARGET_RANGE

    if value == src.min:
        return float(tgt.min)
    if value == src.max:
        return float(tgt.max)

    return (value - src.min) / src.span * tgt.span + tgt.min


def reverse(value: int, source_range: Optional[ScaleLike] = None) -> int:
    """
    Reverse-score a response: ``(src_max + src_min) - value``.

    Applying it twice gives back the input value.
    """
    src = resolve_range(source_range) if source_range is not None else DEFAULT_SOURCE_RANGE
    reversed_value = (src.max + src.min) - value
    if float(reversed_value).is_integer():
        return int(reversed_value)
    return reversed_value  # type: ignore[return-value]


def is_valid_response(value: object, source_range: Optional[ScaleLike] = None) -> bool:
    """True for integral values inside the closed source range."""
    if value is None or isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    if not float(value).is_integer():
        return False
    src = resolve_range(source_range) if source_range is not None else DEFAULT_SOURCE_RANGE
    return src.min <= value <= src.max
