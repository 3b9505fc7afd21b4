"""
Composite index calculation.

A composite index is a signed-weight mean of subscale scores. Only subscales
present in both the score map and the weight table contribute, and the
denominator is the sum of absolute weights, so a negative weight lowers the
index without flipping the sign of the denominator.
"""

import logging
from typing import Dict, List, Mapping, Optional

from libs.domain_types import CompositeIndex, ScoreLevel

from psychometrics.core.config import ScoringConfig
from psychometrics.core.stats_utils import clamp
from psychometrics.models import CompositeScore

logger = logging.getLogger(__name__)

COMPOSITE_BAND_WIDTH = 20

COMPOSITE_LEVELS: List[ScoreLevel] = [
    ScoreLevel.VERY_LOW,
    ScoreLevel.LOW,
    ScoreLevel.MODERATE,
    ScoreLevel.HIGH,
    ScoreLevel.VERY_HIGH,
]

# One description per band, lowest band first
COMPOSITE_INTERPRETATIONS: Dict[str, List[str]] = {
    CompositeIndex.CODEPENDENCY.value: [
        "Minimal codependency - Healthy boundaries",
        "Low codependency - Good independence",
        "Moderate codependency - Some work needed",
        "High codependency - Significant challenges",
        "Severe codependency - Professional help recommended",
    ],
    CompositeIndex.AUTONOMY_RESILIENCE.value: [
        "Very low resilience - High vulnerability",
        "Low resilience - Needs strengthening",
        "Moderate resilience - Average coping",
        "High resilience - Strong coping skills",
        "Very high resilience - Excellent adaptation",
    ],
    CompositeIndex.TRANSITION_RISK.value: [
        "Very low risk - Stable relationship",
        "Low risk - Minor vulnerabilities",
        "Moderate risk - Some instability",
        "High risk - Significant challenges ahead",
        "Very high risk - Crisis likely",
    ],
}

GENERIC_INTERPRETATIONS: List[str] = [
    "Very low",
    "Low",
    "Moderate",
    "High",
    "Very high",
]


def calculate_composite_index(
    subscale_scores: Mapping[str, float],
    weights: Mapping[str, float],
) -> float:
    """
    Signed-weight mean of subscale scores, clamped to [0, 100].

    Args:
        subscale_scores: Subscale name → score (0-100)
        weights: Subscale name → signed weight

    Returns:
        The composite value; 0.0 if no weighted subscale is present or the
        total absolute weight is 0.

    Example:
        >>> calculate_composite_index({"a": 80, "b": 40}, {"a": 0.5, "b": 0.5})
        60.0
    """
    weighted_sum = 0.0
    total_weight = 0.0

    for name, weight in weights.items():
        score = subscale_scores.get(name)
        if score is None:
            continue
        weighted_sum += score * weight
        total_weight += abs(weight)

    if total_weight == 0:
        return 0.0

    return clamp(weighted_sum / total_weight, 0.0, 100.0)


def _band_index(value: float) -> int:
    return max(0, min(int(value // COMPOSITE_BAND_WIDTH), len(COMPOSITE_LEVELS) - 1))


def get_composite_level(value: float) -> ScoreLevel:
    return COMPOSITE_LEVELS[_band_index(value)]


def interpret_composite_index(index: str, value: float) -> str:
    """
    Describe a composite value using the index's own wording.

    Bands break every 20 points (0-19, 20-39, ... 80-100). Indices without
    specific wording get generic band labels.
    """
    key = index.value if isinstance(index, CompositeIndex) else index
    descriptions = COMPOSITE_INTERPRETATIONS.get(key, GENERIC_INTERPRETATIONS)
    return descriptions[_band_index(value)]


def build_composite_score(
    index: str,
    subscale_scores: Mapping[str, float],
    weights: Optional[Mapping[str, float]] = None,
    config: Optional[ScoringConfig] = None,
) -> CompositeScore:
    """
    Build a CompositeScore for ``index``.

    Args:
        index: Composite index id (e.g. "CI")
        subscale_scores: Subscale name → scaled score
        weights: Weight table; defaults to the configured table for ``index``
        config: Scoring configuration holding the weight tables

    Raises:
        KeyError: If no weights are given and ``index`` has no configured table
    """
    key = index.value if isinstance(index, CompositeIndex) else index
    if weights is None:
        config = config or ScoringConfig()
        if key not in config.composite_weights:
            raise KeyError(f"No weight table configured for composite index '{key}'")
        weights = config.composite_weights[key]

    value = round(calculate_composite_index(subscale_scores, weights), 2)
    components = [
        name for name, weight in weights.items()
        if name in subscale_scores and weight != 0
    ]

    logger.debug(f"Composite '{key}': value={value}, components={components}")

    return CompositeScore(
        index=key,
        value=value,
        level=get_composite_level(value),
        interpretation=interpret_composite_index(key, value),
        components=components,
    )
