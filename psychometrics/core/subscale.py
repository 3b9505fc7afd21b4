"""
Subscale aggregation.

Combines the responses belonging to one category into a single 0-100 score:
reverse-score flagged items, rescale to 0-100, weight, and divide by the
absolute weight of the answered items only. Unanswered items (None) are
skipped and do not dilute the score.
"""

import logging
from typing import Dict, List, NamedTuple, Optional, Sequence

from libs.domain_types import ScoreLevel

from psychometrics.core.config import ScoringConfig
from psychometrics.core.datetime_utils import ensure_timezone_aware
from psychometrics.core.norming import calculate_percentile_rank
from psychometrics.core.scale_transform import reverse, to_unit_scale
from psychometrics.core.stats_utils import clamp
from psychometrics.models import AssessmentItem, ScoredResponse, SubscaleScore

logger = logging.getLogger(__name__)

# Upper bounds (exclusive) of the qualitative score bands
SCORE_LEVEL_THRESHOLDS: Dict[ScoreLevel, int] = {
    ScoreLevel.VERY_LOW: 16,
    ScoreLevel.LOW: 37,
    ScoreLevel.MODERATE: 63,
    ScoreLevel.HIGH: 84,
}


class SubscaleResult(NamedTuple):
    score: int
    valid_item_count: int
    weighted_sum: float


def calculate_subscale_score(
    responses: Sequence[Optional[int]],
    reverse_items: Optional[Sequence[bool]] = None,
    weights: Optional[Sequence[Optional[float]]] = None,
    config: Optional[ScoringConfig] = None,
) -> SubscaleResult:
    """
    Aggregate one category's responses into a 0-100 score.

    Args:
        responses: Ordered responses; None marks an unanswered item
        reverse_items: Parallel reverse-scoring flags (missing = not reversed)
        weights: Parallel weights (missing or None = 1.0). Negative weights
            are allowed; normalisation uses absolute values.
        config: Scale configuration, defaults to 1-7 → 0-100

    Returns:
        SubscaleResult(score, valid_item_count, weighted_sum). All-None input
        gives score 0 and valid count 0.

    Example:
        >>> calculate_subscale_score([4, 5, 6, 4, 5]).score
        63
    """
    config = config or ScoringConfig()
    reverse_items = reverse_items or []
    weights = weights or []

    weighted_sum = 0.0
    weight_total = 0.0
    valid_count = 0

    for index, response in enumerate(responses):
        if response is None:
            continue

        value = response
        if index < len(reverse_items) and reverse_items[index]:
            value = reverse(value, config.source_range)

        weight = weights[index] if index < len(weights) else None
        if weight is None:
            weight = 1.0

        scaled = to_unit_scale(value, config.source_range, config.target_range)
        weighted_sum += scaled * weight
        weight_total += abs(weight)
        valid_count += 1

    if valid_count == 0 or weight_total == 0:
        return SubscaleResult(score=0, valid_item_count=valid_count, weighted_sum=0.0)

    mean_score = weighted_sum / weight_total
    score = int(
        round(clamp(mean_score, config.target_range.min, config.target_range.max))
    )

    return SubscaleResult(
        score=score, valid_item_count=valid_count, weighted_sum=weighted_sum
    )


def interpret_score_level(score: float) -> ScoreLevel:
    """Map a 0-100 score to its qualitative band."""
    for level, upper in SCORE_LEVEL_THRESHOLDS.items():
        if score < upper:
            return level
    return ScoreLevel.VERY_HIGH


def build_subscale_score(
    category: str,
    responses: Sequence[ScoredResponse],
    items: Sequence[AssessmentItem],
    config: Optional[ScoringConfig] = None,
    reference_scores: Optional[Sequence[float]] = None,
) -> SubscaleScore:
    """
    Build the full SubscaleScore for one category.

    Every item of the category contributes one slot; items without a response
    (or with a None value) count as unanswered. When several responses exist
    for the same item, the latest by timestamp wins.

    Args:
        category: Category to score
        responses: An individual's responses (any categories)
        items: Item configuration (any categories)
        config: Scoring configuration
        reference_scores: Optional distribution of scaled scores used to
            attach a percentile rank
    """
    category_items = [item for item in items if item.category == category]

    latest: Dict[str, ScoredResponse] = {}
    for response in responses:
        current = latest.get(response.item_id)
        if current is None or ensure_timezone_aware(
            response.timestamp
        ) >= ensure_timezone_aware(current.timestamp):
            latest[response.item_id] = response

    values: List[Optional[int]] = []
    reverse_flags: List[bool] = []
    weights: List[float] = []
    for item in category_items:
        response = latest.get(item.item_id)
        values.append(response.value if response is not None else None)
        reverse_flags.append(item.reverse_scored)
        weights.append(item.weight)

    result = calculate_subscale_score(values, reverse_flags, weights, config)

    percentile = None
    if reference_scores is not None and result.valid_item_count > 0:
        percentile = calculate_percentile_rank(result.score, reference_scores)

    logger.debug(
        f"Subscale '{category}': score={result.score}, "
        f"valid_items={result.valid_item_count}/{len(category_items)}"
    )

    return SubscaleScore(
        category=category,
        raw_score=round(result.weighted_sum, 4),
        scaled_score=result.score,
        valid_item_count=result.valid_item_count,
        interpretation=interpret_score_level(result.score),
        percentile=percentile,
    )
