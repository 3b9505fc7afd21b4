"""
Classical item analysis for a single questionnaire item.

Computes item difficulty, discrimination, a per-option breakdown and an
item-level reliability summary, then turns them into prioritised
recommendations.

Discrimination:
    With respondent total scores: Pearson correlation between the item and
    the totals (item-total correlation).
    Without totals: variance proxy, variance / ((max - min)² / 4), capped at 1.

Recommendation rules (evaluated independently):
    difficulty < 0.20               medium  reword
    difficulty > 0.80               medium  reword
    discrimination < 0.20           high    remove
    0.20 <= discrimination < 0.30   medium  reword
    sample size < 50                low     manual_review

An item is flagged when any recommendation is high or critical priority.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, TypedDict

from libs.domain_types import RecommendationType, Severity

from psychometrics.core.config import ScoringConfig
from psychometrics.core.exceptions import InsufficientSampleError, MismatchedLengthError
from psychometrics.core.norming import (
    calculate_item_difficulty,
    calculate_variance_discrimination,
    create_response_distribution,
)
from psychometrics.core.scale_transform import is_valid_response
from psychometrics.core.stats_utils import pearson_correlation
from psychometrics.models import RawResponseData

logger = logging.getLogger(__name__)


# =============================================================================
# RECOMMENDATION THRESHOLDS
# =============================================================================

TOO_DIFFICULT_THRESHOLD = 0.20
TOO_EASY_THRESHOLD = 0.80
POOR_DISCRIMINATION_THRESHOLD = 0.20
LOW_DISCRIMINATION_THRESHOLD = 0.30

# Per-option discrimination is not estimated; every option gets this value
OPTION_DISCRIMINATION_PLACEHOLDER = 0.5

# Rough alpha-if-deleted estimate from the item-total correlation:
#   max(0, BASE - SLOPE × r)
ALPHA_IF_DELETED_BASE = 0.8
ALPHA_IF_DELETED_SLOPE = 0.2

FLAGGING_PRIORITIES = (Severity.HIGH, Severity.CRITICAL)


# =============================================================================
# TYPE DEFINITIONS
# =============================================================================


class OptionStatistics(TypedDict):
    frequency: int
    proportion: float
    attractiveness: float
    discrimination: float


class ItemReliability(TypedDict):
    item_total_correlation: float
    alpha_if_deleted: float


class ItemRecommendation(TypedDict):
    """
    One actionable recommendation for an item.

    Fields:
        type: What to do with the item (RecommendationType)
        priority: Urgency (Severity)
        reason: Why the recommendation was made
        suggested_action: Human-readable next step
        statistical_evidence: The statistic and the threshold it crossed
    """

    type: RecommendationType
    priority: Severity
    reason: str
    suggested_action: str
    statistical_evidence: Dict[str, Any]


class ItemAnalysis(TypedDict):
    item_id: str
    category: str
    sample_size: int
    difficulty: float
    discrimination: float
    option_analysis: Dict[str, OptionStatistics]
    reliability: ItemReliability
    recommendations: List[ItemRecommendation]
    flagged: bool
    flag_reasons: List[str]


# =============================================================================
# STATISTICS
# =============================================================================


def calculate_item_total_correlation(
    responses: Sequence[float], total_scores: Sequence[float]
) -> float:
    """Pearson item-total correlation; 0.0 when undefined (zero variance)."""
    r = pearson_correlation(responses, total_scores)
    return r if r is not None else 0.0


def estimate_alpha_if_deleted(item_total_correlation: float) -> float:
    return max(0.0, ALPHA_IF_DELETED_BASE - ALPHA_IF_DELETED_SLOPE * item_total_correlation)


def analyze_response_options(responses: Sequence[int]) -> Dict[str, OptionStatistics]:
    """Frequency and proportion of every observed response value."""
    total = len(responses)
    analysis: Dict[str, OptionStatistics] = {}

    for option, frequency in create_response_distribution(responses).items():
        proportion = frequency / total if total else 0.0
        analysis[option] = {
            "frequency": frequency,
            "proportion": round(proportion, 4),
            "attractiveness": round(proportion, 4),
            "discrimination": OPTION_DISCRIMINATION_PLACEHOLDER,
        }

    return analysis


# =============================================================================
# RECOMMENDATIONS
# =============================================================================


def generate_item_recommendations(
    difficulty: float,
    discrimination: float,
    sample_size: int,
    min_sample_size: int = 50,
) -> List[ItemRecommendation]:
    """
    Generate recommendations from item statistics.

    Args:
        difficulty: Mean response as a proportion of the scale maximum
        discrimination: Item-total correlation or variance proxy
        sample_size: Number of valid responses
        min_sample_size: Below this, a manual review is recommended

    Returns:
        Recommendations in rule order (difficulty, discrimination, sample)
    """
    recommendations: List[ItemRecommendation] = []

    # Check difficulty
    if difficulty < TOO_DIFFICULT_THRESHOLD:
        recommendations.append(
            {
                "type": RecommendationType.REWORD,
                "priority": Severity.MEDIUM,
                "reason": "Item is too difficult (low endorsement)",
                "suggested_action": "Consider rewording to be more accessible or balanced",
                "statistical_evidence": {
                    "difficulty": difficulty,
                    "threshold": TOO_DIFFICULT_THRESHOLD,
                },
            }
        )
    elif difficulty > TOO_EASY_THRESHOLD:
        recommendations.append(
            {
                "type": RecommendationType.REWORD,
                "priority": Severity.MEDIUM,
                "reason": "Item is too easy (high endorsement)",
                "suggested_action": "Consider rewording to increase discrimination",
                "statistical_evidence": {
                    "difficulty": difficulty,
                    "threshold": TOO_EASY_THRESHOLD,
                },
            }
        )

    # Check discrimination
    if discrimination < POOR_DISCRIMINATION_THRESHOLD:
        recommendations.append(
            {
                "type": RecommendationType.REMOVE,
                "priority": Severity.HIGH,
                "reason": "Item has poor discrimination",
                "suggested_action": "Consider removing or substantially rewriting this item",
                "statistical_evidence": {
                    "discrimination": discrimination,
                    "threshold": POOR_DISCRIMINATION_THRESHOLD,
                },
            }
        )
    elif discrimination < LOW_DISCRIMINATION_THRESHOLD:
        recommendations.append(
            {
                "type": RecommendationType.REWORD,
                "priority": Severity.MEDIUM,
                "reason": "Item has low discrimination",
                "suggested_action": "Consider rewording to improve discrimination",
                "statistical_evidence": {
                    "discrimination": discrimination,
                    "threshold": LOW_DISCRIMINATION_THRESHOLD,
                },
            }
        )

    # Check sample size
    if sample_size < min_sample_size:
        recommendations.append(
            {
                "type": RecommendationType.MANUAL_REVIEW,
                "priority": Severity.LOW,
                "reason": "Small sample size affects reliability of statistics",
                "suggested_action": "Collect more data before making item decisions",
                "statistical_evidence": {
                    "sample_size": sample_size,
                    "minimum_recommended": min_sample_size,
                },
            }
        )

    return recommendations


# =============================================================================
# ANALYSIS
# =============================================================================


def analyze_item(
    data: RawResponseData,
    total_scores: Optional[Sequence[float]] = None,
    config: Optional[ScoringConfig] = None,
) -> ItemAnalysis:
    """
    Perform a full item analysis.

    Args:
        data: Raw sample for the item
        total_scores: Optional respondent totals parallel to
            ``data.responses``; enables item-total discrimination and the
            alpha-if-deleted estimate
        config: Scale and sample-size configuration

    Returns:
        ItemAnalysis

    Raises:
        MismatchedLengthError: If ``total_scores`` is not parallel to the
            responses
        InsufficientSampleError: If no valid responses remain
    """
    config = config or ScoringConfig()
    scale = config.source_range

    if total_scores is not None and len(total_scores) != len(data.responses):
        raise MismatchedLengthError(
            f"total_scores has {len(total_scores)} entries but responses has "
            f"{len(data.responses)}",
            context=f"item {data.item_id}",
        )

    keep = [i for i, r in enumerate(data.responses) if is_valid_response(r, scale)]
    responses = [int(data.responses[i]) for i in keep]
    sample_size = len(responses)

    if sample_size == 0:
        raise InsufficientSampleError(0, 1, context=f"item {data.item_id}")

    if sample_size < config.small_item_sample_warning:
        logger.warning(
            f"Small sample size ({sample_size}) for item analysis of item {data.item_id}",
            extra={"item_id": data.item_id, "sample_size": sample_size},
        )

    difficulty = calculate_item_difficulty(responses, scale)

    if total_scores is not None:
        totals = [float(total_scores[i]) for i in keep]
        discrimination = calculate_item_total_correlation(responses, totals)
        alpha_if_deleted = estimate_alpha_if_deleted(discrimination)
    else:
        discrimination = calculate_variance_discrimination(responses, scale)
        alpha_if_deleted = 0.0

    difficulty = round(difficulty, 4)
    discrimination = round(discrimination, 4)

    recommendations = generate_item_recommendations(
        difficulty, discrimination, sample_size, config.min_item_sample
    )

    flag_reasons = [
        rec["reason"] for rec in recommendations if rec["priority"] in FLAGGING_PRIORITIES
    ]

    result: ItemAnalysis = {
        "item_id": data.item_id,
        "category": data.category,
        "sample_size": sample_size,
        "difficulty": difficulty,
        "discrimination": discrimination,
        "option_analysis": analyze_response_options(responses),
        "reliability": {
            "item_total_correlation": discrimination,
            "alpha_if_deleted": round(alpha_if_deleted, 4),
        },
        "recommendations": recommendations,
        "flagged": bool(flag_reasons),
        "flag_reasons": flag_reasons,
    }

    logger.info(
        f"Item analysis for {data.item_id}: difficulty={difficulty:.3f}, "
        f"discrimination={discrimination:.3f}, "
        f"recommendations={len(recommendations)}, flagged={result['flagged']}",
        extra={"item_id": data.item_id, "category": data.category, "sample_size": sample_size},
    )

    return result
