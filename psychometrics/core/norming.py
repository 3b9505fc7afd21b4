"""
Statistical norming for questionnaire items.

Given a complete sample of raw responses for one item (or category), this
module computes:

1. Descriptive statistics: mean, median, sample SD (n-1), variance,
   skewness (third standardised moment), excess kurtosis
2. Response distribution: value → count, optionally stratified by
   demographic tags
3. Quality metrics: mean response time, response diversity (Shannon entropy
   normalised by log2 of the number of legal values), consistency score,
   anomaly rate, reliability estimate
4. Item difficulty (mean / scale max) and a variance-based discrimination proxy
5. Normative conversions for every legal value: percentile rank, z-score and
   standardised score (50 + 10z)
6. 95% confidence-interval half-width for the mean: 1.96 × SD / √n

Norms are always recomputed from the full sample; nothing here updates
statistics incrementally.

Samples below ``ScoringConfig.min_norming_sample`` (10) raise
InsufficientSampleError.
"""

import logging
import math
import statistics
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, TypedDict

from scipy.stats import norm

from psychometrics.core.config import ScaleRange, ScoringConfig
from psychometrics.core.datetime_utils import utc_now
from psychometrics.core.exceptions import InsufficientSampleError, MismatchedLengthError
from psychometrics.core.scale_transform import is_valid_response
from psychometrics.core.stats_utils import (
    clamp,
    safe_mean,
    sample_std,
    shannon_entropy,
)
from psychometrics.models import RawResponseData

logger = logging.getLogger(__name__)


# =============================================================================
# NORMATIVE CONVERSION CONSTANTS
# =============================================================================

# Standard score scale (T-score convention): mean 50, SD 10
STANDARD_SCORE_MEAN = 50.0
STANDARD_SCORE_SD = 10.0

# Upper percentile bound (inclusive) for stanines 1-8; above the last is 9
STANINE_PERCENTILE_CUTOFFS = [4, 11, 23, 40, 60, 77, 89, 96]

# Lower percentile bound (inclusive) for each qualitative description
QUALITATIVE_DESCRIPTIONS: List[Tuple[int, str]] = [
    (98, "Extremely High"),
    (91, "Very High"),
    (75, "High"),
    (60, "Above Average"),
    (40, "Average"),
    (25, "Below Average"),
    (9, "Low"),
    (2, "Very Low"),
]
LOWEST_QUALITATIVE_DESCRIPTION = "Extremely Low"

# Percentile reported when there is no usable comparison distribution
DEFAULT_PERCENTILE = 50


# =============================================================================
# TYPE DEFINITIONS
# =============================================================================


class DescriptiveStatistics(TypedDict):
    mean: float
    median: float
    standard_deviation: float
    variance: float
    skewness: float
    kurtosis: float
    item_difficulty: float
    item_discrimination: float


class QualityMetrics(TypedDict):
    average_response_time: float
    response_variance: float
    consistency_score: float
    anomaly_rate: float
    reliability_coefficient: float


class NormativeData(TypedDict):
    percentile_ranks: Dict[str, float]
    z_scores: Dict[str, float]
    standardized_scores: Dict[str, int]


class NormingStatistics(TypedDict):
    """
    Result structure for calculate_norming_statistics().

    Fields:
        item_id / category: Identify the normed item
        sample_size: Number of valid (in-range) responses used
        statistics: Descriptive statistics plus difficulty/discrimination
        response_distribution: Response value → count
        demographic_breakdowns: Tag name → tag value → sum of responses, or
            None when no demographics were supplied
        quality_metrics: Timing, diversity, consistency and anomaly metrics
        normative_data: Percentile rank / z / standard score per legal value
        confidence_interval: 95% CI half-width for the mean
        last_updated: ISO-8601 UTC timestamp of the computation
    """

    item_id: str
    category: str
    sample_size: int
    statistics: DescriptiveStatistics
    response_distribution: Dict[str, int]
    demographic_breakdowns: Optional[Dict[str, Dict[str, float]]]
    quality_metrics: QualityMetrics
    normative_data: NormativeData
    confidence_interval: float
    last_updated: str


class NormativeScores(TypedDict):
    raw_score: float
    z_score: float
    standard_score: float
    t_score: float
    percentile_rank: int
    stanine: int
    qualitative_description: str


# =============================================================================
# SAMPLE PREPARATION
# =============================================================================


class _AlignedSample(TypedDict):
    responses: List[int]
    response_times: List[float]
    revisions: List[float]
    session_ids: List[str]
    demographics: Optional[List[Mapping[str, str]]]


def check_parallel_lengths(data: RawResponseData) -> None:
    """
    Raise MismatchedLengthError if a non-empty parallel array does not have
    one entry per response.
    """
    n = len(data.responses)
    parallel = {
        "response_times": data.response_times,
        "revisions": data.revisions,
        "session_ids": data.session_ids,
        "demographics": data.demographics or (),
    }
    for name, values in parallel.items():
        if len(values) and len(values) != n:
            raise MismatchedLengthError(
                f"{name} has {len(values)} entries but responses has {n}",
                context=f"item {data.item_id}",
            )


def align_valid_sample(data: RawResponseData, scale: ScaleRange) -> _AlignedSample:
    """
    Drop out-of-range responses, keeping the parallel arrays aligned.

    Raises:
        MismatchedLengthError: If a parallel array has the wrong length
    """
    check_parallel_lengths(data)

    keep = [i for i, r in enumerate(data.responses) if is_valid_response(r, scale)]
    dropped = len(data.responses) - len(keep)
    if dropped:
        logger.info(
            f"Dropped {dropped} out-of-range responses for item {data.item_id}",
            extra={"item_id": data.item_id},
        )

    def pick(values: Sequence) -> list:
        return [values[i] for i in keep] if len(values) else []

    return {
        "responses": [int(data.responses[i]) for i in keep],
        "response_times": [float(t) for t in pick(data.response_times)],
        "revisions": [float(r) for r in pick(data.revisions)],
        "session_ids": [str(s) for s in pick(data.session_ids)],
        "demographics": pick(data.demographics) if data.demographics else None,
    }


# =============================================================================
# DESCRIPTIVE STATISTICS
# =============================================================================


def calculate_skewness(values: Sequence[float], mean: float, sd: float) -> float:
    """Third standardised moment; 0.0 for zero-variance samples."""
    if sd == 0 or not values:
        return 0.0
    return sum(((v - mean) / sd) ** 3 for v in values) / len(values)


def calculate_kurtosis(values: Sequence[float], mean: float, sd: float) -> float:
    """Excess kurtosis (fourth standardised moment minus 3); 0.0 for zero variance."""
    if sd == 0 or not values:
        return 0.0
    return sum(((v - mean) / sd) ** 4 for v in values) / len(values) - 3


def create_response_distribution(responses: Sequence[int]) -> Dict[str, int]:
    """Response value → count, keys ordered by value."""
    distribution: Dict[str, int] = {}
    for value in sorted(responses):
        key = str(value)
        distribution[key] = distribution.get(key, 0) + 1
    return distribution


def calculate_demographic_breakdowns(
    responses: Sequence[int],
    demographics: Optional[Sequence[Mapping[str, str]]],
) -> Optional[Dict[str, Dict[str, float]]]:
    """
    Sum responses per demographic tag value.

    Args:
        responses: Valid responses
        demographics: One tag mapping per respondent (e.g.
            {"age_group": "18-24", "gender": "f"})

    Returns:
        {tag: {tag_value: response_sum}}, or None if demographics are absent
        or not aligned with ``responses``
    """
    if not demographics or len(demographics) != len(responses):
        return None

    breakdowns: Dict[str, Dict[str, float]] = defaultdict(dict)
    for tags, response in zip(demographics, responses):
        for tag, tag_value in tags.items():
            if tag_value is None or tag_value == "":
                continue
            group = breakdowns[tag]
            group[tag_value] = group.get(tag_value, 0) + response

    return dict(breakdowns)


# =============================================================================
# QUALITY METRICS
# =============================================================================


def calculate_response_diversity(responses: Sequence[int], scale: ScaleRange) -> float:
    """
    Shannon entropy of the response distribution normalised to 0-1 by the
    maximum possible entropy for the scale (log2 of its number of values).
    """
    cardinality = len(scale.legal_values())
    if cardinality < 2 or not responses:
        return 0.0
    return clamp(shannon_entropy(responses) / math.log2(cardinality), 0.0, 1.0)


def calculate_consistency_score(
    responses: Sequence[int],
    revisions: Sequence[float],
    scale: ScaleRange,
    revision_normalizer: float = 10.0,
) -> float:
    """
    Combine revision stability and response diversity into a 0-1 score.

    stability = 1 - mean(revisions) / revision_normalizer
    score = clamp(stability × diversity, 0, 1)
    """
    stability = 1 - safe_mean(revisions) / revision_normalizer
    diversity = calculate_response_diversity(responses, scale)
    return clamp(stability * diversity, 0.0, 1.0)


def get_most_common_response(responses: Sequence[int]) -> Optional[int]:
    """Modal response; ties resolve to the value seen first."""
    if not responses:
        return None
    counts: Dict[int, int] = {}
    for r in responses:
        counts[r] = counts.get(r, 0) + 1
    return max(counts, key=lambda value: counts[value])


def calculate_anomaly_rate(
    responses: Sequence[int],
    response_times: Sequence[float],
    config: ScoringConfig,
) -> float:
    """
    Estimate the fraction of responses with speed or pattern red flags.

    Counts responses faster than ``anomalous_response_time_ms`` and, when the
    modal response exceeds ``straight_line_ratio`` of the sample, adds half
    the sample as straight-lined. Capped at 1.0.
    """
    if not responses:
        return 0.0

    anomalies = sum(1 for t in response_times if t < config.anomalous_response_time_ms)

    if len(responses) >= 5:
        most_common = get_most_common_response(responses)
        modal_share = sum(1 for r in responses if r == most_common) / len(responses)
        if modal_share > config.straight_line_ratio:
            anomalies += len(responses) // 2

    return min(1.0, anomalies / len(responses))


def calculate_item_difficulty(responses: Sequence[float], scale: ScaleRange) -> float:
    """Mean response as a proportion of the scale maximum."""
    if not responses:
        return 0.0
    return clamp(safe_mean(responses) / scale.max, 0.0, 1.0)


def calculate_variance_discrimination(
    responses: Sequence[float], scale: ScaleRange
) -> float:
    """
    Discrimination proxy when total scores are unavailable: sample variance
    relative to the theoretical maximum ((max - min)² / 4), capped at 1.
    """
    max_variance = scale.span**2 / 4
    if len(responses) < 2 or max_variance == 0:
        return 0.0
    return min(1.0, statistics.variance(responses) / max_variance)


# =============================================================================
# NORMATIVE CONVERSIONS
# =============================================================================


def calculate_percentile_ranks(
    responses: Sequence[int], scale: ScaleRange
) -> Dict[str, float]:
    """Cumulative percentage of responses at or below each legal value."""
    n = len(responses)
    ranks: Dict[str, float] = {}
    for value in scale.legal_values():
        at_or_below = sum(1 for r in responses if r <= value)
        ranks[str(value)] = round(at_or_below / n * 100, 2) if n else 0.0
    return ranks


def calculate_z_scores(mean: float, sd: float, scale: ScaleRange) -> Dict[str, float]:
    """z-score of every legal value; all zero for a zero-variance sample."""
    return {
        str(value): round((value - mean) / sd, 4) if sd > 0 else 0.0
        for value in scale.legal_values()
    }


def calculate_standardized_scores(z_scores: Mapping[str, float]) -> Dict[str, int]:
    """Standard scores (mean 50, SD 10) from z-scores."""
    return {
        key: int(round(STANDARD_SCORE_MEAN + z * STANDARD_SCORE_SD))
        for key, z in z_scores.items()
    }


def calculate_percentile_rank(score: float, all_scores: Sequence[float]) -> int:
    """
    Percentile rank of ``score`` within ``all_scores``.

    Two conventions are used:
    - ``score`` matches a sample value: (below + equal) / n × 100
    - otherwise: (below + 1) / (n + 1) × 100

    Empty or single-value distributions return 50.

    Examples:
        >>> calculate_percentile_rank(10, [20, 40, 60, 80])
        20
        >>> calculate_percentile_rank(40, [20, 40, 60, 80])
        50
        >>> calculate_percentile_rank(90, [20, 40, 60, 80])
        100
    """
    if len(all_scores) <= 1:
        return DEFAULT_PERCENTILE

    below = sum(1 for s in all_scores if s < score)
    equal = sum(1 for s in all_scores if s == score)

    if equal > 0:
        percentile = (below + equal) / len(all_scores) * 100
    else:
        percentile = (below + 1) / (len(all_scores) + 1) * 100

    return int(round(clamp(percentile, 0.0, 100.0)))


def percentile_to_stanine(percentile: float) -> int:
    """Convert a percentile (0-100) into a stanine (1-9)."""
    for stanine, cutoff in enumerate(STANINE_PERCENTILE_CUTOFFS, start=1):
        if percentile <= cutoff:
            return stanine
    return 9


def get_qualitative_description(percentile: float) -> str:
    for lower_bound, description in QUALITATIVE_DESCRIPTIONS:
        if percentile >= lower_bound:
            return description
    return LOWEST_QUALITATIVE_DESCRIPTION


def z_to_percentile(z_score: float) -> int:
    """Percentile (0-100) of a z-score under the standard normal distribution."""
    return int(round(norm.cdf(z_score) * 100))


def convert_to_normative_scores(
    raw_score: float, stats: NormingStatistics
) -> NormativeScores:
    """
    Express a raw score relative to a normed sample.

    Args:
        raw_score: Response value to convert
        stats: Norms from calculate_norming_statistics()

    Returns:
        NormativeScores with z-score, standard score / T-score (50 + 10z),
        normal-curve percentile, stanine and qualitative description. A
        zero-variance norm sample yields z = 0.
    """
    mean = stats["statistics"]["mean"]
    sd = stats["statistics"]["standard_deviation"]

    z_score = (raw_score - mean) / sd if sd > 0 else 0.0
    standard_score = STANDARD_SCORE_MEAN + z_score * STANDARD_SCORE_SD
    percentile = z_to_percentile(z_score)

    return {
        "raw_score": raw_score,
        "z_score": round(z_score, 4),
        "standard_score": round(standard_score, 2),
        "t_score": round(standard_score, 2),
        "percentile_rank": percentile,
        "stanine": percentile_to_stanine(percentile),
        "qualitative_description": get_qualitative_description(percentile),
    }


# =============================================================================
# NORMING
# =============================================================================


def estimate_reliability(responses: Sequence[float], scale: ScaleRange) -> float:
    """Single-item reliability estimate from variance relative to its maximum."""
    return calculate_variance_discrimination(responses, scale)


def calculate_norming_statistics(
    data: RawResponseData,
    config: Optional[ScoringConfig] = None,
) -> NormingStatistics:
    """
    Calculate comprehensive norming statistics for one item.

    Args:
        data: Raw sample for the item with parallel timing / revision /
            session / demographic arrays
        config: Scale and threshold configuration

    Returns:
        NormingStatistics for the valid part of the sample

    Raises:
        MismatchedLengthError: If a non-empty parallel array is misaligned
        InsufficientSampleError: If fewer than ``min_norming_sample`` valid
            responses remain
    """
    config = config or ScoringConfig()
    scale = config.source_range

    sample = align_valid_sample(data, scale)
    responses = sample["responses"]
    sample_size = len(responses)

    if sample_size < config.min_norming_sample:
        logger.warning(
            f"Norming skipped for item {data.item_id}: only {sample_size} valid "
            f"responses (need {config.min_norming_sample})",
            extra={"item_id": data.item_id, "sample_size": sample_size},
        )
        raise InsufficientSampleError(
            sample_size, config.min_norming_sample, context=f"item {data.item_id}"
        )

    # Descriptive statistics
    mean = statistics.fmean(responses)
    median = float(statistics.median(responses))
    sd = sample_std(responses)
    variance = sd**2
    skewness = calculate_skewness(responses, mean, sd)
    kurtosis = calculate_kurtosis(responses, mean, sd)

    distribution = create_response_distribution(responses)
    breakdowns = calculate_demographic_breakdowns(responses, sample["demographics"])

    # Quality metrics
    quality_metrics: QualityMetrics = {
        "average_response_time": round(safe_mean(sample["response_times"]), 2),
        "response_variance": round(calculate_response_diversity(responses, scale), 4),
        "consistency_score": round(
            calculate_consistency_score(
                responses, sample["revisions"], scale, config.revision_normalizer
            ),
            4,
        ),
        "anomaly_rate": round(
            calculate_anomaly_rate(responses, sample["response_times"], config), 4
        ),
        "reliability_coefficient": round(estimate_reliability(responses, scale), 4),
    }

    # Normative data
    z_scores = calculate_z_scores(mean, sd, scale)
    normative_data: NormativeData = {
        "percentile_ranks": calculate_percentile_ranks(responses, scale),
        "z_scores": z_scores,
        "standardized_scores": calculate_standardized_scores(z_scores),
    }

    standard_error = sd / math.sqrt(sample_size)
    confidence_interval = config.z_critical * standard_error

    result: NormingStatistics = {
        "item_id": data.item_id,
        "category": data.category,
        "sample_size": sample_size,
        "statistics": {
            "mean": round(mean, 4),
            "median": median,
            "standard_deviation": round(sd, 4),
            "variance": round(variance, 4),
            "skewness": round(skewness, 4),
            "kurtosis": round(kurtosis, 4),
            "item_difficulty": round(calculate_item_difficulty(responses, scale), 4),
            "item_discrimination": round(
                calculate_variance_discrimination(responses, scale), 4
            ),
        },
        "response_distribution": distribution,
        "demographic_breakdowns": breakdowns,
        "quality_metrics": quality_metrics,
        "normative_data": normative_data,
        "confidence_interval": round(confidence_interval, 4),
        "last_updated": utc_now().isoformat(),
    }

    logger.info(
        f"Norming statistics calculated for item {data.item_id}: "
        f"n={sample_size}, mean={mean:.3f}, sd={sd:.3f}, "
        f"anomaly_rate={quality_metrics['anomaly_rate']:.3f}",
        extra={"item_id": data.item_id, "category": data.category, "sample_size": sample_size},
    )

    return result
