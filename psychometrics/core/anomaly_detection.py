"""
Anomaly detection over one respondent's answer sequence.

Four independent detectors characterise data quality:

1. Straight-line responding: the same answer over and over
2. Timing anomalies: too-fast completion and bot-like response timing
3. Pattern anomalies: alternating, sequential, monotonic and extreme
   (endpoint-only) response styles
4. Excessive revisions

Each detector returns an AnomalyResult with its own type, severity,
confidence, evidence and recommended action. There is no combined score:
analyze_all_patterns() runs every detector and returns only the results that
triggered.

Detectors are pure functions of their input window and never raise for
in-range data; insufficient data produces a "normal" (not detected) result.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, TypedDict

from libs.domain_types import AnomalyType, RecommendedAction, Severity

from psychometrics.core.config import AnomalyThresholds
from psychometrics.core.datetime_utils import to_epoch_ms
from psychometrics.core.severity import SeverityFactor, determine_severity
from psychometrics.core.stats_utils import (
    longest_run,
    safe_mean,
    sample_variance,
    value_counts,
)
from psychometrics.models import ScoredResponse

logger = logging.getLogger(__name__)


# =============================================================================
# SEVERITY AND CONFIDENCE PARAMETERS
# =============================================================================
# Each tuple is (severity threshold, severity weight) for one factor.

STRAIGHT_LINE_MODAL_FACTOR = (0.9, 0.4)
STRAIGHT_LINE_RUN_FACTOR = (0.7, 0.3)
STRAIGHT_LINE_VARIANCE_FACTOR = (0.8, 0.3)
STRAIGHT_LINE_MAX_CONFIDENCE = 0.95

TIMING_SCORE_FACTOR = (0.7, 1.0)
TIMING_MAX_CONFIDENCE = 0.9
# bot_like score for the extremely-fast check is this multiple of the ratio
EXTREMELY_FAST_SCORE_MULTIPLIER = 1.5

PATTERN_SCORE_FACTOR = (0.6, 1.0)
PATTERN_MAX_CONFIDENCE = 0.85

REVISION_RATIO_FACTOR = (0.4, 0.4)
REVISION_AVERAGE_FACTOR = (0.6, 0.3)
REVISION_MAX_FACTOR = (0.8, 0.3)
REVISION_AVERAGE_SCALE = 5.0
REVISION_MAX_SCALE = 15.0
REVISION_MAX_CONFIDENCE = 0.8


# =============================================================================
# TYPE DEFINITIONS
# =============================================================================


class AnomalyResult(TypedDict):
    """
    Verdict of a single detector.

    Fields:
        detected: Whether the detector triggered
        type: AnomalyType of the (primary) anomaly
        severity: Weighted severity of the evidence
        confidence: 0-1 confidence in the verdict
        explanation: Human-readable summary
        statistical_evidence: Statistics that produced the verdict
        recommended_action: What a consumer should do with the response set
    """

    detected: bool
    type: AnomalyType
    severity: Severity
    confidence: float
    explanation: str
    statistical_evidence: Dict[str, Any]
    recommended_action: RecommendedAction


@dataclass
class ResponsePattern:
    """Parallel per-question sequences for one respondent, in answer order."""

    responses: List[Optional[float]] = field(default_factory=list)
    timestamps: List[float] = field(default_factory=list)
    revisions: List[int] = field(default_factory=list)
    categories: List[Optional[str]] = field(default_factory=list)

    def numeric_responses(self) -> List[float]:
        return [
            r for r in self.responses
            if isinstance(r, (int, float)) and not isinstance(r, bool)
        ]


@dataclass
class TimingPattern:
    """
    Response times (ms) for one respondent with summary statistics.

    ``average_time`` and ``variance`` (sample variance) are derived from
    ``response_times`` when not given.
    """

    response_times: List[float] = field(default_factory=list)
    average_time: Optional[float] = None
    variance: Optional[float] = None
    outliers: List[float] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.average_time is None:
            self.average_time = safe_mean(self.response_times)
        if self.variance is None:
            self.variance = sample_variance(self.response_times)


def create_normal_result() -> AnomalyResult:
    return {
        "detected": False,
        "type": AnomalyType.DATA_QUALITY_ISSUE,
        "severity": Severity.LOW,
        "confidence": 0.0,
        "explanation": "No anomalies detected",
        "statistical_evidence": {},
        "recommended_action": RecommendedAction.IGNORE,
    }


# =============================================================================
# PATTERN CONSTRUCTION
# =============================================================================


def find_timing_outliers(times: Sequence[float], z_threshold: float = 3.0) -> List[float]:
    """Response times more than ``z_threshold`` sample SDs from the mean."""
    if len(times) < 3:
        return []

    mean = safe_mean(times)
    sd = math.sqrt(sample_variance(times))
    if sd == 0:
        return []

    return [t for t in times if abs(t - mean) / sd > z_threshold]


def create_response_pattern(events: Sequence[ScoredResponse]) -> ResponsePattern:
    """Build a ResponsePattern from answer events (kept in the given order)."""
    return ResponsePattern(
        responses=[e.value for e in events],
        timestamps=[to_epoch_ms(e.timestamp) for e in events],
        revisions=[e.revision_count for e in events],
        categories=[e.category for e in events],
    )


def create_timing_pattern(
    events: Sequence[ScoredResponse],
    thresholds: Optional[AnomalyThresholds] = None,
) -> TimingPattern:
    """Build a TimingPattern from the events that carry a response time."""
    thresholds = thresholds or AnomalyThresholds()
    times = [float(e.response_time_ms) for e in events if e.response_time_ms is not None]

    return TimingPattern(
        response_times=times,
        outliers=find_timing_outliers(times, thresholds.outlier_z_score),
    )


# =============================================================================
# STRAIGHT-LINE RESPONDING
# =============================================================================


def detect_straight_line_responding(
    pattern: ResponsePattern,
    thresholds: Optional[AnomalyThresholds] = None,
) -> AnomalyResult:
    """
    Detect repeated identical answers.

    Triggers when any of these hold (with at least 5 responses):
        modal proportion >= 0.8
        longest identical run / total >= 0.6
        response variance < 0.5
    """
    thresholds = thresholds or AnomalyThresholds()
    responses = pattern.responses
    total = len(responses)

    if total < thresholds.min_straight_line_responses:
        return create_normal_result()

    counts = value_counts(responses)
    straight_line_ratio = max(counts.values()) / total

    consecutive_count = longest_run(responses)
    consecutive_ratio = consecutive_count / total

    variance = sample_variance(pattern.numeric_responses())

    detected = (
        straight_line_ratio >= thresholds.straight_line_ratio
        or consecutive_ratio >= thresholds.consecutive_ratio
        or variance < thresholds.low_variance
    )
    if not detected:
        return create_normal_result()

    severity = determine_severity(
        [
            SeverityFactor(straight_line_ratio, *STRAIGHT_LINE_MODAL_FACTOR),
            SeverityFactor(consecutive_ratio, *STRAIGHT_LINE_RUN_FACTOR),
            SeverityFactor(1 - variance, *STRAIGHT_LINE_VARIANCE_FACTOR),
        ]
    )
    confidence = min(
        STRAIGHT_LINE_MAX_CONFIDENCE, straight_line_ratio * 0.8 + consecutive_ratio * 0.2
    )

    return {
        "detected": True,
        "type": AnomalyType.STRAIGHT_LINE_RESPONDING,
        "severity": severity,
        "confidence": confidence,
        "explanation": (
            f"{straight_line_ratio * 100:.1f}% of responses are identical, "
            f"with {consecutive_count} consecutive identical responses"
        ),
        "statistical_evidence": {
            "straight_line_ratio": straight_line_ratio,
            "consecutive_count": consecutive_count,
            "consecutive_ratio": consecutive_ratio,
            "response_variance": variance,
            "total_responses": total,
        },
        "recommended_action": (
            RecommendedAction.EXCLUDE if severity == Severity.CRITICAL else RecommendedAction.FLAG
        ),
    }


# =============================================================================
# TIMING
# =============================================================================


def _timing_explanation(
    anomaly_type: AnomalyType, evidence: Dict[str, Any], thresholds: AnomalyThresholds
) -> str:
    if anomaly_type == AnomalyType.TOO_FAST_COMPLETION:
        return (
            f"{evidence['fast_response_ratio'] * 100:.1f}% of responses completed in under "
            f"{thresholds.bot_like_speed_ms:.0f}ms "
            f"(average: {evidence['average_time']:.0f}ms)"
        )
    if anomaly_type == AnomalyType.BOT_LIKE_BEHAVIOR:
        return (
            "Consistent rapid responses with low variation "
            f"(CV: {evidence['coefficient_of_variation']:.3f}, "
            f"average: {evidence['average_time']:.0f}ms)"
        )
    return "Timing anomaly detected"


def detect_timing_anomalies(
    timing: TimingPattern,
    thresholds: Optional[AnomalyThresholds] = None,
) -> AnomalyResult:
    """
    Detect too-fast and bot-like response timing.

    Candidate anomalies (the highest score is reported):
        too_fast_completion   >= 80% under 800 ms          score = ratio
        bot_like_behavior     >= 30% under 500 ms          score = 1.5 × ratio
        bot_like_behavior     CV < 0.2 and mean < 1500 ms  score = 1 - CV

    Requires at least 3 timed responses.
    """
    thresholds = thresholds or AnomalyThresholds()
    times = timing.response_times
    total = len(times)

    if total < thresholds.min_timed_responses:
        return create_normal_result()

    average_time = timing.average_time
    fast_count = sum(1 for t in times if t < thresholds.bot_like_speed_ms)
    fast_response_ratio = fast_count / total
    extremely_fast_ratio = sum(1 for t in times if t < thresholds.min_response_time_ms) / total

    if average_time > 0:
        coefficient_of_variation = math.sqrt(timing.variance) / average_time
    else:
        coefficient_of_variation = 0.0

    candidates: List[Dict[str, Any]] = []

    if fast_response_ratio >= thresholds.too_fast_ratio:
        candidates.append(
            {
                "type": AnomalyType.TOO_FAST_COMPLETION,
                "score": fast_response_ratio,
                "evidence": {
                    "fast_response_ratio": fast_response_ratio,
                    "average_time": average_time,
                    "fast_count": fast_count,
                },
            }
        )

    if extremely_fast_ratio >= thresholds.extremely_fast_ratio:
        candidates.append(
            {
                "type": AnomalyType.BOT_LIKE_BEHAVIOR,
                "score": extremely_fast_ratio * EXTREMELY_FAST_SCORE_MULTIPLIER,
                "evidence": {
                    "extremely_fast_ratio": extremely_fast_ratio,
                    "average_time": average_time,
                    "coefficient_of_variation": coefficient_of_variation,
                },
            }
        )

    if (
        coefficient_of_variation < thresholds.consistent_timing_cv
        and average_time < thresholds.consistent_timing_max_mean_ms
    ):
        candidates.append(
            {
                "type": AnomalyType.BOT_LIKE_BEHAVIOR,
                "score": 1 - coefficient_of_variation,
                "evidence": {
                    "coefficient_of_variation": coefficient_of_variation,
                    "average_time": average_time,
                    "too_consistent": True,
                },
            }
        )

    if not candidates:
        return create_normal_result()

    # First candidate wins ties
    primary = candidates[0]
    for candidate in candidates[1:]:
        if candidate["score"] > primary["score"]:
            primary = candidate

    severity = determine_severity([SeverityFactor(primary["score"], *TIMING_SCORE_FACTOR)])

    return {
        "detected": True,
        "type": primary["type"],
        "severity": severity,
        "confidence": min(TIMING_MAX_CONFIDENCE, primary["score"]),
        "explanation": _timing_explanation(primary["type"], primary["evidence"], thresholds),
        "statistical_evidence": {
            "average_response_time": average_time,
            "response_variance": timing.variance,
            "coefficient_of_variation": coefficient_of_variation,
            "fast_response_ratio": fast_response_ratio,
            "extremely_fast_ratio": extremely_fast_ratio,
            "total_responses": total,
            "outlier_count": len(timing.outliers),
            **primary["evidence"],
        },
        "recommended_action": (
            RecommendedAction.EXCLUDE if severity == Severity.CRITICAL else RecommendedAction.FLAG
        ),
    }


# =============================================================================
# RESPONSE PATTERNS
# =============================================================================


def alternating_score(responses: Sequence[Any]) -> float:
    """Share of positions i >= 2 where r[i] == r[i-2] != r[i-1] (e.g. 1,7,1,7)."""
    if len(responses) < 4:
        return 0.0

    count = sum(
        1
        for i in range(2, len(responses))
        if responses[i] == responses[i - 2] and responses[i] != responses[i - 1]
    )
    return count / (len(responses) - 2)


def sequential_score(values: Sequence[float]) -> float:
    """Share of consecutive pairs differing by exactly 1 (e.g. 1,2,3,4)."""
    if len(values) < 5:
        return 0.0

    count = sum(1 for a, b in zip(values, values[1:]) if abs(b - a) == 1)
    return count / (len(values) - 1)


def monotonic_score(values: Sequence[float], window: int = 6) -> float:
    """Share of windows of ``window`` values that are strictly monotonic."""
    if len(values) < window:
        return 0.0

    count = 0
    for start in range(len(values) - window + 1):
        segment = values[start:start + window]
        pairs = list(zip(segment, segment[1:]))
        if all(b > a for a, b in pairs) or all(b < a for a, b in pairs):
            count += 1

    return count / max(1, len(values) - window + 1)


def extreme_response_score(values: Sequence[float], low: float, high: float) -> float:
    """Share of responses sitting on a scale endpoint."""
    if len(values) < 5:
        return 0.0
    return sum(1 for v in values if v == low or v == high) / len(values)


def detect_pattern_anomalies(
    pattern: ResponsePattern,
    thresholds: Optional[AnomalyThresholds] = None,
) -> AnomalyResult:
    """
    Detect structured response styles.

    Scores alternating, sequential, monotonic and extreme (endpoint-only)
    responding; the highest score above 0.3 is reported. Requires at least
    8 responses.
    """
    thresholds = thresholds or AnomalyThresholds()
    total = len(pattern.responses)

    if total < thresholds.min_pattern_responses:
        return create_normal_result()

    values = pattern.numeric_responses()
    scores = {
        "alternating": alternating_score(pattern.responses),
        "sequential": sequential_score(values),
        "monotonic": monotonic_score(values, thresholds.run_length),
        "extreme": extreme_response_score(
            values, thresholds.scale.min, thresholds.scale.max
        ),
    }

    candidates = [(name, score) for name, score in scores.items() if score > thresholds.pattern_score]
    if not candidates:
        return create_normal_result()

    primary_name, primary_score = candidates[0]
    for name, score in candidates[1:]:
        if score > primary_score:
            primary_name, primary_score = name, score

    severity = determine_severity([SeverityFactor(primary_score, *PATTERN_SCORE_FACTOR)])

    return {
        "detected": True,
        "type": AnomalyType.INCONSISTENT_PATTERNS,
        "severity": severity,
        "confidence": min(PATTERN_MAX_CONFIDENCE, primary_score),
        "explanation": f"Detected {primary_name} response pattern (score: {primary_score:.3f})",
        "statistical_evidence": {
            "alternating_score": scores["alternating"],
            "sequential_score": scores["sequential"],
            "monotonic_score": scores["monotonic"],
            "extreme_score": scores["extreme"],
            "primary_pattern": primary_name,
            "total_responses": total,
        },
        "recommended_action": (
            RecommendedAction.FLAG if severity >= Severity.HIGH else RecommendedAction.IGNORE
        ),
    }


# =============================================================================
# REVISIONS
# =============================================================================


def detect_excessive_revisions(
    pattern: ResponsePattern,
    thresholds: Optional[AnomalyThresholds] = None,
) -> AnomalyResult:
    """
    Detect excessive answer revisions.

    Triggers when more than 20% of questions exceed 10 revisions, the
    average exceeds 3, or any single question exceeds 10.
    """
    thresholds = thresholds or AnomalyThresholds()
    revisions = pattern.revisions

    if not revisions:
        return create_normal_result()

    total_questions = len(revisions)
    total_revisions = sum(revisions)
    average_revisions = total_revisions / total_questions
    max_revisions = max(revisions)
    excessive_count = sum(1 for r in revisions if r > thresholds.max_revisions)
    excessive_ratio = excessive_count / total_questions

    detected = (
        excessive_ratio > thresholds.excessive_revision_ratio
        or average_revisions > thresholds.max_average_revisions
        or max_revisions > thresholds.max_revisions
    )
    if not detected:
        return create_normal_result()

    severity = determine_severity(
        [
            SeverityFactor(excessive_ratio, *REVISION_RATIO_FACTOR),
            SeverityFactor(average_revisions / REVISION_AVERAGE_SCALE, *REVISION_AVERAGE_FACTOR),
            SeverityFactor(max_revisions / REVISION_MAX_SCALE, *REVISION_MAX_FACTOR),
        ]
    )

    return {
        "detected": True,
        "type": AnomalyType.EXCESSIVE_REVISIONS,
        "severity": severity,
        "confidence": min(REVISION_MAX_CONFIDENCE, excessive_ratio + average_revisions / 10),
        "explanation": (
            f"Average {average_revisions:.1f} revisions per question, with "
            f"{excessive_count} questions having >{thresholds.max_revisions} revisions"
        ),
        "statistical_evidence": {
            "total_revisions": total_revisions,
            "average_revisions": average_revisions,
            "max_revisions": max_revisions,
            "excessive_count": excessive_count,
            "excessive_ratio": excessive_ratio,
            "total_questions": total_questions,
        },
        "recommended_action": (
            RecommendedAction.MANUAL_REVIEW
            if severity == Severity.HIGH
            else RecommendedAction.FLAG
        ),
    }


# =============================================================================
# COMPREHENSIVE PASS
# =============================================================================


def analyze_all_patterns(
    response_pattern: ResponsePattern,
    timing_pattern: TimingPattern,
    thresholds: Optional[AnomalyThresholds] = None,
) -> List[AnomalyResult]:
    """
    Run every detector and return only the anomalies that were detected,
    in detector order (straight-line, timing, pattern, revisions).
    """
    results = [
        detect_straight_line_responding(response_pattern, thresholds),
        detect_timing_anomalies(timing_pattern, thresholds),
        detect_pattern_anomalies(response_pattern, thresholds),
        detect_excessive_revisions(response_pattern, thresholds),
    ]
    detected = [result for result in results if result["detected"]]

    for result in detected:
        logger.info(
            f"Anomaly detected: {result['type'].value} "
            f"(severity={result['severity'].value}, confidence={result['confidence']:.2f})",
            extra={
                "anomaly_type": result["type"].value,
                "severity": result["severity"].value,
            },
        )

    return detected


def detect_anomalies(
    events: Sequence[ScoredResponse],
    thresholds: Optional[AnomalyThresholds] = None,
) -> List[AnomalyResult]:
    """Build both patterns from answer events and run the comprehensive pass."""
    return analyze_all_patterns(
        create_response_pattern(events),
        create_timing_pattern(events, thresholds),
        thresholds,
    )
