"""
Individual assessment scoring.

Turns one respondent's responses into subscale scores, composite indices,
a completion check and an overall risk level. Also validates a response set
before scoring.

Completion thresholds:
    < 70% answered       invalid
    70% - 90% answered   valid, partial
    >= 90% answered      complete

Risk level (mean of the codependency and transition-risk indices):
    > 60   high
    > 40   moderate
    else   low
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence, TypedDict

from libs.domain_types import CompositeIndex

from psychometrics.core.composite import build_composite_score
from psychometrics.core.config import ScoringConfig
from psychometrics.core.scale_transform import is_valid_response
from psychometrics.core.subscale import build_subscale_score
from psychometrics.models import (
    AssessmentItem,
    CompositeScore,
    ScoredResponse,
    SubscaleScore,
)

logger = logging.getLogger(__name__)

HIGH_RISK_THRESHOLD = 60
MODERATE_RISK_THRESHOLD = 40


class CompletionStatus(NamedTuple):
    is_valid: bool
    completion_rate: float
    message: str


class ValidationIssue(TypedDict):
    code: str
    message: str


@dataclass
class ValidationResult:
    """Outcome of validate_assessment_responses()."""

    is_valid: bool
    completion_rate: float
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)
    missing_item_ids: List[str] = field(default_factory=list)

    @property
    def recommend_proceed(self) -> bool:
        return self.is_valid and len(self.warnings) < 3


class AssessmentScores(TypedDict):
    subscales: Dict[str, SubscaleScore]
    composites: Dict[str, CompositeScore]
    completion: CompletionStatus
    risk_level: str


def assess_completion(
    answered_count: int,
    total_items: int,
    config: Optional[ScoringConfig] = None,
) -> CompletionStatus:
    """
    Check whether enough items were answered for valid results.

    Args:
        answered_count: Number of answered items
        total_items: Number of items in the assessment

    Returns:
        CompletionStatus(is_valid, completion_rate in percent, message)
    """
    config = config or ScoringConfig()
    completion_rate = answered_count / total_items * 100 if total_items > 0 else 0.0

    if completion_rate < config.min_completion_rate:
        return CompletionStatus(
            False,
            completion_rate,
            f"Assessment requires at least {config.min_completion_rate:.0f}% "
            "completion for valid results",
        )

    if completion_rate < config.partial_completion_rate:
        return CompletionStatus(True, completion_rate, "Results calculated with partial responses")

    return CompletionStatus(True, completion_rate, "Assessment complete")


def validate_assessment_responses(
    responses: Sequence[ScoredResponse],
    required_item_ids: Sequence[str],
    config: Optional[ScoringConfig] = None,
) -> ValidationResult:
    """
    Validate a response set before scoring.

    Errors (invalidate the set):
        OUT_OF_RANGE              an answered value outside the scale
        MISSING_REQUIRED_ITEMS    required items without an answer
        INSUFFICIENT_COMPLETION   fewer answers than the completion minimum

    Warnings:
        RAPID_RESPONSES           response times under the anomalous threshold
        IDENTICAL_RESPONSES       every answer has the same value (with at
                                  least ``identical_response_warning_count``
                                  answers)
    """
    config = config or ScoringConfig()
    errors: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []

    answered = [r for r in responses if r.value is not None]

    for response in answered:
        if not is_valid_response(response.value, config.source_range):
            errors.append(
                {
                    "code": "OUT_OF_RANGE",
                    "message": (
                        f"Response {response.value} for item {response.item_id} is outside "
                        f"the {config.source_range.min:g}-{config.source_range.max:g} scale"
                    ),
                }
            )

    answered_ids = {r.item_id for r in answered}
    missing = [item_id for item_id in required_item_ids if item_id not in answered_ids]
    if missing:
        errors.append(
            {
                "code": "MISSING_REQUIRED_ITEMS",
                "message": f"{len(missing)} required items have no response",
            }
        )

    completion = assess_completion(
        len(set(required_item_ids) & answered_ids), len(set(required_item_ids)), config
    )
    if required_item_ids and not completion.is_valid:
        errors.append(
            {
                "code": "INSUFFICIENT_COMPLETION",
                "message": (
                    f"Assessment only {round(completion.completion_rate)}% complete "
                    f"(minimum {config.min_completion_rate:.0f}% required)"
                ),
            }
        )

    rapid = [
        r for r in responses
        if r.response_time_ms is not None
        and r.response_time_ms < config.anomalous_response_time_ms
    ]
    if rapid:
        warnings.append(
            {
                "code": "RAPID_RESPONSES",
                "message": (
                    f"{len(rapid)} responses answered in under "
                    f"{config.anomalous_response_time_ms:.0f}ms"
                ),
            }
        )

    values = {r.value for r in answered}
    if len(values) == 1 and len(answered) >= config.identical_response_warning_count:
        warnings.append(
            {
                "code": "IDENTICAL_RESPONSES",
                "message": "All responses have the same value - may indicate inattentive responding",
            }
        )

    if errors:
        logger.warning(
            f"Response validation failed with {len(errors)} errors: "
            f"{', '.join(e['code'] for e in errors)}"
        )

    return ValidationResult(
        is_valid=not errors,
        completion_rate=completion.completion_rate,
        errors=errors,
        warnings=warnings,
        missing_item_ids=missing,
    )


def assess_risk_level(composites: Mapping[str, CompositeScore]) -> str:
    """Overall risk from the codependency and transition-risk indices."""
    ci = composites.get(CompositeIndex.CODEPENDENCY.value)
    trs = composites.get(CompositeIndex.TRANSITION_RISK.value)
    average_risk = ((ci.value if ci else 0.0) + (trs.value if trs else 0.0)) / 2

    if average_risk > HIGH_RISK_THRESHOLD:
        return "high"
    elif average_risk > MODERATE_RISK_THRESHOLD:
        return "moderate"
    return "low"


def score_assessment(
    responses: Sequence[ScoredResponse],
    items: Sequence[AssessmentItem],
    config: Optional[ScoringConfig] = None,
    reference_scores: Optional[Mapping[str, Sequence[float]]] = None,
) -> AssessmentScores:
    """
    Score one respondent's assessment.

    Args:
        responses: The respondent's answer events
        items: Item configuration; every category among the items is scored
        config: Scales and composite weight tables
        reference_scores: Optional category → distribution of scaled scores,
            used to attach percentile ranks to subscale scores

    Returns:
        AssessmentScores with a SubscaleScore per category, a CompositeScore
        per configured composite index, the completion status and risk level
    """
    config = config or ScoringConfig()
    reference_scores = reference_scores or {}

    categories: List[str] = []
    for item in items:
        if item.category not in categories:
            categories.append(item.category)

    subscales = {
        category: build_subscale_score(
            category, responses, items, config, reference_scores.get(category)
        )
        for category in categories
    }
    scaled = {
        category: float(score.scaled_score)
        for category, score in subscales.items()
        if score.valid_item_count > 0
    }

    composites = {
        index: build_composite_score(index, scaled, weights)
        for index, weights in config.composite_weights.items()
    }

    item_ids = {item.item_id for item in items}
    answered = {r.item_id for r in responses if r.value is not None and r.item_id in item_ids}
    completion = assess_completion(len(answered), len(item_ids), config)

    if not completion.is_valid:
        logger.warning(
            f"Assessment scored with low completion ({completion.completion_rate:.1f}%)"
        )

    risk_level = assess_risk_level(composites)

    logger.info(
        f"Assessment scored: {len(subscales)} subscales, {len(composites)} composites, "
        f"completion={completion.completion_rate:.1f}%, risk={risk_level}"
    )

    return {
        "subscales": subscales,
        "composites": composites,
        "completion": completion,
        "risk_level": risk_level,
    }
