"""
Weighted severity classification shared by the anomaly detectors and the
item analyzer.

A severity is derived from a list of factors, each a (value, threshold,
weight) triple. Each value is normalised against its threshold and capped to
[0, 1]; the weighted mean of the normalised values is bucketed:

    >= 0.95  critical
    >= 0.70  high
    >= 0.40  medium
    else     low
"""

from typing import NamedTuple, Sequence

from libs.domain_types import Severity

from psychometrics.core.stats_utils import clamp

CRITICAL_SEVERITY_SCORE = 0.95
HIGH_SEVERITY_SCORE = 0.70
MEDIUM_SEVERITY_SCORE = 0.40


class SeverityFactor(NamedTuple):
    value: float
    threshold: float
    weight: float


def weighted_severity_score(factors: Sequence[SeverityFactor]) -> float:
    """Weighted mean of each factor's value/threshold ratio (each capped at 1)."""
    total_weight = sum(f.weight for f in factors)
    if total_weight <= 0:
        return 0.0

    weighted = 0.0
    for factor in factors:
        if factor.threshold <= 0:
            normalized = 1.0 if factor.value > 0 else 0.0
        else:
            normalized = clamp(factor.value / factor.threshold, 0.0, 1.0)
        weighted += normalized * factor.weight

    return weighted / total_weight


def classify_severity(score: float) -> Severity:
    if score >= CRITICAL_SEVERITY_SCORE:
        return Severity.CRITICAL
    elif score >= HIGH_SEVERITY_SCORE:
        return Severity.HIGH
    elif score >= MEDIUM_SEVERITY_SCORE:
        return Severity.MEDIUM
    else:
        return Severity.LOW


def determine_severity(factors: Sequence[SeverityFactor]) -> Severity:
    """Classify a list of (value, threshold, weight) factors into a Severity."""
    return classify_severity(weighted_severity_score(factors))
