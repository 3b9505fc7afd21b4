"""Shared domain types for the psychometrics engine.

This package is the single source of truth for domain enums used across
scoring, reliability, item analysis and anomaly detection.

Usage:
    from libs.domain_types import Severity, AnomalyType, RecommendedAction
"""

import enum


class Severity(str, enum.Enum):
    """Ordered severity / priority tag shared by every analysis component.

    Members compare by rank rather than alphabetically, so
    ``Severity.HIGH > Severity.MEDIUM`` holds.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(Severity).index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


class AnomalyType(str, enum.Enum):
    """Kinds of response-quality anomalies."""

    STRAIGHT_LINE_RESPONDING = "straight_line_responding"
    TOO_FAST_COMPLETION = "too_fast_completion"
    TOO_SLOW_COMPLETION = "too_slow_completion"
    EXCESSIVE_REVISIONS = "excessive_revisions"
    INCONSISTENT_PATTERNS = "inconsistent_patterns"
    SUSPICIOUS_TIMING = "suspicious_timing"
    BOT_LIKE_BEHAVIOR = "bot_like_behavior"
    DATA_QUALITY_ISSUE = "data_quality_issue"


class RecommendedAction(str, enum.Enum):
    """What a consumer should do with an anomalous response set."""

    IGNORE = "ignore"
    FLAG = "flag"
    EXCLUDE = "exclude"
    MANUAL_REVIEW = "manual_review"


class RecommendationType(str, enum.Enum):
    """Item-improvement recommendation kinds."""

    REWORD = "reword"
    REMOVE = "remove"
    ADJUST_OPTIONS = "adjust_options"
    CHANGE_CATEGORY = "change_category"
    MANUAL_REVIEW = "manual_review"


class ScoreLevel(str, enum.Enum):
    """Five qualitative bands for 0-100 scores."""

    VERY_LOW = "very_low"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"


class CompositeIndex(str, enum.Enum):
    """Composite indices with built-in weight tables and descriptions."""

    CODEPENDENCY = "CI"
    AUTONOMY_RESILIENCE = "ARI"
    TRANSITION_RISK = "TRS"


__all__ = [
    "Severity",
    "AnomalyType",
    "RecommendedAction",
    "RecommendationType",
    "ScoreLevel",
    "CompositeIndex",
]
