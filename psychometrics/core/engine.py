"""
Stateful facade over the scoring and analysis functions.

A PsychometricEngine owns two stores:
- the norming table: item id → NormingStatistics, replaced on every
  recomputation and cleared only by reset()
- the reliability cache used by its ReliabilityAnalyzer

Both are injected (or created per instance), so separate engines never share
state. Everything else delegates to the pure functions in psychometrics.core.

Usage:
    engine = PsychometricEngine()
    engine.calculate_norming_statistics(sample)
    scores = engine.convert_to_normative_scores(5, sample.item_id)
    anomalies = engine.detect_anomalies(events)
"""

import copy
import logging
import math
import uuid
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, TypedDict

from psychometrics.core.anomaly_detection import AnomalyResult, detect_anomalies
from psychometrics.core.cache import SimpleCache
from psychometrics.core.config import AnomalyThresholds, ScoringConfig, settings
from psychometrics.core.item_analysis import ItemAnalysis, analyze_item
from psychometrics.core.norming import (
    NormativeScores,
    NormingStatistics,
    calculate_norming_statistics,
    convert_to_normative_scores,
)
from psychometrics.core.reliability import ReliabilityAnalysis, ReliabilityAnalyzer
from psychometrics.core.stats_utils import safe_mean, sample_std
from psychometrics.models import RawResponseData, ScoredResponse

logger = logging.getLogger(__name__)

# Share of estimated anomalies attributed to each anomaly family when only
# an aggregate anomaly rate is known
QUALITY_INDICATOR_SHARES = {
    "straight_line_responding": 0.4,
    "excessive_speed": 0.3,
    "inconsistent_patterns": 0.2,
    "technical_issues": 0.1,
}


class ItemMetrics(TypedDict):
    item_id: str
    average_response_time: float
    difficulty: float
    discrimination: float
    response_variance: float
    anomaly_count: int


class CategorySummary(TypedDict):
    category: str
    average_scores: List[float]
    reliability: float
    sample_size: int
    standard_error: float


class QualityIndicators(TypedDict):
    straight_line_responding: float
    excessive_speed: float
    inconsistent_patterns: float
    technical_issues: float


class OverviewStatistics(TypedDict):
    total_responses: int
    items_normed: int
    average_response_time: float
    anomaly_rate: float
    data_quality_score: float


def _estimated_anomaly_count(stats: NormingStatistics) -> int:
    return math.floor(stats["sample_size"] * stats["quality_metrics"]["anomaly_rate"])


class PsychometricEngine:
    """
    Norming table, reliability cache and analysis entry points for one run.

    Args:
        config: Scoring configuration shared by every analysis
        thresholds: Anomaly detector thresholds
        norming_store: Store for norming statistics (a fresh SimpleCache by
            default)
        reliability_cache: Store for reliability results (a fresh
            SimpleCache by default)
        run_id: Identifier attached to log records; generated if omitted
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        thresholds: Optional[AnomalyThresholds] = None,
        norming_store: Optional[SimpleCache] = None,
        reliability_cache: Optional[SimpleCache] = None,
        run_id: Optional[str] = None,
    ):
        self.config = config or ScoringConfig()
        self.thresholds = thresholds or AnomalyThresholds(scale=self.config.source_range)
        self.norming_store = norming_store if norming_store is not None else SimpleCache()
        self.reliability = ReliabilityAnalyzer(
            cache=reliability_cache
            if reliability_cache is not None
            else SimpleCache(default_ttl=settings.RELIABILITY_CACHE_TTL or None)
        )
        self.run_id = run_id or uuid.uuid4().hex[:12]

    # ------------------------------------------------------------------
    # Norming
    # ------------------------------------------------------------------

    def calculate_norming_statistics(self, data: RawResponseData) -> NormingStatistics:
        """Compute norms for ``data`` and store them under its item id."""
        stats = calculate_norming_statistics(data, self.config)
        self.norming_store.set(data.item_id, copy.deepcopy(stats))
        logger.debug(
            f"Stored norming statistics for item {data.item_id}",
            extra={"run_id": self.run_id, "item_id": data.item_id},
        )
        return stats

    def get_norming_statistics(self, item_id: str) -> Optional[NormingStatistics]:
        """A copy of the stored norms for ``item_id``, or None."""
        stats = self.norming_store.get(item_id)
        return copy.deepcopy(stats) if stats is not None else None

    def reset(self, item_id: Optional[str] = None) -> None:
        """Clear stored norms for one item, or everything when item_id is None."""
        if item_id is None:
            self.norming_store.clear()
            self.reliability.invalidate()
            logger.info("Norming table reset", extra={"run_id": self.run_id})
        else:
            self.norming_store.delete(item_id)

    def convert_to_normative_scores(
        self, raw_score: float, item_id: str
    ) -> Optional[NormativeScores]:
        """Normative scores against stored norms; None if the item was never normed."""
        stats = self.norming_store.get(item_id)
        if stats is None:
            return None
        return convert_to_normative_scores(raw_score, stats)

    # ------------------------------------------------------------------
    # Item and scale analysis
    # ------------------------------------------------------------------

    def analyze_item(
        self,
        data: RawResponseData,
        total_scores: Optional[Sequence[float]] = None,
    ) -> ItemAnalysis:
        return analyze_item(data, total_scores, self.config)

    def calculate_reliability(
        self,
        item_responses: Sequence[Sequence[float]],
        item_ids: Optional[Sequence[str]] = None,
    ) -> ReliabilityAnalysis:
        return self.reliability.analyze(item_responses, item_ids)

    def detect_anomalies(self, events: Sequence[ScoredResponse]) -> List[AnomalyResult]:
        return detect_anomalies(events, self.thresholds)

    # ------------------------------------------------------------------
    # Aggregates over the norming table
    # ------------------------------------------------------------------

    def _all_norms(self) -> List[NormingStatistics]:
        return list(self.norming_store.values())

    def get_item_metrics(self) -> List[ItemMetrics]:
        """Per-item quality summary of every normed item."""
        return [
            {
                "item_id": stats["item_id"],
                "average_response_time": stats["quality_metrics"]["average_response_time"],
                "difficulty": stats["statistics"]["item_difficulty"],
                "discrimination": stats["statistics"]["item_discrimination"],
                "response_variance": stats["quality_metrics"]["response_variance"],
                "anomaly_count": _estimated_anomaly_count(stats),
            }
            for stats in self._all_norms()
        ]

    def summarize_categories(self) -> List[CategorySummary]:
        """
        Per-category summary of normed items.

        standard_error is the SD of the item means divided by √(item count);
        0.0 for a single-item category.
        """
        grouped: Dict[str, List[NormingStatistics]] = defaultdict(list)
        for stats in self._all_norms():
            grouped[stats["category"]].append(stats)

        summaries: List[CategorySummary] = []
        for category, entries in grouped.items():
            means = [s["statistics"]["mean"] for s in entries]
            summaries.append(
                {
                    "category": category,
                    "average_scores": means,
                    "reliability": round(
                        safe_mean(
                            [s["quality_metrics"]["reliability_coefficient"] for s in entries]
                        ),
                        4,
                    ),
                    "sample_size": sum(s["sample_size"] for s in entries),
                    "standard_error": round(sample_std(means) / math.sqrt(len(means)), 4),
                }
            )

        return summaries

    def calculate_quality_indicators(self) -> QualityIndicators:
        """
        Estimated share of responses per anomaly family.

        Each item's estimated anomaly count (sample size × anomaly rate) is
        apportioned 40/30/20/10 across straight-lining, speed,
        inconsistency and technical issues.
        """
        total = 0
        counts = {name: 0 for name in QUALITY_INDICATOR_SHARES}

        for stats in self._all_norms():
            total += stats["sample_size"]
            anomaly_count = _estimated_anomaly_count(stats)
            for name, share in QUALITY_INDICATOR_SHARES.items():
                counts[name] += math.floor(anomaly_count * share)

        return {
            "straight_line_responding": counts["straight_line_responding"] / total if total else 0.0,
            "excessive_speed": counts["excessive_speed"] / total if total else 0.0,
            "inconsistent_patterns": counts["inconsistent_patterns"] / total if total else 0.0,
            "technical_issues": counts["technical_issues"] / total if total else 0.0,
        }

    def calculate_overview(self) -> OverviewStatistics:
        """Response-weighted overview of every normed item."""
        norms = self._all_norms()
        total = sum(s["sample_size"] for s in norms)
        time_spent = sum(
            s["quality_metrics"]["average_response_time"] * s["sample_size"] for s in norms
        )
        anomalies = sum(_estimated_anomaly_count(s) for s in norms)
        quality = safe_mean([s["quality_metrics"]["consistency_score"] for s in norms])

        overview: OverviewStatistics = {
            "total_responses": total,
            "items_normed": len(norms),
            "average_response_time": round(time_spent / total, 2) if total else 0.0,
            "anomaly_rate": round(anomalies / total, 4) if total else 0.0,
            "data_quality_score": round(quality, 4),
        }

        logger.info(
            f"Overview: {overview['items_normed']} items, "
            f"{overview['total_responses']} responses, "
            f"anomaly_rate={overview['anomaly_rate']:.3f}",
            extra={"run_id": self.run_id},
        )

        return overview
