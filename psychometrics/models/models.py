"""
Input and output records for the scoring engine.

Input records (AssessmentItem, ScoredResponse, RawResponseData) are supplied
by callers. Output records (SubscaleScore, CompositeScore) are derived and
always recomputable from responses; ``to_dict`` gives a JSON-safe form.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from libs.domain_types import ScoreLevel

from psychometrics.core.datetime_utils import utc_now


@dataclass(frozen=True)
class AssessmentItem:
    """Configured questionnaire item."""

    item_id: str
    category: str
    reverse_scored: bool = False
    weight: float = 1.0
    composite_indices: Sequence[str] = ()


@dataclass(frozen=True)
class ScoredResponse:
    """One answer event. ``value`` is None for an unanswered item."""

    item_id: str
    value: Optional[int]
    timestamp: datetime = field(default_factory=utc_now)
    response_time_ms: Optional[float] = None
    revision_count: int = 0
    category: Optional[str] = None


@dataclass
class RawResponseData:
    """
    Aggregated sample for one item or category.

    ``response_times``, ``revisions``, ``session_ids`` and ``demographics``
    run parallel to ``responses`` (one entry per respondent); any of them may
    be left empty.
    """

    item_id: str
    category: str
    responses: Sequence[float]
    response_times: Sequence[float] = ()
    revisions: Sequence[float] = ()
    session_ids: Sequence[str] = ()
    demographics: Optional[Sequence[Mapping[str, str]]] = None


@dataclass
class SubscaleScore:
    """Scaled score for one category."""

    category: str
    raw_score: float
    scaled_score: int
    valid_item_count: int
    interpretation: ScoreLevel
    percentile: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["interpretation"] = self.interpretation.value
        return data


@dataclass
class CompositeScore:
    """Higher-order index combining several subscales."""

    index: str
    value: float
    level: ScoreLevel
    interpretation: str
    components: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["level"] = self.level.value
        return data
