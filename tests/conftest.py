"""
Pytest configuration and shared fixtures for testing.
"""
import sys
from pathlib import Path

# Add project root to path so libs/ is importable
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import List, Optional, Sequence  # noqa: E402

import pytest  # noqa: E402

from psychometrics.core.config import ScoringConfig  # noqa: E402
from psychometrics.models import (  # noqa: E402
    AssessmentItem,
    RawResponseData,
    ScoredResponse,
)

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def scoring_config() -> ScoringConfig:
    return ScoringConfig()


@pytest.fixture
def raw_sample():
    """Factory for RawResponseData with optional parallel arrays."""

    def _make(
        responses: Sequence[float],
        item_id: str = "q1",
        category: str = "autonomy",
        **kwargs,
    ) -> RawResponseData:
        return RawResponseData(
            item_id=item_id, category=category, responses=list(responses), **kwargs
        )

    return _make


@pytest.fixture
def make_events():
    """Factory for ScoredResponse sequences answered one second apart."""

    def _make(
        values: Sequence[Optional[int]],
        response_times: Optional[Sequence[float]] = None,
        revisions: Optional[Sequence[int]] = None,
        category: str = "autonomy",
    ) -> List[ScoredResponse]:
        events = []
        for i, value in enumerate(values):
            events.append(
                ScoredResponse(
                    item_id=f"q{i + 1}",
                    value=value,
                    timestamp=BASE_TIME + timedelta(seconds=i),
                    response_time_ms=response_times[i] if response_times else None,
                    revision_count=revisions[i] if revisions else 0,
                    category=category,
                )
            )
        return events

    return _make


@pytest.fixture
def assessment_items() -> List[AssessmentItem]:
    """Two categories with one reverse-scored item."""
    return [
        AssessmentItem(item_id="a1", category="autonomy"),
        AssessmentItem(item_id="a2", category="autonomy"),
        AssessmentItem(item_id="a3", category="autonomy", reverse_scored=True),
        AssessmentItem(item_id="c1", category="codependency"),
        AssessmentItem(item_id="c2", category="codependency", weight=2.0),
    ]
