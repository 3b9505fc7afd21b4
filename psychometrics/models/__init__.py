"""
Data records consumed and produced by the engine.
"""
from .models import (
    AssessmentItem,
    CompositeScore,
    RawResponseData,
    ScoredResponse,
    SubscaleScore,
)

__all__ = [
    "AssessmentItem",
    "CompositeScore",
    "RawResponseData",
    "ScoredResponse",
    "SubscaleScore",
]
