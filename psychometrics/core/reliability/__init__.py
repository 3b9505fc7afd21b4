r"""
Reliability estimation for questionnaire subscales.

This package implements:
- Cronbach's alpha (internal consistency) with exact alpha-if-item-deleted
- Split-half reliability (contiguous halves with Spearman-Brown correction)
- Standard error of measurement and a 95% confidence interval around alpha

Usage Example
-------------
    from psychometrics.core.reliability import calculate_reliability, get_problematic_items

    result = calculate_reliability(item_responses, item_ids=["q1", "q2", "q3"])

    print(f"Cronbach's alpha: {result['cronbachs_alpha']:.4f}")
    print(f"Interpretation: {result['interpretation']}")

    for item in get_problematic_items(result["alpha_if_deleted"], result["cronbachs_alpha"]):
        print(f"  {item['item_id']}: {item['recommendation']}")

Repeated analyses of the same item set can be memoised with
ReliabilityAnalyzer, which keys its cache by the unordered set of item ids.
"""

from ._constants import ALPHA_THRESHOLDS, ProblematicItem
from ._types import ReliabilityAnalysis
from .analyzer import (
    ReliabilityAnalyzer,
    build_response_matrix,
    calculate_alpha_confidence_interval,
    calculate_reliability,
)
from .cronbach import (
    calculate_alpha_if_deleted,
    calculate_cronbachs_alpha,
    get_alpha_interpretation,
    get_problematic_items,
)
from .split_half import (
    apply_spearman_brown_correction,
    calculate_split_half_reliability,
)

__all__ = [
    "ALPHA_THRESHOLDS",
    "ProblematicItem",
    "ReliabilityAnalysis",
    "ReliabilityAnalyzer",
    "apply_spearman_brown_correction",
    "build_response_matrix",
    "calculate_alpha_confidence_interval",
    "calculate_alpha_if_deleted",
    "calculate_cronbachs_alpha",
    "calculate_reliability",
    "calculate_split_half_reliability",
    "get_alpha_interpretation",
    "get_problematic_items",
]
