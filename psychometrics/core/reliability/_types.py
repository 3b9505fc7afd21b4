"""
TypedDict definitions for reliability calculation results.
"""

from typing import Dict, Optional, Tuple, TypedDict


class ReliabilityAnalysis(TypedDict):
    """
    Result structure for calculate_reliability().

    Fields:
        cronbachs_alpha: Internal consistency coefficient, clamped to 0-1.
            Zero total variance yields 0.0.
        split_half_reliability: Spearman-Brown corrected correlation of the
            contiguous item halves (-1 to 1), or 0.0 if the half totals have
            no variance.
        standard_error_of_measurement: sqrt(total_variance × (1 - alpha))
        confidence_interval: (lower, upper) 95% bounds around alpha, clamped
            to 0-1.
        num_items: Number of items analysed.
        num_respondents: Number of respondents (columns).
        interpretation: "excellent", "good", "acceptable", "questionable",
            "poor", or "unacceptable".
        alpha_if_deleted: Item id → alpha of the remaining items. Entries are
            None when only two items are analysed.
    """

    cronbachs_alpha: float
    split_half_reliability: float
    standard_error_of_measurement: float
    confidence_interval: Tuple[float, float]
    num_items: int
    num_respondents: int
    interpretation: str
    alpha_if_deleted: Dict[str, Optional[float]]
