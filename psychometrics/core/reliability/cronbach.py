r"""
Cronbach's alpha calculation for internal consistency.

Cronbach's alpha indicates how closely related a set of items are as a
group. For a subscale, higher alpha indicates that the items are measuring
the same underlying construct.

Formula:
    α = (k / (k-1)) × (1 - Σσ²ᵢ / σ²ₜ)

Where:
    k = number of items
    σ²ᵢ = sample variance of item i
    σ²ₜ = sample variance of respondent total scores

The input is an items × respondents matrix: row i holds every respondent's
answer to item i, and column j holds one respondent's answers.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from ._constants import (
    ALPHA_THRESHOLDS,
    MIN_ITEMS_FOR_ALPHA_IF_DELETED,
    ProblematicItem,
)

logger = logging.getLogger(__name__)


def get_alpha_interpretation(alpha: float) -> str:
    """
    Band label for an alpha value.

    ALPHA_THRESHOLDS is ordered from the highest band down; anything below
    the lowest bound is "unacceptable".
    """
    for label, lower_bound in ALPHA_THRESHOLDS.items():
        if alpha >= lower_bound:
            return label
    return "unacceptable"


def total_score_variance(matrix: np.ndarray) -> float:
    """Sample variance (ddof=1) of per-respondent totals."""
    totals = matrix.sum(axis=0)
    if totals.size < 2:
        return 0.0
    return float(np.var(totals, ddof=1))


def calculate_cronbachs_alpha(matrix: np.ndarray) -> float:
    """
    Calculate Cronbach's alpha for an items × respondents matrix.

    Args:
        matrix: 2-D array with at least 2 rows (items) and 2 columns
            (respondents)

    Returns:
        Alpha clamped to [0, 1]. A matrix whose totals have zero variance
        (every respondent scored the same) returns 0.0.
    """
    num_items = matrix.shape[0]
    total_variance = total_score_variance(matrix)

    if num_items < 2 or total_variance == 0:
        return 0.0

    item_variances = np.var(matrix, axis=1, ddof=1)
    sum_item_variances = float(item_variances.sum())

    alpha = (num_items / (num_items - 1)) * (1 - sum_item_variances / total_variance)

    return max(0.0, min(1.0, alpha))


def calculate_alpha_if_deleted(
    matrix: np.ndarray, item_ids: Sequence[str]
) -> Dict[str, Optional[float]]:
    """
    Alpha of the remaining items after dropping each item in turn.

    Needs at least 3 items so that 2 remain; with fewer items every entry
    is None.
    """
    num_items = matrix.shape[0]
    if num_items < MIN_ITEMS_FOR_ALPHA_IF_DELETED:
        return {item_id: None for item_id in item_ids}

    result: Dict[str, Optional[float]] = {}
    for index, item_id in enumerate(item_ids):
        remaining = np.delete(matrix, index, axis=0)
        result[item_id] = round(calculate_cronbachs_alpha(remaining), 4)

    return result


def get_problematic_items(
    alpha_if_deleted: Dict[str, Optional[float]],
    current_alpha: float,
    min_gain: float = 0.0,
) -> List[ProblematicItem]:
    """
    Identify items whose removal would raise Cronbach's alpha.

    Args:
        alpha_if_deleted: Item id → alpha without that item
        current_alpha: Alpha with every item included
        min_gain: Only report items whose removal raises alpha by more than
            this amount

    Returns:
        ProblematicItem entries sorted by descending alpha gain
    """
    problematic: List[ProblematicItem] = []

    for item_id, alpha_without in alpha_if_deleted.items():
        if alpha_without is None:
            continue
        gain = alpha_without - current_alpha
        if gain > min_gain:
            problematic.append(
                {
                    "item_id": item_id,
                    "alpha_if_deleted": alpha_without,
                    "alpha_gain": round(gain, 4),
                    "recommendation": (
                        f"Removing this item raises alpha from {current_alpha:.3f} "
                        f"to {alpha_without:.3f}. Review for revision or removal."
                    ),
                }
            )

    problematic.sort(key=lambda item: item["alpha_gain"], reverse=True)

    if problematic:
        logger.info(
            f"{len(problematic)} items would raise alpha if removed "
            f"(current alpha={current_alpha:.3f})"
        )

    return problematic
