"""
Split-half reliability using contiguous halves.

Items are split into the first ⌊k/2⌋ rows and the remaining rows. Each
respondent's total on each half is computed and the two half totals are
correlated. The raw correlation underestimates full-test reliability (each
half is only half as long), so the Spearman-Brown correction is applied.

Spearman-Brown formula:
    r_full = (2 × r_half) / (1 + r_half)
"""

import logging
from typing import Tuple

import numpy as np

from psychometrics.core.stats_utils import pearson_correlation

logger = logging.getLogger(__name__)


def apply_spearman_brown_correction(r_half: float) -> float:
    """
    Apply the Spearman-Brown prophecy formula to estimate full-test reliability.

    Formula:
        r_full = (2 × r_half) / (1 + r_half)

    Args:
        r_half: Correlation between the two test halves

    Returns:
        Estimated full-test reliability coefficient, clamped to [-1, 1]
    """
    if r_half <= -1.0:
        # Avoid division by zero or negative denominator
        return -1.0

    r_full = (2 * r_half) / (1 + r_half)

    # Clamp to valid range
    return max(-1.0, min(1.0, r_full))


def split_half_totals(matrix: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Per-respondent totals of the first ⌊k/2⌋ items and of the rest."""
    split = matrix.shape[0] // 2
    return matrix[:split].sum(axis=0), matrix[split:].sum(axis=0)


def calculate_split_half_reliability(matrix: np.ndarray) -> float:
    """
    Spearman-Brown corrected split-half reliability of an items × respondents
    matrix.

    Returns:
        Corrected coefficient in [-1, 1]; 0.0 if either half total has zero
        variance.
    """
    first, second = split_half_totals(matrix)
    r_half = pearson_correlation(first.tolist(), second.tolist())

    if r_half is None:
        logger.debug("Split-half correlation undefined (zero variance in a half)")
        return 0.0

    return apply_spearman_brown_correction(r_half)
