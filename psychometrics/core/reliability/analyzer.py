"""
Full reliability analysis for a set of items answered by the same
respondents.

Combines Cronbach's alpha, split-half reliability, the standard error of
measurement, a 95% confidence interval around alpha, and exact
alpha-if-item-deleted values.

Standard error of measurement:
    SEM = sqrt(σ²ₜ × (1 - α))

Confidence interval around alpha:
    se = sqrt(2α(1 - α) / (df + 1)),  df = n - 1
    CI = α ± 1.96 × se, clamped to [0, 1]
"""

import copy
import logging
import math
from typing import Optional, Sequence, Tuple

import numpy as np

from psychometrics.core.cache import SimpleCache, cache_key
from psychometrics.core.exceptions import (
    InsufficientItemsError,
    InsufficientSampleError,
    MismatchedLengthError,
)

from ._constants import (
    ALPHA_CI_Z,
    MIN_ITEMS,
    MIN_RESPONDENTS,
    RELIABILITY_CACHE_PREFIX,
)
from ._types import ReliabilityAnalysis
from .cronbach import (
    calculate_alpha_if_deleted,
    calculate_cronbachs_alpha,
    get_alpha_interpretation,
    total_score_variance,
)
from .split_half import calculate_split_half_reliability

logger = logging.getLogger(__name__)


def _default_item_ids(num_items: int) -> list[str]:
    return [f"item_{i}" for i in range(num_items)]


def build_response_matrix(
    item_responses: Sequence[Sequence[float]],
    item_ids: Optional[Sequence[str]] = None,
) -> Tuple[np.ndarray, list[str]]:
    """
    Validate the input and build an items × respondents matrix.

    Raises:
        InsufficientItemsError: Fewer than 2 items
        MismatchedLengthError: Item arrays of different lengths, or item_ids
            not matching the number of items
        InsufficientSampleError: Fewer than 2 respondents
    """
    num_items = len(item_responses)
    if num_items < MIN_ITEMS:
        raise InsufficientItemsError(num_items, MIN_ITEMS, context="reliability analysis")

    ids = list(item_ids) if item_ids is not None else _default_item_ids(num_items)
    if len(ids) != num_items:
        raise MismatchedLengthError(
            f"Got {len(ids)} item ids for {num_items} items",
            context="reliability analysis",
        )

    lengths = {len(responses) for responses in item_responses}
    if len(lengths) != 1:
        raise MismatchedLengthError(
            f"Item response arrays have different lengths: {sorted(lengths)}",
            context="reliability analysis",
        )

    num_respondents = lengths.pop()
    if num_respondents < MIN_RESPONDENTS:
        raise InsufficientSampleError(
            num_respondents, MIN_RESPONDENTS, context="reliability analysis"
        )

    matrix = np.asarray(item_responses, dtype=float)
    return matrix, ids


def calculate_alpha_confidence_interval(
    alpha: float, num_respondents: int, z: float = ALPHA_CI_Z
) -> Tuple[float, float]:
    """95% confidence interval around alpha, clamped to [0, 1]."""
    df = num_respondents - 1
    se = math.sqrt(max(0.0, 2 * alpha * (1 - alpha)) / (df + 1))
    lower = max(0.0, alpha - z * se)
    upper = min(1.0, alpha + z * se)
    return (round(lower, 4), round(upper, 4))


def calculate_reliability(
    item_responses: Sequence[Sequence[float]],
    item_ids: Optional[Sequence[str]] = None,
) -> ReliabilityAnalysis:
    """
    Calculate reliability metrics for a set of items.

    Args:
        item_responses: One response array per item; every array has one
            entry per respondent, in the same respondent order
        item_ids: Optional ids for the items (defaults to item_0, item_1, ...)

    Returns:
        ReliabilityAnalysis

    Raises:
        InsufficientItemsError: Fewer than 2 items
        MismatchedLengthError: Misaligned item arrays or ids
        InsufficientSampleError: Fewer than 2 respondents

    Example:
        >>> result = calculate_reliability([[1, 2, 3], [2, 3, 4]])
        >>> result["cronbachs_alpha"]
        1.0
    """
    matrix, ids = build_response_matrix(item_responses, item_ids)
    num_items, num_respondents = matrix.shape

    alpha = calculate_cronbachs_alpha(matrix)
    split_half = calculate_split_half_reliability(matrix)
    total_variance = total_score_variance(matrix)
    sem = math.sqrt(total_variance * (1 - alpha))

    if total_variance == 0:
        logger.warning(
            f"Total scores have zero variance across {num_respondents} respondents; "
            "alpha reported as 0.0"
        )

    result: ReliabilityAnalysis = {
        "cronbachs_alpha": round(alpha, 4),
        "split_half_reliability": round(split_half, 4),
        "standard_error_of_measurement": round(sem, 4),
        "confidence_interval": calculate_alpha_confidence_interval(alpha, num_respondents),
        "num_items": num_items,
        "num_respondents": num_respondents,
        "interpretation": get_alpha_interpretation(alpha),
        "alpha_if_deleted": calculate_alpha_if_deleted(matrix, ids),
    }

    logger.info(
        f"Reliability calculated: alpha={alpha:.4f} ({result['interpretation']}), "
        f"split_half={split_half:.4f}, items={num_items}, respondents={num_respondents}"
    )

    return result


class ReliabilityAnalyzer:
    """
    Memoising wrapper around calculate_reliability().

    Results are cached by the set of item ids, so the same items requested in
    a different order hit the same entry. The cache is injected so that
    callers control its lifetime.

    Args:
        cache: Store for results; a private SimpleCache by default
        ttl: Lifetime of cached results in seconds (None = cache default)
    """

    def __init__(self, cache: Optional[SimpleCache] = None, ttl: Optional[float] = None):
        self.cache = cache if cache is not None else SimpleCache()
        self.ttl = ttl

    @staticmethod
    def make_cache_key(item_ids: Sequence[str]) -> str:
        return RELIABILITY_CACHE_PREFIX + cache_key(*sorted(item_ids))

    def analyze(
        self,
        item_responses: Sequence[Sequence[float]],
        item_ids: Optional[Sequence[str]] = None,
    ) -> ReliabilityAnalysis:
        """
        Reliability for a named item set, memoised by its ids.

        Without item ids there is nothing stable to key on, so the analysis
        runs uncached. Cached results are returned as copies.
        """
        if item_ids is None:
            return calculate_reliability(item_responses)

        ids = list(item_ids)
        key = self.make_cache_key(ids)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Reliability cache hit for {len(ids)} items")
            return copy.deepcopy(cached)

        result = calculate_reliability(item_responses, ids)
        self.cache.set(key, copy.deepcopy(result), ttl=self.ttl)
        return result

    def invalidate(self) -> int:
        """Drop every cached reliability result. Returns the count removed."""
        return self.cache.delete_by_prefix(RELIABILITY_CACHE_PREFIX)
