"""
Small numeric helpers shared by the analysis modules.

All helpers are total over their documented inputs: degenerate inputs
(empty lists, zero variance) return 0.0 or None instead of raising, so that
data-quality conditions never surface as exceptions.
"""

import math
import statistics
from collections import Counter
from typing import Dict, Optional, Sequence


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp ``value`` into ``[lower, upper]``."""
    return max(lower, min(upper, value))


def safe_mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return statistics.fmean(values)


def sample_variance(values: Sequence[float]) -> float:
    """Sample variance (n-1 denominator), 0.0 with fewer than 2 values."""
    if len(values) < 2:
        return 0.0
    return statistics.variance(values)


def sample_std(values: Sequence[float]) -> float:
    """Sample standard deviation (n-1 denominator)."""
    return math.sqrt(sample_variance(values))


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> Optional[float]:
    """
    Calculate Pearson correlation coefficient between two sequences.

    Uses the formula:
        r = Σ((xi - x̄)(yi - ȳ)) / √(Σ(xi - x̄)² × Σ(yi - ȳ)²)

    Returns:
        Pearson correlation (-1.0 to 1.0), or None if it cannot be calculated
        (length mismatch, fewer than 2 points, or zero variance)
    """
    if len(x) != len(y) or len(x) < 2:
        return None

    n = len(x)
    mean_x = sum(x) / n
    mean_y = sum(y) / n

    covariance = sum((x[i] - mean_x) * (y[i] - mean_y) for i in range(n))
    var_x = sum((xi - mean_x) ** 2 for xi in x)
    var_y = sum((yi - mean_y) ** 2 for yi in y)

    if var_x == 0 or var_y == 0:
        return None

    r = covariance / math.sqrt(var_x * var_y)

    # Clamp to valid range (floating point errors may cause slight exceeding)
    return clamp(r, -1.0, 1.0)


def value_counts(values: Sequence[object]) -> Dict[str, int]:
    """Frequency of each value, keyed by its string form."""
    return dict(Counter(str(v) for v in values))


def shannon_entropy(values: Sequence[object]) -> float:
    """Shannon entropy (bits) of the empirical distribution of ``values``."""
    if not values:
        return 0.0
    total = len(values)
    entropy = 0.0
    for count in Counter(values).values():
        p = count / total
        entropy -= p * math.log2(p)
    return entropy


def longest_run(values: Sequence[object]) -> int:
    """Length of the longest run of consecutive identical values."""
    if not values:
        return 0
    longest = current = 1
    for previous, value in zip(values, values[1:]):
        if value == previous:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest
