"""
Unit tests for reliability estimation.

Test Categories:
- Cronbach's alpha calculation with known datasets
- Interpretation thresholds (excellent, good, acceptable, etc.)
- Edge cases (insufficient data, zero variance, negative alpha)
- Split-half reliability and the Spearman-Brown correction
- Alpha-if-item-deleted and problematic item identification
- Memoisation by item set
"""

import numpy as np
import pytest

from psychometrics.core.cache import SimpleCache
from psychometrics.core.exceptions import (
    InsufficientItemsError,
    InsufficientSampleError,
    MismatchedLengthError,
)
from psychometrics.core.reliability import (
    ALPHA_THRESHOLDS,
    ReliabilityAnalyzer,
    apply_spearman_brown_correction,
    calculate_alpha_confidence_interval,
    calculate_cronbachs_alpha,
    calculate_reliability,
    calculate_split_half_reliability,
    get_alpha_interpretation,
    get_problematic_items,
)

# Items A and B are identical; C is unrelated to both
MIXED_ITEMS = [
    [1, 2, 3, 4, 5],
    [1, 2, 3, 4, 5],
    [5, 1, 4, 2, 3],
]

# Every item ranks respondents identically
CONSISTENT_ITEMS = [
    [1, 2, 3, 4, 5],
    [2, 3, 4, 5, 6],
    [1, 2, 3, 4, 5],
]


class TestCronbachsAlpha:
    """Tests for Cronbach's alpha."""

    def test_perfectly_consistent_items(self):
        result = calculate_reliability([[1, 2, 3], [2, 3, 4]])
        assert result["cronbachs_alpha"] == pytest.approx(1.0)
        assert result["interpretation"] == "excellent"

    def test_known_dataset(self):
        # item variances 2.5 each, total variance 9.5: 1.5 * (1 - 7.5 / 9.5)
        result = calculate_reliability(MIXED_ITEMS)
        assert result["cronbachs_alpha"] == pytest.approx(0.3158, abs=1e-4)
        assert result["interpretation"] == "unacceptable"

    def test_negative_alpha_clamped_to_zero(self):
        assert calculate_cronbachs_alpha(np.array([[1, 2, 3], [3, 1, 2]], dtype=float)) == 0.0

    def test_zero_total_variance_gives_zero(self):
        result = calculate_reliability([[1, 2, 3, 4, 5], [5, 4, 3, 2, 1]])
        assert result["cronbachs_alpha"] == 0.0

    def test_alpha_always_in_unit_interval(self):
        rng = np.random.default_rng(7)
        for _ in range(20):
            items = rng.integers(1, 8, size=(4, 12)).tolist()
            alpha = calculate_reliability(items)["cronbachs_alpha"]
            assert 0.0 <= alpha <= 1.0

    def test_counts(self):
        result = calculate_reliability(MIXED_ITEMS)
        assert result["num_items"] == 3
        assert result["num_respondents"] == 5


class TestInterpretation:
    """Tests for alpha interpretation thresholds."""

    @pytest.mark.parametrize(
        "alpha,expected",
        [
            (0.95, "excellent"),
            (0.90, "excellent"),
            (0.85, "good"),
            (0.75, "acceptable"),
            (0.65, "questionable"),
            (0.55, "poor"),
            (0.30, "unacceptable"),
        ],
    )
    def test_bands(self, alpha, expected):
        assert get_alpha_interpretation(alpha) == expected

    def test_threshold_values(self):
        assert ALPHA_THRESHOLDS["acceptable"] == 0.70


class TestPreconditions:
    """Tests for reliability input validation."""

    def test_single_item_raises(self):
        with pytest.raises(InsufficientItemsError):
            calculate_reliability([[1, 2, 3]])

    def test_mismatched_item_lengths_raise(self):
        with pytest.raises(MismatchedLengthError):
            calculate_reliability([[1, 2, 3], [1, 2]])

    def test_mismatched_item_ids_raise(self):
        with pytest.raises(MismatchedLengthError):
            calculate_reliability([[1, 2, 3], [1, 2, 3]], item_ids=["only_one"])

    def test_single_respondent_raises(self):
        with pytest.raises(InsufficientSampleError):
            calculate_reliability([[1], [2]])


class TestSplitHalf:
    """Tests for split-half reliability."""

    def test_spearman_brown_correction(self):
        assert apply_spearman_brown_correction(0.5) == pytest.approx(2 / 3)
        assert apply_spearman_brown_correction(0.0) == 0.0
        assert apply_spearman_brown_correction(1.0) == 1.0

    def test_spearman_brown_at_minus_one(self):
        assert apply_spearman_brown_correction(-1.0) == -1.0
        assert apply_spearman_brown_correction(-1.5) == -1.0

    def test_identical_halves(self):
        matrix = np.array([[1, 2, 3, 4], [1, 2, 3, 4]], dtype=float)
        assert calculate_split_half_reliability(matrix) == pytest.approx(1.0)

    def test_contiguous_halves(self):
        # First half = item 0; second half = items 1 + 2, which are constant
        # in total, so the correlation is undefined
        matrix = np.array([[1, 2, 3], [1, 2, 3], [3, 2, 1]], dtype=float)
        assert calculate_split_half_reliability(matrix) == 0.0

    def test_result_bounded(self):
        result = calculate_reliability(MIXED_ITEMS)
        assert -1.0 <= result["split_half_reliability"] <= 1.0


class TestMeasurementError:
    """Tests for SEM and the confidence interval around alpha."""

    def test_sem_zero_for_perfect_alpha(self):
        result = calculate_reliability([[1, 2, 3], [2, 3, 4]])
        assert result["standard_error_of_measurement"] == pytest.approx(0.0)

    def test_sem_formula(self):
        result = calculate_reliability(MIXED_ITEMS)
        alpha = 1.5 * (1 - 7.5 / 9.5)
        assert result["standard_error_of_measurement"] == pytest.approx(
            (9.5 * (1 - alpha)) ** 0.5, abs=1e-4
        )

    def test_confidence_interval(self):
        lower, upper = calculate_alpha_confidence_interval(0.8, 101)
        assert lower == pytest.approx(0.6897, abs=1e-4)
        assert upper == pytest.approx(0.9103, abs=1e-4)

    def test_confidence_interval_clamped(self):
        assert calculate_alpha_confidence_interval(1.0, 10) == (1.0, 1.0)
        lower, upper = calculate_alpha_confidence_interval(0.05, 3)
        assert lower == 0.0
        assert upper <= 1.0


class TestAlphaIfDeleted:
    """Tests for alpha-if-item-deleted and problematic items."""

    def test_exact_values(self):
        result = calculate_reliability(MIXED_ITEMS, item_ids=["a", "b", "c"])
        assert result["alpha_if_deleted"]["c"] == pytest.approx(1.0)
        assert result["alpha_if_deleted"]["a"] == 0.0

    def test_two_items_give_none(self):
        result = calculate_reliability([[1, 2, 3], [2, 3, 4]], item_ids=["x", "y"])
        assert result["alpha_if_deleted"] == {"x": None, "y": None}

    def test_default_item_ids(self):
        result = calculate_reliability(MIXED_ITEMS)
        assert list(result["alpha_if_deleted"]) == ["item_0", "item_1", "item_2"]

    def test_problematic_items(self):
        result = calculate_reliability(MIXED_ITEMS, item_ids=["a", "b", "c"])

        problematic = get_problematic_items(
            result["alpha_if_deleted"], result["cronbachs_alpha"]
        )

        assert [p["item_id"] for p in problematic] == ["c"]
        assert problematic[0]["alpha_gain"] == pytest.approx(0.6842, abs=1e-4)
        assert "raises alpha" in problematic[0]["recommendation"]

    def test_no_problematic_items_when_none_values(self):
        assert get_problematic_items({"x": None, "y": None}, 0.5) == []


class TestReliabilityAnalyzer:
    """Tests for memoised reliability analysis."""

    def test_cache_hit_for_same_item_set(self):
        analyzer = ReliabilityAnalyzer()

        first = analyzer.analyze(MIXED_ITEMS, ["a", "b", "c"])
        # Same ids with different data: the stored result is served
        second = analyzer.analyze(CONSISTENT_ITEMS, ["c", "a", "b"])

        assert second == first
        assert len(analyzer.cache) == 1

    def test_unnamed_items_are_not_cached(self):
        analyzer = ReliabilityAnalyzer()

        consistent = analyzer.analyze(CONSISTENT_ITEMS)
        mixed = analyzer.analyze(MIXED_ITEMS)

        assert consistent["cronbachs_alpha"] == pytest.approx(1.0)
        assert mixed["cronbachs_alpha"] == calculate_reliability(MIXED_ITEMS)["cronbachs_alpha"]
        assert mixed["cronbachs_alpha"] < 1.0
        assert len(analyzer.cache) == 0

    def test_mutating_a_result_does_not_touch_the_cache(self):
        analyzer = ReliabilityAnalyzer()

        first = analyzer.analyze(MIXED_ITEMS, ["a", "b", "c"])
        alpha = first["cronbachs_alpha"]
        first["cronbachs_alpha"] = -1.0
        first["alpha_if_deleted"].clear()

        second = analyzer.analyze(MIXED_ITEMS, ["a", "b", "c"])
        assert second["cronbachs_alpha"] == alpha
        assert len(second["alpha_if_deleted"]) == 3

        second["cronbachs_alpha"] = -1.0
        assert analyzer.analyze(MIXED_ITEMS, ["a", "b", "c"])["cronbachs_alpha"] == alpha

    def test_cache_key_order_independent(self):
        assert ReliabilityAnalyzer.make_cache_key(["a", "b"]) == ReliabilityAnalyzer.make_cache_key(
            ["b", "a"]
        )
        assert ReliabilityAnalyzer.make_cache_key(["a", "b"]) != ReliabilityAnalyzer.make_cache_key(
            ["a", "c"]
        )

    def test_injected_cache_is_used(self):
        cache = SimpleCache()
        analyzer = ReliabilityAnalyzer(cache=cache)

        analyzer.analyze(MIXED_ITEMS, ["a", "b", "c"])

        assert len(cache) == 1

    def test_invalidate(self):
        analyzer = ReliabilityAnalyzer()
        analyzer.analyze(MIXED_ITEMS, ["a", "b", "c"])

        assert analyzer.invalidate() == 1
        assert len(analyzer.cache) == 0

    def test_errors_are_not_cached(self):
        analyzer = ReliabilityAnalyzer()
        with pytest.raises(InsufficientItemsError):
            analyzer.analyze([[1, 2, 3]], ["a"])
        assert len(analyzer.cache) == 0
