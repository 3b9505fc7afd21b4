"""
Tests for the norming engine.

Test Categories:
- Percentile rank conventions
- Sample-size and alignment preconditions
- Descriptive statistics on a known sample
- Quality metrics (diversity, consistency, anomaly rate)
- Normative data per legal value
- Conversion of raw scores to normative scores
"""

import pytest

from psychometrics.core.exceptions import InsufficientSampleError, MismatchedLengthError
from psychometrics.core.norming import (
    calculate_norming_statistics,
    calculate_percentile_rank,
    convert_to_normative_scores,
    get_qualitative_description,
    percentile_to_stanine,
)

# mean 4.0, sample variance 28/9
KNOWN_SAMPLE = [1, 2, 3, 4, 5, 6, 7, 4, 4, 4]


class TestCalculatePercentileRank:
    """Tests for calculate_percentile_rank()."""

    @pytest.mark.parametrize(
        "score,expected",
        [(10, 20), (30, 40), (70, 80), (90, 100)],
    )
    def test_non_matching_scores(self, score, expected):
        assert calculate_percentile_rank(score, [20, 40, 60, 80]) == expected

    def test_exact_match_uses_cumulative_convention(self):
        # (below + equal) / n = 2 / 4
        assert calculate_percentile_rank(40, [20, 40, 60, 80]) == 50
        assert calculate_percentile_rank(80, [20, 40, 60, 80]) == 100

    def test_unsorted_distribution(self):
        assert calculate_percentile_rank(30, [80, 20, 60, 40]) == 40

    def test_empty_or_single_distribution(self):
        assert calculate_percentile_rank(70, []) == 50
        assert calculate_percentile_rank(70, [10]) == 50


class TestPreconditions:
    """Tests for norming preconditions."""

    def test_nine_valid_responses_raise(self, raw_sample):
        with pytest.raises(InsufficientSampleError) as exc_info:
            calculate_norming_statistics(raw_sample([4] * 9))
        assert exc_info.value.sample_size == 9
        assert exc_info.value.minimum == 10

    def test_ten_valid_responses_succeed(self, raw_sample):
        stats = calculate_norming_statistics(raw_sample([4] * 10))
        assert stats["sample_size"] == 10

    def test_invalid_responses_do_not_count(self, raw_sample):
        with pytest.raises(InsufficientSampleError):
            calculate_norming_statistics(raw_sample([4] * 9 + [0, 8, 9]))

    def test_invalid_responses_filtered_with_parallel_arrays(self, raw_sample):
        responses = KNOWN_SAMPLE + [0, 8, 9]
        times = [2000.0] * 10 + [100.0, 100.0, 100.0]

        stats = calculate_norming_statistics(raw_sample(responses, response_times=times))

        assert stats["sample_size"] == 10
        assert stats["quality_metrics"]["average_response_time"] == 2000.0

    def test_mismatched_parallel_array_raises(self, raw_sample):
        with pytest.raises(MismatchedLengthError):
            calculate_norming_statistics(
                raw_sample(KNOWN_SAMPLE, response_times=[1000.0] * 9)
            )

    def test_empty_parallel_arrays_allowed(self, raw_sample):
        stats = calculate_norming_statistics(raw_sample(KNOWN_SAMPLE))
        assert stats["quality_metrics"]["average_response_time"] == 0.0


class TestDescriptiveStatistics:
    """Tests for descriptive statistics on a known sample."""

    @pytest.fixture
    def stats(self, raw_sample):
        return calculate_norming_statistics(raw_sample(KNOWN_SAMPLE, item_id="q7"))

    def test_identity(self, stats):
        assert stats["item_id"] == "q7"
        assert stats["category"] == "autonomy"
        assert stats["last_updated"]

    def test_central_tendency(self, stats):
        assert stats["statistics"]["mean"] == pytest.approx(4.0)
        assert stats["statistics"]["median"] == 4.0

    def test_sample_variance_uses_n_minus_one(self, stats):
        assert stats["statistics"]["variance"] == pytest.approx(28 / 9, abs=1e-4)
        assert stats["statistics"]["standard_deviation"] == pytest.approx(1.7638, abs=1e-4)

    def test_symmetric_sample_has_zero_skew(self, stats):
        assert stats["statistics"]["skewness"] == pytest.approx(0.0, abs=1e-4)

    def test_difficulty_and_discrimination(self, stats):
        assert stats["statistics"]["item_difficulty"] == pytest.approx(4 / 7, abs=1e-4)
        # variance / ((7 - 1)^2 / 4)
        assert stats["statistics"]["item_discrimination"] == pytest.approx(
            (28 / 9) / 9, abs=1e-4
        )

    def test_distribution(self, stats):
        assert stats["response_distribution"] == {
            "1": 1, "2": 1, "3": 1, "4": 4, "5": 1, "6": 1, "7": 1,
        }

    def test_confidence_interval(self, stats):
        # 1.96 * sd / sqrt(10)
        assert stats["confidence_interval"] == pytest.approx(1.0932, abs=1e-4)

    def test_demographics_absent(self, stats):
        assert stats["demographic_breakdowns"] is None


class TestZeroVariance:
    """A constant sample is valid data, not an error."""

    def test_constant_sample(self, raw_sample):
        stats = calculate_norming_statistics(raw_sample([4] * 10))

        assert stats["statistics"]["standard_deviation"] == 0.0
        assert stats["statistics"]["skewness"] == 0.0
        assert stats["statistics"]["kurtosis"] == 0.0
        assert set(stats["normative_data"]["z_scores"].values()) == {0.0}
        assert set(stats["normative_data"]["standardized_scores"].values()) == {50}


class TestNormativeData:
    """Tests for per-value normative conversions."""

    @pytest.fixture
    def normative(self, raw_sample):
        return calculate_norming_statistics(raw_sample(KNOWN_SAMPLE))["normative_data"]

    def test_every_legal_value_present(self, normative):
        expected = {str(v) for v in range(1, 8)}
        assert set(normative["percentile_ranks"]) == expected
        assert set(normative["z_scores"]) == expected
        assert set(normative["standardized_scores"]) == expected

    def test_percentile_ranks_are_cumulative(self, normative):
        assert normative["percentile_ranks"]["1"] == 10.0
        assert normative["percentile_ranks"]["4"] == 70.0
        assert normative["percentile_ranks"]["7"] == 100.0

    def test_z_and_standardized_scores(self, normative):
        assert normative["z_scores"]["4"] == 0.0
        assert normative["z_scores"]["7"] == pytest.approx(1.7008, abs=1e-4)
        assert normative["standardized_scores"]["4"] == 50
        assert normative["standardized_scores"]["7"] == 67


class TestQualityMetrics:
    """Tests for diversity, consistency and anomaly rate."""

    def test_uniform_responses_have_full_diversity(self, raw_sample):
        stats = calculate_norming_statistics(
            raw_sample(list(range(1, 8)) * 2, revisions=[0] * 14)
        )
        assert stats["quality_metrics"]["response_variance"] == pytest.approx(1.0)
        assert stats["quality_metrics"]["consistency_score"] == pytest.approx(1.0)

    def test_revisions_reduce_consistency(self, raw_sample):
        stats = calculate_norming_statistics(
            raw_sample(list(range(1, 8)) * 2, revisions=[5] * 14)
        )
        assert stats["quality_metrics"]["consistency_score"] == pytest.approx(0.5)

    def test_constant_responses_have_zero_diversity(self, raw_sample):
        stats = calculate_norming_statistics(raw_sample([4] * 10))
        assert stats["quality_metrics"]["response_variance"] == 0.0
        assert stats["quality_metrics"]["consistency_score"] == 0.0

    def test_straight_lined_sample_anomaly_rate(self, raw_sample):
        stats = calculate_norming_statistics(
            raw_sample([4] * 10, response_times=[1000.0] * 10)
        )
        assert stats["quality_metrics"]["anomaly_rate"] == pytest.approx(0.5)

    def test_anomaly_rate_capped_at_one(self, raw_sample):
        stats = calculate_norming_statistics(
            raw_sample([4] * 10, response_times=[100.0] * 10)
        )
        assert stats["quality_metrics"]["anomaly_rate"] == 1.0

    def test_all_metrics_bounded(self, raw_sample):
        stats = calculate_norming_statistics(
            raw_sample(KNOWN_SAMPLE, response_times=[300.0] * 10, revisions=[20] * 10)
        )
        for name in ("response_variance", "consistency_score", "anomaly_rate",
                     "reliability_coefficient"):
            assert 0.0 <= stats["quality_metrics"][name] <= 1.0


class TestDemographicBreakdowns:
    """Tests for demographic-stratified sums."""

    def test_sums_per_tag_value(self, raw_sample):
        demographics = [{"gender": "f"} if i % 2 == 0 else {"gender": "m"} for i in range(10)]

        stats = calculate_norming_statistics(raw_sample(KNOWN_SAMPLE, demographics=demographics))

        assert stats["demographic_breakdowns"] == {"gender": {"f": 20, "m": 20}}

    def test_mismatched_demographics_raise(self, raw_sample):
        with pytest.raises(MismatchedLengthError):
            calculate_norming_statistics(
                raw_sample(KNOWN_SAMPLE, demographics=[{"gender": "f"}] * 3)
            )


class TestNormativeScores:
    """Tests for convert_to_normative_scores() and its helpers."""

    @pytest.fixture
    def stats(self, raw_sample):
        return calculate_norming_statistics(raw_sample(KNOWN_SAMPLE))

    def test_mean_score(self, stats):
        scores = convert_to_normative_scores(4, stats)

        assert scores["z_score"] == 0.0
        assert scores["standard_score"] == 50.0
        assert scores["t_score"] == 50.0
        assert scores["percentile_rank"] == 50
        assert scores["stanine"] == 5
        assert scores["qualitative_description"] == "Average"

    def test_high_score(self, stats):
        scores = convert_to_normative_scores(7, stats)

        assert scores["z_score"] == pytest.approx(1.7008, abs=1e-3)
        assert scores["percentile_rank"] == 96
        assert scores["stanine"] == 8
        assert scores["qualitative_description"] == "Very High"

    def test_zero_variance_norms(self, raw_sample):
        stats = calculate_norming_statistics(raw_sample([4] * 10))
        scores = convert_to_normative_scores(6, stats)
        assert scores["z_score"] == 0.0
        assert scores["percentile_rank"] == 50

    @pytest.mark.parametrize(
        "percentile,stanine",
        [(0, 1), (4, 1), (5, 2), (11, 2), (40, 4), (50, 5), (60, 5), (96, 8), (97, 9), (100, 9)],
    )
    def test_stanine_cut_points(self, percentile, stanine):
        assert percentile_to_stanine(percentile) == stanine

    @pytest.mark.parametrize(
        "percentile,description",
        [
            (99, "Extremely High"),
            (91, "Very High"),
            (75, "High"),
            (60, "Above Average"),
            (40, "Average"),
            (25, "Below Average"),
            (9, "Low"),
            (2, "Very Low"),
            (1, "Extremely Low"),
        ],
    )
    def test_qualitative_descriptions(self, percentile, description):
        assert get_qualitative_description(percentile) == description
