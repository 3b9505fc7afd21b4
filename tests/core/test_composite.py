"""
Tests for composite index calculation and interpretation.
"""

import pytest

from libs.domain_types import CompositeIndex, ScoreLevel

from psychometrics.core.composite import (
    build_composite_score,
    calculate_composite_index,
    get_composite_level,
    interpret_composite_index,
)


class TestCalculateCompositeIndex:
    """Tests for calculate_composite_index()."""

    def test_weighted_mean(self):
        assert calculate_composite_index({"a": 80, "b": 40}, {"a": 0.5, "b": 0.5}) == 60.0

    def test_zero_weights_give_zero(self):
        assert calculate_composite_index({"a": 80}, {"a": 0.0}) == 0.0
        assert calculate_composite_index({"a": 80}, {}) == 0.0

    def test_absent_subscales_ignored(self):
        assert calculate_composite_index({"a": 80}, {"a": 1, "b": 1}) == 80.0

    def test_negative_weight_normalised_by_absolute_sum(self):
        # (90 * 0.5 - 10 * 0.5) / 1.0
        value = calculate_composite_index({"a": 90, "b": 10}, {"a": 0.5, "b": -0.5})
        assert value == pytest.approx(40.0)

    def test_negative_weights_clamped_at_zero(self):
        value = calculate_composite_index({"a": 20, "b": 90}, {"a": 1, "b": -1})
        assert value == 0.0

    def test_always_bounded(self):
        value = calculate_composite_index({"a": 100, "b": 0}, {"a": 1, "b": -3})
        assert 0.0 <= value <= 100.0


class TestInterpretation:
    """Tests for composite bands and descriptions."""

    def test_codependency_bands(self):
        assert interpret_composite_index("CI", 10) == "Minimal codependency - Healthy boundaries"
        assert interpret_composite_index("CI", 20) == "Low codependency - Good independence"
        assert (
            interpret_composite_index(CompositeIndex.CODEPENDENCY, 100)
            == "Severe codependency - Professional help recommended"
        )

    def test_resilience_and_risk_descriptions(self):
        assert interpret_composite_index("ARI", 85) == "Very high resilience - Excellent adaptation"
        assert interpret_composite_index("TRS", 45) == "Moderate risk - Some instability"

    def test_unknown_index_uses_generic_description(self):
        assert interpret_composite_index("XYZ", 50) == "Moderate"

    def test_levels(self):
        assert get_composite_level(0) == ScoreLevel.VERY_LOW
        assert get_composite_level(39.9) == ScoreLevel.LOW
        assert get_composite_level(99.9) == ScoreLevel.VERY_HIGH
        assert get_composite_level(100) == ScoreLevel.VERY_HIGH


class TestBuildCompositeScore:
    """Tests for build_composite_score()."""

    def test_default_codependency_weights(self):
        scores = {"identity_fusion": 80, "codependency": 60, "boundaries": 40}

        result = build_composite_score("CI", scores)

        # (80 * .30 + 60 * .25 - 40 * .20) / .75
        assert result.index == "CI"
        assert result.value == pytest.approx(41.33)
        assert result.level == ScoreLevel.MODERATE
        assert result.interpretation == "Moderate codependency - Some work needed"
        assert result.components == ["identity_fusion", "codependency", "boundaries"]

    def test_explicit_weights(self):
        result = build_composite_score("custom", {"a": 50}, weights={"a": 1.0})
        assert result.value == 50.0
        assert result.interpretation == "Moderate"

    def test_unknown_index_without_weights_raises(self):
        with pytest.raises(KeyError):
            build_composite_score("XYZ", {"a": 50})

    def test_no_components_gives_zero(self):
        result = build_composite_score("ARI", {})
        assert result.value == 0.0
        assert result.components == []
        assert result.to_dict()["level"] == "very_low"
