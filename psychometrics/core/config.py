"""
Engine configuration.

Two layers:
- ``Settings``: process-wide settings loaded from environment variables / .env
  (logging, environment, default sample minimums).
- Pydantic config objects (``ScaleRange``, ``ScoringConfig``,
  ``AnomalyThresholds``) passed explicitly to the scoring and analysis
  functions. Every field has a documented default, so callers override only
  what they need:

    config = ScoringConfig(source_range=ScaleRange(min=1, max=5))
"""

from typing import Dict, Self, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from psychometrics.core.exceptions import InvalidScaleError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Psychometrics Engine"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Norming
    MIN_NORMING_SAMPLE: int = Field(
        default=10,
        ge=2,
        description="Smallest sample accepted by the norming engine",
    )

    # Reliability cache entry lifetime in seconds (0 = never expire)
    RELIABILITY_CACHE_TTL: int = Field(default=0, ge=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()


class ScaleRange(BaseModel):
    """Closed numeric range of a scale (e.g. a 1-7 Likert scale)."""

    min: float = 1
    max: float = 7

    @model_validator(mode="after")
    def validate_bounds(self) -> Self:
        """Reject degenerate ranges."""
        if self.min >= self.max:
            raise ValueError(
                f"Scale range minimum must be below maximum, got {self.min}-{self.max}"
            )
        return self

    @property
    def span(self) -> float:
        return self.max - self.min

    def as_tuple(self) -> Tuple[float, float]:
        return (self.min, self.max)

    def legal_values(self) -> list[int]:
        """All integer response values inside the range."""
        return list(range(int(self.min), int(self.max) + 1))


ScaleLike = Union[ScaleRange, Tuple[float, float]]


# =============================================================================
# COMPOSITE INDEX WEIGHT TABLES
# =============================================================================
# Signed weights per subscale. A negative weight inverts that subscale's
# contribution; normalisation always divides by the sum of absolute weights.

DEFAULT_COMPOSITE_WEIGHTS: Dict[str, Dict[str, float]] = {
    # Codependency Index
    "CI": {
        "identity_fusion": 0.30,
        "codependency": 0.25,
        "boundaries": -0.20,
        "attachment": 0.15,
        "differentiation": -0.10,
    },
    # Autonomy & Resilience Index
    "ARI": {
        "autonomy": 0.30,
        "differentiation": 0.25,
        "boundaries": 0.20,
        "conflict_resolution": 0.15,
        "identity_fusion": -0.10,
    },
    # Transition Risk Score
    "TRS": {
        "codependency": 0.30,
        "identity_fusion": 0.25,
        "partner_inclusion": -0.20,
        "power_dynamics": 0.15,
        "autonomy": -0.10,
    },
}


class ScoringConfig(BaseModel):
    """Scale ranges, composite tables and sample minimums for scoring."""

    source_range: ScaleRange = Field(default_factory=ScaleRange)
    target_range: ScaleRange = Field(default_factory=lambda: ScaleRange(min=0, max=100))
    composite_weights: Dict[str, Dict[str, float]] = Field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_COMPOSITE_WEIGHTS.items()}
    )

    # Norming / item analysis
    min_norming_sample: int = Field(default_factory=lambda: settings.MIN_NORMING_SAMPLE, ge=2)
    min_item_sample: int = Field(default=50, ge=1)
    small_item_sample_warning: int = Field(default=30, ge=1)
    z_critical: float = Field(default=1.96, gt=0)

    # Quality metrics
    revision_normalizer: float = Field(default=10.0, gt=0)
    anomalous_response_time_ms: float = Field(default=500.0, ge=0)
    straight_line_ratio: float = Field(default=0.8, ge=0, le=1)

    # Response validation
    min_completion_rate: float = Field(default=70.0, ge=0, le=100)
    partial_completion_rate: float = Field(default=90.0, ge=0, le=100)
    identical_response_warning_count: int = Field(default=5, ge=2)


class AnomalyThresholds(BaseModel):
    """Thresholds used by the anomaly detectors."""

    # Timing (milliseconds)
    min_response_time_ms: float = 500
    max_response_time_ms: float = 300_000
    bot_like_speed_ms: float = 800
    consistent_timing_max_mean_ms: float = 1500
    too_fast_ratio: float = Field(default=0.8, ge=0, le=1)
    extremely_fast_ratio: float = Field(default=0.3, ge=0, le=1)
    consistent_timing_cv: float = Field(default=0.2, ge=0)
    outlier_z_score: float = Field(default=3.0, gt=0)
    min_timed_responses: int = Field(default=3, ge=1)

    # Straight-lining
    straight_line_ratio: float = Field(default=0.8, ge=0, le=1)
    consecutive_ratio: float = Field(default=0.6, ge=0, le=1)
    low_variance: float = Field(default=0.5, ge=0)
    min_straight_line_responses: int = Field(default=5, ge=2)

    # Pattern consistency
    pattern_score: float = Field(default=0.3, ge=0, le=1)
    min_pattern_responses: int = Field(default=8, ge=2)
    run_length: int = Field(default=6, ge=2)

    # Revisions
    max_revisions: int = Field(default=10, ge=0)
    excessive_revision_ratio: float = Field(default=0.2, ge=0, le=1)
    max_average_revisions: float = Field(default=3.0, ge=0)

    # Scale, used for extreme-response detection
    scale: ScaleRange = Field(default_factory=ScaleRange)


def resolve_range(value: ScaleLike) -> ScaleRange:
    """Accept either a ScaleRange or a ``(min, max)`` tuple."""
    if isinstance(value, ScaleRange):
        return value
    low, high = value
    try:
        return ScaleRange(min=low, max=high)
    except ValidationError as e:
        raise InvalidScaleError(
            f"Invalid scale range {low}-{high}", context=str(e.errors()[0]["msg"])
        ) from e
