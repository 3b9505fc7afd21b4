"""
Precondition and configuration errors.

These are raised when proceeding would produce statistically meaningless
results presented as valid (too-small samples, too few items, misaligned
parallel arrays, degenerate scales). Data-quality conditions such as missing
responses or zero variance are not errors and never raise.
"""

from typing import Optional


class PsychometricsError(Exception):
    """Base exception for scoring and analysis errors.

    Attributes:
        message: Human-readable error description
        context: Additional context about where the error occurred
    """

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.context:
            return f"{self.message} | Context: {self.context}"
        return self.message


class InsufficientSampleError(PsychometricsError):
    """Sample is below the statistical minimum for the requested analysis."""

    def __init__(
        self, sample_size: int, minimum: int, context: Optional[str] = None
    ):
        self.sample_size = sample_size
        self.minimum = minimum
        super().__init__(
            f"Insufficient sample: {sample_size} valid responses "
            f"(minimum required: {minimum})",
            context,
        )


class InsufficientItemsError(PsychometricsError):
    """Fewer items than the analysis needs."""

    def __init__(self, num_items: int, minimum: int = 2, context: Optional[str] = None):
        self.num_items = num_items
        self.minimum = minimum
        super().__init__(
            f"Insufficient items: {num_items} (need at least {minimum})", context
        )


class MismatchedLengthError(PsychometricsError):
    """Parallel arrays that must line up have different lengths."""


class InvalidScaleError(PsychometricsError):
    """A scale range is degenerate or otherwise unusable."""
