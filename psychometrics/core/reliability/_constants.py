"""
Shared constants for reliability estimation.

Threshold constants and type definitions used across the reliability
submodules.
"""

from typing import TypedDict


# =============================================================================
# TYPE DEFINITIONS
# =============================================================================


class ProblematicItem(TypedDict):
    """
    Item whose removal would raise Cronbach's alpha.

    Used by get_problematic_items() to provide type-safe return values.
    """

    item_id: str
    alpha_if_deleted: float
    alpha_gain: float
    recommendation: str


# =============================================================================
# CRONBACH'S ALPHA THRESHOLDS
# =============================================================================
# Standard psychometric thresholds for reliability interpretation.

ALPHA_THRESHOLDS = {
    "excellent": 0.90,  # α ≥ 0.90: Excellent internal consistency
    "good": 0.80,  # α ≥ 0.80: Good internal consistency
    "acceptable": 0.70,  # α ≥ 0.70: Acceptable internal consistency
    "questionable": 0.60,  # α ≥ 0.60: Questionable internal consistency
    "poor": 0.50,  # α ≥ 0.50: Poor internal consistency
    # α < 0.50: Unacceptable
}


# =============================================================================
# DATA REQUIREMENTS
# =============================================================================

MIN_ITEMS = 2
MIN_RESPONDENTS = 2

# Exact alpha-if-deleted leaves k-1 items, and alpha needs at least 2
MIN_ITEMS_FOR_ALPHA_IF_DELETED = 3

# z for the 95% confidence interval around alpha
ALPHA_CI_Z = 1.96

# Prefix for reliability entries in an engine's cache
RELIABILITY_CACHE_PREFIX = "reliability:"
