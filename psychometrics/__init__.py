"""
Psychometric scoring and data-quality engine.

Turns questionnaire responses into subscale and composite scores, normative
statistics, reliability and item analyses, and anomaly flags.
"""

__version__ = "0.1.0"
