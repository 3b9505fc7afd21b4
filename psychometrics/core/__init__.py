"""
Core scoring, norming and analysis modules.

Note: analysis modules are not imported at package level to avoid circular
imports with psychometrics.models (which imports datetime_utils from
psychometrics.core). Import them directly:
from psychometrics.core.norming import ... or
from psychometrics.core.anomaly_detection import ...
"""
from .config import settings

__all__ = ["settings"]
