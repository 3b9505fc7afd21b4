"""
Logging setup for the engine.

Analysis modules log through ``logging.getLogger(__name__)`` and attach
structured fields with ``extra={...}`` (item id, run id, sample size...).
``setup_logging`` routes everything under the ``psychometrics`` namespace
to stdout: one JSON object per line in production, plain text elsewhere.
"""
import json
import logging
import logging.config
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from psychometrics.core.config import settings

PACKAGE_LOGGER = "psychometrics"

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
# DEBUG output also shows where the record came from
VERBOSE_FORMAT = "%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Record attributes copied into JSON output when present
STRUCTURED_FIELDS = (
    "run_id",
    "item_id",
    "category",
    "sample_size",
    "anomaly_type",
    "severity",
)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with any structured analysis fields."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": created.isoformat(),
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            {name: getattr(record, name) for name in STRUCTURED_FIELDS if hasattr(record, name)}
        )

        if record.levelno >= logging.ERROR:
            entry["source"] = f"{record.pathname}:{record.lineno}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _build_config(log_level: int, json_output: bool) -> Dict[str, Any]:
    if json_output:
        formatter: Dict[str, Any] = {"()": JSONFormatter}
    else:
        formatter = {
            "format": VERBOSE_FORMAT if log_level <= logging.DEBUG else PLAIN_FORMAT,
            "datefmt": DATE_FORMAT,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"engine": formatter},
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "engine",
                "stream": sys.stdout,
            },
        },
        "root": {"level": log_level, "handlers": ["stdout"]},
        "loggers": {
            PACKAGE_LOGGER: {
                "level": log_level,
                "handlers": ["stdout"],
                "propagate": False,
            },
        },
    }


def setup_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """
    Configure logging for a host process.

    Args:
        level: Log level name; defaults to DEBUG when settings.DEBUG is
            set, else settings.LOG_LEVEL
        json_output: Force JSON (True) or plain (False) output. Defaults to
            JSON when settings.ENV is "production".
    """
    if level is None:
        level = "DEBUG" if settings.DEBUG else settings.LOG_LEVEL
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_output is None:
        json_output = settings.ENV == "production"

    logging.config.dictConfig(_build_config(log_level, json_output))
