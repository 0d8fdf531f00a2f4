"""Logging setup shared by the API process and Celery workers.

Measurement code attaches run context to records through ``extra=``
(see ``LOG_CONTEXT_FIELDS``). Both formatters render it, so one run can be
followed across its prompts and providers.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from brandmonitor.core.config import settings

LOG_CONTEXT_FIELDS = ("workspace_id", "run_id", "prompt_id", "llm_provider")


def log_context(record: logging.LogRecord) -> dict[str, str]:
    """Run context carried by *record*, in ``LOG_CONTEXT_FIELDS`` order."""
    return {
        name: str(getattr(record, name))
        for name in LOG_CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line, run context as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **log_context(record),
        }
        if record.exc_info and record.exc_info[1]:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False)


class ContextFormatter(logging.Formatter):
    """Plain-text formatter that appends run context as ``key=value`` pairs."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = log_context(record)
        if context:
            line += " | " + " ".join(f"{key}={value}" for key, value in context.items())
        return line


def setup_logging() -> None:
    """Route all logs to stdout, JSON when ``LOG_JSON`` is set."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if settings.log_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            ContextFormatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    root.addHandler(handler)

    # Provider HTTP traffic and SQL echo drown out per-task lines
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING if not settings.app_debug else level)
    logging.getLogger("celery").setLevel(level)
