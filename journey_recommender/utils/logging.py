"""
Logging setup for the journey recommender.

Call ``configure_logging(config)`` once at CLI entry, before building the
engine. Library modules only ever call ``logging.getLogger(__name__)``; they
never call ``configure_logging`` or ``basicConfig`` themselves.

Engine operations log with ``extra={"operation": ..., "subject_id": ...}``,
where ``operation`` is the event category (``recommendation``, ``path``,
``relationship``, ``assistant``) and ``subject_id`` the company or step the
call is about. The JSON format (``json_format = true`` under ``[logging]``)
carries both keys so lines can be filtered downstream::

    {"ts": "2026-02-24T15:00:00Z", "level": "WARNING",
     "logger": "journey_recommender.recommendations.engine",
     "msg": "...", "operation": "recommendation", "subject_id": "acme"}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from journey_recommender.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RESERVED_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class _JsonFormatter(logging.Formatter):
    """Emit one JSON object per log line.

    Fields: ``ts``, ``level``, ``logger``, ``msg`` plus any ``extra=`` keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        for key, val in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = val
        return json.dumps(payload, default=str)


def configure_logging(config: "LoggingConfig") -> None:
    """Configure the root logger from a ``LoggingConfig`` instance.

    Installs a stdout handler, plus a file handler when ``config.log_file`` is
    set (parent directories are created).

    Args:
        config: Logging configuration section from ``AppConfig``.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    formatter: logging.Formatter
    if config.json_format:
        formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    handlers.append(console)

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    # SQL statements are logged at DEBUG by the repositories; keep them out of
    # INFO-level runs even when the root logger is verbose.
    if level > logging.DEBUG:
        logging.getLogger("journey_recommender.db").setLevel(logging.INFO)
