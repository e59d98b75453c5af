"""Structured logging configuration.

Staging and production runs emit one JSON object per record; development runs
get a colored single-line format. Records logged with ``extra=`` carrying any
of the keys in ``_CONTEXT_KEYS`` keep that context in both formats.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

_CONTEXT_KEYS = ("run_id", "network", "contract", "address", "tx_hash", "signer")
_STRUCTURED_ENVS = ("staging", "production")
_NOISY_LOGGERS = ("httpcore", "httpx", "asyncio")


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return {key: getattr(record, key) for key in _CONTEXT_KEYS if hasattr(record, key)}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for CI and shared log collectors."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update(_context(record))

        if record.exc_info and record.exc_info[1]:
            exc_type, exc, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc),
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """Colored single-line records with the run id up front and context at the end."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        context = _context(record)
        run_id = context.pop("run_id", "")

        color = self.LEVEL_COLORS.get(record.levelno, "")
        ts = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S")
        parts = [f"{color}{ts} {record.levelname:<8s}{self.RESET}", f"{record.name}:"]
        if run_id:
            parts.append(f"[{run_id[:8]}]")
        parts.append(record.getMessage())
        if context:
            parts.append(" ".join(f"{k}={v}" for k, v in context.items()))

        line = " ".join(parts)
        if record.exc_info and record.exc_info[1]:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class RunLogFilter(logging.Filter):
    """Stamps the run id on every record passing through a handler."""

    def __init__(self, run_id: str = "") -> None:
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = self.run_id  # type: ignore[attr-defined]
        return True


def setup_logging(env: str = "development", log_level: str = "INFO", run_id: str = "") -> None:
    """Route all harness logging to stderr.

    Args:
        env: Application environment; staging/production log JSON
        log_level: Minimum level, case-insensitive
        run_id: Correlation id stamped on every record when set
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if env in _STRUCTURED_ENVS else DevFormatter())
    if run_id:
        handler.addFilter(RunLogFilter(run_id))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
