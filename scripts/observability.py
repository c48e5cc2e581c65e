#!/usr/bin/env python3
"""plan-sync observability: structured logging and counters. Zero external deps.

Provides:
- Single-line JSON log records on stderr via stdlib logging
- In-process counters and latency observations
- Timing context manager for plan loads and saves

Usage:
    from observability import get_logger, metrics, timed

    log = get_logger("plan_manager")
    log.warning("plan_json_invalid", root=root, error="Plan validation failed")

    metrics.inc("plan_md_regenerated")

    with timed("plan_load", log):
        plan = load_plan(root)
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timezone

LOGGER_NAMESPACE = "plan-sync"
LOG_LEVEL_ENV = "PLAN_SYNC_LOG_LEVEL"


# ---------------------------------------------------------------------------
# Structured JSON Formatter
# ---------------------------------------------------------------------------

class JSONFormatter(logging.Formatter):
    """Emit log records as single-line JSON."""

    def format(self, record):
        entry = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname.lower(),
            "component": getattr(record, "component", record.name),
            "event": record.getMessage(),
        }
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            entry["exc"] = f"{type(exc).__name__}: {exc}"
        return json.dumps(entry, default=str, ensure_ascii=False)


def _level_from_env() -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


class StructuredLogger:
    """Logger taking an event name plus keyword data.

    All components share one handler chain under the ``plan-sync``
    namespace, so a single level setting applies to the whole engine.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")
        root = logging.getLogger(LOGGER_NAMESPACE)
        if not root.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(JSONFormatter())
            root.addHandler(handler)
            root.setLevel(_level_from_env())
            root.propagate = False

    def _log(self, level: int, event: str, exc: BaseException | None = None, **kwargs) -> None:
        if not self._logger.isEnabledFor(level):
            return
        exc_info = (type(exc), exc, exc.__traceback__) if exc is not None else None
        record = self._logger.makeRecord(
            name=self._logger.name,
            level=level,
            fn="",
            lno=0,
            msg=event,
            args=(),
            exc_info=exc_info,
        )
        record.component = self.name
        record.data = kwargs or None
        self._logger.handle(record)

    def debug(self, event: str, **kwargs) -> None:
        self._log(logging.DEBUG, event, **kwargs)

    def info(self, event: str, **kwargs) -> None:
        self._log(logging.INFO, event, **kwargs)

    def warning(self, event: str, exc: BaseException | None = None, **kwargs) -> None:
        self._log(logging.WARNING, event, exc=exc, **kwargs)

    def error(self, event: str, exc: BaseException | None = None, **kwargs) -> None:
        self._log(logging.ERROR, event, exc=exc, **kwargs)


def get_logger(component: str) -> StructuredLogger:
    """Get a structured logger for a component."""
    return StructuredLogger(component)


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

class Metrics:
    """In-process counters and observations.

    Counters track heal outcomes (regenerations, migrations, invalid reads);
    observations hold latencies recorded by ``timed``.
    """

    def __init__(self) -> None:
        self._counters: dict[str, int | float] = {}
        self._observations: dict[str, list[float]] = {}

    def inc(self, name: str, value: int | float = 1) -> None:
        self._counters[name] = self._counters.get(name, 0) + value

    def observe(self, name: str, value: float) -> None:
        self._observations.setdefault(name, []).append(value)

    def get(self, name: str) -> int | float:
        return self._counters.get(name, 0)

    def summary(self) -> dict:
        """Return counters and per-observation count/min/max/avg."""
        result: dict = {"counters": dict(self._counters)}
        for name, values in self._observations.items():
            if values:
                result.setdefault("observations", {})[name] = {
                    "count": len(values),
                    "min": min(values),
                    "max": max(values),
                    "avg": sum(values) / len(values),
                }
        return result

    def reset(self) -> None:
        self._counters.clear()
        self._observations.clear()


# Global metrics instance
metrics = Metrics()


# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

@contextmanager
def timed(operation: str, logger: StructuredLogger | None = None) -> Generator[None, None, None]:
    """Time the wrapped block and record ``<operation>_ms``."""
    start = time.monotonic()
    try:
        yield
    finally:
        elapsed_ms = (time.monotonic() - start) * 1000
        metrics.observe(f"{operation}_ms", elapsed_ms)
        if logger:
            logger.debug(f"{operation}_complete", duration_ms=round(elapsed_ms, 2))
