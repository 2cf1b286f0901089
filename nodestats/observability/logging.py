"""Structured logging configuration using structlog.

Two renderers are supported: ``json`` for the running agent (one JSON object
per line on stderr, tracebacks as structured dicts) and ``console`` for
interactive CLI use.
"""

from __future__ import annotations

import logging
import sys

import structlog

_RENDERERS = ("json", "console")

# Libraries whose INFO chatter would drown the per-node collection logs.
_NOISY_LOGGERS = ("httpx", "httpcore", "kubernetes_asyncio")


def build_processors(fmt: str) -> list[structlog.types.Processor]:
    """Return the processor chain for renderer *fmt*."""
    if fmt not in _RENDERERS:
        raise ValueError(f"Invalid log format: {fmt}. Must be one of {_RENDERERS}")

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
        structlog.dev.set_exc_info,
    ]
    if fmt == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return processors


def setup_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog for the agent.

    Args:
        level: Minimum level name (debug, info, warning, error).
        fmt:   ``json`` or ``console``.
    """
    processors = build_processors(fmt)
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Logger bound to *component*; every event carries ``component=...``."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
