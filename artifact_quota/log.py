"""
Logging setup.

Components log structured events through ``structlog``; this module wires
the renderer once per process.
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

_ANNOTATIONS = {"warning": "::warning::", "error": "::error::", "critical": "::error::"}


def _github_annotation(logger, method_name: str, rendered: str) -> str:
    """Prefix warnings and errors with a GitHub Actions workflow command."""
    prefix = _ANNOTATIONS.get(method_name)
    if prefix is None:
        return rendered
    return prefix + rendered.replace("\n", "%0A")


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure structlog for CLI use.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        fmt: "console" for human-readable output, "json" for one object per line
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(level=numeric_level, format="%(message)s", stream=sys.stderr)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    if os.environ.get("GITHUB_ACTIONS") == "true":
        processors.append(_github_annotation)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )
