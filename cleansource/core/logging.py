"""Structured logging for the scanner: structlog on top of stdlib logging.

Log output goes to stderr so that command output on stdout (for example
``cleansource deps --json``) stays machine-readable.
"""

from __future__ import annotations

import logging
import logging.config
import os
import sys

import structlog

LEVEL_ENV = "CLEANSOURCE_LOG_LEVEL"
FORMAT_ENV = "CLEANSOURCE_LOG_FORMAT"


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(level: str | None = None) -> None:
    """Configure structlog and stdlib logging for the ``cleansource`` loggers.

    *level* overrides ``CLEANSOURCE_LOG_LEVEL`` (default INFO).
    ``CLEANSOURCE_LOG_FORMAT`` selects ``console`` (default) or ``json``.
    """
    log_level = (level or os.environ.get(LEVEL_ENV) or "INFO").upper()
    log_format = os.environ.get(FORMAT_ENV, "console").lower()

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": pre_chain,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        _renderer(log_format),
                    ],
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "structlog",
                },
            },
            # Third-party libraries stay at WARNING; only our loggers follow log_level
            "root": {"handlers": ["stderr"], "level": "WARNING"},
            "loggers": {"cleansource": {"level": log_level}},
        }
    )
