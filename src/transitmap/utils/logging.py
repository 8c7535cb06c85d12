"""
structlog setup for the CLI and the layer pipelines.

Events are rendered by structlog and written through stdlib logging to
stderr, so the rich tables the CLI prints on stdout stay readable.
"""

import logging
import sys
from typing import Any

import structlog


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
) -> None:
    """
    Set up rendering and level filtering for all transitmap loggers.

    Args:
        level: Name of the lowest level to emit, e.g. "DEBUG".
        json_output: Emit one JSON object per event instead of console lines.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    # stdlib logging owns the stream; structlog hands it rendered strings
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Module logger, e.g. get_logger(__name__)."""
    return structlog.get_logger(name)


def log_context(**kwargs: Any) -> structlog.contextvars.bound_contextvars:
    """
    Bind key-value pairs to every event logged inside the block.

    The ETL wraps each layer in log_context(layer=<name>) so fetch,
    normalize and validation events can be traced back to their layer.
    Bindings are per thread and are removed when the block exits.
    """
    return structlog.contextvars.bound_contextvars(**kwargs)
