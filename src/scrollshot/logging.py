"""
structlog setup.

Console output is human readable on stderr; an optional file receives one
JSON object per line. Everything logged while a capture run is active
carries that run's ``run_id`` (see :func:`capture_context`).
"""

import sys
import logging
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import structlog
from structlog.types import Processor

_PRE_CHAIN: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _handler(handler: logging.Handler, renderer: Processor) -> logging.Handler:
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=_PRE_CHAIN,
        )
    )
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
) -> None:
    """
    Route structlog through the stdlib root logger.

    Args:
        level: DEBUG, INFO, WARNING or ERROR
        log_file: Optional JSON-lines log file (parent directories are created)
    """
    numeric_level = getattr(logging, level.upper())

    structlog.configure(
        processors=_PRE_CHAIN + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers = [
        _handler(
            logging.StreamHandler(sys.stderr),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        )
    ]
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(_handler(logging.FileHandler(path), structlog.processors.JSONRenderer()))

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(numeric_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)


@contextmanager
def capture_context(**values) -> Iterator[str]:
    """
    Bind a fresh ``run_id`` (plus ``values``) to every log line in the block.

    Yields:
        The run id
    """
    run_id = uuid.uuid4().hex[:8]
    with structlog.contextvars.bound_contextvars(run_id=run_id, **values):
        yield run_id
