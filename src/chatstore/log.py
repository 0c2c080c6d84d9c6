"""
Structured logging for chatstore.

chatstore is used both as a library (collaborators call ChatHistory directly)
and through its CLI. The CLI calls configure_logging() with its own flags. A
library host that never configures structlog still gets a quiet default the
first time a chatstore logger is requested: warnings and errors only, written
to stderr, so nothing ever lands on the host's stdout. A host that configured
structlog itself is left alone.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import Processor

# Level used when the host has not asked for anything else
DEFAULT_LEVEL = logging.WARNING


class _StderrProxy:
    """File-like proxy that always writes to the current sys.stderr.

    PrintLoggerFactory keeps the file object it was given. Test runners swap
    sys.stderr out, so the proxy looks it up on every write.
    """

    def write(self, s: str) -> int:
        return sys.stderr.write(s)

    def flush(self) -> None:
        sys.stderr.flush()

    def isatty(self) -> bool:
        return sys.stderr.isatty()


_stderr_proxy: TextIO = _StderrProxy()  # type: ignore[assignment]


def configure_logging(
    verbose: bool = False,
    json_logs: bool = False,
    level: int | None = None,
) -> None:
    """
    Configure structlog for chatstore output on stderr.

    Args:
        verbose: Log debug events (session saves, deletes, store creation)
        json_logs: Render one JSON object per event instead of console lines
        level: Explicit level; overrides verbose
    """
    if level is None:
        level = logging.DEBUG if verbose else DEFAULT_LEVEL

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=_stderr_proxy),
        # Module loggers re-read the configuration so the CLI flags apply after import
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Return a chatstore logger, installing the quiet default if structlog is unconfigured."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(name)
