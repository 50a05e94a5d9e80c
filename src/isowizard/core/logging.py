"""
IsoWizard structured logging.

All modules log through structlog with key/value context. Byte counts in
an event (any ``*_bytes`` key) get a readable ``*_size`` companion, and a
session keeps its own audit log of scans and plan edits.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, WrappedLogger

from isowizard.core.units import format_bytes

if TYPE_CHECKING:
    from isowizard.core.config import LoggingConfig


_configured = False

BYTES_SUFFIX = "_bytes"


def add_size_labels(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add ``disk_size="465.76 GiB"`` next to ``disk_bytes=500107862016``."""
    for key in [k for k in event_dict if k.endswith(BYTES_SUFFIX)]:
        value = event_dict[key]
        label = key[: -len(BYTES_SUFFIX)] + "_size"
        if isinstance(value, int) and not isinstance(value, bool) and label not in event_dict:
            event_dict[label] = format_bytes(value)
    return event_dict


def _build_handlers(config: LoggingConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    if config.console_enabled:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, config.level))
        handlers.append(console_handler)

    if config.file_enabled:
        config.log_directory.mkdir(parents=True, exist_ok=True)
        log_file = config.log_directory / f"isowizard_{datetime.now():%Y%m%d}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    return handlers


def setup_logging(config: LoggingConfig) -> None:
    """Configure stdlib handlers and the structlog pipeline, once per process."""
    global _configured

    if _configured:
        return

    logging.basicConfig(level=logging.DEBUG, handlers=_build_handlers(config), format="%(message)s")

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_size_labels,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if config.json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name or "isowizard")


class OperationLogger:
    """
    Time a step such as a disk scan.

    Logs at debug level on entry, then info with the elapsed time on a
    clean exit or error with the exception type on failure. Exceptions
    are never suppressed.
    """

    def __init__(
        self,
        operation: str,
        logger: structlog.stdlib.BoundLogger | None = None,
        **context: Any,
    ) -> None:
        self.operation = operation
        self.logger = (logger or get_logger()).bind(operation=operation, **context)
        self._started: float | None = None

    @property
    def elapsed_seconds(self) -> float:
        if self._started is None:
            return 0.0
        return round(time.monotonic() - self._started, 3)

    def __enter__(self) -> OperationLogger:
        self._started = time.monotonic()
        self.logger.debug(f"{self.operation} started")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if exc_type is None:
            self.logger.info(f"{self.operation} finished", duration_seconds=self.elapsed_seconds)
            return
        self.logger.error(
            f"{self.operation} failed",
            duration_seconds=self.elapsed_seconds,
            error_type=exc_type.__name__,
            error=str(exc_val),
        )

    def update(self, **context: Any) -> None:
        """Attach more context to the remaining events."""
        self.logger = self.logger.bind(**context)


class SessionLogger:
    """
    Audit log of one wizard session.

    Every entry is forwarded to structlog and kept in memory; ``save``
    writes the entries to the session file as JSON.
    """

    def __init__(
        self,
        session_file: Path,
        logger: structlog.stdlib.BoundLogger | None = None,
        session_id: str | None = None,
    ) -> None:
        self.session_file = session_file
        self.session_id = session_id
        self.logger = logger or get_logger()
        self.entries: list[dict[str, Any]] = []
        self.session_file.parent.mkdir(parents=True, exist_ok=True)

    def log(self, level: str, message: str, **fields: Any) -> None:
        self.entries.append(
            {"timestamp": datetime.now().isoformat(), "level": level, "message": message, **fields}
        )
        getattr(self.logger, level.lower(), self.logger.info)(message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log("INFO", message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.log("WARNING", message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self.log("ERROR", message, **fields)

    def debug(self, message: str, **fields: Any) -> None:
        self.log("DEBUG", message, **fields)

    def level_counts(self) -> dict[str, int]:
        return dict(Counter(entry["level"] for entry in self.entries))

    def save(self) -> None:
        """Write the session log file."""
        with open(self.session_file, "w") as f:
            json.dump(
                {
                    "session_id": self.session_id,
                    "session_file": str(self.session_file),
                    "entries": self.entries,
                    "summary": {"total_entries": len(self.entries), **self.level_counts()},
                },
                f,
                indent=2,
                default=str,
            )
