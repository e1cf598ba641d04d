"""Centralized console logging with Rich formatting.

This module provides:
1. Level-based styling
2. Core log functions (log, info, warn, error)
3. Domain-specific helpers (processes_stopped, flaw_reported, halted, etc.)
4. Structlog configuration (configure, get_structlog)

Console output goes to stderr so that reports on stdout stay clean. JSON file
output via structlog is separate (machine-parseable, no colors).
"""

from __future__ import annotations

import logging
import logging.handlers
from typing import TYPE_CHECKING, Iterable

import structlog
from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from memtally.config import Config

# Rich console for human-readable diagnostics
_console = Console(stderr=True, highlight=False)


# ─────────────────────────────────────────────────────────────────────────────
# Level Styles
# ─────────────────────────────────────────────────────────────────────────────

_LEVEL_STYLES = {
    "info": "[bright_blue]info:[/]",
    "warn": "[yellow]warning:[/]",
    "error": "[bold red]error:[/]",
}


# ─────────────────────────────────────────────────────────────────────────────
# Core Functions
# ─────────────────────────────────────────────────────────────────────────────


def log(level: str, msg: str) -> None:
    """Print a diagnostic line prefixed by its level.

    Args:
        level: Log level (info, warn, error)
        msg: Message to print (can include Rich markup)
    """
    lvl = _LEVEL_STYLES.get(level, f"{level}:")
    _console.print(f"{lvl} {msg}")


def info(msg: str) -> None:
    """Log an info message."""
    log("info", msg)


def warn(msg: str) -> None:
    """Log a warning message."""
    log("warn", msg)


def error(msg: str) -> None:
    """Log an error message."""
    log("error", msg)


# ─────────────────────────────────────────────────────────────────────────────
# Domain Helpers
# ─────────────────────────────────────────────────────────────────────────────


def processes_stopped(pids: Iterable[int]) -> None:
    """Warn that some monitored processes could not be sampled."""
    pid_list = escape(str(sorted(pids)))
    warn(f"some processes stopped and will no longer appear: pids: [cyan]{pid_list}[/]")


def all_stopped() -> None:
    """Announce the end of a watch because every process is gone."""
    _console.print("all monitored processes have stopped; terminating...")


def flaw_reported(text: str, as_error: bool = False) -> None:
    """Report an accuracy flaw; an error when a total was requested."""
    body = escape(text.rstrip("\n"))
    if as_error:
        error(body)
    else:
        warn(body)


def halted(reason: str) -> None:
    """Report why the run could not start."""
    error(escape(reason))


def config_created(path: str) -> None:
    """Log config file created."""
    info(f"Created config at [cyan]{path}[/]")


def config_invalid(msg: str) -> None:
    """Log config file could not be loaded."""
    error(escape(msg))


# ─────────────────────────────────────────────────────────────────────────────
# Structlog Configuration
# ─────────────────────────────────────────────────────────────────────────────


def _add_source(source: str) -> structlog.types.Processor:
    """Create a processor that adds a source field to log events."""

    def processor(
        logger: structlog.types.WrappedLogger,
        method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        event_dict["source"] = source
        return event_dict

    return processor


def configure(config: Config) -> None:
    """Configure structlog, writing JSON lines to a rotating file when enabled.

    Without a file, structured events are dropped below WARNING so the
    console only shows the helpers above.

    Args:
        config: Application config with paths and logging settings
    """
    stdlib_root = logging.getLogger()
    stdlib_root.handlers.clear()

    if config.logging.file_enabled:
        # Ensure state directory exists for log file
        config.state_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            config.log_path,
            maxBytes=config.logging.max_bytes,
            backupCount=config.logging.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=[
                    structlog.contextvars.merge_contextvars,
                    structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
                    structlog.processors.add_log_level,
                    _add_source("memtally"),
                    structlog.processors.format_exc_info,
                ],
            )
        )
        stdlib_root.addHandler(file_handler)
        stdlib_root.setLevel(logging.DEBUG)
    else:
        stdlib_root.addHandler(logging.NullHandler())
        stdlib_root.setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False),
            structlog.processors.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_structlog() -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance for structured file output."""
    return structlog.get_logger()
