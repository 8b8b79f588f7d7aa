"""
piper-synth Structured Logging.

Numeric verbosity levels (1-4), colored console output, optional JSONL
file output and a per-context correlation id.

Log Levels:
    1 = MINIMAL  - Construction failures, disposal problems
    2 = NORMAL   - Synthesizer load, session start and completion (default)
    3 = VERBOSE  - One line per streamed chunk
    4 = DEBUG    - Option resolution, engine internals

Configuration:
    export PIPER_SYNTH_LOG_LEVEL=3
    export PIPER_SYNTH_NO_COLOR=1

    settings.yaml:
        logging:
          level: 2
          log_dir: logs
          jsonl_file: piper-synth.jsonl

Usage:
    Importing the package configures nothing; records propagate to the
    host's handlers until configure_logging() is called (the CLI does).

    from piper_synth.core.logging import configure_logging, get_logger, info, verbose

    configure_logging(level=3)

    log = get_logger("piper-synth.mymodule")
    info(log, "session_started", session=1, chars=42)
    verbose(log, "chunk", index=0, samples=22050, seconds=0.21)
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from .levels import LEVEL_MAP, LEVEL_NAMES, LogLevel, coerce_level
from .colors import Colors, colorize, get_tag_color, supports_color
from .context import (
    get_correlation_id,
    get_level,
    get_level_name,
    get_log_config,
    is_configured,
    read_logging_config,
    set_configured,
    set_correlation_id,
    set_level,
    set_log_config,
)
from .formatters import ColoredConsoleFormatter, JsonlFormatter

LOGGER_NAME = "piper-synth"


def configure_logging(level: Optional[int | str | LogLevel] = None, force: bool = False) -> None:
    """
    Attach the console (and optional JSONL) handlers to the "piper-synth" logger.

    Args:
        level: Log level (1-4, level name, or LogLevel). Defaults to the
            configured/env level.
        force: Reconfigure even if already configured.
    """
    from . import colors

    if is_configured() and not force:
        return

    colors.USE_COLORS = supports_color()

    log_config = read_logging_config()
    set_log_config(log_config)

    current_level = coerce_level(level if level is not None else log_config.get("level", LogLevel.NORMAL))
    set_level(current_level)

    # Handlers live on the package logger; the host owns the root logger
    pkg_logger = logging.getLogger(LOGGER_NAME)
    pkg_logger.setLevel(logging.DEBUG - 10)  # filtering happens in the handlers
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    pkg_logger.propagate = False

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(LEVEL_MAP.get(current_level, logging.INFO))
    console.setFormatter(ColoredConsoleFormatter())
    pkg_logger.addHandler(console)

    log_dir = log_config.get("log_dir")
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            Path(log_dir) / str(log_config.get("jsonl_file", "piper-synth.jsonl")),
            maxBytes=int(log_config.get("rotate_max_bytes", 10 * 1024 * 1024)),
            backupCount=int(log_config.get("rotate_backup_count", 5)),
            encoding="utf-8",
            delay=True,
        )
        file_handler.setLevel(logging.DEBUG - 10)
        file_handler.setFormatter(JsonlFormatter())
        pkg_logger.addHandler(file_handler)

    set_configured(True)


def _log(
    logger: logging.Logger,
    level: int,
    tag: str,
    msg: str,
    numeric_level: int = 2,
    **fields: Any
) -> None:
    if numeric_level > get_level():
        return

    event = fields.pop("event", None)
    seconds = fields.pop("seconds", None)
    logger.log(
        level,
        msg,
        extra={
            "tag": tag,
            "correlation_id": get_correlation_id(),
            "event": event,
            "seconds": seconds,
            "extra_data": fields or None,
            "numeric_level": numeric_level,
        },
    )


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Get a logger under the "piper-synth" namespace.

    Nothing is configured here. Until configure_logging() is called the
    records propagate to whatever handlers the host application installed.
    """
    return logging.getLogger(name)


def info(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Level 2 (NORMAL)."""
    _log(logger, logging.INFO, "INFO", msg, numeric_level=2, **fields)


def warn(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Level 2 (NORMAL)."""
    _log(logger, logging.WARNING, "WARN", msg, numeric_level=2, **fields)


def error(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Level 1 (MINIMAL)."""
    _log(logger, logging.ERROR, "ERROR", msg, numeric_level=1, **fields)


def success(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Level 2 (NORMAL)."""
    _log(logger, logging.INFO, "SUCCESS", msg, numeric_level=2, **fields)


def fail(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Level 1 (MINIMAL)."""
    _log(logger, logging.ERROR, "FAIL", msg, numeric_level=1, **fields)


def verbose(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Level 3 (VERBOSE)."""
    _log(logger, logging.DEBUG, "INFO", msg, numeric_level=3, **fields)


def debug(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Level 4 (DEBUG)."""
    _log(logger, logging.DEBUG - 5, "DEBUG", msg, numeric_level=4, **fields)


__all__ = [
    "LOGGER_NAME",
    "LogLevel",
    "LEVEL_MAP",
    "LEVEL_NAMES",
    "coerce_level",
    "Colors",
    "colorize",
    "get_tag_color",
    "supports_color",
    "get_correlation_id",
    "set_correlation_id",
    "get_level",
    "get_level_name",
    "get_log_config",
    "JsonlFormatter",
    "ColoredConsoleFormatter",
    "configure_logging",
    "get_logger",
    "info",
    "warn",
    "error",
    "success",
    "fail",
    "verbose",
    "debug",
]
