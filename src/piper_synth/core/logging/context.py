"""
Logging Context and Configuration State.

The correlation id lives in a ContextVar so concurrent callers (threads or
asyncio tasks) each see their own id. Everything else is module-level
state shared by the whole process.

Environment Variables:
    - PIPER_SYNTH_LOG_LEVEL: Override log level (1-4 or name)
    - PIPER_SYNTH_LOG_DIR: Directory for the JSONL log file
    - PIPER_SYNTH_JSONL_FILE: JSONL filename
    - PIPER_SYNTH_LOG_ROTATE_BYTES: Max log file size
    - PIPER_SYNTH_LOG_ROTATE_BACKUP: Number of rotated files to keep
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

import yaml

from .levels import LEVEL_NAMES, LogLevel

# "-" outside any correlated run
_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_correlation_id() -> str:
    """Correlation id for the current context, or "-"."""
    return _correlation_id.get()


def set_correlation_id(cid: str) -> None:
    """Set the correlation id attached to subsequent log lines in this context."""
    _correlation_id.set(cid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def _env_int(cfg: Dict[str, Any], key: str, env: str) -> None:
    value = os.getenv(env)
    if not value:
        return
    try:
        cfg[key] = int(value)
    except ValueError:
        pass  # keep file/default value


def read_logging_config() -> Dict[str, Any]:
    """
    Resolve logging configuration from the settings file and environment.

    Priority (highest first): environment, ``logging:`` section of the
    settings file, defaults. A missing or unreadable settings file is not
    an error here; logging must come up before anything else.
    """
    cfg: Dict[str, Any] = {}

    from piper_synth.core.config import ConfigValidationError, load_settings
    try:
        settings = load_settings()
        cfg.update(settings.raw.get("logging", {}) or {})
    except (OSError, ConfigValidationError, yaml.YAMLError):
        pass

    if os.getenv("PIPER_SYNTH_LOG_LEVEL"):
        cfg["level"] = os.environ["PIPER_SYNTH_LOG_LEVEL"]
    if os.getenv("PIPER_SYNTH_LOG_DIR"):
        cfg["log_dir"] = os.environ["PIPER_SYNTH_LOG_DIR"]
    if os.getenv("PIPER_SYNTH_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["PIPER_SYNTH_JSONL_FILE"]
    _env_int(cfg, "rotate_max_bytes", "PIPER_SYNTH_LOG_ROTATE_BYTES")
    _env_int(cfg, "rotate_backup_count", "PIPER_SYNTH_LOG_ROTATE_BACKUP")

    return cfg
