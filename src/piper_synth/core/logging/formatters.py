"""
Log Formatters.

    JsonlFormatter: one JSON object per line, for files and log shippers
    ColoredConsoleFormatter: compact colored line for terminals

Output Examples:
    JSONL:
        {"ts":"2026-01-15T14:30:05+01:00","level":3,"tag":"INFO","message":"chunk","correlation_id":"a1b2","seconds":0.21,"extra":{"session":3,"index":0}}

    Console:
        14:30:05 [ INFO  ] (a1b2) chunk 0.210s session=3 index=0
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict

from . import colors
from .colors import Colors, get_tag_color


def _paint(text: str, color: str) -> str:
    # Reads the flag at call time; configure_logging() may have changed it.
    if not colors.USE_COLORS:
        return text
    return f"{color}{text}{Colors.RESET}"


class JsonlFormatter(logging.Formatter):
    """Format records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": getattr(record, "numeric_level", 2),
            "tag": getattr(record, "tag", record.levelname),
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
            "logger": record.name,
        }

        event = getattr(record, "event", None)
        if event:
            payload["event"] = event

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            payload["seconds"] = seconds

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """
    Format records as ``HH:MM:SS [ TAG ] (cid) message 0.123s key=value``.

    Timings are green under 0.1s, yellow under 1s, red above; the real-time
    factor (``rtf``) is green below 1.0 and red otherwise.
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = getattr(record, "tag", record.levelname)
        cid = getattr(record, "correlation_id", "-")

        parts = [_paint(ts, Colors.DIM), _paint(f"[{tag:^7}]", get_tag_color(tag))]
        if cid != "-":
            parts.append(_paint(f"({cid})", Colors.DIM + Colors.CYAN))
        parts.append(record.getMessage())

        event = getattr(record, "event", None)
        if event:
            parts.append(_paint(f"event={event}", Colors.BLUE))

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            if seconds < 0.1:
                color = Colors.GREEN
            elif seconds < 1.0:
                color = Colors.YELLOW
            else:
                color = Colors.RED
            parts.append(_paint(f"{seconds:.3f}s", color))

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            for key, value in extra_data.items():
                parts.append(_paint(f"{key}={value}", self._field_color(key, value)))

        return " ".join(parts)

    @staticmethod
    def _field_color(key: str, value: Any) -> str:
        if key == "rtf" and isinstance(value, (int, float)):
            return Colors.GREEN if value < 1.0 else Colors.RED
        if key in ("error", "component"):
            return Colors.RED
        if key in ("session", "state"):
            return Colors.MAGENTA
        return Colors.DIM
