"""Tests for the numeric-level logging system."""
from __future__ import annotations

import io
import json
import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from unittest.mock import patch
from uuid import uuid4

import pytest


@pytest.fixture(autouse=True)
def _restore_logging():
    yield
    from piper_synth.core.logging import configure_logging
    configure_logging(level=2, force=True)


class TestLevelCoercion:

    def test_level_enum_values(self):
        from piper_synth.core.logging import LogLevel

        assert [int(v) for v in LogLevel] == [1, 2, 3, 4]
        assert LogLevel.MINIMAL < LogLevel.DEBUG

    def test_from_int_and_strings(self):
        from piper_synth.core.logging import LogLevel, coerce_level

        assert coerce_level(3) == LogLevel.VERBOSE
        assert coerce_level("4") == LogLevel.DEBUG
        assert coerce_level("minimal") == LogLevel.MINIMAL
        assert coerce_level("INFO") == LogLevel.NORMAL
        assert coerce_level("WARNING") == LogLevel.MINIMAL

    def test_stdlib_numeric_levels(self):
        from piper_synth.core.logging import LogLevel, coerce_level

        assert coerce_level(logging.WARNING) == LogLevel.MINIMAL
        assert coerce_level(logging.INFO) == LogLevel.NORMAL
        assert coerce_level(logging.DEBUG) == LogLevel.DEBUG

    def test_invalid_defaults_to_normal(self):
        from piper_synth.core.logging import LogLevel, coerce_level

        assert coerce_level("loud") == LogLevel.NORMAL
        assert coerce_level(None) == LogLevel.NORMAL
        assert coerce_level(True) == LogLevel.NORMAL


class TestLevelFiltering:

    def test_minimal(self):
        from piper_synth.core.logging import configure_logging, error, get_logger, info

        captured = io.StringIO()
        with patch("sys.stdout", captured):
            configure_logging(level=1, force=True)
            log = get_logger("piper-synth.test_minimal")
            info(log, "info message")
            error(log, "error message")

        output = captured.getvalue()
        assert "error message" in output
        assert "info message" not in output

    def test_normal_hides_chunk_lines(self):
        from piper_synth.core.logging import configure_logging, debug, get_logger, info, verbose

        captured = io.StringIO()
        with patch("sys.stdout", captured):
            configure_logging(level=2, force=True)
            log = get_logger("piper-synth.test_normal")
            info(log, "session_started")
            verbose(log, "chunk")
            debug(log, "options_ignored")

        output = captured.getvalue()
        assert "session_started" in output
        assert "chunk" not in output
        assert "options_ignored" not in output

    def test_verbose_shows_chunk_lines(self, synth):
        from piper_synth.core.logging import configure_logging

        captured = io.StringIO()
        with patch("sys.stdout", captured):
            configure_logging(level=3, force=True)
            synth.synthesize("One. Two.")

        output = captured.getvalue()
        assert "session_started" in output
        assert output.count(" chunk ") == 2
        assert "session_done" in output

    def test_debug_shows_everything(self):
        from piper_synth.core.logging import configure_logging, debug, get_logger, verbose

        captured = io.StringIO()
        with patch("sys.stdout", captured):
            configure_logging(level=4, force=True)
            log = get_logger("piper-synth.test_debug")
            verbose(log, "verbose message")
            debug(log, "debug message")

        output = captured.getvalue()
        assert "verbose message" in output
        assert "debug message" in output

    def test_env_override(self):
        from piper_synth.core.logging import LogLevel, configure_logging, get_level

        with patch.dict(os.environ, {"PIPER_SYNTH_LOG_LEVEL": "3"}):
            configure_logging(force=True)
            assert get_level() == LogLevel.VERBOSE


class TestConsoleOutput:

    def test_correlation_id_in_output(self):
        from piper_synth.core.logging import configure_logging, get_logger, info, set_correlation_id

        captured = io.StringIO()
        with patch("sys.stdout", captured):
            configure_logging(level=2, force=True)
            set_correlation_id("cid-123")
            info(get_logger("piper-synth.test_cid"), "with cid")
            set_correlation_id("-")

        assert "(cid-123)" in captured.getvalue()

    def test_fields_and_seconds(self):
        from piper_synth.core.logging import configure_logging, get_logger, info

        captured = io.StringIO()
        with patch("sys.stdout", captured):
            configure_logging(level=2, force=True)
            info(get_logger("piper-synth.test_fields"), "loaded", seconds=0.25, session=7)

        output = captured.getvalue()
        assert "0.250s" in output
        assert "session=7" in output

    def test_no_color_env(self, monkeypatch):
        from piper_synth.core.logging import supports_color

        monkeypatch.setenv("PIPER_SYNTH_NO_COLOR", "1")
        assert supports_color() is False

    def test_no_ansi_when_not_tty(self):
        from piper_synth.core.logging import configure_logging, get_logger, warn

        captured = io.StringIO()
        with patch("sys.stdout", captured):
            configure_logging(level=2, force=True)
            warn(get_logger("piper-synth.test_plain"), "plain")

        assert "\033[" not in captured.getvalue()


class TestJsonlPersistence:

    def test_jsonl_file(self, monkeypatch):
        from piper_synth.core.logging import configure_logging, get_logger, info, set_correlation_id

        base_dir = Path("logs_test") / str(uuid4())
        monkeypatch.setenv("PIPER_SYNTH_LOG_DIR", str(base_dir))
        monkeypatch.setenv("PIPER_SYNTH_JSONL_FILE", "test.jsonl")

        try:
            configure_logging(force=True)
            set_correlation_id("cid-jsonl")
            info(get_logger("piper-synth.test_jsonl"), "hello", event="logging_test", seconds=0.5, foo="bar")
            set_correlation_id("-")

            for handler in logging.getLogger("piper-synth").handlers:
                handler.flush()

            line = (base_dir / "test.jsonl").read_text(encoding="utf-8").strip().splitlines()[-1]
            payload = json.loads(line)
            assert payload["message"] == "hello"
            assert payload["level"] == 2
            assert payload["tag"] == "INFO"
            assert payload["correlation_id"] == "cid-jsonl"
            assert payload["event"] == "logging_test"
            assert payload["seconds"] == 0.5
            assert payload["extra"] == {"foo": "bar"}
            assert payload["logger"] == "piper-synth.test_jsonl"
        finally:
            for handler in logging.getLogger("piper-synth").handlers:
                handler.close()
            shutil.rmtree(Path("logs_test"), ignore_errors=True)


HOST_SCRIPT = """
import logging
host = logging.StreamHandler()
host.setLevel(logging.WARNING)
root = logging.getLogger()
root.addHandler(host)
root.setLevel(logging.WARNING)

import piper_synth
from piper_synth import Synthesizer

print(host in root.handlers, root.level, len(logging.getLogger("piper-synth").handlers))
"""


class TestHostLogging:
    """The package leaves the host application's logging alone."""

    def test_get_logger_does_not_configure(self):
        from piper_synth.core.logging import get_logger

        pkg_logger = logging.getLogger("piper-synth")
        before = list(pkg_logger.handlers)
        log = get_logger("piper-synth.test_untouched")

        assert log.name == "piper-synth.test_untouched"
        assert pkg_logger.handlers == before

    def test_configure_keeps_root_handlers(self):
        from piper_synth.core.logging import configure_logging

        root = logging.getLogger()
        host = logging.StreamHandler(io.StringIO())
        level = root.level
        root.addHandler(host)
        try:
            configure_logging(level=2, force=True)
            assert host in root.handlers
            assert root.level == level
            assert logging.getLogger("piper-synth").handlers
            assert logging.getLogger("piper-synth").propagate is False
        finally:
            root.removeHandler(host)

    def test_import_keeps_host_logging(self, tmp_path):
        src = Path(__file__).parent.parent / "src"
        env = dict(os.environ, PYTHONPATH=str(src))
        env.pop("PIPER_SYNTH_SETTINGS", None)
        result = subprocess.run(
            [sys.executable, "-c", HOST_SCRIPT],
            capture_output=True,
            text=True,
            cwd=tmp_path,
            env=env,
        )
        assert result.returncode == 0, result.stderr
        kept, level, pkg_handlers = result.stdout.split()
        assert kept == "True"
        assert int(level) == logging.WARNING
        assert pkg_handlers == "0"
