"""
Configuration Management for piper-synth.

This module provides:
    - Default values (Defaults class)
    - SynthesizerConfig: validated settings for a Synthesizer
    - YAML file loading with environment variable overrides

Configuration Hierarchy (highest priority first):
    1. Environment variables (PIPER_SYNTH_SESSION_POLICY, ...)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    synthesizer:
      session_policy: reject   # or "supersede"
      strict_options: false
      espeak_data_path: null
      use_cuda: false

    logging:
      level: 2  # NORMAL
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import os
import yaml


DEFAULT_SETTINGS_PATH = "config/settings.yaml"

SESSION_POLICIES = ("reject", "supersede")


class ConfigValidationError(Exception):
    """Raised when a configuration value is out of bounds or of the wrong type."""
    pass


class Defaults:
    """
    Centralized default configuration values.

    Used when no override is provided via YAML config or environment.
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Synthesizer
    # ─────────────────────────────────────────────────────────────────────────
    SESSION_POLICY = "reject"           # What to do when a session is already active
    STRICT_OPTIONS = False              # Reject unknown/mistyped option overrides
    USE_CUDA = False                    # Run ONNX inference on the CUDA provider
    ESPEAK_DATA_PATH = None             # None = data bundled with piper-tts

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 80     # Characters of input text shown in logs
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


def _env_flag(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip().lower() not in ("0", "false", "no", "")


@dataclass(frozen=True)
class SynthesizerConfig:
    """
    Validated configuration for a Synthesizer.

    Attributes:
        session_policy: "reject" raises ConcurrentSessionError when a session
            is started while another is active; "supersede" terminates the
            active session and starts the new one.
        strict_options: Raise InvalidOptionError for unknown or mistyped
            option overrides instead of ignoring them.
        use_cuda: Ask the engine to use GPU inference.
        espeak_data_path: Default phonemizer data directory.
        text_preview_chars: Characters of input text included in log lines.
    """
    session_policy: str = Defaults.SESSION_POLICY
    strict_options: bool = Defaults.STRICT_OPTIONS
    use_cuda: bool = Defaults.USE_CUDA
    espeak_data_path: Optional[str] = Defaults.ESPEAK_DATA_PATH
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS

    def __post_init__(self) -> None:
        if self.session_policy not in SESSION_POLICIES:
            raise ConfigValidationError(
                f"synthesizer.session_policy must be one of {SESSION_POLICIES}, got {self.session_policy!r}"
            )
        if self.text_preview_chars < 0:
            raise ConfigValidationError(
                f"logging.text_preview_chars must be non-negative, got {self.text_preview_chars}"
            )

    @property
    def supersede(self) -> bool:
        return self.session_policy == "supersede"

    @classmethod
    def from_settings(cls, settings: "Settings") -> "SynthesizerConfig":
        """
        Create SynthesizerConfig from Settings with validation.

        Environment variables take precedence over the YAML values.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw.get("synthesizer", {}) or {}
        logging_raw = settings.raw.get("logging", {}) or {}

        policy = os.getenv("PIPER_SYNTH_SESSION_POLICY") or raw.get("session_policy", Defaults.SESSION_POLICY)
        espeak = os.getenv("PIPER_SYNTH_ESPEAK_DATA") or raw.get("espeak_data_path", Defaults.ESPEAK_DATA_PATH)
        use_cuda = _env_flag("PIPER_SYNTH_USE_CUDA")
        if use_cuda is None:
            use_cuda = bool(raw.get("use_cuda", Defaults.USE_CUDA))

        try:
            preview = int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS))
        except (TypeError, ValueError) as exc:
            raise ConfigValidationError(f"logging.text_preview_chars must be an integer: {exc}") from exc

        return cls(
            session_policy=str(policy).strip().lower(),
            strict_options=bool(raw.get("strict_options", Defaults.STRICT_OPTIONS)),
            use_cuda=use_cuda,
            espeak_data_path=str(espeak) if espeak else None,
            text_preview_chars=preview,
        )


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    Attributes:
        raw: Dictionary of raw configuration values.
    """
    raw: Dict[str, Any]

    @property
    def log_level(self) -> Any:
        """Get the configured log level (number or name)."""
        return (self.raw.get("logging", {}) or {}).get("level", Defaults.LOGGING_LEVEL)

    def get_synthesizer_config(self) -> SynthesizerConfig:
        """
        Get validated SynthesizerConfig from these settings.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return SynthesizerConfig.from_settings(self)


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Load settings from a YAML configuration file.

    Args:
        path: Path to the YAML file. Defaults to $PIPER_SYNTH_SETTINGS or
            config/settings.yaml.

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
        ConfigValidationError: If the file is not a YAML mapping.
    """
    p = Path(path or os.getenv("PIPER_SYNTH_SETTINGS", DEFAULT_SETTINGS_PATH))
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigValidationError(f"settings file must contain a mapping: {p}")

    return Settings(raw=raw)
