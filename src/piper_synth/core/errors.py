"""
Error Taxonomy for piper-synth.

Every failure raised by the synthesizer facade derives from PiperSynthError,
which carries a stable error code and an optional details dict so that a
host boundary layer can translate errors without parsing messages.

Hierarchy:
    PiperSynthError
    ├── ConstructionError       bad model / config / phonemizer inputs
    ├── DisposedError           operation on a disposed Synthesizer
    │   └── DisposedStartError  (also a SynthesisStartError)
    ├── ConcurrentSessionError  overlapping session under "reject" policy
    ├── SynthesisStartError     engine rejected the text at start
    ├── SynthesisError          mid-stream engine failure
    │   └── SessionSupersededError
    └── InvalidOptionError      strict option resolution only

Example:
    >>> try:
    ...     synth = Synthesizer("/nonexistent/model.onnx")
    ... except ConstructionError as exc:
    ...     print(exc.component, exc.to_dict())
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """Stable error codes, one per taxonomy kind."""
    CONSTRUCTION_FAILED = "CONSTRUCTION_FAILED"
    DISPOSED = "DISPOSED"
    CONCURRENT_SESSION = "CONCURRENT_SESSION"
    START_FAILED = "START_FAILED"
    SYNTHESIS_FAILED = "SYNTHESIS_FAILED"
    SESSION_SUPERSEDED = "SESSION_SUPERSEDED"
    INVALID_OPTION = "INVALID_OPTION"
    CONFIG_INVALID = "CONFIG_INVALID"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class PiperSynthError(Exception):
    """
    Base exception for synthesizer errors.

    Attributes:
        message: Human-readable error message.
        code: Error code from ErrorCode.
        details: Additional context (paths, session ids, ...).
    """
    default_code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict] = None):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain error record for a host boundary."""
        result = {
            "ok": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ConstructionError(PiperSynthError):
    """
    Raised when a Synthesizer cannot be created.

    ``component`` names the input that failed: "model", "config",
    "phonemizer", or "engine" when the engine runtime is unavailable.
    """
    default_code = ErrorCode.CONSTRUCTION_FAILED

    def __init__(self, message: str, component: str = "model", path: Optional[str] = None,
                 details: Optional[Dict] = None):
        self.component = component
        self.path = path
        merged = {"component": component}
        if path is not None:
            merged["path"] = path
        merged.update(details or {})
        super().__init__(f"Failed to create synthesizer: {message}", details=merged)


class DisposedError(PiperSynthError):
    """Raised by any operation on a Synthesizer after dispose()."""
    default_code = ErrorCode.DISPOSED

    def __init__(self, message: str = "Synthesizer has been disposed", details: Optional[Dict] = None):
        super().__init__(message, details=details)


class ConcurrentSessionError(PiperSynthError):
    """Raised when a session is started while another one is still active."""
    default_code = ErrorCode.CONCURRENT_SESSION


class SynthesisStartError(PiperSynthError):
    """Raised when the engine refuses to start synthesizing the given text."""
    default_code = ErrorCode.START_FAILED


class DisposedStartError(DisposedError, SynthesisStartError):
    """Start attempted on a disposed Synthesizer."""
    default_code = ErrorCode.DISPOSED


class SynthesisError(PiperSynthError):
    """Raised when a pull fails mid-stream. The session is unusable afterwards."""
    default_code = ErrorCode.SYNTHESIS_FAILED


class SessionSupersededError(SynthesisError):
    """Raised when pulling from a session that a newer session replaced."""
    default_code = ErrorCode.SESSION_SUPERSEDED


class InvalidOptionError(PiperSynthError, ValueError):
    """Raised by strict option resolution for unknown or mistyped options."""
    default_code = ErrorCode.INVALID_OPTION
