"""
Voice Engine Implementations.

    - base.py: VoiceEngine interface and EngineChunk
    - piper_engine.py: PiperEngine (ONNX voice via piper-tts)

PiperEngine is imported lazily so that importing piper_synth does not pull
in onnxruntime until a voice is actually loaded.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from piper_synth.tts.engines.base import EngineChunk, EngineLoader, VoiceEngine

__all__ = [
    "EngineChunk",
    "EngineLoader",
    "PiperEngine",
    "VoiceEngine",
]


def __getattr__(name: str):
    if name == "PiperEngine":
        from piper_synth.tts.engines.piper_engine import PiperEngine
        return PiperEngine
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if TYPE_CHECKING:
    from piper_synth.tts.engines.piper_engine import PiperEngine
