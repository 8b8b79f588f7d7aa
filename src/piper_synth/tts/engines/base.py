"""
Voice Engine Interface.

The synthesizer never talks to ONNX or espeak-ng directly. It drives a
VoiceEngine, which owns the loaded model and phonemizer context and
exposes a start/next/release protocol:

    engine = loader(model_path, config_path, phonemizer_data_path)
    engine.start(text, options)          # may raise: rejected text, OOM
    while (raw := engine.next_chunk()) is not None:
        ...                              # raw.is_last marks the final chunk
    engine.release()

One engine runs one utterance at a time. Calling start() again discards
whatever utterance was in progress.

Implementing a New Engine:
    1. Subclass VoiceEngine and implement the abstract methods
    2. Provide a loader callable raising ConstructionError for bad inputs
    3. Pass the loader to Synthesizer(..., loader=my_loader)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np

from piper_synth.tts.options import SynthesisOptions


@dataclass
class EngineChunk:
    """
    Raw output of one engine step.

    Buffers may be reused by the engine on the next call; the synthesizer
    copies them into an AudioChunk before handing them to the caller.
    """
    samples: np.ndarray
    sample_rate: int
    is_last: bool
    phonemes: Optional[Sequence[int]] = None
    phoneme_ids: Optional[Sequence[int]] = None
    alignments: Optional[Sequence[int]] = None


class VoiceEngine:
    """
    Abstract base class for voice engines.

    Attributes:
        name: Engine identifier used in log lines.
        model_id: Identifier of the loaded model (usually its path).
        sample_rate: Fixed output sample rate of the loaded voice.
    """
    name: str = "base"
    model_id: str = ""
    sample_rate: int = 0

    def default_options(self) -> SynthesisOptions:
        """Options authored in the voice's config."""
        raise NotImplementedError

    def start(self, text: str, options: SynthesisOptions) -> None:
        """
        Prepare a new utterance.

        Raises:
            Exception: Any exception means the text or options were
                rejected; the synthesizer reports it as SynthesisStartError.
        """
        raise NotImplementedError

    def next_chunk(self) -> Optional[EngineChunk]:
        """Synthesize the next chunk, or return None when the utterance is exhausted."""
        raise NotImplementedError

    def release(self) -> None:
        """Free model and phonemizer resources. Called once by the synthesizer."""
        raise NotImplementedError


EngineLoader = Callable[[str, Optional[str], Optional[str]], VoiceEngine]
