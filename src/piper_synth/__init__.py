"""
piper-synth: streaming Piper text-to-speech.

Loads a Piper voice once and streams synthesis chunk by chunk, each chunk
carrying float32 audio plus the phonemes, phoneme ids and alignments that
produced it.

Example Usage:
    >>> from piper_synth import Synthesizer, chunks_to_wav_bytes
    >>>
    >>> with Synthesizer("voices/en_US-lessac-medium.onnx") as synth:
    ...     print(synth.default_options())
    ...     session = synth.start("This is a test. This is another test.")
    ...     chunks = []
    ...     while (chunk := session.next_chunk()) is not None:
    ...         chunks.append(chunk)
    >>> Path("out.wav").write_bytes(chunks_to_wav_bytes(chunks))
"""

__version__ = "0.1.0"

from piper_synth.core.errors import (
    ConcurrentSessionError,
    ConstructionError,
    DisposedError,
    DisposedStartError,
    ErrorCode,
    InvalidOptionError,
    PiperSynthError,
    SessionSupersededError,
    SynthesisError,
    SynthesisStartError,
)
from piper_synth.tts.chunk import AudioChunk
from piper_synth.tts.options import OPTION_NAMES, SynthesisOptions, resolve_options
from piper_synth.tts.session import SessionState, SynthesisSession
from piper_synth.tts.synthesizer import Synthesizer
from piper_synth.utils.audio import chunks_to_wav_bytes, samples_to_int16

__all__ = [
    "__version__",
    "AudioChunk",
    "ConcurrentSessionError",
    "ConstructionError",
    "DisposedError",
    "DisposedStartError",
    "ErrorCode",
    "InvalidOptionError",
    "OPTION_NAMES",
    "PiperSynthError",
    "SessionState",
    "SessionSupersededError",
    "SynthesisError",
    "SynthesisOptions",
    "SynthesisSession",
    "SynthesisStartError",
    "Synthesizer",
    "chunks_to_wav_bytes",
    "resolve_options",
    "samples_to_int16",
]
