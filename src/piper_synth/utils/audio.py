"""
Audio Conversion Utilities.

Streamed chunks carry float32 mono samples in [-1, 1] at the voice's
native sample rate. These helpers turn them into 16-bit PCM and WAV.

Key Functions:
    samples_to_int16: float32 samples -> int16 PCM (clamped)
    chunks_to_wav_bytes: list of AudioChunk -> complete WAV file bytes
    wav_bytes_to_float32: WAV bytes -> float32 samples (for inspection)

Dependencies:
    - numpy: Array operations
    - soundfile: WAV writing/reading (libsndfile)

Example:
    >>> chunks = synth.synthesize("This is a test. This is another test.")
    >>> Path("out.wav").write_bytes(chunks_to_wav_bytes(chunks))
"""
from __future__ import annotations

import io
from typing import TYPE_CHECKING, Iterable, Tuple

import numpy as np
import soundfile as sf

from piper_synth.core.logging import debug, get_logger

if TYPE_CHECKING:
    from piper_synth.tts.chunk import AudioChunk

_LOG = get_logger("piper-synth.audio")


def samples_to_int16(samples: Iterable[float] | np.ndarray) -> np.ndarray:
    """
    Convert float samples to signed 16-bit PCM.

    Values are clamped to [-1, 1]; negative values scale by 32768 and
    positive values by 32767 so both ends of the int16 range are reachable.

    Returns:
        int16 numpy array of the same length.
    """
    wav = np.clip(np.asarray(samples, dtype=np.float32).reshape(-1), -1.0, 1.0)
    scaled = np.where(wav < 0, wav * 32768.0, wav * 32767.0)
    return np.round(scaled).astype(np.int16)


def chunks_to_wav_bytes(chunks: Iterable["AudioChunk"]) -> bytes:
    """
    Concatenate audio chunks into a mono 16-bit PCM WAV file.

    Args:
        chunks: Chunks from Synthesizer.synthesize() or a drained session.

    Returns:
        WAV file contents (44-byte header + PCM data).

    Raises:
        ValueError: If no chunks are given or their sample rates differ.
    """
    chunks = list(chunks)
    if not chunks:
        raise ValueError("No audio chunks provided")

    sample_rate = chunks[0].sample_rate
    if any(chunk.sample_rate != sample_rate for chunk in chunks):
        raise ValueError("Audio chunks have mixed sample rates")

    pcm = samples_to_int16(np.concatenate([chunk.samples for chunk in chunks]))

    buf = io.BytesIO()
    sf.write(buf, pcm, sample_rate, format="WAV", subtype="PCM_16")
    out = buf.getvalue()

    debug(_LOG, "wav_encoded", bytes=len(out), sr=sample_rate, chunks=len(chunks))
    return out


def wav_bytes_to_float32(wav_bytes: bytes) -> Tuple[np.ndarray, int]:
    """
    Decode WAV bytes to float32 mono samples.

    Returns:
        Tuple of (samples, sample_rate). Stereo input is averaged to mono.
    """
    wav, sr = sf.read(io.BytesIO(wav_bytes), dtype="float32")
    if wav.ndim > 1:
        wav = wav.mean(axis=1)
    return np.asarray(wav, dtype=np.float32), int(sr)
