"""Tests for int16 conversion and WAV assembly from streamed chunks."""
from __future__ import annotations

import struct

import numpy as np
import pytest


def _chunk(n, sr=22050, value=0.0, is_last=False):
    from piper_synth.tts.chunk import AudioChunk
    return AudioChunk(samples=np.full(n, value, dtype=np.float32), sample_rate=sr, is_last=is_last)


def _find_chunk(data: bytes, tag: bytes) -> int:
    idx = data.find(tag, 12)
    assert idx >= 0, f"{tag!r} chunk missing"
    return idx


class TestSamplesToInt16:

    def test_full_scale(self):
        from piper_synth.utils.audio import samples_to_int16

        pcm = samples_to_int16([-1.0, 1.0, 0.0])
        assert pcm.dtype == np.int16
        assert pcm.tolist() == [-32768, 32767, 0]

    def test_clamping(self):
        from piper_synth.utils.audio import samples_to_int16

        assert samples_to_int16([2.0, -3.5]).tolist() == [32767, -32768]

    def test_asymmetric_scaling(self):
        from piper_synth.utils.audio import samples_to_int16

        assert samples_to_int16([-0.5, 0.25]).tolist() == [-16384, 8192]


class TestChunksToWav:

    def test_header_two_sentences(self):
        from piper_synth.utils.audio import chunks_to_wav_bytes

        data = chunks_to_wav_bytes([_chunk(22050), _chunk(22050, is_last=True)])

        assert data[:4] == b"RIFF"
        assert data[8:12] == b"WAVE"
        assert struct.unpack("<I", data[4:8])[0] == len(data) - 8

        fmt = _find_chunk(data, b"fmt ")
        audio_format, channels, sample_rate = struct.unpack("<HHI", data[fmt + 8:fmt + 16])
        bits = struct.unpack("<H", data[fmt + 22:fmt + 24])[0]
        assert audio_format == 1
        assert channels == 1
        assert sample_rate == 22050
        assert bits == 16

        pos = _find_chunk(data, b"data")
        assert struct.unpack("<I", data[pos + 4:pos + 8])[0] == 22050 * 2 * 2

    def test_roundtrip_samples(self):
        from piper_synth.utils.audio import chunks_to_wav_bytes, wav_bytes_to_float32

        wav, sr = wav_bytes_to_float32(chunks_to_wav_bytes([_chunk(100, value=0.5), _chunk(50, value=-0.5)]))
        assert sr == 22050
        assert wav.shape == (150,)
        assert wav[0] == pytest.approx(0.5, abs=1e-3)
        assert wav[-1] == pytest.approx(-0.5, abs=1e-3)

    def test_synthesized_chunks(self, synth):
        from piper_synth.utils.audio import chunks_to_wav_bytes, wav_bytes_to_float32

        wav, sr = wav_bytes_to_float32(chunks_to_wav_bytes(synth.synthesize("This is a test. Another one.")))
        assert sr == synth.sample_rate
        assert wav.size == 2 * 22050

    def test_no_chunks(self):
        from piper_synth.utils.audio import chunks_to_wav_bytes

        with pytest.raises(ValueError, match="No audio chunks provided"):
            chunks_to_wav_bytes([])

    def test_mixed_sample_rates(self):
        from piper_synth.utils.audio import chunks_to_wav_bytes

        with pytest.raises(ValueError, match="mixed sample rates"):
            chunks_to_wav_bytes([_chunk(10, sr=22050), _chunk(10, sr=16000)])

    def test_accepts_generator(self, synth):
        from piper_synth.utils.audio import chunks_to_wav_bytes

        data = chunks_to_wav_bytes(iter(synth.start("Streamed.")))
        assert data[:4] == b"RIFF"
