"""Shared fixtures: an in-memory voice engine that mimics a Piper test voice."""
from __future__ import annotations

import re
from collections import deque
from typing import Optional

import numpy as np
import pytest

from piper_synth.tts.engines.base import EngineChunk, VoiceEngine
from piper_synth.tts.options import SynthesisOptions

SAMPLE_RATE = 22050

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


def _piper_framing(letters):
    """
    Ids and grouped codepoints the way Piper lays them out.

    ids:      BOS PAD (p PAD)* EOS       with BOS=1, PAD=0, EOS=2
    phonemes: ^ ^ 0 (p p 0)* $
    """
    phonemes = [ord("^"), ord("^")]
    phoneme_ids = [1, 0]
    for letter in letters:
        phonemes += [0, ord(letter), ord(letter)]
        phoneme_ids += [3 + ord(letter) % 50, 0]
    phonemes += [0, ord("$")]
    phoneme_ids.append(2)
    return phonemes, phoneme_ids


class FakeEngine(VoiceEngine):
    """
    One second of silence per sentence at 22050 Hz.

    Phoneme ids are framed with BOS=1 / EOS=2 like a real Piper voice,
    and the alignments split the second evenly across the ids.
    """

    name = "fake"

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        defaults: Optional[SynthesisOptions] = None,
        reject: Optional[str] = None,
        fail_at: Optional[int] = None,
        alignments: bool = True,
    ):
        self.model_id = "fake.onnx"
        self.sample_rate = sample_rate
        self._defaults = defaults or SynthesisOptions()
        self.reject = reject
        self.fail_at = fail_at
        self.with_alignments = alignments
        self.started = []
        self.releases = 0
        self._pending = deque()
        self._index = 0

    def default_options(self) -> SynthesisOptions:
        return self._defaults

    def start(self, text: str, options: SynthesisOptions) -> None:
        if self.reject and self.reject in text:
            raise RuntimeError(f"text contains unsupported characters: {self.reject!r}")
        self.started.append((text, options))
        self._pending = deque(s for s in _SENTENCE_END.split(text.strip()) if s)
        self._index = 0

    def next_chunk(self) -> Optional[EngineChunk]:
        if not self._pending:
            return None
        if self.fail_at is not None and self._index == self.fail_at:
            raise RuntimeError("onnxruntime: inference failed")

        sentence = self._pending.popleft()
        self._index += 1
        letters = [ch for ch in sentence if ch.isalpha()] or ["a"]
        phonemes, phoneme_ids = _piper_framing(letters)
        alignments = None
        if self.with_alignments:
            base = self.sample_rate // len(phoneme_ids)
            alignments = [base] * len(phoneme_ids)
            alignments[-1] += self.sample_rate - base * len(phoneme_ids)

        return EngineChunk(
            samples=np.zeros(self.sample_rate, dtype=np.float32),
            sample_rate=self.sample_rate,
            is_last=not self._pending,
            phonemes=phonemes,
            phoneme_ids=phoneme_ids,
            alignments=alignments,
        )

    def release(self) -> None:
        self.releases += 1


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def loader(engine):
    def _load(model_path, config_path=None, phonemizer_data_path=None):
        engine.model_id = model_path
        return engine
    return _load


@pytest.fixture
def synth(loader):
    from piper_synth.tts.synthesizer import Synthesizer

    s = Synthesizer("voices/fake.onnx", loader=loader)
    yield s
    s.dispose()
