"""
Audio Chunk Data Model.

An AudioChunk is one unit of streamed output: the samples generated for
one engine step (a sentence, for Piper) plus the linguistic metadata that
produced them.

Ownership:
    Every array in a chunk is a private copy made at construction time.
    The engine is free to reuse its buffers for the next pull; chunks the
    caller already holds are unaffected.

Optional sequences:
    phonemes, phoneme_ids and alignments are either a non-empty array or
    None. Empty input is normalized to None so "absent" has exactly one
    representation.

Phonemes and ids:
    ``phonemes`` holds one codepoint per phoneme id, with the groups that
    belong to one phoneme separated by 0:

        phonemes     ^ ^ 0 h h 0 ə ə 0 $
        phoneme_ids  1 0   20 0  59 0  2

    With the zeros removed, phonemes[i] is the phoneme that produced
    phoneme_ids[i] and alignments[i] samples of audio.
"""
from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import numpy as np


def _optional_array(values: Optional[Sequence[int] | np.ndarray], dtype: type) -> Optional[np.ndarray]:
    if values is None:
        return None
    arr = np.array(values, dtype=dtype).reshape(-1)
    if arr.size == 0:
        return None
    return arr


@dataclass(frozen=True, eq=False)
class AudioChunk:
    """
    A chunk of synthesized audio.

    Attributes:
        samples: float32 mono samples.
        sample_rate: Sample rate in Hz.
        is_last: True for the final chunk of a stream. One more pull is
            expected after it, which reports completion.
        phonemes: uint32 phoneme codepoints, one per phoneme id, groups
            separated by 0; or None.
        phoneme_ids: int32 engine phoneme ids, or None.
        alignments: int32 audio sample count per phoneme id, or None when
            the voice does not produce alignments.
    """
    samples: np.ndarray
    sample_rate: int
    is_last: bool = False
    phonemes: Optional[np.ndarray] = None
    phoneme_ids: Optional[np.ndarray] = None
    alignments: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "samples", np.array(self.samples, dtype=np.float32).reshape(-1))
        object.__setattr__(self, "is_last", bool(self.is_last))
        object.__setattr__(self, "phonemes", _optional_array(self.phonemes, np.uint32))
        object.__setattr__(self, "phoneme_ids", _optional_array(self.phoneme_ids, np.int32))
        object.__setattr__(self, "alignments", _optional_array(self.alignments, np.int32))

        if isinstance(self.sample_rate, bool) or not isinstance(self.sample_rate, numbers.Integral) or self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be a positive integer, got {self.sample_rate!r}")
        object.__setattr__(self, "sample_rate", int(self.sample_rate))

        if (
            self.alignments is not None
            and self.phoneme_ids is not None
            and self.alignments.size != self.phoneme_ids.size
        ):
            raise ValueError(
                f"alignments ({self.alignments.size}) must match phoneme_ids ({self.phoneme_ids.size})"
            )

        if self.phonemes is not None and self.phoneme_ids is not None:
            grouped = int(np.count_nonzero(self.phonemes))
            if grouped != self.phoneme_ids.size:
                raise ValueError(
                    f"phonemes ({grouped} without separators) must match phoneme_ids ({self.phoneme_ids.size})"
                )

    @property
    def num_samples(self) -> int:
        return int(self.samples.size)

    @property
    def duration_s(self) -> float:
        """Audio duration in seconds."""
        return self.num_samples / self.sample_rate

    def to_dict(self) -> Dict[str, Any]:
        """Plain record for a host boundary (camelCase keys, lists, None for absent)."""
        def _list(arr: Optional[np.ndarray]) -> Optional[list]:
            return None if arr is None else arr.tolist()

        return {
            "samples": self.samples.tolist(),
            "sampleRate": self.sample_rate,
            "isLast": self.is_last,
            "phonemes": _list(self.phonemes),
            "phonemeIds": _list(self.phoneme_ids),
            "alignments": _list(self.alignments),
        }
