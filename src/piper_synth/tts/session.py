"""
Synthesis Session: pull-based streaming over one utterance.

A session is created by Synthesizer.start() and yields AudioChunks one
pull at a time. It is an explicit state machine:

    STARTED ──pull──> STREAMING ──pull──> ... ──pull──> DONE
        │                  │
        └──────────────────┴──error / disposal / superseded──> FAILED

Pull results:
    - an AudioChunk (state STREAMING)
    - None once the stream is exhausted (state DONE)

A stream always ends with exactly one chunk flagged ``is_last`` followed
by exactly one completion (None). Pulling again after DONE returns None
again; pulling after FAILED raises again.

Ownership:
    The session keeps only a weak reference to its Synthesizer and checks
    on every pull that the Synthesizer is still alive and not disposed.
    A session never keeps a Synthesizer (and its model) alive.

Usage:
    session = synth.start("Hello there. General Kenobi.")
    while (chunk := session.next_chunk()) is not None:
        play(chunk.samples)

    # or simply
    for chunk in synth.start(text):
        play(chunk.samples)
"""
from __future__ import annotations

import weakref
from enum import Enum
from typing import TYPE_CHECKING, Iterator, Optional, Type

from piper_synth.core.errors import DisposedError, SessionSupersededError, SynthesisError
from piper_synth.core.logging import error, get_logger, info, verbose
from piper_synth.tts.chunk import AudioChunk
from piper_synth.tts.options import SynthesisOptions
from piper_synth.utils.timeit import timeit

if TYPE_CHECKING:
    from piper_synth.tts.synthesizer import Synthesizer

_LOG = get_logger("piper-synth.session")


class SessionState(str, Enum):
    """Lifecycle states of a SynthesisSession."""
    STARTED = "started"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (SessionState.DONE, SessionState.FAILED)


class SynthesisSession:
    """
    Single-use streaming generator bound to one Synthesizer, text and options.

    Do not construct directly; use Synthesizer.start().

    Attributes:
        id: Session number, unique per Synthesizer.
        text: Input text.
        options: Resolved options the engine was started with.
    """

    def __init__(self, synthesizer: "Synthesizer", session_id: int, text: str, options: SynthesisOptions):
        self._synth_ref = weakref.ref(synthesizer)
        self.id = session_id
        self.text = text
        self.options = options
        self._state = SessionState.STARTED
        self._last_delivered = False
        self._chunks = 0
        self._samples = 0
        self._failure: Optional[Type[SynthesisError]] = None
        self._failure_reason = ""

    def __repr__(self) -> str:
        return f"<SynthesisSession id={self.id} state={self._state.value} chunks={self._chunks}>"

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        """True until the session reaches DONE or FAILED."""
        return not self._state.terminal

    @property
    def chunks_delivered(self) -> int:
        return self._chunks

    # ------------------------------------------------------------------
    # Pulling
    # ------------------------------------------------------------------

    def next_chunk(self) -> Optional[AudioChunk]:
        """
        Pull the next chunk.

        Returns:
            The next AudioChunk, or None when the stream is complete.

        Raises:
            DisposedError: The Synthesizer was disposed or garbage-collected.
            SessionSupersededError: A newer session replaced this one.
            SynthesisError: The engine failed; the session is now FAILED.
        """
        synth = self._synth_ref()
        if synth is None:
            self._state = SessionState.FAILED
            raise DisposedError(details={"session": self.id})

        with synth._lock:
            if synth._disposed:
                self._state = SessionState.FAILED
                raise DisposedError(details={"session": self.id})

            if self._state is SessionState.DONE:
                return None
            if self._state is SessionState.FAILED:
                failure = self._failure or SynthesisError
                raise failure(f"session {self.id} is no longer usable: {self._failure_reason}",
                              details={"session": self.id})

            if self._last_delivered:
                self._finish(synth)
                return None

            return self._pull(synth)

    def _pull(self, synth: "Synthesizer") -> Optional[AudioChunk]:
        """Advance the engine by one step. Caller holds the Synthesizer lock."""
        with timeit("chunk") as t:
            try:
                raw = synth._engine.next_chunk()
                chunk = None if raw is None else AudioChunk(
                    samples=raw.samples,
                    sample_rate=raw.sample_rate,
                    is_last=raw.is_last,
                    phonemes=raw.phonemes,
                    phoneme_ids=raw.phoneme_ids,
                    alignments=raw.alignments,
                )
            except Exception as exc:
                self._fail(synth, SynthesisError, str(exc))
                raise SynthesisError(
                    f"Synthesis failed during audio generation: {exc}",
                    details={"session": self.id, "chunk": self._chunks},
                ) from exc

        if chunk is None:
            if self._chunks > 0:
                self._fail(synth, SynthesisError, "engine ended the stream without a final chunk")
                raise SynthesisError(
                    "Synthesis failed: engine ended the stream without a final chunk",
                    details={"session": self.id, "chunk": self._chunks},
                )
            self._finish(synth)
            return None

        self._state = SessionState.STREAMING
        self._chunks += 1
        self._samples += chunk.num_samples
        self._last_delivered = chunk.is_last
        verbose(_LOG, "chunk", session=self.id, index=self._chunks - 1, samples=chunk.num_samples,
                is_last=chunk.is_last, rtf=round(t.seconds / chunk.duration_s, 3) if chunk.num_samples else None,
                seconds=round(t.seconds, 4))
        return chunk

    # ------------------------------------------------------------------
    # Terminal transitions (caller holds the Synthesizer lock)
    # ------------------------------------------------------------------

    def _finish(self, synth: "Synthesizer") -> None:
        self._state = SessionState.DONE
        synth._release_slot(self)
        info(_LOG, "session_done", session=self.id, chunks=self._chunks, samples=self._samples)

    def _fail(self, synth: Optional["Synthesizer"], failure: Type[SynthesisError], reason: str) -> None:
        self._state = SessionState.FAILED
        self._failure = failure
        self._failure_reason = reason
        if synth is not None:
            synth._release_slot(self)
        error(_LOG, "session_failed", session=self.id, chunks=self._chunks, error=reason)

    def _supersede(self) -> None:
        """Mark this session as replaced by a newer one."""
        self._state = SessionState.FAILED
        self._failure = SessionSupersededError
        self._failure_reason = "superseded by a newer session"

    def _cancel(self) -> None:
        """Mark this session as cancelled by Synthesizer disposal."""
        self._state = SessionState.FAILED
        self._failure_reason = "synthesizer disposed"

    # ------------------------------------------------------------------
    # Early termination and iteration
    # ------------------------------------------------------------------

    def close(self) -> None:
        """
        Stop an unfinished session and free the Synthesizer's session slot.

        The session becomes DONE; later pulls return None. Closing a
        finished session, or one whose Synthesizer is gone, does nothing.
        """
        synth = self._synth_ref()
        if synth is None:
            return
        with synth._lock:
            if self._state.terminal or synth._disposed:
                return
            self._finish(synth)

    def __iter__(self) -> Iterator[AudioChunk]:
        return self

    def __next__(self) -> AudioChunk:
        chunk = self.next_chunk()
        if chunk is None:
            raise StopIteration
        return chunk
