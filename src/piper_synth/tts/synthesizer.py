"""
Synthesizer: long-lived owner of a loaded voice.

The Synthesizer loads a voice once and hands out streaming sessions:

    with Synthesizer("voices/en_US-lessac-medium.onnx") as synth:
        defaults = synth.default_options()          # speaker 0, model scales
        session = synth.start("Hello world.", {"lengthScale": 1.2})
        for chunk in session:
            sink.write(chunk.samples)

Lifecycle:
    - Construction is all-or-nothing: either a usable Synthesizer or a
      ConstructionError naming the failed input (model/config/phonemizer).
    - dispose() releases the voice. It is idempotent and never raises.
      After it, every operation (including pulls on an already-started
      session) raises DisposedError. A Synthesizer that is garbage-collected
      without dispose() releases its voice through a finalizer.

One Session at a Time:
    The loaded model has a single inference context, so a Synthesizer owns
    exactly one session slot. What happens when start() is called while a
    session is still active is set by SynthesizerConfig.session_policy:

        reject     ConcurrentSessionError; the active session continues
        supersede  the active session fails with SessionSupersededError on
                   its next pull; the new session takes the slot

    Session start, every pull and dispose() run under one lock, so a
    dispose() from another thread waits for an in-flight pull to finish
    instead of freeing the model under it.
"""
from __future__ import annotations

import functools
import itertools
import os
import threading
import weakref
from typing import List, Optional

from piper_synth.core.config import Settings, SynthesizerConfig
from piper_synth.core.errors import (
    ConcurrentSessionError,
    ConstructionError,
    DisposedError,
    DisposedStartError,
    SynthesisStartError,
)
from piper_synth.core.logging import fail, get_logger, info, success, warn
from piper_synth.tts.chunk import AudioChunk
from piper_synth.tts.engines.base import EngineLoader, VoiceEngine
from piper_synth.tts.options import OptionOverrides, SynthesisOptions, resolve_options
from piper_synth.tts.session import SynthesisSession
from piper_synth.utils.timeit import timeit

_LOG = get_logger("piper-synth.synthesizer")


def _release_engine(engine: VoiceEngine) -> None:
    """Finalizer target. Must not reference the Synthesizer itself."""
    try:
        engine.release()
    except Exception as exc:
        # dispose() must not fail; report and move on
        warn(_LOG, "engine_release_failed", engine=engine.name, error=repr(exc))


class Synthesizer:
    """
    A text-to-speech synthesizer backed by one loaded voice.

    Args:
        model_path: Path to the voice model (Piper: ``.onnx``).
        config_path: Path to the voice config. Defaults to
            ``<model_path>.json``.
        phonemizer_data_path: espeak-ng data directory. Defaults to
            ``config.espeak_data_path``, then the data bundled with piper-tts.
        config: Synthesizer behaviour (session policy, strict options).
        loader: Engine loader ``(model, config, phonemizer) -> VoiceEngine``.
            Defaults to PiperEngine.load.

    Raises:
        TypeError: model_path is not a string or path.
        ConstructionError: The voice could not be loaded.
    """

    def __init__(
        self,
        model_path: str | os.PathLike,
        config_path: Optional[str | os.PathLike] = None,
        phonemizer_data_path: Optional[str | os.PathLike] = None,
        *,
        config: Optional[SynthesizerConfig] = None,
        loader: Optional[EngineLoader] = None,
    ):
        if not isinstance(model_path, (str, os.PathLike)):
            raise TypeError("model_path (string) is required as the first argument")

        self.config = config or SynthesizerConfig()
        self.model_path = os.fspath(model_path)
        self._lock = threading.Lock()
        self._disposed = True  # until fully constructed
        self._active: Optional[SynthesisSession] = None
        self._session_ids = itertools.count(1)

        if loader is None:
            from piper_synth.tts.engines.piper_engine import PiperEngine
            loader = functools.partial(PiperEngine.load, use_cuda=self.config.use_cuda)

        data_path = phonemizer_data_path or self.config.espeak_data_path
        config_arg = os.fspath(config_path) if config_path is not None else None
        data_arg = os.fspath(data_path) if data_path is not None else None

        with timeit("load") as t:
            try:
                engine = loader(self.model_path, config_arg, data_arg)
            except ConstructionError as exc:
                fail(_LOG, "synthesizer_load_failed", model=self.model_path, component=exc.component,
                     error=exc.message)
                raise
            except Exception as exc:
                fail(_LOG, "synthesizer_load_failed", model=self.model_path, component="model", error=repr(exc))
                raise ConstructionError(
                    f"model could not be loaded: {self.model_path} ({exc})",
                    component="model",
                    path=self.model_path,
                ) from exc

            try:
                defaults = engine.default_options()
                sample_rate = int(engine.sample_rate)
            except Exception as exc:
                _release_engine(engine)
                fail(_LOG, "synthesizer_load_failed", model=self.model_path, component="config", error=repr(exc))
                raise ConstructionError(
                    f"voice config is unusable: {exc}", component="config", path=config_arg
                ) from exc

        self._engine: Optional[VoiceEngine] = engine
        self._defaults = defaults
        self._sample_rate = sample_rate
        self._finalizer = weakref.finalize(self, _release_engine, engine)
        self._disposed = False

        success(_LOG, "synthesizer_ready", engine=engine.name, model=self.model_path,
                sample_rate=sample_rate, policy=self.config.session_policy, seconds=round(t.seconds, 3))

    @classmethod
    def from_settings(
        cls,
        model_path: str | os.PathLike,
        settings: Settings,
        config_path: Optional[str | os.PathLike] = None,
        phonemizer_data_path: Optional[str | os.PathLike] = None,
        loader: Optional[EngineLoader] = None,
    ) -> "Synthesizer":
        """Create a Synthesizer configured from loaded settings."""
        return cls(
            model_path,
            config_path,
            phonemizer_data_path,
            config=settings.get_synthesizer_config(),
            loader=loader,
        )

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "ready"
        return f"<Synthesizer model={self.model_path!r} {state}>"

    def __enter__(self) -> "Synthesizer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _check_alive(self) -> None:
        if self._disposed:
            raise DisposedError()

    @property
    def sample_rate(self) -> int:
        """Fixed output sample rate of the loaded voice, in Hz."""
        self._check_alive()
        return self._sample_rate

    @property
    def active_session(self) -> Optional[SynthesisSession]:
        """The session currently holding the slot, if any."""
        return self._active

    def default_options(self) -> SynthesisOptions:
        """
        Options authored in the voice's config.

        Raises:
            DisposedError: After dispose().
        """
        self._check_alive()
        return self._defaults

    def resolve_options(self, overrides: OptionOverrides = None, *, strict: Optional[bool] = None) -> SynthesisOptions:
        """
        Merge a partial override onto this voice's defaults.

        ``strict`` defaults to ``config.strict_options``.
        """
        defaults = self.default_options()
        return resolve_options(
            defaults,
            overrides,
            strict=self.config.strict_options if strict is None else strict,
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def start(self, text: str, options: OptionOverrides = None) -> SynthesisSession:
        """
        Start streaming synthesis of ``text``.

        Args:
            text: Text to synthesize. Empty text gives a session that
                completes on its first pull with no chunks.
            options: None for the voice defaults, a SynthesisOptions, or a
                partial mapping (speakerId, lengthScale, noiseScale,
                noiseWScale).

        Returns:
            An active SynthesisSession.

        Raises:
            TypeError: text is not a string.
            DisposedStartError: After dispose().
            ConcurrentSessionError: A session is active and the policy is
                "reject".
            SynthesisStartError: The engine rejected the text or options.
        """
        if not isinstance(text, str):
            raise TypeError("text (string) is required")

        with self._lock:
            if self._disposed:
                raise DisposedStartError()

            resolved = resolve_options(self._defaults, options, strict=self.config.strict_options)

            previous = self._active
            if previous is not None and previous.is_active:
                if not self.config.supersede:
                    raise ConcurrentSessionError(
                        f"session {previous.id} is still active; finish or close it first",
                        details={"active_session": previous.id},
                    )
                previous._supersede()
                self._active = None
                warn(_LOG, "session_superseded", session=previous.id)

            session = SynthesisSession(self, next(self._session_ids), text, resolved)
            try:
                self._engine.start(text, resolved)
            except Exception as exc:
                fail(_LOG, "session_start_failed", session=session.id, error=repr(exc))
                raise SynthesisStartError(
                    f"Failed to start synthesis: {exc}",
                    details={"session": session.id, "chars": len(text)},
                ) from exc

            self._active = session

        info(_LOG, "session_started", session=session.id, chars=len(text),
             text=text[: self.config.text_preview_chars], **resolved.to_dict())
        return session

    def synthesize(self, text: str, options: OptionOverrides = None) -> List[AudioChunk]:
        """
        Synthesize ``text`` completely and return every chunk.

        Equivalent to ``list(self.start(text, options))``.
        """
        return list(self.start(text, options))

    def _release_slot(self, session: SynthesisSession) -> None:
        """Free the session slot if ``session`` holds it. Caller holds the lock."""
        if self._active is session:
            self._active = None

    # ------------------------------------------------------------------
    # Disposal
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """
        Release the voice. Safe to call more than once.

        An active session is cancelled first; its next pull raises
        DisposedError.
        """
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            if self._active is not None:
                self._active._cancel()
                warn(_LOG, "session_cancelled", session=self._active.id)
                self._active = None
            self._engine = None
            self._finalizer()

        info(_LOG, "synthesizer_disposed", model=self.model_path)
