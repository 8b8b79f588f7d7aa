"""
Piper Voice Engine.

Drives a ``piper.PiperVoice`` (package ``piper-tts``) sentence by sentence:
the whole input is phonemized when the session starts, and every pull
turns one sentence's phonemes into audio.

Model Files:
    Piper needs an ONNX model and its JSON config. When no config path is
    given the conventional ``<model>.onnx.json`` next to the model is used.

        models/en_US-lessac-medium.onnx
        models/en_US-lessac-medium.onnx.json

    espeak-ng data ships inside piper-tts; pass ``phonemizer_data_path``
    only to use a different data directory.

Installation:
    pip install piper-tts
    # voices: https://huggingface.co/rhasspy/piper-voices

See Also:
    - https://github.com/OHF-Voice/piper1-gpl
"""
from __future__ import annotations

import json
from collections import deque
from pathlib import Path
from typing import Any, Deque, List, Mapping, Optional, Sequence

import numpy as np

from piper_synth.core.errors import ConstructionError
from piper_synth.core.logging import debug, get_logger, info
from piper_synth.tts.engines.base import EngineChunk, VoiceEngine
from piper_synth.tts.options import SynthesisOptions
from piper_synth.utils.timeit import timeit

# Piper's fallbacks when a voice config has no "inference" section
DEFAULT_LENGTH_SCALE = 1.0
DEFAULT_NOISE_SCALE = 0.667
DEFAULT_NOISE_W_SCALE = 0.8

# Piper's special phonemes (piper.phoneme_ids)
PAD = "_"
BOS = "^"
EOS = "$"

_LOG = get_logger("piper-synth.engine.piper")


def _phoneme_codepoints(
    phonemes: Sequence[str], phoneme_ids: Sequence[int], id_map: Mapping[str, Sequence[int]]
) -> Optional[List[int]]:
    """
    Expand phonemes so they line up with their phoneme ids.

    Walks ``[BOS, *phonemes, EOS]`` against the id map the way Piper does
    when it builds alignments. Every phoneme contributes its codepoint once
    per id it produced (its own ids plus the PAD that follows it); groups
    are separated by 0. Dropping the zeros gives one codepoint per id.

    Returns None when the ids were not produced from these phonemes.
    """
    pad_ids = list(id_map.get(PAD, ()))
    codepoints: List[int] = []
    idx = 0
    for symbol in (BOS, *phonemes, EOS):
        expected = list(id_map.get(symbol, ()))
        if not expected:
            # phonemes_to_ids skips phonemes missing from the map
            continue
        if len(symbol) != 1:
            return None
        end = idx + len(expected)
        if list(phoneme_ids[idx:end]) != expected:
            return None
        if symbol != EOS and pad_ids and list(phoneme_ids[end:end + len(pad_ids)]) == pad_ids:
            end += len(pad_ids)
        if codepoints:
            codepoints.append(0)
        codepoints.extend([ord(symbol)] * (end - idx))
        idx = end

    if idx != len(phoneme_ids):
        return None
    return codepoints


def _normalize(audio: np.ndarray, syn_config: Any) -> np.ndarray:
    """Peak normalization and volume, as PiperVoice.synthesize applies them."""
    if syn_config.normalize_audio:
        peak = float(np.max(np.abs(audio))) if audio.size else 0.0
        if peak < 1e-8:
            audio = np.zeros_like(audio)
        else:
            audio = audio / peak
    if syn_config.volume != 1.0:
        audio = audio * syn_config.volume
    return np.clip(audio, -1.0, 1.0).astype(np.float32)


def _read_voice_config(config_path: Path) -> dict:
    """Read and sanity-check a Piper voice config."""
    if not config_path.is_file():
        raise ConstructionError(f"config not found: {config_path}", component="config", path=str(config_path))
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ConstructionError(
            f"config is malformed: {config_path} ({exc})", component="config", path=str(config_path)
        ) from exc

    sample_rate = data.get("audio", {}).get("sample_rate") if isinstance(data, dict) else None
    if not isinstance(sample_rate, int) or sample_rate <= 0:
        raise ConstructionError(
            f"config is malformed: {config_path} (missing audio.sample_rate)",
            component="config",
            path=str(config_path),
        )
    return data


class PiperEngine(VoiceEngine):
    """
    VoiceEngine backed by a loaded PiperVoice.

    Use PiperEngine.load() to create one; it validates the three inputs
    before touching onnxruntime so a bad path is reported precisely.
    """

    name = "piper"

    def __init__(self, voice: Any, model_id: str, config: dict):
        self._voice = voice
        self.model_id = model_id
        self.sample_rate = int(config["audio"]["sample_rate"])
        self._num_speakers = int(config.get("num_speakers", 1))
        inference = config.get("inference", {}) or {}
        self._defaults = SynthesisOptions(
            speaker_id=0,
            length_scale=float(inference.get("length_scale", DEFAULT_LENGTH_SCALE)),
            noise_scale=float(inference.get("noise_scale", DEFAULT_NOISE_SCALE)),
            noise_w_scale=float(inference.get("noise_w", DEFAULT_NOISE_W_SCALE)),
        )
        self._pending: Deque[List[str]] = deque()
        self._syn_config: Any = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        model_path: str,
        config_path: Optional[str] = None,
        phonemizer_data_path: Optional[str] = None,
        use_cuda: bool = False,
    ) -> "PiperEngine":
        """
        Load a Piper voice.

        Raises:
            ConstructionError: component "model", "config" or "phonemizer"
                for the input that failed, "engine" if piper-tts is missing.
        """
        model = Path(model_path)
        if not model.is_file():
            raise ConstructionError(f"model not found: {model}", component="model", path=str(model))

        config_file = Path(config_path) if config_path else Path(f"{model_path}.json")
        config = _read_voice_config(config_file)

        if phonemizer_data_path is not None and not Path(phonemizer_data_path).is_dir():
            raise ConstructionError(
                f"phonemizer data not found: {phonemizer_data_path}",
                component="phonemizer",
                path=str(phonemizer_data_path),
            )

        try:
            from piper import PiperVoice
        except ImportError as exc:
            raise ConstructionError(
                "Piper dependency missing. Install: pip install piper-tts", component="engine"
            ) from exc

        kwargs = {"config_path": str(config_file), "use_cuda": use_cuda}
        if phonemizer_data_path is not None:
            kwargs["espeak_data_dir"] = str(phonemizer_data_path)

        with timeit("load_model") as t:
            try:
                voice = PiperVoice.load(str(model), **kwargs)
            except Exception as exc:
                raise ConstructionError(
                    f"model could not be loaded: {model} ({exc})", component="model", path=str(model)
                ) from exc

        info(_LOG, "piper_voice_loaded", model=str(model), sample_rate=config["audio"]["sample_rate"],
             speakers=config.get("num_speakers", 1), seconds=round(t.seconds, 3))
        return cls(voice, str(model), config)

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def default_options(self) -> SynthesisOptions:
        return self._defaults

    def start(self, text: str, options: SynthesisOptions) -> None:
        from piper.config import SynthesisConfig

        self._pending.clear()
        self._syn_config = SynthesisConfig(
            speaker_id=options.speaker_id if self._num_speakers > 1 else None,
            length_scale=options.length_scale,
            noise_scale=options.noise_scale,
            noise_w_scale=options.noise_w_scale,
        )
        if not text.strip():
            return

        sentences = [s for s in self._voice.phonemize(text) if s]
        self._pending.extend(sentences)
        debug(_LOG, "piper_phonemized", sentences=len(sentences), chars=len(text))

    def next_chunk(self) -> Optional[EngineChunk]:
        if not self._pending:
            return None

        phonemes = self._pending.popleft()
        phoneme_ids = self._voice.phonemes_to_ids(phonemes)
        result = self._voice.phoneme_ids_to_audio(phoneme_ids, self._syn_config, include_alignments=True)
        if isinstance(result, tuple):
            audio, alignments = result
        else:
            audio, alignments = result, None

        audio = _normalize(np.asarray(audio, dtype=np.float32).reshape(-1), self._syn_config)
        codepoints = _phoneme_codepoints(phonemes, phoneme_ids, self._voice.config.phoneme_id_map)
        if codepoints is None:
            debug(_LOG, "piper_phoneme_mismatch", phonemes=len(phonemes), ids=len(phoneme_ids))

        return EngineChunk(
            samples=audio,
            sample_rate=self.sample_rate,
            is_last=not self._pending,
            phonemes=codepoints,
            phoneme_ids=phoneme_ids,
            alignments=None if alignments is None else np.asarray(alignments).reshape(-1),
        )

    def release(self) -> None:
        self._pending.clear()
        self._voice = None
        self._syn_config = None
