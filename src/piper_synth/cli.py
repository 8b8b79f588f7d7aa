"""
Command-Line Interface for piper-synth.

Streams a Piper voice into a WAV file, logging each chunk as it arrives.

Usage Examples:
    # Synthesize to out.wav
    piper-synth voices/en_US-lessac-medium.onnx "This is a test." --out out.wav

    # Slower speech, second speaker of a multi-speaker voice
    piper-synth voices/vctk.onnx --text "Hello." --length-scale 1.3 --speaker-id 1

    # Show the voice's default options
    piper-synth voices/en_US-lessac-medium.onnx --defaults --json

Exit Codes:
    0  success
    1  synthesis failed or produced no audio
    2  the voice or the settings could not be loaded

Environment Variables:
    PIPER_SYNTH_SETTINGS: Settings file (default config/settings.yaml)
    PIPER_SYNTH_SESSION_POLICY: reject | supersede
    PIPER_SYNTH_ESPEAK_DATA: espeak-ng data directory
    PIPER_SYNTH_LOG_LEVEL: 1-4
"""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

import yaml

from piper_synth.core.config import DEFAULT_SETTINGS_PATH, ConfigValidationError, Settings, load_settings
from piper_synth.core.errors import ConstructionError, ErrorCode, PiperSynthError
from piper_synth.core.logging import configure_logging, fail, get_logger, info, set_correlation_id
from piper_synth.tts.synthesizer import Synthesizer
from piper_synth.utils.audio import chunks_to_wav_bytes


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="piper-synth", description="piper-synth CLI (streaming Piper TTS)")

    parser.add_argument("model", help="Path to the voice model (.onnx)")
    parser.add_argument("text_pos", nargs="?", help="Text to synthesize (positional)")
    parser.add_argument("--text", help="Text to synthesize")
    parser.add_argument("--out", default="out.wav", help="Output WAV path (default: out.wav)")

    # Voice resources
    parser.add_argument("--config", dest="config_path", help="Voice config (default: <model>.json)")
    parser.add_argument("--espeak-data", dest="espeak_data", help="espeak-ng data directory")
    parser.add_argument("--settings", help=f"Settings YAML (default: {DEFAULT_SETTINGS_PATH})")

    # Synthesis options
    parser.add_argument("--speaker-id", type=int, help="Speaker id for multi-speaker voices")
    parser.add_argument("--length-scale", type=float, help="Phoneme duration scale (0.5 = 2x faster)")
    parser.add_argument("--noise-scale", type=float, help="Voice variation")
    parser.add_argument("--noise-w-scale", type=float, help="Phoneme duration variation")

    parser.add_argument("--defaults", action="store_true", help="Print the voice's default options and exit")
    parser.add_argument("--json", action="store_true", help="Print JSON summary")

    return parser.parse_args(argv)


def _load_cli_settings(path: Optional[str]) -> Settings:
    """Explicit --settings must exist; the default location is optional."""
    if path:
        return load_settings(path)
    default = os.getenv("PIPER_SYNTH_SETTINGS", DEFAULT_SETTINGS_PATH)
    if Path(default).exists():
        return load_settings(default)
    return Settings(raw={})


def _option_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    candidates = {
        "speakerId": args.speaker_id,
        "lengthScale": args.length_scale,
        "noiseScale": args.noise_scale,
        "noiseWScale": args.noise_w_scale,
    }
    return {name: value for name, value in candidates.items() if value is not None}


def _emit(payload: Dict[str, Any], as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print(payload)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 success, 1 synthesis failure, 2 load or settings failure).
    """
    args = _parse_args(argv)

    configure_logging()
    log = get_logger("piper-synth.cli")
    set_correlation_id(str(uuid4())[:12])

    text = args.text if args.text is not None else args.text_pos
    if not args.defaults and text is None:
        raise SystemExit("Provide --text or a positional text.")

    try:
        settings = _load_cli_settings(args.settings)
        synth = Synthesizer.from_settings(
            args.model,
            settings,
            config_path=args.config_path,
            phonemizer_data_path=args.espeak_data,
        )
    except ConstructionError as exc:
        _emit(exc.to_dict(), args.json)
        return 2
    except (ConfigValidationError, FileNotFoundError, yaml.YAMLError) as exc:
        fail(log, "settings_invalid", error=str(exc))
        _emit({"ok": False, "error": ErrorCode.CONFIG_INVALID, "message": str(exc)}, args.json)
        return 2

    with synth:
        if args.defaults:
            _emit({"ok": True, "defaults": synth.default_options().to_dict(),
                   "sample_rate": synth.sample_rate}, args.json)
            return 0

        try:
            session = synth.start(text, _option_overrides(args))
            chunks = []
            for chunk in session:
                chunks.append(chunk)
                info(log, "chunk_received", index=len(chunks) - 1, samples=chunk.num_samples,
                     is_last=chunk.is_last)
        except PiperSynthError as exc:
            fail(log, "synthesis_failed", error=exc.message)
            _emit(exc.to_dict(), args.json)
            return 1

    if not chunks:
        _emit({"ok": False, "error": "NO_AUDIO", "message": "No audio was produced"}, args.json)
        return 1

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    wav = chunks_to_wav_bytes(chunks)
    out_path.write_bytes(wav)

    _emit({
        "ok": True,
        "out": str(out_path),
        "bytes": len(wav),
        "chunks": len(chunks),
        "samples": sum(c.num_samples for c in chunks),
        "sample_rate": chunks[0].sample_rate,
        "options": session.options.to_dict(),
    }, args.json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
