"""
Synthesis Options and Override Resolution.

A SynthesisOptions is the four-field control vector passed to the engine
for one synthesis session:

    speaker_id     (speakerId)    speaker index for multi-speaker voices
    length_scale   (lengthScale)  phoneme duration scale; 0.5 = 2x faster
    noise_scale    (noiseScale)   acoustic variation
    noise_w_scale  (noiseWScale)  phoneme duration variation

Defaults come from the voice model. Callers override any subset:

    >>> defaults = synth.default_options()
    >>> opts = resolve_options(defaults, {"lengthScale": 1.2, "unknown": 1})
    >>> opts.length_scale, opts.noise_scale == defaults.noise_scale
    (1.2, True)

Resolution is lenient by default: unknown names are ignored and values of
the wrong type fall back to the default. Passing ``strict=True`` turns both
cases into InvalidOptionError. Numeric ranges are never checked here; the
engine receives whatever the caller asked for.
"""
from __future__ import annotations

import math
import numbers
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping, Optional, Union

from piper_synth.core.errors import InvalidOptionError
from piper_synth.core.logging import debug, get_logger

_LOG = get_logger("piper-synth.options")

# Host-facing names, in field order
OPTION_NAMES = ("speakerId", "lengthScale", "noiseScale", "noiseWScale")

_FIELD_BY_NAME = {
    "speakerId": "speaker_id",
    "lengthScale": "length_scale",
    "noiseScale": "noise_scale",
    "noiseWScale": "noise_w_scale",
    "speaker_id": "speaker_id",
    "length_scale": "length_scale",
    "noise_scale": "noise_scale",
    "noise_w_scale": "noise_w_scale",
}

_NAME_BY_FIELD = dict(zip(("speaker_id", "length_scale", "noise_scale", "noise_w_scale"), OPTION_NAMES))


@dataclass(frozen=True)
class SynthesisOptions:
    """
    Resolved synthesis parameters.

    The field defaults are Piper's own fallbacks; a voice's config normally
    provides its own values via Synthesizer.default_options().
    """
    speaker_id: int = 0
    length_scale: float = 1.0
    noise_scale: float = 0.667
    noise_w_scale: float = 0.8

    def to_dict(self) -> Dict[str, Any]:
        """Host-facing record keyed by speakerId/lengthScale/noiseScale/noiseWScale."""
        return {_NAME_BY_FIELD[k]: v for k, v in asdict(self).items()}

    def merged(self, overrides: Any = None, *, strict: bool = False) -> "SynthesisOptions":
        """Shortcut for resolve_options(self, overrides, strict=strict)."""
        return resolve_options(self, overrides, strict=strict)


OptionOverrides = Union[SynthesisOptions, Mapping[str, Any], None]


def _coerce(field_name: str, value: Any) -> Optional[Union[int, float]]:
    """Return the value converted for the field, or None when it is unusable."""
    # bool is an Integral; True is not a speaker id
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    if field_name == "speaker_id":
        if isinstance(value, numbers.Integral):
            return int(value)
        if not math.isfinite(float(value)):
            return None
        return int(value)
    return float(value)


def resolve_options(
    defaults: SynthesisOptions,
    overrides: OptionOverrides = None,
    *,
    strict: bool = False,
) -> SynthesisOptions:
    """
    Merge a partial override onto defaults, field by field.

    Args:
        defaults: Fully-populated options (usually the voice defaults).
        overrides: None, a complete SynthesisOptions (used as-is), or a
            mapping from option names to values.
        strict: Raise InvalidOptionError instead of ignoring unknown names
            and mistyped values.

    Returns:
        A new SynthesisOptions. ``defaults`` is never modified.
    """
    if overrides is None:
        return defaults
    if isinstance(overrides, SynthesisOptions):
        return overrides
    if not isinstance(overrides, Mapping):
        if strict:
            raise InvalidOptionError(
                f"options must be a mapping, got {type(overrides).__name__}",
                details={"type": type(overrides).__name__},
            )
        debug(_LOG, "options_ignored", type=type(overrides).__name__)
        return defaults

    changes: Dict[str, Any] = {}
    ignored = []
    for name, value in overrides.items():
        field_name = _FIELD_BY_NAME.get(name) if isinstance(name, str) else None
        if field_name is None:
            if strict:
                raise InvalidOptionError(f"unknown option: {name!r}", details={"option": str(name)})
            ignored.append(str(name))
            continue

        coerced = _coerce(field_name, value)
        if coerced is None:
            if strict:
                raise InvalidOptionError(
                    f"option {name!r} has invalid value {value!r}",
                    details={"option": name, "type": type(value).__name__},
                )
            ignored.append(name)
            continue
        changes[field_name] = coerced

    if ignored:
        debug(_LOG, "options_ignored", names=ignored)

    return replace(defaults, **changes) if changes else defaults
