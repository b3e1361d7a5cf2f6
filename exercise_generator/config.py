"""Session configuration and the JSON settings file.

A session combines tempo, meter, key and one *rhythm mode*.  The three modes
are separate dataclasses rather than a string tag, so
:func:`exercise_generator.exercise.generate_exercise` can dispatch on the type
and reject anything it does not know.

Settings are stored as JSON.  The default location is
``~/.exercise_generator_settings.json`` and can be overridden with the
``EXERCISE_GENERATOR_SETTINGS`` environment variable.  Loading and saving
log failures instead of raising so a broken preferences file never blocks
generation.

Example
-------
>>> cfg = session_config_from_dict({"bpm": 96, "rhythm": {"mode": "sequence", "pattern": "asc-desc"}})
>>> cfg.rhythm.pattern.value
'asc-desc'
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .scales import canonical_scale
from .sequence import SequencePattern
from .timing import NoteValue
from .utils import normalise_int_list, parse_time_signature, validate_probability

__all__ = [
    "SETTINGS_ENV_VAR",
    "ScaleConfig",
    "SequenceRhythm",
    "RandomRhythm",
    "IntervalRhythm",
    "RhythmConfig",
    "SessionConfig",
    "DEFAULT_SESSION_CONFIG",
    "session_config_from_dict",
    "session_config_to_dict",
    "default_settings_path",
    "load_settings",
    "save_settings",
]

SETTINGS_ENV_VAR = "EXERCISE_GENERATOR_SETTINGS"


def default_settings_path() -> Path:
    """Settings file location, honouring ``EXERCISE_GENERATOR_SETTINGS``."""

    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".exercise_generator_settings.json"


def _int_tuple(values) -> Optional[Tuple[int, ...]]:
    norm = normalise_int_list(values)
    return tuple(norm) if norm else None


@dataclass(frozen=True)
class ScaleConfig:
    tonic_pc: int = 0
    name: str = "major"
    max_per_degree: int = 2
    seed: int = 0xC0FFEE

    def __post_init__(self) -> None:
        object.__setattr__(self, "tonic_pc", int(self.tonic_pc) % 12)
        object.__setattr__(self, "name", canonical_scale(self.name))
        if self.max_per_degree < 1:
            raise ValueError("max_per_degree must be at least 1")


@dataclass(frozen=True)
class _RhythmBase:
    """Fields shared by every rhythm mode.

    ``allow_rests``/``rest_prob`` govern the separate rhythm line;
    ``content_allow_rests``/``content_rest_prob`` govern the melody itself.
    Content rests are only possible when the line allows them.
    """

    available: Tuple[NoteValue, ...] = (NoteValue.QUARTER,)
    allow_rests: bool = True
    rest_prob: float = 0.3
    content_allow_rests: bool = True
    content_rest_prob: Optional[float] = None
    line_enabled: bool = True
    seed: int = 0xA5F3D7
    group_triplets: bool = False

    def __post_init__(self) -> None:
        available = tuple(NoteValue(v) for v in self.available) or (NoteValue.QUARTER,)
        object.__setattr__(self, "available", available)
        validate_probability(self.rest_prob, "rest_prob")
        if self.content_rest_prob is not None:
            validate_probability(self.content_rest_prob, "content_rest_prob")

    @property
    def line_rest_prob(self) -> float:
        return self.rest_prob if self.allow_rests else 0.0

    @property
    def content_rests(self) -> bool:
        return self.allow_rests and self.content_allow_rests

    @property
    def content_rest_probability(self) -> float:
        if not self.content_rests:
            return 0.0
        return self.rest_prob if self.content_rest_prob is None else self.content_rest_prob


@dataclass(frozen=True)
class SequenceRhythm(_RhythmBase):
    pattern: SequencePattern = SequencePattern.ASC

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "pattern", SequencePattern(self.pattern))


@dataclass(frozen=True)
class RandomRhythm(_RhythmBase):
    length_bars: int = 2
    include_under: bool = False
    include_over: bool = False

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.length_bars <= 0:
            raise ValueError("length_bars must be positive")


@dataclass(frozen=True)
class IntervalRhythm(_RhythmBase):
    intervals: Tuple[int, ...] = (3, 5)
    num_intervals: int = 8
    length_bars: int = 2

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "intervals", tuple(int(k) for k in self.intervals) or (3, 5))
        if self.num_intervals <= 0:
            raise ValueError("num_intervals must be positive")


RhythmConfig = Union[SequenceRhythm, RandomRhythm, IntervalRhythm]

_MODES = {
    "sequence": SequenceRhythm,
    "random": RandomRhythm,
    "interval": IntervalRhythm,
}


@dataclass(frozen=True)
class SessionConfig:
    bpm: float = 80
    time_signature: str = "4/4"
    scale: ScaleConfig = field(default_factory=ScaleConfig)
    rhythm: RhythmConfig = field(default_factory=RandomRhythm)
    tonic_midis: Optional[Tuple[int, ...]] = None
    allowed_degrees: Optional[Tuple[int, ...]] = None
    allowed_midis: Optional[Tuple[int, ...]] = None
    preferred_octave_indices: Optional[Tuple[int, ...]] = None
    drop_upper_window_degrees: bool = True

    def __post_init__(self) -> None:
        if self.bpm <= 0:
            raise ValueError("bpm must be positive")
        for name in ("tonic_midis", "allowed_degrees", "allowed_midis"):
            object.__setattr__(self, name, _int_tuple(getattr(self, name)))
        if self.preferred_octave_indices is not None:
            object.__setattr__(
                self,
                "preferred_octave_indices",
                tuple(int(i) for i in self.preferred_octave_indices) or None,
            )

    @property
    def ts(self) -> Tuple[int, int]:
        """``(numerator, denominator)``; malformed strings read as 4/4."""

        return parse_time_signature(self.time_signature)

    @property
    def mode(self) -> str:
        for name, cls in _MODES.items():
            if isinstance(self.rhythm, cls):
                return name
        raise TypeError(f"Unsupported rhythm config: {type(self.rhythm).__name__}")


DEFAULT_SESSION_CONFIG = SessionConfig()

_SESSION_KEYS = {
    "bpm": "bpm",
    "timeSignature": "time_signature",
    "tonicMidis": "tonic_midis",
    "allowedDegrees": "allowed_degrees",
    "allowedMidis": "allowed_midis",
    "preferredOctaveIndices": "preferred_octave_indices",
    "dropUpperWindowDegrees": "drop_upper_window_degrees",
}
_SCALE_KEYS = {
    "tonicPc": "tonic_pc",
    "name": "name",
    "maxPerDegree": "max_per_degree",
    "seed": "seed",
}
_RHYTHM_KEYS = {
    "available": "available",
    "allowRests": "allow_rests",
    "restProb": "rest_prob",
    "contentAllowRests": "content_allow_rests",
    "contentRestProb": "content_rest_prob",
    "lineEnabled": "line_enabled",
    "seed": "seed",
    "groupTriplets": "group_triplets",
    "pattern": "pattern",
    "lengthBars": "length_bars",
    "includeUnder": "include_under",
    "includeOver": "include_over",
    "intervals": "intervals",
    "numIntervals": "num_intervals",
}


def _pick(raw: Dict[str, Any], keys: Dict[str, str], allowed) -> Dict[str, Any]:
    # Both the camelCase keys written by save_settings and the dataclass
    # field names are accepted.
    out = {}
    for key, value in raw.items():
        name = keys.get(key, key)
        if name in allowed:
            out[name] = value
    return out


def session_config_from_dict(raw: Dict[str, Any]) -> SessionConfig:
    """Build a :class:`SessionConfig` from a settings dictionary.

    Missing keys keep their defaults.  Unknown keys are ignored.

    Raises
    ------
    ValueError
        If the rhythm ``mode`` is unknown or a value fails validation.
    """

    kwargs = _pick(raw, _SESSION_KEYS, {f.name for f in fields(SessionConfig)})

    scale_raw = raw.get("scale") or {}
    kwargs["scale"] = ScaleConfig(
        **_pick(scale_raw, _SCALE_KEYS, {f.name for f in fields(ScaleConfig)})
    )

    rhythm_raw = dict(raw.get("rhythm") or {})
    mode = str(rhythm_raw.pop("mode", "random")).lower()
    cls = _MODES.get(mode)
    if cls is None:
        raise ValueError(f"Unknown rhythm mode: {mode}")
    rhythm_kwargs = _pick(rhythm_raw, _RHYTHM_KEYS, {f.name for f in fields(cls)})
    for key in ("available", "intervals"):
        if key in rhythm_kwargs:
            rhythm_kwargs[key] = tuple(rhythm_kwargs[key] or ())
    kwargs["rhythm"] = cls(**rhythm_kwargs)
    return SessionConfig(**kwargs)


def _camel(mapping: Dict[str, str], data: Dict[str, Any]) -> Dict[str, Any]:
    reverse = {v: k for k, v in mapping.items()}
    return {reverse.get(k, k): v for k, v in data.items()}


def _jsonable(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (NoteValue, SequencePattern)):
        return value.value
    return value


def session_config_to_dict(cfg: SessionConfig) -> Dict[str, Any]:
    """Inverse of :func:`session_config_from_dict` using camelCase keys."""

    data = {k: _jsonable(v) for k, v in asdict(cfg).items() if k not in ("scale", "rhythm")}
    out = _camel(_SESSION_KEYS, data)
    out["scale"] = _camel(_SCALE_KEYS, asdict(cfg.scale))
    rhythm = _camel(_RHYTHM_KEYS, {k: _jsonable(v) for k, v in asdict(cfg.rhythm).items()})
    rhythm["mode"] = cfg.mode
    out["rhythm"] = rhythm
    return out


def load_settings(path: Optional[Path] = None) -> dict:
    """Load saved settings from ``path`` if it exists.

    Returns an empty dictionary when the file is missing or unreadable.
    """

    path = Path(path) if path is not None else default_settings_path()
    if path.is_file():
        try:
            with open(path, "r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logging.error(f"Could not load settings: {exc}")
    return {}


def save_settings(settings: dict, path: Optional[Path] = None) -> None:
    """Write ``settings`` to ``path`` as JSON, logging any I/O failure."""

    path = Path(path) if path is not None else default_settings_path()
    try:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(settings, fh, indent=2)
    except OSError as exc:
        logging.error(f"Could not save settings: {exc}")
