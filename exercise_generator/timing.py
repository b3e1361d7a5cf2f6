"""Note-value vocabulary, rhythm events and tempo conversions.

Durations are expressed relative to the *beat*, i.e. the note value named by
the time-signature denominator (``4`` means a quarter-note beat, ``8`` an
eighth-note beat).  ``bpm`` always counts quarter notes, so one beat lasts
``60 / bpm * 4 / den`` seconds.

Exact beat quantities are returned as :class:`fractions.Fraction`; only the
``*_seconds`` helpers produce floats.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Union

__all__ = [
    "NoteValue",
    "EventKind",
    "RhythmEvent",
    "QUARTER_FRACTIONS",
    "note_value_to_beats",
    "seconds_per_beat",
    "beats_to_seconds",
    "note_value_to_seconds",
    "bars_to_beats",
]


class NoteValue(str, Enum):
    """Enumerated duration tokens understood by every builder."""

    WHOLE = "whole"
    DOTTED_HALF = "dotted-half"
    HALF = "half"
    DOTTED_QUARTER = "dotted-quarter"
    TRIPLET_QUARTER = "triplet-quarter"
    QUARTER = "quarter"
    DOTTED_EIGHTH = "dotted-eighth"
    TRIPLET_EIGHTH = "triplet-eighth"
    EIGHTH = "eighth"
    DOTTED_SIXTEENTH = "dotted-sixteenth"
    TRIPLET_SIXTEENTH = "triplet-sixteenth"
    SIXTEENTH = "sixteenth"
    THIRTYSECOND = "thirtysecond"

    def __str__(self) -> str:
        return self.value


class EventKind(str, Enum):
    NOTE = "note"
    REST = "rest"

    def __str__(self) -> str:
        return self.value


# Length of every value in quarter notes (quarter = 1).
QUARTER_FRACTIONS = {
    NoteValue.WHOLE: Fraction(4),
    NoteValue.DOTTED_HALF: Fraction(3),
    NoteValue.HALF: Fraction(2),
    NoteValue.DOTTED_QUARTER: Fraction(3, 2),
    NoteValue.TRIPLET_QUARTER: Fraction(2, 3),
    NoteValue.QUARTER: Fraction(1),
    NoteValue.DOTTED_EIGHTH: Fraction(3, 4),
    NoteValue.TRIPLET_EIGHTH: Fraction(1, 3),
    NoteValue.EIGHTH: Fraction(1, 2),
    NoteValue.DOTTED_SIXTEENTH: Fraction(3, 8),
    NoteValue.TRIPLET_SIXTEENTH: Fraction(1, 6),
    NoteValue.SIXTEENTH: Fraction(1, 4),
    NoteValue.THIRTYSECOND: Fraction(1, 8),
}


@dataclass(frozen=True)
class RhythmEvent:
    """A single note or rest slot.

    Plain strings are accepted for both fields and coerced to their enum
    members, so ``RhythmEvent("note", "quarter")`` is valid.  Unknown values
    raise ``ValueError``.
    """

    kind: EventKind
    value: NoteValue

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", EventKind(self.kind))
        object.__setattr__(self, "value", NoteValue(self.value))

    @classmethod
    def note(cls, value: Union[NoteValue, str]) -> "RhythmEvent":
        return cls(EventKind.NOTE, NoteValue(value))

    @classmethod
    def rest(cls, value: Union[NoteValue, str]) -> "RhythmEvent":
        return cls(EventKind.REST, NoteValue(value))

    @property
    def is_note(self) -> bool:
        return self.kind is EventKind.NOTE

    def as_rest(self) -> "RhythmEvent":
        return RhythmEvent(EventKind.REST, self.value)

    def as_note(self) -> "RhythmEvent":
        return RhythmEvent(EventKind.NOTE, self.value)

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "value": self.value.value}


def note_value_to_beats(value: Union[NoteValue, str], den: int) -> Fraction:
    """Exact length of ``value`` in beats of a ``den`` time signature."""

    if den <= 0:
        raise ValueError("time signature denominator must be positive")
    return QUARTER_FRACTIONS[NoteValue(value)] * Fraction(den, 4)


def seconds_per_beat(bpm: float, den: int) -> float:
    """Seconds per beat unit for a quarter-note ``bpm``."""

    if bpm <= 0:
        raise ValueError("bpm must be positive")
    if den <= 0:
        raise ValueError("time signature denominator must be positive")
    return (60.0 / bpm) * (4.0 / den)


def beats_to_seconds(beats: Fraction, bpm: float, den: int) -> float:
    """Convert an exact beat count to seconds.

    The multiplication happens once on the exact total so cumulative start
    times never accumulate rounding error.
    """

    return float(max(Fraction(0), Fraction(beats))) * seconds_per_beat(bpm, den)


def note_value_to_seconds(value: Union[NoteValue, str], bpm: float, den: int) -> float:
    return beats_to_seconds(note_value_to_beats(value, den), bpm, den)


def bars_to_beats(bars: int, ts_num: int) -> int:
    if ts_num <= 0:
        raise ValueError("time signature numerator must be positive")
    return max(0, bars) * ts_num
