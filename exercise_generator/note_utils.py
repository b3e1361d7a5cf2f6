"""Pitch conversions between note names, MIDI numbers and frequencies.

The exercise builders work on integer MIDI numbers while the vocal range
arrives from range capture in Hertz.  This module keeps those conversions in
one place together with :class:`PitchRange`, the normalised ``[low, high]``
MIDI span every generator receives.

Example
-------
>>> from exercise_generator.note_utils import note_to_midi, PitchRange
>>> note_to_midi("C4")
60
>>> PitchRange.from_notes("C4", "C5").center
66
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from functools import lru_cache

__all__ = [
    "NOTE_TO_SEMITONE",
    "NOTES",
    "A4_MIDI",
    "note_to_midi",
    "midi_to_note",
    "pitch_class",
    "hz_to_midi",
    "midi_to_hz",
    "round_half_up",
    "PitchRange",
]

A4_MIDI = 69

# Both sharp and flat spellings map to the same semitone so enharmonic input
# such as ``Db`` and ``C#`` is accepted everywhere.
NOTE_TO_SEMITONE = {
    "C": 0,
    "B#": 0,
    "C#": 1,
    "Db": 1,
    "D": 2,
    "D#": 3,
    "Eb": 3,
    "E": 4,
    "Fb": 4,
    "E#": 5,
    "F": 5,
    "F#": 6,
    "Gb": 6,
    "G": 7,
    "G#": 8,
    "Ab": 8,
    "A": 9,
    "A#": 10,
    "Bb": 10,
    "B": 11,
    "Cb": 11,
}

NOTES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]


def round_half_up(x: float) -> int:
    """Round ``x`` to the nearest integer with halves rounded upwards.

    Python's :func:`round` uses banker's rounding, which would move range
    centres and Hz conversions by a semitone on exact halves.
    """

    return int(math.floor(x + 0.5))


def _normalise_name(name: str) -> str:
    name = name.strip().replace("♭", "b").replace("♯", "#")
    if not name:
        return name
    return name[0].upper() + name[1:]


def pitch_class(name: str) -> int:
    """Return the pitch class ``0..11`` for a note name without octave.

    Raises
    ------
    ValueError
        If ``name`` is not a known note spelling.
    """

    key = _normalise_name(name)
    if key not in NOTE_TO_SEMITONE:
        raise ValueError(f"Unknown note name: {name}")
    return NOTE_TO_SEMITONE[key]


@lru_cache(maxsize=None)
def note_to_midi(note: str) -> int:
    """Convert a note string such as ``C#4`` into a MIDI number.

    Octaves follow scientific pitch notation (``C4`` is middle C, ``60``) and
    may be negative.  ``B#`` and ``Cb`` resolve to their pitch class within
    the written octave (``B#3`` is ``48``).

    Raises
    ------
    ValueError
        If ``note`` is malformed or the result falls outside ``0-127``.
    """

    match = re.fullmatch(r"([A-Ga-g][#b♯♭]?)(-?\d+)", note.strip())
    if not match:
        logging.error("Invalid note format: %s", note)
        raise ValueError(f"Invalid note format: {note}")

    name, octave_str = match.groups()
    semitone = pitch_class(name)
    midi_val = semitone + (int(octave_str) + 1) * 12
    if not 0 <= midi_val <= 127:
        logging.error("MIDI value out of range: %s -> %d", note, midi_val)
        raise ValueError(
            f"Computed MIDI value {midi_val} out of range 0-127 for note {note}"
        )
    return midi_val


def midi_to_note(midi_note: int) -> str:
    """Convert a MIDI number into a sharp-spelled note name, e.g. ``C#4``.

    Raises
    ------
    ValueError
        If ``midi_note`` is outside the inclusive ``0-127`` range.
    """

    if not 0 <= midi_note <= 127:
        raise ValueError(f"MIDI note {midi_note} out of range 0-127")
    octave = midi_note // 12 - 1
    return f"{NOTES[midi_note % 12]}{octave}"


def hz_to_midi(hz: float, a4_hz: float = 440.0) -> float:
    """Fractional MIDI number for ``hz``.

    Raises
    ------
    ValueError
        If ``hz`` or ``a4_hz`` is not a positive finite number.
    """

    if not math.isfinite(hz) or hz <= 0:
        raise ValueError(f"frequency must be positive, got {hz}")
    if not math.isfinite(a4_hz) or a4_hz <= 0:
        raise ValueError(f"reference pitch must be positive, got {a4_hz}")
    return A4_MIDI + 12 * math.log2(hz / a4_hz)


def midi_to_hz(midi: float, a4_hz: float = 440.0) -> float:
    return a4_hz * 2 ** ((midi - A4_MIDI) / 12)


@dataclass(frozen=True)
class PitchRange:
    """Inclusive MIDI span of a singer's usable range.

    The bounds are swapped on construction when given in reverse order so
    callers can pass range-capture results without sorting them first.
    """

    low_midi: int
    high_midi: int

    def __post_init__(self) -> None:
        lo, hi = int(self.low_midi), int(self.high_midi)
        if lo > hi:
            lo, hi = hi, lo
        object.__setattr__(self, "low_midi", lo)
        object.__setattr__(self, "high_midi", hi)

    @classmethod
    def from_hz(cls, low_hz: float, high_hz: float, a4_hz: float = 440.0) -> "PitchRange":
        """Round both frequencies to the nearest MIDI note."""

        return cls(
            round_half_up(hz_to_midi(low_hz, a4_hz)),
            round_half_up(hz_to_midi(high_hz, a4_hz)),
        )

    @classmethod
    def from_notes(cls, low: str, high: str) -> "PitchRange":
        return cls(note_to_midi(low), note_to_midi(high))

    @property
    def center(self) -> int:
        return round_half_up((self.low_midi + self.high_midi) / 2)

    @property
    def span(self) -> int:
        return self.high_midi - self.low_midi

    def __contains__(self, midi: int) -> bool:
        return self.low_midi <= midi <= self.high_midi

    def midis(self) -> range:
        return range(self.low_midi, self.high_midi + 1)
