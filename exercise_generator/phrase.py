"""Phrase containers and rhythm timelines."""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Iterator, List, Sequence, Tuple

from .rational import total
from .timing import RhythmEvent, beats_to_seconds, note_value_to_beats

__all__ = ["PhraseNote", "Phrase", "timeline", "rhythm_seconds", "sustained_phrase"]


@dataclass(frozen=True)
class PhraseNote:
    midi: int
    start_sec: float
    dur_sec: float

    def to_dict(self) -> dict:
        return {"midi": self.midi, "startSec": self.start_sec, "durSec": self.dur_sec}


@dataclass(frozen=True)
class Phrase:
    """Ordered notes with absolute timing in seconds.

    ``duration_sec`` covers the whole rhythm including trailing rests, so it
    can be longer than the end of the last note.
    """

    duration_sec: float
    notes: Tuple[PhraseNote, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "notes", tuple(self.notes))

    @property
    def midis(self) -> List[int]:
        return [n.midi for n in self.notes]

    def to_dict(self) -> dict:
        """JSON-ready form consumed by playback and notation."""

        return {
            "durationSec": self.duration_sec,
            "notes": [n.to_dict() for n in self.notes],
        }


def timeline(
    rhythm: Sequence[RhythmEvent], bpm: float, den: int
) -> Iterator[Tuple[RhythmEvent, float, float]]:
    """Yield ``(event, start_sec, dur_sec)`` for every event of ``rhythm``.

    Start times come from the exact cumulative beat count, so the ``n``-th
    start never carries the rounding error of ``n`` float additions.
    """

    beats = Fraction(0)
    for ev in rhythm:
        length = note_value_to_beats(ev.value, den)
        start = beats_to_seconds(beats, bpm, den)
        beats += length
        yield ev, start, beats_to_seconds(beats, bpm, den) - start


def rhythm_seconds(rhythm: Sequence[RhythmEvent], bpm: float, den: int) -> float:
    """Total length of ``rhythm`` in seconds."""

    beats = total(note_value_to_beats(ev.value, den) for ev in rhythm)
    return beats_to_seconds(beats, bpm, den)


def sustained_phrase(midi: int, duration_sec: float) -> Phrase:
    """One note held for the whole phrase."""

    return Phrase(duration_sec, (PhraseNote(midi, 0.0, duration_sec),))
