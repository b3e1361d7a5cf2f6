"""Interval-pair ear-training phrases.

Each bar plays one ``(root, target)`` pair drawn from every allowed pitch
pair whose distance is one of the requested interval sizes, in either
direction.  The first NOTE of the pair rhythm sounds the root and every later
NOTE the target; the rest of the bar is silent.

Example
-------
>>> from exercise_generator.note_utils import PitchRange
>>> phrase = build_interval_phrase(PitchRange(60, 72), 80, 4, 4, 0, "major", [7], 1)
>>> a, b = phrase.midis
>>> abs(a - b)
7
"""

from __future__ import annotations

import logging
from fractions import Fraction
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .note_utils import PitchRange
from .phrase import Phrase, PhraseNote
from .pitch_window import PitchWindow
from .rhythm_fit import fit_rhythm_to_bars, total_beats
from .rng import XorShift32
from .timing import NoteValue, RhythmEvent, beats_to_seconds, note_value_to_beats

__all__ = [
    "DEFAULT_INTERVAL_SEED",
    "beat_note_value",
    "default_pair_rhythm",
    "interval_bar_rhythm",
    "interval_pairs",
    "build_interval_phrase",
]

DEFAULT_INTERVAL_SEED = 0x1234

_BEAT_NOTES = {
    1: NoteValue.WHOLE,
    2: NoteValue.HALF,
    4: NoteValue.QUARTER,
    8: NoteValue.EIGHTH,
    16: NoteValue.SIXTEENTH,
    32: NoteValue.THIRTYSECOND,
}


def beat_note_value(den: int) -> NoteValue:
    """Note value lasting one beat in a ``den`` time signature."""

    return _BEAT_NOTES.get(den, NoteValue.QUARTER)


def default_pair_rhythm(den: int) -> List[RhythmEvent]:
    beat = beat_note_value(den)
    return [RhythmEvent.note(beat), RhythmEvent.note(beat)]


def interval_bar_rhythm(
    pair_rhythm: Sequence[RhythmEvent], den: int, ts_num: int
) -> List[RhythmEvent]:
    """One bar for the notation staff: the pair followed by exact rests."""

    return fit_rhythm_to_bars(
        pair_rhythm,
        1,
        den,
        ts_num,
        available_for_filler=[beat_note_value(den)],
        rest_prob=1.0,
    )


def interval_pairs(allowed: Sequence[int], intervals: Iterable[int]) -> List[Tuple[int, int]]:
    """All ``(root, target)`` pairs of ``allowed`` a requested distance apart."""

    arr = np.asarray(allowed, dtype=np.int64)
    sizes = np.asarray(sorted({abs(int(k)) for k in intervals if int(k) != 0}), dtype=np.int64)
    if arr.size == 0 or sizes.size == 0:
        return []
    diff = arr[None, :] - arr[:, None]
    roots, targets = np.nonzero(np.isin(np.abs(diff), sizes))
    return [(int(arr[r]), int(arr[t])) for r, t in zip(roots, targets)]


def build_interval_phrase(
    pitch_range: PitchRange,
    bpm: float,
    den: int,
    ts_num: int,
    tonic_pc: int,
    scale: str,
    intervals: Iterable[int],
    num_intervals: int,
    pair_rhythm: Optional[Sequence[RhythmEvent]] = None,
    seed: int = DEFAULT_INTERVAL_SEED,
    tonic_midis: Optional[Iterable[int]] = None,
    allowed_degree_indices: Optional[Iterable[int]] = None,
    allowed_midis: Optional[Iterable[int]] = None,
) -> Phrase:
    """Build ``num_intervals`` bars of interval pairs.

    Parameters
    ----------
    intervals:
        Interval sizes in semitones, e.g. ``[3, 5, 7]``.
    num_intervals:
        Number of bars, one pair per bar.
    pair_rhythm:
        Note/rest template for one pair.  Defaults to two beat-long notes.

    Returns
    -------
    Phrase
        Lasting exactly ``num_intervals`` bars.  When no pair is possible
        each bar holds one sustained pitch from the middle of the allowed
        set (or the range centre).

    Raises
    ------
    ValueError
        If the pair rhythm is longer than a bar, ``num_intervals`` or ``bpm``
        is not positive, or no non-zero interval is given.
    """

    if num_intervals <= 0:
        raise ValueError("num_intervals must be positive")
    if bpm <= 0:
        raise ValueError("bpm must be positive")
    sizes = [int(k) for k in intervals if int(k) != 0]
    if not sizes:
        raise ValueError("at least one non-zero interval is required")
    pair_rhythm = list(pair_rhythm or default_pair_rhythm(den))
    bar_beats = Fraction(ts_num)
    if total_beats(pair_rhythm, den) > bar_beats:
        raise ValueError(
            f"pair rhythm lasts {total_beats(pair_rhythm, den)} beats, longer than a {ts_num}/{den} bar"
        )

    window = PitchWindow(
        pitch_range,
        tonic_pc,
        scale,
        tonic_midis=tonic_midis,
        allowed_degree_indices=allowed_degree_indices,
        allowed_midis=allowed_midis,
        drop_upper_window_degrees=False,
    )
    allowed = window.allowed()
    pairs = interval_pairs(allowed, sizes)
    total = beats_to_seconds(bar_beats * num_intervals, bpm, den)

    notes: List[PhraseNote] = []
    if not pairs:
        mid = allowed[len(allowed) // 2] if allowed else pitch_range.center
        logging.warning(
            "No %s-semitone pairs fit the allowed pitches; sustaining MIDI %d",
            "/".join(str(k) for k in sizes),
            mid,
        )
        for bar in range(num_intervals):
            start = beats_to_seconds(bar_beats * bar, bpm, den)
            end = beats_to_seconds(bar_beats * (bar + 1), bpm, den)
            notes.append(PhraseNote(mid, start, end - start))
        return Phrase(total, notes)

    rng = XorShift32(seed)
    for bar in range(num_intervals):
        root, target = rng.choice(pairs)
        beats = bar_beats * bar
        played = 0
        for ev in pair_rhythm:
            length = note_value_to_beats(ev.value, den)
            if ev.is_note:
                start = beats_to_seconds(beats, bpm, den)
                end = beats_to_seconds(beats + length, bpm, den)
                notes.append(PhraseNote(root if played == 0 else target, start, end - start))
                played += 1
            beats += length
    return Phrase(total, notes)
