"""Melodic content for random-mode exercises.

:func:`build_phrase_from_scale_with_rhythm` gives every NOTE slot of a
rhythm one pitch from the allowed set (see :mod:`exercise_generator.pitch_window`).
The walk starts at the first allowed pitch at or above the range centre and
moves stepwise most of the time:

1. Candidates within two semitones of the current pitch are "near", the
   others "leap"; near is chosen with probability 0.75.  An empty side falls
   back to every allowed pitch.
2. A soft narrowing chain drops the previous degree, then anything further
   than six semitones away.  Each step applies only if something survives.
3. Once the current degree has sounded ``max_per_degree`` times in a row the
   degree is excluded outright, widening to the unnarrowed pool and then to
   the whole allowed set to find an alternative.  When no other degree
   exists at all the run is allowed to continue.

A phrase of exactly two notes on the same degree is repaired by moving the
second note to the nearest pitch of another degree (or the same degree in
another octave).

Example
-------
>>> from exercise_generator.note_utils import PitchRange
>>> from exercise_generator.rhythm_engine import build_equal_rhythm
>>> phrase = build_phrase_from_scale_with_rhythm(
...     PitchRange(60, 72), 80, 4, 0, "major", build_equal_rhythm("quarter", 4)
... )
>>> len(phrase.notes)
4
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Sequence

import numpy as np

from .note_utils import PitchRange
from .phrase import Phrase, PhraseNote, rhythm_seconds, sustained_phrase, timeline
from .pitch_window import PitchWindow
from .rng import XorShift32
from .timing import RhythmEvent

__all__ = ["DEFAULT_MELODY_SEED", "build_phrase_from_scale_with_rhythm"]

DEFAULT_MELODY_SEED = 0x9E3779B9

NEAR_SEMITONES = 2
NEAR_BIAS = 0.75
MAX_MOTION = 6


def empty_window_fallback(
    pitch_range: PitchRange, rhythm: Sequence[RhythmEvent], bpm: float, den: int
) -> Phrase:
    """Sustain the range centre for the whole rhythm (one second if empty)."""

    duration = rhythm_seconds(rhythm, bpm, den) or 1.0
    logging.warning(
        "No pitches satisfy the range and scale constraints; sustaining MIDI %d",
        pitch_range.center,
    )
    return sustained_phrase(pitch_range.center, duration)


def _narrow(candidates: List[int], steps: Iterable[Callable[[int], bool]]) -> List[int]:
    for keep in steps:
        kept = [m for m in candidates if keep(m)]
        if kept:
            candidates = kept
    return candidates


class _Walker:
    """Per-call state of the melodic walk."""

    def __init__(self, window: PitchWindow, allowed: Sequence[int], cap: int, rng: XorShift32):
        self.window = window
        self.allowed = np.asarray(allowed, dtype=np.int64)
        self.cap = cap
        self.rng = rng
        center = window.pitch_range.center
        above = self.allowed[self.allowed >= center]
        self.cursor = int(above[0]) if above.size else int(self.allowed[-1])
        self.prev_degree: Optional[int] = None
        self.run_len = 0

    def _base_pool(self) -> List[int]:
        dist = np.abs(self.allowed - self.cursor)
        near = self.allowed[dist <= NEAR_SEMITONES]
        leap = self.allowed[dist > NEAR_SEMITONES]
        base = near if self.rng() < NEAR_BIAS else leap
        if base.size == 0:
            base = self.allowed
        return [int(m) for m in base]

    def step(self) -> int:
        base = self._base_pool()
        prev, cursor = self.prev_degree, self.cursor
        pool = _narrow(
            base,
            (
                lambda m: self.window.degree_of(m) != prev,
                lambda m: abs(m - cursor) <= MAX_MOTION,
            ),
        )

        if prev is not None and self.run_len >= self.cap:
            for candidates in (pool, base, [int(m) for m in self.allowed]):
                alternatives = [m for m in candidates if self.window.degree_of(m) != prev]
                if alternatives:
                    pool = alternatives
                    break
            else:
                logging.debug(
                    "Degree %d has no alternative; run of %d exceeds cap %d",
                    prev,
                    self.run_len + 1,
                    self.cap,
                )

        midi = self.rng.choice(pool)
        degree = self.window.degree_of(midi)
        if degree == self.prev_degree:
            self.run_len += 1
        else:
            self.prev_degree = degree
            self.run_len = 1
        self.cursor = midi
        return midi


def _repair_two_note_collapse(
    notes: List[PhraseNote], window: PitchWindow, allowed: Sequence[int]
) -> None:
    if len(notes) != 2:
        return
    first, second = notes
    degree = window.degree_of(first.midi)
    if window.degree_of(second.midi) != degree:
        return

    def nearest(pool: List[int]) -> int:
        return min(pool, key=lambda m: (abs(m - first.midi), m))

    others = [m for m in allowed if window.degree_of(m) != degree]
    octaves = [m for m in allowed if m != first.midi and window.degree_of(m) == degree]
    if others:
        target = nearest(others)
    elif octaves:
        target = nearest(octaves)
    else:
        return
    notes[1] = PhraseNote(target, second.start_sec, second.dur_sec)


def build_phrase_from_scale_with_rhythm(
    pitch_range: PitchRange,
    bpm: float,
    den: int,
    tonic_pc: int,
    scale: str,
    rhythm: Sequence[RhythmEvent],
    max_per_degree: int = 2,
    seed: int = DEFAULT_MELODY_SEED,
    tonic_midis: Optional[Iterable[int]] = None,
    include_under: bool = False,
    include_over: bool = False,
    allowed_degree_indices: Optional[Iterable[int]] = None,
    allowed_midis: Optional[Iterable[int]] = None,
    drop_upper_window_degrees: bool = True,
) -> Phrase:
    """Assign a scale pitch to every NOTE slot of ``rhythm``.

    Parameters
    ----------
    pitch_range:
        Usable MIDI span of the singer.
    bpm, den:
        Quarter-note tempo and time-signature denominator used for timing.
    tonic_pc, scale:
        Key of the exercise.
    rhythm:
        Slots to fill; rests become gaps in the phrase.
    max_per_degree:
        Longest allowed run of consecutive notes on the same degree.
    seed:
        Seed for the per-call generator.
    tonic_midis, include_under, include_over:
        Optional tonic windows and spill beyond them.
    allowed_degree_indices, allowed_midis:
        Optional degree and absolute-pitch whitelists.
    drop_upper_window_degrees:
        Remove each window's upper tonic copy ``T + 12``.

    Returns
    -------
    Phrase
        One note per NOTE slot, or a single sustained centre note when no
        pitch is allowed.

    Raises
    ------
    ValueError
        If ``max_per_degree`` is below one, ``bpm`` is not positive or the
        scale is unknown.
    """

    if max_per_degree < 1:
        raise ValueError("max_per_degree must be at least 1")
    if bpm <= 0:
        raise ValueError("bpm must be positive")

    window = PitchWindow(
        pitch_range,
        tonic_pc,
        scale,
        tonic_midis=tonic_midis,
        include_under=include_under,
        include_over=include_over,
        allowed_degree_indices=allowed_degree_indices,
        allowed_midis=allowed_midis,
        drop_upper_window_degrees=drop_upper_window_degrees,
    )
    allowed = window.allowed()
    if not allowed:
        return empty_window_fallback(pitch_range, rhythm, bpm, den)

    walker = _Walker(window, allowed, max_per_degree, XorShift32(seed))
    notes: List[PhraseNote] = []
    for ev, start, dur in timeline(rhythm, bpm, den):
        if ev.is_note:
            notes.append(PhraseNote(walker.step(), start, dur))

    _repair_two_note_collapse(notes, window, allowed)
    return Phrase(rhythm_seconds(rhythm, bpm, den), notes)
