"""Rhythm builders producing :class:`~exercise_generator.timing.RhythmEvent` lists.

Two generations of builders live here.  The legacy samplers
(:func:`build_random_rhythm_basic` and :func:`build_random_rhythm_syncopated`)
draw note values from a fixed pool and make no promise about bar lines.  The
bar-exact builders (:func:`build_two_bar_rhythm` and
:func:`build_bars_rhythm_for_quota`) run the exact-fill solver once per bar so
every bar sums to exactly ``ts_num`` beats.

Rests are decided per event by an independent coin flip at ``rest_prob``.  A
first bar made only of rests has its first event turned into a note so an
exercise never opens on silence.

Example
-------
>>> rhythm = build_two_bar_rhythm(4, 4, ["quarter"], allow_rests=False)
>>> [e.value.value for e in rhythm]
['quarter', 'quarter', 'quarter', 'quarter', 'quarter', 'quarter', 'quarter', 'quarter']
"""

from __future__ import annotations

import logging
from fractions import Fraction
from typing import Iterable, List, Sequence, Tuple

from .exact_fill import fill_units, random_exact_units, resolve_grid
from .rhythm_grid import Grid, ValueLike
from .rng import XorShift32
from .timing import NoteValue, RhythmEvent, note_value_to_beats
from .utils import validate_probability

__all__ = [
    "DEFAULT_RHYTHM_SEED",
    "build_equal_rhythm",
    "build_random_rhythm_basic",
    "build_random_rhythm_syncopated",
    "build_two_bar_rhythm",
    "build_bars_rhythm_for_quota",
    "ensure_first_bar_note",
    "group_triplets",
]

DEFAULT_RHYTHM_SEED = 0xA5F3D7
DEFAULT_SYNCOPATED_SEED = 0x1F2E3D

BASIC_POOL = (NoteValue.QUARTER, NoteValue.EIGHTH, NoteValue.SIXTEENTH)
SYNCOPATED_POOL = (
    NoteValue.DOTTED_EIGHTH,
    NoteValue.EIGHTH,
    NoteValue.TRIPLET_EIGHTH,
    NoteValue.SIXTEENTH,
)

TRIPLET_VALUES = (
    NoteValue.TRIPLET_SIXTEENTH,
    NoteValue.TRIPLET_EIGHTH,
    NoteValue.TRIPLET_QUARTER,
)


def build_equal_rhythm(value: ValueLike, length: int = 8) -> List[RhythmEvent]:
    """Return ``length`` notes all of ``value``."""

    if length <= 0:
        raise ValueError("length must be positive")
    return [RhythmEvent.note(value) for _ in range(length)]


def _sample_pool(
    pool: Sequence[NoteValue], length: int, allow_rests: bool, rest_p: float, seed: int
) -> List[RhythmEvent]:
    rng = XorShift32(seed)
    out = []
    for _ in range(max(1, length)):
        value = rng.choice(pool)
        is_rest = allow_rests and rng() < rest_p
        out.append(RhythmEvent.rest(value) if is_rest else RhythmEvent.note(value))
    return out


def build_random_rhythm_basic(
    length: int = 8, allow_rests: bool = True, seed: int = DEFAULT_RHYTHM_SEED
) -> List[RhythmEvent]:
    """Quarter/eighth/sixteenth sampler with roughly 20% rests."""

    return _sample_pool(BASIC_POOL, length, allow_rests, 0.2, seed)


def build_random_rhythm_syncopated(
    length: int = 8, allow_rests: bool = True, seed: int = DEFAULT_SYNCOPATED_SEED
) -> List[RhythmEvent]:
    """Dotted and triplet sampler with roughly 15% rests."""

    return _sample_pool(SYNCOPATED_POOL, length, allow_rests, 0.15, seed)


def group_triplets(units: Sequence[int], grid: Grid, rng: XorShift32) -> List[int]:
    """Regroup the triplet-family events of one bar into runs of three.

    The total time spent on triplet values is decomposed again into groups of
    three identical triplets (three triplet eighths make one quarter's worth of
    units, and so on).  When that total cannot be split into such groups,
    non-triplet events of the same bar are borrowed, smallest first, until it
    can.  Each group is inserted at a random position among the remaining
    events.  The bar's unit sum never changes; if no grouping exists the
    input is returned unchanged.
    """

    trip_units = {grid.units_of(v): v for v in TRIPLET_VALUES if v in grid.values}
    if not trip_units or not any(u in trip_units for u in units):
        return list(units)

    group_coins = sorted(3 * u for u in trip_units)
    pool = sum(u for u in units if u in trip_units)
    others = [u for u in units if u not in trip_units]

    groups = random_exact_units(pool, group_coins, rng)
    donors = sorted(range(len(others)), key=lambda i: others[i])
    borrowed = set()
    while not groups and len(borrowed) < len(donors):
        idx = donors[len(borrowed)]
        borrowed.add(idx)
        pool += others[idx]
        groups = random_exact_units(pool, group_coins, rng)
    if not groups:
        return list(units)

    blocks = [[u] for i, u in enumerate(others) if i not in borrowed]
    for g in groups:
        pos = int(rng() * (len(blocks) + 1))
        blocks.insert(pos, [g // 3] * 3)
    return [u for block in blocks for u in block]


def _bar_values(grid: Grid, ts_num: int, rng: XorShift32, triplets: bool) -> List[NoteValue]:
    units = fill_units(grid.bar_units(ts_num), grid, rng)
    if triplets:
        units = group_triplets(units, grid, rng)
    return [rng.choice(grid.values_for(u)) for u in units]


def _check_meter(den: int, ts_num: int) -> None:
    if den <= 0 or ts_num <= 0:
        raise ValueError(f"invalid time signature {ts_num}/{den}")


def ensure_first_bar_note(events: List[RhythmEvent], den: int, ts_num: int) -> None:
    """Turn the opening event into a note when the first bar holds only rests."""

    bar = Fraction(ts_num)
    acc = Fraction(0)
    for ev in events:
        if ev.is_note:
            return
        acc += note_value_to_beats(ev.value, den)
        if acc >= bar:
            break
    if events:
        events[0] = events[0].as_note()


def build_two_bar_rhythm(
    den: int,
    ts_num: int,
    available: Iterable[ValueLike],
    rest_prob: float = 0.3,
    allow_rests: bool = True,
    seed: int = DEFAULT_RHYTHM_SEED,
    bars: int = 2,
    triplet_groups: bool = False,
) -> List[RhythmEvent]:
    """Build ``bars`` whole bars from the ``available`` note values.

    Parameters
    ----------
    den, ts_num:
        Time signature denominator and numerator.
    available:
        Palette of permitted note values.  When it cannot fill a bar the
        filler values are added (see :func:`exercise_generator.exact_fill.resolve_grid`).
    rest_prob:
        Probability that an individual event becomes a rest.
    allow_rests:
        When ``False`` every event is a note.
    seed:
        Seed for the per-call generator.
    bars:
        Number of bars, at least one.
    triplet_groups:
        Regroup triplet values into runs of three within each bar.

    Returns
    -------
    list[RhythmEvent]
        Events whose exact total is ``bars * ts_num`` beats.

    Raises
    ------
    InfeasibleRhythmError
        If the palette cannot fill a bar even with fillers.
    """

    _check_meter(den, ts_num)
    if bars <= 0:
        raise ValueError("bars must be positive")
    rest_prob = validate_probability(rest_prob, "rest_prob")
    grid = resolve_grid(list(available) or [NoteValue.QUARTER], den, Fraction(ts_num))
    rng = XorShift32(seed)

    out: List[RhythmEvent] = []
    for _ in range(bars):
        for value in _bar_values(grid, ts_num, rng, triplet_groups):
            if allow_rests and rng() < rest_prob:
                out.append(RhythmEvent.rest(value))
            else:
                out.append(RhythmEvent.note(value))

    if allow_rests:
        ensure_first_bar_note(out, den, ts_num)
    return out


def build_bars_rhythm_for_quota(
    den: int,
    ts_num: int,
    available: Iterable[ValueLike],
    note_quota: int,
    rest_prob: float = 0.3,
    allow_rests: bool = True,
    seed: int = DEFAULT_RHYTHM_SEED,
    triplet_groups: bool = False,
) -> List[RhythmEvent]:
    """Build whole bars until ``note_quota`` notes have been placed.

    Once the quota is reached the rest of the current bar is filled with
    rests, so the result still ends on a bar line.  With ``allow_rests=False``
    construction stops at the note that meets the quota and the final bar may
    be partial.  A bar that would contain no note while the quota is still
    open gets its first event turned into a note.

    Raises
    ------
    ValueError
        If ``note_quota`` is not positive.
    """

    _check_meter(den, ts_num)
    if note_quota <= 0:
        raise ValueError("note_quota must be positive")
    rest_prob = validate_probability(rest_prob, "rest_prob")
    grid = resolve_grid(list(available) or [NoteValue.QUARTER], den, Fraction(ts_num))
    rng = XorShift32(seed)

    out: List[RhythmEvent] = []
    notes = 0
    while notes < note_quota:
        bar_start = len(out)
        bar_has_note = False
        for value in _bar_values(grid, ts_num, rng, triplet_groups):
            if not allow_rests:
                out.append(RhythmEvent.note(value))
                notes += 1
                bar_has_note = True
                if notes >= note_quota:
                    return out
                continue
            if notes >= note_quota or rng() < rest_prob:
                out.append(RhythmEvent.rest(value))
            else:
                out.append(RhythmEvent.note(value))
                notes += 1
                bar_has_note = True
        if not bar_has_note and len(out) > bar_start:
            out[bar_start] = out[bar_start].as_note()
            notes += 1

    _trim_note_overshoot(out, note_quota)
    return out


def _trim_note_overshoot(events: List[RhythmEvent], note_quota: int) -> None:
    extra = sum(1 for e in events if e.is_note) - note_quota
    if extra > 0:
        logging.debug("Quota rhythm overshot by %d notes; demoting trailing notes", extra)
    for i in range(len(events) - 1, -1, -1):
        if extra <= 0:
            break
        if events[i].is_note:
            events[i] = events[i].as_rest()
            extra -= 1


def note_values(events: Iterable[RhythmEvent]) -> Tuple[NoteValue, ...]:
    """Distinct note values used by ``events`` in first-seen order."""

    seen: List[NoteValue] = []
    for ev in events:
        if ev.value not in seen:
            seen.append(ev.value)
    return tuple(seen)
