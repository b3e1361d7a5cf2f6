"""Fit arbitrary rhythms onto whole bars and measure them exactly."""

from __future__ import annotations

import logging
import math
from fractions import Fraction
from typing import Iterable, List, Optional, Sequence

from .exact_fill import InfeasibleRhythmError, random_exact_units, resolve_grid
from .rational import total
from .rhythm_engine import BASIC_POOL, ensure_first_bar_note, note_values
from .rhythm_grid import Grid, ValueLike
from .rng import XorShift32
from .timing import RhythmEvent, note_value_to_beats
from .utils import validate_probability

__all__ = [
    "DEFAULT_FIT_SEED",
    "total_beats",
    "rhythm_bars",
    "note_count",
    "fit_rhythm_to_bars",
]

DEFAULT_FIT_SEED = 0xC0FFEE


def total_beats(rhythm: Iterable[RhythmEvent], den: int) -> Fraction:
    """Exact length of ``rhythm`` in beats."""

    return total(note_value_to_beats(ev.value, den) for ev in rhythm)


def rhythm_bars(rhythm: Sequence[RhythmEvent], den: int, ts_num: int) -> int:
    """Number of whole bars ``rhythm`` occupies, rounded up, at least one."""

    beats = total_beats(rhythm, den)
    return max(1, math.ceil(beats / max(1, ts_num)))


def note_count(rhythm: Iterable[RhythmEvent]) -> int:
    return sum(1 for ev in rhythm if ev.is_note)


def _fill(
    remaining: Fraction,
    grid: Grid,
    rng: XorShift32,
    allow_rests: bool,
    rest_prob: float,
) -> List[RhythmEvent]:
    units = grid.beats_to_units(remaining)
    parts = random_exact_units(units, grid.coins, rng)
    if not parts:
        wider = grid.with_fillers()
        units = wider.beats_to_units(remaining)
        parts = random_exact_units(units, wider.coins, rng)
        if not parts:
            raise InfeasibleRhythmError(
                f"Cannot fill the remaining {remaining} beats with "
                f"{', '.join(v.value for v in grid.values)}"
            )
        logging.info("Filling %s remaining beats with filler values", remaining)
        grid = wider

    out = []
    for p in parts:
        value = rng.choice(grid.values_for(p))
        if allow_rests and rng() < rest_prob:
            out.append(RhythmEvent.rest(value))
        else:
            out.append(RhythmEvent.note(value))
    return out


def fit_rhythm_to_bars(
    rhythm: Sequence[RhythmEvent],
    bars: int,
    den: int,
    ts_num: int,
    available_for_filler: Optional[Iterable[ValueLike]] = None,
    allow_rests: bool = True,
    rest_prob: float = 0.3,
    seed: int = DEFAULT_FIT_SEED,
) -> List[RhythmEvent]:
    """Return ``rhythm`` adapted to exactly ``bars`` bars.

    The input is replayed event by event.  The event that would cross the end
    is dropped and only the remaining span is filled exactly from the filler
    palette; a short input is extended the same way.  When that gap cannot be
    filled, kept events are dropped from the end until it can.  With rests
    allowed, a first bar that ends up silent has its first event turned into a
    note.

    Parameters
    ----------
    rhythm:
        Source events, possibly longer or shorter than the target.
    bars:
        Target length in bars.
    den, ts_num:
        Time signature.
    available_for_filler:
        Values used to fill gaps.  Defaults to quarter, eighth and sixteenth.
    allow_rests, rest_prob:
        Rest policy for the generated filler events.  Input events keep their
        kind.
    seed:
        Seed for the filler choices.

    Raises
    ------
    InfeasibleRhythmError
        If the whole target cannot be filled, even with filler values.
    ValueError
        For a non-positive ``bars`` or an invalid time signature.
    """

    if bars <= 0:
        raise ValueError("bars must be positive")
    if den <= 0 or ts_num <= 0:
        raise ValueError(f"invalid time signature {ts_num}/{den}")
    rest_prob = validate_probability(rest_prob, "rest_prob")

    filler = list(available_for_filler or []) or list(BASIC_POOL)
    target = Fraction(bars * ts_num)
    grid = resolve_grid(note_values(rhythm) + tuple(filler), den, target)
    rng = XorShift32(seed)

    out: List[RhythmEvent] = []
    used = Fraction(0)
    for ev in rhythm:
        beats = note_value_to_beats(ev.value, den)
        if used + beats > target:
            break
        out.append(ev)
        used += beats

    while used < target:
        try:
            out.extend(_fill(target - used, grid, rng, allow_rests, rest_prob))
            break
        except InfeasibleRhythmError:
            # The whole target is reachable, so backing off always terminates.
            if not out:
                raise
            dropped = out.pop()
            used -= note_value_to_beats(dropped.value, den)
            logging.debug(
                "Dropping %s to widen the gap to %s beats", dropped.value.value, target - used
            )

    if allow_rests:
        ensure_first_bar_note(out, den, ts_num)
    return out
