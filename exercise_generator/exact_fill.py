"""Exact decomposition of a grid-unit target into note-value "coins".

Two pieces work together:

``make_reach``
    Unbounded coin-change reachability over ``0..target``.
``random_exact_units``
    Builds one concrete coin sequence summing to ``target``.  At every step
    only coins that keep the remainder reachable are considered, and the
    index into that ascending list is drawn as ``floor(r ** 0.7 * n)``.  Since
    ``r ** 0.7 >= r`` on ``[0, 1)``, the draw leans towards the larger
    feasible coins; the smallest coin is picked with probability
    ``(1/n) ** (1/0.7)`` rather than ``1/n``.

:func:`resolve_grid` picks the grid a palette is played on.  A palette that
cannot close the target (only ``dotted-eighth`` in 4/4, say) is widened with
:data:`~exercise_generator.rhythm_grid.FILLERS` once; if the target is still
out of reach :class:`InfeasibleRhythmError` is raised.  No caller ever gets a
rhythm of the wrong length.
"""

from __future__ import annotations

import logging
import math
from fractions import Fraction
from typing import Callable, Iterable, List, Sequence

from .rhythm_grid import Grid, ValueLike

__all__ = [
    "InfeasibleRhythmError",
    "make_reach",
    "random_exact_units",
    "resolve_grid",
    "fill_units",
]

BIAS_EXPONENT = 0.7


class InfeasibleRhythmError(ValueError):
    """Raised when no combination of the palette fills the requested span."""


def make_reach(coins: Iterable[int], target: int) -> List[bool]:
    """Return ``reach`` where ``reach[t]`` tells whether ``t`` units are fillable."""

    if target < 0:
        return []
    usable = sorted({c for c in coins if c > 0})
    reach = [False] * (target + 1)
    reach[0] = True
    for t in range(1, target + 1):
        for c in usable:
            if c > t:
                break
            if reach[t - c]:
                reach[t] = True
                break
    return reach


def random_exact_units(
    target: int,
    coins: Sequence[int],
    rng: Callable[[], float],
    exponent: float = BIAS_EXPONENT,
) -> List[int]:
    """Randomly decompose ``target`` into ``coins``.

    Parameters
    ----------
    target:
        Number of grid units to fill.
    coins:
        Available unit sizes.  Order does not matter.
    rng:
        Zero-argument callable returning floats in ``[0, 1)``.
    exponent:
        Bias applied to the random draw before indexing the feasible coins.

    Returns
    -------
    list[int]
        Unit sizes in playing order.  ``[]`` for a zero target, and also when
        ``target`` is unreachable, which callers must check for.
    """

    if target <= 0:
        return []
    ordered = sorted({c for c in coins if c > 0})
    reach = make_reach(ordered, target)
    if not reach[target]:
        return []

    parts: List[int] = []
    remaining = target
    while remaining > 0:
        feasible = [c for c in ordered if c <= remaining and reach[remaining - c]]
        idx = int(math.floor(rng() ** exponent * len(feasible)))
        coin = feasible[min(idx, len(feasible) - 1)]
        parts.append(coin)
        remaining -= coin
    return parts


def _reaches(grid: Grid, target_beats: Fraction) -> bool:
    units = Fraction(target_beats) * grid.grid_den
    if units.denominator != 1 or units < 0:
        return False
    reach = make_reach(grid.coins, units.numerator)
    return bool(reach) and reach[-1]


def resolve_grid(values: Iterable[ValueLike], den: int, target_beats: Fraction) -> Grid:
    """Build the grid for ``values`` that can fill ``target_beats`` exactly.

    Raises
    ------
    InfeasibleRhythmError
        If the target is unreachable even after the fillers are added.
    ValueError
        If ``values`` is empty.
    """

    grid = Grid.build(values, den)
    if _reaches(grid, target_beats):
        return grid

    widened = grid.with_fillers()
    if _reaches(widened, target_beats):
        logging.info(
            "Note values %s cannot fill %s beats; adding filler values",
            ", ".join(v.value for v in grid.values),
            target_beats,
        )
        return widened

    raise InfeasibleRhythmError(
        f"Cannot fill {target_beats} beats in 1/{den} time with "
        f"{', '.join(v.value for v in grid.values)}, even with filler values"
    )


def fill_units(target: int, grid: Grid, rng: Callable[[], float]) -> List[int]:
    """Like :func:`random_exact_units` but raise instead of returning ``[]``."""

    if target <= 0:
        return []
    parts = random_exact_units(target, grid.coins, rng)
    if not parts:
        raise InfeasibleRhythmError(
            f"Cannot fill {grid.units_to_beats(target)} beats with "
            f"{', '.join(v.value for v in grid.values)}"
        )
    return parts
