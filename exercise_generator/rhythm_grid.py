"""Integer lattice for a palette of note values.

Every note value has an exact length in beats (see
:func:`exercise_generator.timing.note_value_to_beats`).  Taking the least
common multiple of the denominators of those lengths gives ``grid_den``, the
number of grid units per beat for which every value in the palette is a whole
number of units.  Bar filling then becomes integer coin change.

Example
-------
>>> make_beat_grid_den(["quarter", "eighth", "triplet-eighth"], 4)
6
>>> to_units("eighth", 4, 6)
3
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fractions import Fraction
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from .rational import lcm
from .timing import NoteValue, note_value_to_beats

__all__ = [
    "FILLERS",
    "beats_frac",
    "make_beat_grid_den",
    "to_units",
    "units_bucket",
    "Grid",
]

ValueLike = Union[NoteValue, str]

# Last-resort values unioned into a palette that cannot close a bar.
FILLERS: Tuple[NoteValue, ...] = (
    NoteValue.TRIPLET_SIXTEENTH,
    NoteValue.SIXTEENTH,
    NoteValue.TRIPLET_EIGHTH,
    NoteValue.EIGHTH,
)


def beats_frac(value: ValueLike, den: int) -> Fraction:
    """Exact beats of ``value`` relative to the ``den`` beat."""

    return note_value_to_beats(value, den)


def make_beat_grid_den(values: Iterable[ValueLike], den: int) -> int:
    """Grid units per beat: LCM of the beat-fraction denominators."""

    g = 1
    for v in values:
        g = lcm(g, beats_frac(v, den).denominator)
    return g


def to_units(value: ValueLike, den: int, grid_den: int) -> int:
    """Length of ``value`` in grid units.

    Raises
    ------
    ValueError
        If ``grid_den`` was not built from a palette containing ``value``, so
        the length is not a whole number of units.
    """

    units = beats_frac(value, den) * grid_den
    if units.denominator != 1:
        raise ValueError(
            f"{NoteValue(value).value} is not a whole number of units on a 1/{grid_den} beat grid"
        )
    return units.numerator


def units_bucket(
    values: Iterable[ValueLike], den: int, grid_den: int
) -> Dict[int, List[NoteValue]]:
    """Map unit counts to every palette value of that exact size.

    Values sharing a size (e.g. a dotted quarter and three triplet quarters
    never do, but ``half`` in 2/2 and ``quarter`` in 4/4 style ties can) are
    all kept so callers can pick among them for variety.
    """

    bucket: Dict[int, List[NoteValue]] = {}
    for v in values:
        nv = NoteValue(v)
        vals = bucket.setdefault(to_units(nv, den, grid_den), [])
        if nv not in vals:
            vals.append(nv)
    return bucket


def _dedupe(values: Iterable[ValueLike]) -> Tuple[NoteValue, ...]:
    seen: List[NoteValue] = []
    for v in values:
        nv = NoteValue(v)
        if nv not in seen:
            seen.append(nv)
    return tuple(seen)


@dataclass
class Grid:
    """A palette resolved onto its integer grid.

    ``coins`` lists the distinct unit sizes in ascending order; ``bucket``
    maps each size back to the note values that produce it.
    """

    den: int
    values: Tuple[NoteValue, ...]
    grid_den: int
    bucket: Dict[int, List[NoteValue]] = field(repr=False)

    @classmethod
    def build(cls, values: Iterable[ValueLike], den: int) -> "Grid":
        vals = _dedupe(values)
        if not vals:
            raise ValueError("at least one note value is required")
        grid_den = make_beat_grid_den(vals, den)
        return cls(den, vals, grid_den, units_bucket(vals, den, grid_den))

    @property
    def coins(self) -> List[int]:
        return sorted(self.bucket)

    def units_of(self, value: ValueLike) -> int:
        return to_units(value, self.den, self.grid_den)

    def beats_to_units(self, beats: Fraction) -> int:
        units = Fraction(beats) * self.grid_den
        if units.denominator != 1:
            raise ValueError(f"{beats} beats do not fall on a 1/{self.grid_den} beat grid")
        return units.numerator

    def units_to_beats(self, units: int) -> Fraction:
        return Fraction(units, self.grid_den)

    def bar_units(self, ts_num: int) -> int:
        return ts_num * self.grid_den

    def values_for(self, units: int) -> Sequence[NoteValue]:
        return self.bucket[units]

    def with_values(self, extra: Iterable[ValueLike]) -> "Grid":
        """Return a new grid over this palette plus ``extra``."""

        return Grid.build(self.values + tuple(extra), self.den)

    def with_fillers(self) -> "Grid":
        return self.with_values(FILLERS)
