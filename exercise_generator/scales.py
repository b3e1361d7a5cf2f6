"""Scale tables and pitch-class queries.

Each scale is stored as an ordered list of semitone offsets from the tonic.
The position of an offset in that list is the scale *degree index* used by the
melodic generators (``0`` is the tonic).  All helpers are pure functions of
``(pitch class, tonic pitch class, scale name)``.

Example
-------
>>> is_in_scale(4, 0, "major")
True
>>> degree_index(7, 0, "major")
4
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, List, Tuple

__all__ = [
    "SCALES",
    "canonical_scale",
    "scale_semitones",
    "is_in_scale",
    "degree_index",
    "sequence_note_count_for_scale",
]


SCALES: Dict[str, Tuple[int, ...]] = {
    "major": (0, 2, 4, 5, 7, 9, 11),
    "natural_minor": (0, 2, 3, 5, 7, 8, 10),
    "harmonic_minor": (0, 2, 3, 5, 7, 8, 11),
    "melodic_minor": (0, 2, 3, 5, 7, 9, 11),
    "dorian": (0, 2, 3, 5, 7, 9, 10),
    "phrygian": (0, 1, 3, 5, 7, 8, 10),
    "lydian": (0, 2, 4, 6, 7, 9, 11),
    "mixolydian": (0, 2, 4, 5, 7, 9, 10),
    "locrian": (0, 1, 3, 5, 6, 8, 10),
    "major_pentatonic": (0, 2, 4, 7, 9),
    "minor_pentatonic": (0, 3, 5, 7, 10),
    "chromatic": tuple(range(12)),
}

# Common spellings accepted from lesson configuration and the CLI.
_ALIASES = {
    "ionian": "major",
    "minor": "natural_minor",
    "aeolian": "natural_minor",
}


@lru_cache(maxsize=None)
def canonical_scale(name: str) -> str:
    """Return the canonical table key for ``name``.

    Case, surrounding whitespace, hyphens and spaces are ignored so
    ``"Harmonic Minor"`` and ``"harmonic-minor"`` both resolve.

    Raises
    ------
    ValueError
        If ``name`` does not correspond to a known scale.
    """

    key = name.strip().lower().replace("-", "_").replace(" ", "_")
    key = _ALIASES.get(key, key)
    if key not in SCALES:
        raise ValueError(f"Unknown scale: {name}")
    return key


def scale_semitones(name: str) -> List[int]:
    """Semitone offsets from the tonic within one octave."""

    return list(SCALES[canonical_scale(name)])


def _relative_pc(pc: int, tonic_pc: int) -> int:
    # Python's modulo is already non-negative for a positive divisor.
    return (pc - tonic_pc) % 12


def is_in_scale(pc: int, tonic_pc: int, name: str) -> bool:
    """Return ``True`` when pitch class ``pc`` belongs to the scale."""

    return _relative_pc(pc, tonic_pc) in SCALES[canonical_scale(name)]


def degree_index(pc: int, tonic_pc: int, name: str) -> int:
    """Return the degree index ``0..K-1`` of ``pc`` or ``-1`` when absent."""

    offsets = SCALES[canonical_scale(name)]
    rel = _relative_pc(pc, tonic_pc)
    try:
        return offsets.index(rel)
    except ValueError:
        return -1


def sequence_note_count_for_scale(name: str) -> int:
    """Default number of notes in a one-octave sequence for ``name``.

    Diatonic scales include the octave (8 notes), pentatonic scales use their
    five degrees and the chromatic scale its twelve semitones.
    """

    key = canonical_scale(name)
    if key == "chromatic":
        return 12
    if key in ("major_pentatonic", "minor_pentatonic"):
        return 5
    return 8
