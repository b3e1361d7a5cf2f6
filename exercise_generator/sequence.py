"""Scale-degree traversal phrases (asc, desc, asc-desc, desc-asc)."""

from __future__ import annotations

import math
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from .melody import empty_window_fallback
from .note_utils import PitchRange
from .phrase import Phrase, PhraseNote, rhythm_seconds, timeline
from .pitch_window import PitchWindow
from .rhythm_fit import note_count
from .scales import scale_semitones
from .timing import RhythmEvent

__all__ = [
    "DEFAULT_SEQUENCE_SEED",
    "SequencePattern",
    "ascending_offsets",
    "choose_base_tonic",
    "sequence_targets",
    "build_phrase_from_scale_sequence",
]

DEFAULT_SEQUENCE_SEED = 0xD1A1


class SequencePattern(str, Enum):
    ASC = "asc"
    DESC = "desc"
    ASC_DESC = "asc-desc"
    DESC_ASC = "desc-asc"

    def __str__(self) -> str:
        return self.value

    @property
    def is_mirrored(self) -> bool:
        return self in (SequencePattern.ASC_DESC, SequencePattern.DESC_ASC)


def ascending_offsets(offsets: Sequence[int], length: int) -> List[int]:
    """Repeat ``offsets`` an octave higher each pass until ``length`` entries.

    >>> ascending_offsets([0, 4, 7], 5)
    [0, 4, 7, 12, 16]
    """

    base = sorted(offsets)
    return [base[k % len(base)] + 12 * (k // len(base)) for k in range(length)]


def choose_base_tonic(
    candidates: Sequence[int], run: Sequence[int], pitch_range: PitchRange, seed: int
) -> int:
    """Pick the tonic from which the ascending ``run`` of offsets fits best.

    Candidates are ranked by whether the run fits with no overflow, then by
    the number of semitones it overflows the range, then by distance to the
    range centre, then by ``(base ^ seed) & 0xFFFF`` so ties resolve the same
    way for the same seed.
    """

    lo, hi = pitch_range.low_midi, pitch_range.high_midi
    center = pitch_range.center

    def rank(base: int):
        overflow = max(0, lo - (base + run[0])) + max(0, base + run[-1] - hi)
        return (overflow != 0, overflow, abs(base - center), (base ^ seed) & 0xFFFF)

    return min(candidates, key=rank)


def _concat_no_dup(a: List[int], b: List[int]) -> List[int]:
    if a and b and a[-1] == b[0]:
        return a + b[1:]
    return a + b


def sequence_targets(ascending: List[int], pattern: SequencePattern, quota: int) -> List[int]:
    """Order ``ascending`` pitches by ``pattern`` and trim to ``quota``."""

    if pattern is SequencePattern.ASC:
        return ascending[:quota]
    if pattern is SequencePattern.DESC:
        return ascending[:quota][::-1]
    up = ascending[: max(1, math.ceil(quota / 2))]
    if pattern is SequencePattern.ASC_DESC:
        return _concat_no_dup(up, up[::-1])[:quota]
    return _concat_no_dup(up[::-1], up)[:quota]


def _tonic_candidates(
    tonic_pc: int,
    pitch_range: PitchRange,
    tonic_midis: Optional[Iterable[int]],
    allowed_midis: Optional[Sequence[int]],
) -> List[int]:
    lo, hi = pitch_range.low_midi, pitch_range.high_midi
    pc = tonic_pc % 12
    candidates = [m for m in range(lo, hi + 1) if m % 12 == pc]
    if not candidates:
        # The range is narrower than an octave and skips the tonic; start below it.
        candidates = [m for m in range(lo - 11, hi + 1) if m % 12 == pc]
    for restriction in (tonic_midis, allowed_midis):
        if restriction:
            keep = set(restriction)
            narrowed = [m for m in candidates if m in keep]
            if narrowed:
                candidates = narrowed
    return candidates


def build_phrase_from_scale_sequence(
    pitch_range: PitchRange,
    bpm: float,
    den: int,
    tonic_pc: int,
    scale: str,
    rhythm: Sequence[RhythmEvent],
    pattern: SequencePattern = SequencePattern.ASC,
    note_quota: Optional[int] = None,
    seed: int = DEFAULT_SEQUENCE_SEED,
    tonic_midis: Optional[Iterable[int]] = None,
    allowed_degree_indices: Optional[Iterable[int]] = None,
    allowed_midis: Optional[Iterable[int]] = None,
) -> Phrase:
    """Map a degree traversal onto the NOTE slots of ``rhythm``.

    Parameters
    ----------
    pattern:
        Traversal direction.  Mirrored patterns go up (or down) through
        ``ceil(note_quota / 2)`` pitches and back without repeating the
        turnaround note.
    note_quota:
        Length of the traversal.  Defaults to the number of NOTE slots.
    seed:
        Only used to break ties between equally good base tonics.
    tonic_midis:
        Restricts which tonic the run may start from, when that leaves any
        candidate.

    Returns
    -------
    Phrase
        Exactly one note per NOTE slot.  A traversal shorter than the slot
        count is padded by repeating its final pitch; a longer one is cut.

    Raises
    ------
    ValueError
        For an unknown pattern or scale, a non-positive ``bpm`` or a
        non-positive ``note_quota``.
    """

    if bpm <= 0:
        raise ValueError("bpm must be positive")
    pattern = SequencePattern(pattern)
    slots = note_count(rhythm)
    quota = slots if note_quota is None else int(note_quota)
    if note_quota is not None and quota <= 0:
        raise ValueError("note_quota must be positive")

    window = PitchWindow(
        pitch_range,
        tonic_pc,
        scale,
        allowed_degree_indices=allowed_degree_indices,
        allowed_midis=allowed_midis,
    )
    allowed = window.allowed()
    if not allowed:
        return empty_window_fallback(pitch_range, rhythm, bpm, den)
    if slots == 0:
        return Phrase(rhythm_seconds(rhythm, bpm, den), ())

    offsets = scale_semitones(window.scale)
    if window.allowed_degree_indices:
        picked = [offsets[d] for d in window.allowed_degree_indices if d < len(offsets)]
        offsets = picked or offsets

    run_length = max(1, math.ceil(quota / 2)) if pattern.is_mirrored else quota
    run = ascending_offsets(offsets, run_length)
    base = choose_base_tonic(
        _tonic_candidates(tonic_pc, pitch_range, tonic_midis, window.allowed_midis),
        run,
        pitch_range,
        seed,
    )

    ascending = list(window.filter(base + off for off in run))
    targets = sequence_targets(ascending, pattern, quota)
    if not targets:
        targets = [allowed[len(allowed) // 2]]
    targets = targets[:slots] + [targets[-1]] * max(0, slots - len(targets))

    notes: List[PhraseNote] = []
    pitches = iter(targets)
    for ev, start, dur in timeline(rhythm, bpm, den):
        if ev.is_note:
            notes.append(PhraseNote(next(pitches), start, dur))
    return Phrase(rhythm_seconds(rhythm, bpm, den), notes)
