"""Allowed-pitch filtering shared by the phrase generators.

The allowed set is the singer's range intersected with scale membership,
then narrowed by each optional constraint in turn:

* tonic windows ``[T, T + 12]`` for every selected tonic ``T``, optionally
  spilling below the lowest window (``include_under``) or above the highest
  (``include_over``);
* a whitelist of scale-degree indices;
* a whitelist of absolute MIDI numbers;
* the upper-window rule, which removes each window's octave copy ``T + 12``
  unless that pitch is itself a selected tonic.

Every step is a plain membership predicate on the MIDI number, so filtering an
already filtered set again returns it unchanged.  Masks are evaluated with
numpy over the candidate array.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .note_utils import PitchRange
from .scales import canonical_scale, degree_index, scale_semitones
from .utils import normalise_int_list

__all__ = [
    "PitchWindow",
    "windows_for_key_in_range",
    "pick_window",
]


def _as_tuple(values: Optional[Iterable[float]]) -> Optional[Tuple[int, ...]]:
    norm = normalise_int_list(values)
    return tuple(norm) if norm else None


@dataclass(frozen=True)
class PitchWindow:
    """Filter inputs for one generation call.

    Instances are immutable; :meth:`allowed` recomputes the set on every call.
    """

    pitch_range: PitchRange
    tonic_pc: int
    scale: str
    tonic_midis: Optional[Tuple[int, ...]] = None
    include_under: bool = False
    include_over: bool = False
    allowed_degree_indices: Optional[Tuple[int, ...]] = None
    allowed_midis: Optional[Tuple[int, ...]] = None
    drop_upper_window_degrees: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "tonic_pc", int(self.tonic_pc) % 12)
        object.__setattr__(self, "scale", canonical_scale(self.scale))
        object.__setattr__(self, "tonic_midis", _as_tuple(self.tonic_midis))
        degrees = self.allowed_degree_indices
        if degrees is not None:
            degrees = [max(0, int(d)) for d in degrees]
        object.__setattr__(self, "allowed_degree_indices", _as_tuple(degrees))
        object.__setattr__(self, "allowed_midis", _as_tuple(self.allowed_midis))

    def degree_of(self, midi: int) -> int:
        return degree_index(midi % 12, self.tonic_pc, self.scale)

    def filter(self, midis: Iterable[int]) -> Tuple[int, ...]:
        """Return the sorted members of ``midis`` that pass every predicate."""

        arr = np.unique(np.fromiter((int(m) for m in midis), dtype=np.int64))
        if arr.size == 0:
            return ()

        lo, hi = self.pitch_range.low_midi, self.pitch_range.high_midi
        mask = (arr >= lo) & (arr <= hi)

        offsets = np.asarray(scale_semitones(self.scale), dtype=np.int64)
        rel = (arr - self.tonic_pc) % 12
        mask &= np.isin(rel, offsets)

        if self.tonic_midis:
            tonics = np.asarray(self.tonic_midis, dtype=np.int64)
            in_window = (
                (arr[:, None] >= tonics[None, :]) & (arr[:, None] <= tonics[None, :] + 12)
            ).any(axis=1)
            if self.include_under:
                in_window |= arr < tonics.min()
            if self.include_over:
                in_window |= arr > tonics.max() + 12
            mask &= in_window
            if self.drop_upper_window_degrees:
                upper = np.setdiff1d(tonics + 12, tonics)
                mask &= ~np.isin(arr, upper)

        if self.allowed_degree_indices:
            lut = np.full(12, -1, dtype=np.int64)
            lut[offsets] = np.arange(offsets.size)
            mask &= np.isin(lut[rel], self.allowed_degree_indices)

        if self.allowed_midis:
            mask &= np.isin(arr, self.allowed_midis)

        return tuple(int(m) for m in arr[mask])

    def allowed(self) -> Tuple[int, ...]:
        return self.filter(self.pitch_range.midis())


def windows_for_key_in_range(tonic_pc: int, pitch_range: PitchRange) -> List[int]:
    """Tonics of ``tonic_pc`` whose full octave ``[T, T + 12]`` fits in range."""

    pc = tonic_pc % 12
    return [
        m
        for m in range(pitch_range.low_midi, pitch_range.high_midi - 11)
        if m % 12 == pc
    ]


def pick_window(
    windows: Sequence[int], pitch_range: PitchRange, preferred_index: Optional[int] = None
) -> Optional[int]:
    """Choose one window tonic.

    ``preferred_index`` selects by position, clamped to the available
    windows.  Otherwise the tonic nearest the centre of the usable tonic span
    ``[low, high - 12]`` wins, the lower one on ties.
    """

    if not windows:
        return None
    if preferred_index is not None:
        return windows[max(0, min(len(windows) - 1, int(preferred_index)))]
    center = (pitch_range.low_midi + pitch_range.high_midi - 12) / 2
    return min(windows, key=lambda t: (abs(t - center), t))
