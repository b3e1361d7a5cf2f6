"""Deterministic per-call random number generator.

Generation must be reproducible from a caller-supplied seed so a take can be
regenerated bit-identically.  Each public builder creates its own
:class:`XorShift32` from the seed it receives; there is no shared global
generator, so independent callers never influence each other.
"""

from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")

__all__ = ["XorShift32"]

_MASK32 = 0xFFFFFFFF
# xorshift has a fixed point at zero; a zero seed is replaced by this constant.
_ZERO_SEED_REPLACEMENT = 0x9E3779B9


class XorShift32:
    """Marsaglia xorshift32 generator returning floats in ``[0, 1)``."""

    __slots__ = ("_state",)

    def __init__(self, seed: int) -> None:
        state = int(seed) & _MASK32
        self._state = state or _ZERO_SEED_REPLACEMENT

    def next_uint32(self) -> int:
        x = self._state
        x ^= (x << 13) & _MASK32
        x ^= x >> 17
        x ^= (x << 5) & _MASK32
        self._state = x
        return x

    def random(self) -> float:
        return self.next_uint32() / 4294967296.0

    __call__ = random

    def choice(self, seq: Sequence[T]) -> T:
        """Return a uniformly chosen element of the non-empty ``seq``."""

        if not seq:
            raise IndexError("cannot choose from an empty sequence")
        return seq[int(self.random() * len(seq))]
