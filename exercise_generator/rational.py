"""Exact rational helpers used for bar accounting.

Beat totals are compared against bar boundaries throughout the rhythm
builders.  Summing floats would let an event drift past a bar line, so every
duration is carried as a :class:`fractions.Fraction` until the final
conversion to seconds.

Example
-------
>>> add(Fraction(1, 3), Fraction(1, 6))
Fraction(1, 2)
"""

from __future__ import annotations

import math
from fractions import Fraction
from typing import Iterable

__all__ = ["Fraction", "gcd", "lcm", "reduce", "add", "sub", "total"]


def gcd(a: int, b: int) -> int:
    """Return the non-negative greatest common divisor of ``a`` and ``b``."""

    return math.gcd(a, b)


def lcm(a: int, b: int) -> int:
    """Return the least common multiple of ``a`` and ``b``.

    ``lcm(0, x)`` is ``0`` to match :func:`math.lcm`.
    """

    if a == 0 or b == 0:
        return 0
    return abs(a // math.gcd(a, b) * b)


def reduce(n: int, d: int) -> Fraction:
    """Return ``n/d`` in lowest terms with a positive denominator.

    Raises
    ------
    ZeroDivisionError
        If ``d`` is zero.
    """

    return Fraction(n, d)


def add(a: Fraction, b: Fraction) -> Fraction:
    return Fraction(a) + Fraction(b)


def sub(a: Fraction, b: Fraction) -> Fraction:
    return Fraction(a) - Fraction(b)


def total(values: Iterable[Fraction]) -> Fraction:
    """Exact sum of ``values``; ``Fraction(0)`` for an empty iterable."""

    acc = Fraction(0)
    for v in values:
        acc += v
    return acc
