"""Validation helpers shared by the CLI, configuration loader and builders.

Usage Example
-------------
>>> from exercise_generator.utils import validate_time_signature
>>> validate_time_signature("3/4")
(3, 4)
>>> parse_time_signature("garbage")
(4, 4)
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence, Tuple

from .note_utils import round_half_up

__all__ = [
    "VALID_DENOMINATORS",
    "validate_time_signature",
    "parse_time_signature",
    "validate_probability",
    "normalise_int_list",
    "parse_csv_ints",
]

VALID_DENOMINATORS = {1, 2, 4, 8, 16, 32}


def validate_time_signature(ts: str) -> Tuple[int, int]:
    """Parse and validate a time signature string.

    Parameters
    ----------
    ts:
        Time signature in ``"NUM/DEN"`` form. Whitespace around the
        separator is ignored.

    Returns
    -------
    tuple[int, int]
        ``(numerator, denominator)`` when ``ts`` is valid.

    Raises
    ------
    ValueError
        If ``ts`` is malformed or uses an unsupported denominator.
    """

    parts = ts.strip().split("/")
    if len(parts) != 2:
        raise ValueError(
            "Time signature must be in the form 'numerator/denominator'."
        )

    try:
        numerator = int(parts[0])
        denominator = int(parts[1])
    except ValueError as exc:
        raise ValueError(
            "Time signature must contain integer numerator and denominator."
        ) from exc

    if numerator <= 0 or denominator not in VALID_DENOMINATORS:
        raise ValueError(
            "Time signature numerator must be > 0 and denominator one of 1, 2, 4, 8, 16 or 32."
        )

    return numerator, denominator


def parse_time_signature(ts: Optional[str]) -> Tuple[int, int]:
    """Lenient counterpart of :func:`validate_time_signature`.

    Lesson configuration is treated as validated input, so anything that does
    not look like ``"NUM/DEN"`` falls back to common time instead of raising.
    """

    if not ts:
        return 4, 4
    match = re.fullmatch(r"\s*(\d+)\s*/\s*(\d+)\s*", str(ts))
    if not match:
        return 4, 4
    return max(1, int(match.group(1))), max(1, int(match.group(2)))


def validate_probability(value: float, name: str = "probability") -> float:
    """Return ``value`` as a float after checking it lies in ``[0, 1]``."""

    p = float(value)
    if not 0.0 <= p <= 1.0:
        raise ValueError(f"{name} must be between 0 and 1, got {value}")
    return p


def normalise_int_list(values: Optional[Iterable[float]]) -> Optional[List[int]]:
    """Round ``values`` to sorted unique integers.

    ``None`` and empty iterables both return ``None`` so callers can treat an
    empty whitelist as "no restriction".
    """

    if values is None:
        return None
    out = sorted({round_half_up(v) for v in values})
    return out or None


def parse_csv_ints(text: Optional[str]) -> Optional[Sequence[int]]:
    """Parse ``"0, 2,4"`` into ``[0, 2, 4]``; blank input returns ``None``."""

    if not text:
        return None
    entries = [part.strip() for part in text.split(",") if part.strip()]
    try:
        return [int(part) for part in entries] or None
    except ValueError as exc:
        raise ValueError(f"Expected comma-separated integers, got '{text}'") from exc
