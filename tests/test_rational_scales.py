"""Tests for exact rational helpers and the scale tables."""

import importlib
import sys
from fractions import Fraction
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

rational = importlib.import_module("exercise_generator.rational")
scales = importlib.import_module("exercise_generator.scales")


def test_lcm_and_gcd():
    """``lcm`` and ``gcd`` should agree with hand-computed values."""

    assert rational.gcd(12, 18) == 6
    assert rational.lcm(4, 6) == 12
    assert rational.lcm(0, 5) == 0


def test_reduce_normalises_sign_and_terms():
    """``reduce`` returns lowest terms with a positive denominator."""

    r = rational.reduce(2, -4)
    assert r == Fraction(-1, 2)
    assert r.denominator == 2


def test_reduce_zero_denominator():
    """A zero denominator is rejected."""

    with pytest.raises(ZeroDivisionError):
        rational.reduce(1, 0)


def test_add_sub_total_are_exact():
    """Thirds and sixths sum without rounding."""

    assert rational.add(Fraction(1, 3), Fraction(1, 6)) == Fraction(1, 2)
    assert rational.sub(Fraction(1, 2), Fraction(1, 3)) == Fraction(1, 6)
    assert rational.total([Fraction(1, 3)] * 3) == 1
    assert rational.total([]) == 0


def test_twelve_scales():
    """Twelve scale tables are available."""

    assert len(scales.SCALES) == 12
    assert scales.scale_semitones("major") == [0, 2, 4, 5, 7, 9, 11]


def test_canonical_scale_variants():
    """Case, spaces, hyphens and aliases resolve to table keys."""

    assert scales.canonical_scale("Harmonic Minor") == "harmonic_minor"
    assert scales.canonical_scale("major-pentatonic") == "major_pentatonic"
    assert scales.canonical_scale("minor") == "natural_minor"


def test_unknown_scale_raises():
    """Unknown names raise ``ValueError``."""

    with pytest.raises(ValueError):
        scales.canonical_scale("bogus")


def test_membership_and_degree_index():
    """Membership and degree lookups are relative to the tonic."""

    assert scales.is_in_scale(4, 0, "major")
    assert not scales.is_in_scale(1, 0, "major")
    assert scales.degree_index(7, 0, "major") == 4
    assert scales.degree_index(1, 0, "major") == -1
    # C is the seventh degree of D dorian.
    assert scales.degree_index(0, 2, "dorian") == 6


def test_sequence_note_count_for_scale():
    """Chromatic, pentatonic and diatonic scales use 12, 5 and 8 notes."""

    assert scales.sequence_note_count_for_scale("chromatic") == 12
    assert scales.sequence_note_count_for_scale("minor_pentatonic") == 5
    assert scales.sequence_note_count_for_scale("lydian") == 8
