"""Tests for pitch conversions and :class:`PitchRange`."""

import importlib
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

note_utils = importlib.import_module("exercise_generator.note_utils")


def test_note_to_midi_basic():
    """Scientific pitch notation maps middle C to 60."""

    assert note_utils.note_to_midi("C4") == 60
    assert note_utils.note_to_midi("A4") == 69
    assert note_utils.note_to_midi("Db4") == note_utils.note_to_midi("C#4") == 61
    assert note_utils.note_to_midi("C-1") == 0


def test_note_to_midi_enharmonic_edges():
    """``B#`` stays within its written octave."""

    assert note_utils.note_to_midi("B#3") == 48


def test_note_to_midi_invalid(caplog):
    """Malformed names raise and are logged."""

    with pytest.raises(ValueError):
        note_utils.note_to_midi("H4")
    assert "Invalid note format" in caplog.text


def test_note_to_midi_out_of_range():
    """Values above 127 are rejected."""

    assert note_utils.note_to_midi("G9") == 127
    with pytest.raises(ValueError):
        note_utils.note_to_midi("G#9")


def test_midi_to_note():
    """Sharp spellings are used for black keys."""

    assert note_utils.midi_to_note(61) == "C#4"
    with pytest.raises(ValueError):
        note_utils.midi_to_note(128)


def test_pitch_class():
    """Pitch classes accept unicode accidentals."""

    assert note_utils.pitch_class("F#") == 6
    assert note_utils.pitch_class("e♭") == 3
    with pytest.raises(ValueError):
        note_utils.pitch_class("X")


def test_hz_conversions():
    """A4 is 440 Hz and non-positive frequencies are rejected."""

    assert note_utils.hz_to_midi(440.0) == pytest.approx(69.0)
    assert note_utils.midi_to_hz(81) == pytest.approx(880.0)
    with pytest.raises(ValueError):
        note_utils.hz_to_midi(0)


def test_round_half_up():
    """Halves round upwards, unlike the built-in ``round``."""

    assert note_utils.round_half_up(2.5) == 3
    assert note_utils.round_half_up(-0.5) == 0
    assert note_utils.round_half_up(2.49) == 2


def test_pitch_range_normalises_order():
    """Reversed bounds are swapped."""

    rng = note_utils.PitchRange(72, 60)
    assert (rng.low_midi, rng.high_midi) == (60, 72)
    assert rng.center == 66
    assert rng.span == 12
    assert 65 in rng and 73 not in rng
    assert list(rng.midis())[0] == 60


def test_pitch_range_from_hz_and_notes():
    """Frequencies round to the nearest MIDI note."""

    assert note_utils.PitchRange.from_hz(261.63, 523.25) == note_utils.PitchRange(60, 72)
    assert note_utils.PitchRange.from_notes("G3", "D5") == note_utils.PitchRange(55, 74)


def test_pitch_range_center_rounds_half_up():
    """An odd span rounds its centre upwards."""

    assert note_utils.PitchRange(60, 61).center == 61
