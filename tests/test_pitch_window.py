"""Tests for allowed-pitch filtering and tonic window helpers."""

import importlib
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

pitch_window = importlib.import_module("exercise_generator.pitch_window")
note_utils = importlib.import_module("exercise_generator.note_utils")

PitchRange = note_utils.PitchRange
PitchWindow = pitch_window.PitchWindow

C_MAJOR_60_72 = (60, 62, 64, 65, 67, 69, 71, 72)


def test_range_and_scale_only():
    """Without constraints the set is the scale within range."""

    assert PitchWindow(PitchRange(60, 72), 0, "major").allowed() == C_MAJOR_60_72


def test_upper_window_copy_is_dropped():
    """The octave above a tonic window is removed unless disabled."""

    window = PitchWindow(PitchRange(60, 72), 0, "major", tonic_midis=[60])
    assert window.allowed() == C_MAJOR_60_72[:-1]

    keep = PitchWindow(
        PitchRange(60, 72), 0, "major", tonic_midis=[60], drop_upper_window_degrees=False
    )
    assert keep.allowed() == C_MAJOR_60_72


def test_selected_tonic_survives_upper_drop():
    """A tonic that is another window's upper copy is kept."""

    window = PitchWindow(PitchRange(60, 84), 0, "major", tonic_midis=[60, 72])
    allowed = window.allowed()
    assert 72 in allowed
    assert 84 not in allowed
    assert 83 in allowed


def test_include_under_and_over():
    """Spill flags admit pitches beyond the outermost windows."""

    under = PitchWindow(PitchRange(48, 72), 0, "major", tonic_midis=[60], include_under=True)
    assert min(under.allowed()) == 48
    assert max(under.allowed()) == 71

    closed = PitchWindow(PitchRange(48, 72), 0, "major", tonic_midis=[60])
    assert min(closed.allowed()) == 60

    over = PitchWindow(PitchRange(55, 84), 0, "major", tonic_midis=[60], include_over=True)
    allowed = over.allowed()
    assert 74 in allowed and 84 in allowed
    assert 72 not in allowed
    assert 59 not in allowed


def test_degree_whitelist():
    """Only whitelisted degrees survive."""

    window = PitchWindow(PitchRange(60, 72), 0, "major", allowed_degree_indices=[0, 2, 4])
    assert window.allowed() == (60, 64, 67, 72)


def test_midi_whitelist_intersects_scale():
    """Whitelisted pitches outside the scale are still excluded."""

    window = PitchWindow(PitchRange(60, 72), 0, "major", allowed_midis=[60, 61, 64])
    assert window.allowed() == (60, 64)


def test_filter_is_idempotent():
    """Filtering an allowed set again leaves it unchanged."""

    windows = [
        PitchWindow(PitchRange(48, 84), 2, "dorian", tonic_midis=[50, 62]),
        PitchWindow(PitchRange(40, 70), 9, "harmonic minor", allowed_degree_indices=[0, 3, 6]),
        PitchWindow(
            PitchRange(55, 80), 7, "major_pentatonic", tonic_midis=[67], include_under=True
        ),
    ]
    for window in windows:
        allowed = window.allowed()
        assert window.filter(allowed) == allowed


def test_empty_result():
    """A range holding no scale note yields an empty set."""

    assert PitchWindow(PitchRange(61, 61), 0, "major").allowed() == ()
    assert PitchWindow(PitchRange(60, 72), 0, "major").filter([]) == ()


def test_degree_of():
    """Degrees are relative to the tonic pitch class."""

    window = PitchWindow(PitchRange(60, 72), 7, "major")
    assert window.degree_of(67) == 0
    assert window.degree_of(66) == 6
    assert window.degree_of(65) == -1


def test_windows_for_key_in_range():
    """Only tonics whose whole octave fits are listed."""

    assert pitch_window.windows_for_key_in_range(0, PitchRange(48, 72)) == [48, 60]
    assert pitch_window.windows_for_key_in_range(0, PitchRange(55, 79)) == [60]
    assert pitch_window.windows_for_key_in_range(0, PitchRange(60, 70)) == []


def test_pick_window():
    """Preferred indices are clamped and the default is nearest the centre."""

    rng = PitchRange(48, 72)
    assert pitch_window.pick_window([48, 60], rng) == 48
    assert pitch_window.pick_window([48, 60], rng, preferred_index=5) == 60
    assert pitch_window.pick_window([48, 60], rng, preferred_index=-2) == 48
    assert pitch_window.pick_window([], rng) is None
