"""Tests for the random-mode melodic walk."""

import importlib
import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

melody = importlib.import_module("exercise_generator.melody")
note_utils = importlib.import_module("exercise_generator.note_utils")
rhythm_engine = importlib.import_module("exercise_generator.rhythm_engine")
phrase_mod = importlib.import_module("exercise_generator.phrase")
scales = importlib.import_module("exercise_generator.scales")
timing = importlib.import_module("exercise_generator.timing")

PitchRange = note_utils.PitchRange
build = melody.build_phrase_from_scale_with_rhythm


def _longest_degree_run(midis, tonic_pc, scale):
    longest, run, prev = 0, 0, None
    for m in midis:
        d = scales.degree_index(m % 12, tonic_pc, scale)
        run = run + 1 if d == prev else 1
        prev = d
        longest = max(longest, run)
    return longest


@pytest.mark.parametrize("cap", [1, 2, 3])
def test_degree_run_respects_cap(cap):
    """No degree repeats more than ``max_per_degree`` times in a row."""

    rhythm = rhythm_engine.build_equal_rhythm("quarter", 16)
    for seed in range(1, 30):
        phrase = build(
            PitchRange(48, 72), 80, 4, 0, "major", rhythm, max_per_degree=cap, seed=seed
        )
        assert _longest_degree_run(phrase.midis, 0, "major") <= cap


def test_notes_follow_rhythm_and_allowed_set():
    """One allowed pitch per NOTE slot with exact timing."""

    rhythm = [
        timing.RhythmEvent.note("quarter"),
        timing.RhythmEvent.rest("quarter"),
        timing.RhythmEvent.note("half"),
        timing.RhythmEvent.note("eighth"),
    ]
    phrase = build(PitchRange(55, 79), 80, 4, 7, "mixolydian", rhythm, seed=4)
    assert len(phrase.notes) == 3
    assert [n.start_sec for n in phrase.notes] == [0.0, 1.5, 3.0]
    assert phrase.duration_sec == phrase_mod.rhythm_seconds(rhythm, 80, 4)
    for n in phrase.notes:
        assert 55 <= n.midi <= 79
        assert scales.is_in_scale(n.midi % 12, 7, "mixolydian")


def test_melody_is_reproducible():
    """The same seed gives the same phrase."""

    rhythm = rhythm_engine.build_two_bar_rhythm(4, 4, ["quarter", "eighth"], seed=8)
    a = build(PitchRange(50, 74), 96, 4, 2, "dorian", rhythm, seed=77)
    b = build(PitchRange(50, 74), 96, 4, 2, "dorian", rhythm, seed=77)
    assert a == b


def test_constraints_are_honoured():
    """Degree whitelists and tonic windows limit every pitch."""

    rhythm = rhythm_engine.build_equal_rhythm("quarter", 12)
    phrase = build(
        PitchRange(48, 84),
        80,
        4,
        0,
        "major",
        rhythm,
        tonic_midis=[60],
        allowed_degree_indices=[0, 1, 2, 4],
        seed=12,
    )
    assert set(phrase.midis) <= {60, 62, 64, 67}


def test_empty_allowed_set_sustains_center(caplog):
    """No allowed pitch sustains the range centre for the rhythm length."""

    rhythm = rhythm_engine.build_equal_rhythm("quarter", 4)
    phrase = build(PitchRange(61, 61), 80, 4, 0, "major", rhythm)
    assert phrase.midis == [61]
    assert phrase.notes[0].dur_sec == 3.0
    assert phrase.duration_sec == 3.0
    assert "No pitches satisfy" in caplog.text


def test_empty_rhythm_and_allowed_set_lasts_one_second():
    """An empty rhythm with nothing allowed falls back to one second."""

    phrase = build(PitchRange(61, 61), 80, 4, 0, "major", [])
    assert phrase.duration_sec == 1.0


def test_single_degree_overruns_cap(caplog):
    """With one degree available the run continues and is logged."""

    caplog.set_level(logging.DEBUG)
    rhythm = rhythm_engine.build_equal_rhythm("quarter", 6)
    phrase = build(
        PitchRange(48, 72), 80, 4, 0, "major", rhythm, allowed_degree_indices=[0]
    )
    assert len(phrase.notes) == 6
    assert all(m % 12 == 0 for m in phrase.midis)
    assert "no alternative" in caplog.text


def test_two_note_phrase_is_not_a_repeat():
    """Two notes on the same degree are split across octaves."""

    rhythm = rhythm_engine.build_equal_rhythm("quarter", 2)
    for seed in range(1, 10):
        phrase = build(
            PitchRange(60, 72), 80, 4, 0, "major", rhythm, allowed_degree_indices=[0], seed=seed
        )
        assert sorted(phrase.midis) == [60, 72]


def test_invalid_arguments():
    """A cap below one or a non-positive tempo raises."""

    rhythm = rhythm_engine.build_equal_rhythm("quarter", 2)
    with pytest.raises(ValueError):
        build(PitchRange(60, 72), 80, 4, 0, "major", rhythm, max_per_degree=0)
    with pytest.raises(ValueError):
        build(PitchRange(60, 72), 0, 4, 0, "major", rhythm)
