"""Tests for the rhythm builders in ``rhythm_engine``."""

import importlib
import sys
from fractions import Fraction
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

rhythm_engine = importlib.import_module("exercise_generator.rhythm_engine")
rhythm_fit = importlib.import_module("exercise_generator.rhythm_fit")
rhythm_grid = importlib.import_module("exercise_generator.rhythm_grid")
phrase = importlib.import_module("exercise_generator.phrase")
rng_mod = importlib.import_module("exercise_generator.rng")
timing = importlib.import_module("exercise_generator.timing")

NoteValue = timing.NoteValue


def _bar_lines_hit(rhythm, den, ts_num):
    """Return ``True`` when every bar line falls on an event boundary."""

    boundaries = set()
    acc = Fraction(0)
    for ev in rhythm:
        acc += timing.note_value_to_beats(ev.value, den)
        boundaries.add(acc)
    bars = int(acc / ts_num)
    return all(Fraction(ts_num * b) in boundaries for b in range(1, bars + 1))


def _triplet_runs_ok(rhythm):
    run_value, run_len = None, 0
    runs = []
    for ev in rhythm:
        if ev.value in rhythm_engine.TRIPLET_VALUES and ev.value == run_value:
            run_len += 1
            continue
        if run_value is not None:
            runs.append(run_len)
        if ev.value in rhythm_engine.TRIPLET_VALUES:
            run_value, run_len = ev.value, 1
        else:
            run_value, run_len = None, 0
    if run_value is not None:
        runs.append(run_len)
    return all(n % 3 == 0 for n in runs)


def test_build_equal_rhythm():
    """Equal rhythms repeat one value."""

    rhythm = rhythm_engine.build_equal_rhythm("eighth", 3)
    assert rhythm == [timing.RhythmEvent.note("eighth")] * 3
    with pytest.raises(ValueError):
        rhythm_engine.build_equal_rhythm("eighth", 0)


def test_legacy_samplers():
    """Legacy samplers draw from their pools and honour ``allow_rests``."""

    basic = rhythm_engine.build_random_rhythm_basic(length=12, allow_rests=False, seed=3)
    assert len(basic) == 12
    assert all(ev.is_note for ev in basic)
    assert {ev.value for ev in basic} <= set(rhythm_engine.BASIC_POOL)

    synco = rhythm_engine.build_random_rhythm_syncopated(length=10, seed=9)
    assert len(synco) == 10
    assert {ev.value for ev in synco} <= set(rhythm_engine.SYNCOPATED_POOL)

    assert len(rhythm_engine.build_random_rhythm_basic(length=0)) == 1


def test_two_bar_quarters_scenario():
    """Two bars of quarters at 80 bpm last six seconds."""

    rhythm = rhythm_engine.build_two_bar_rhythm(4, 4, ["quarter"], allow_rests=False)
    assert rhythm == [timing.RhythmEvent.note("quarter")] * 8
    assert phrase.rhythm_seconds(rhythm, 80, 4) == 6.0


def test_dotted_eighth_bar_is_exact():
    """A dotted-eighth palette in 4/4 is widened and still fills the bar."""

    for seed in range(1, 20):
        rhythm = rhythm_engine.build_two_bar_rhythm(
            4, 4, ["dotted-eighth"], bars=1, seed=seed
        )
        assert rhythm_fit.total_beats(rhythm, 4) == 4


@pytest.mark.parametrize(
    "ts_num,den,available",
    [
        (4, 4, ["quarter", "eighth"]),
        (3, 4, ["whole"]),
        (6, 8, ["quarter", "eighth"]),
        (5, 4, ["dotted-quarter"]),
        (2, 2, ["half", "dotted-eighth"]),
        (4, 4, ["triplet-eighth", "quarter"]),
    ],
)
def test_two_bar_rhythm_bar_lines(ts_num, den, available):
    """Every bar closes exactly on its bar line."""

    for seed in range(1, 15):
        rhythm = rhythm_engine.build_two_bar_rhythm(den, ts_num, available, seed=seed)
        assert rhythm_fit.total_beats(rhythm, den) == 2 * ts_num
        assert _bar_lines_hit(rhythm, den, ts_num)


def test_two_bar_rhythm_is_reproducible():
    """The same seed yields the same rhythm."""

    args = (4, 4, ["quarter", "eighth", "sixteenth"])
    a = rhythm_engine.build_two_bar_rhythm(*args, seed=42)
    b = rhythm_engine.build_two_bar_rhythm(*args, seed=42)
    assert a == b


def test_first_bar_never_silent():
    """All-rest draws still open with a note."""

    rhythm = rhythm_engine.build_two_bar_rhythm(4, 4, ["quarter"], rest_prob=1.0)
    assert rhythm[0].is_note
    assert rhythm_fit.note_count(rhythm) == 1


def test_two_bar_rhythm_validation():
    """Bad probabilities, bar counts and meters are rejected."""

    with pytest.raises(ValueError):
        rhythm_engine.build_two_bar_rhythm(4, 4, ["quarter"], rest_prob=1.5)
    with pytest.raises(ValueError):
        rhythm_engine.build_two_bar_rhythm(4, 4, ["quarter"], bars=0)
    with pytest.raises(ValueError):
        rhythm_engine.build_two_bar_rhythm(4, 0, ["quarter"])


def test_empty_palette_defaults_to_quarters():
    """No available values means quarter notes."""

    rhythm = rhythm_engine.build_two_bar_rhythm(4, 4, [], allow_rests=False, bars=1)
    assert rhythm == [timing.RhythmEvent.note("quarter")] * 4


def test_grouped_triplets_come_in_threes():
    """Triplet values appear in runs of three when grouping is on."""

    for seed in range(1, 25):
        rhythm = rhythm_engine.build_two_bar_rhythm(
            4,
            4,
            ["triplet-eighth", "quarter", "triplet-quarter"],
            allow_rests=False,
            seed=seed,
            triplet_groups=True,
        )
        assert rhythm_fit.total_beats(rhythm, 4) == 8
        assert _bar_lines_hit(rhythm, 4, 4)
        assert _triplet_runs_ok(rhythm)


def test_group_triplets_preserves_units():
    """Regrouping keeps the multiset of units when no borrowing is needed."""

    grid = rhythm_grid.Grid.build(["triplet-eighth", "eighth"], 4)
    units = [2, 3, 2, 3, 2, 3, 3, 2, 2, 2]
    out = rhythm_engine.group_triplets(units, grid, rng_mod.XorShift32(5))
    assert sorted(out) == sorted(units)

    run = 0
    for u in out + [0]:
        if u == 2:
            run += 1
        else:
            assert run % 3 == 0
            run = 0


def test_group_triplets_borrows_donors():
    """Non-triplet events are absorbed when the triplet time is not groupable."""

    grid = rhythm_grid.Grid.build(["triplet-eighth", "quarter"], 4)
    out = rhythm_engine.group_triplets([1, 1, 3, 3, 4], grid, rng_mod.XorShift32(2))
    assert out == [1] * 12


def test_group_triplets_without_triplets():
    """A bar without triplet values is returned unchanged."""

    grid = rhythm_grid.Grid.build(["quarter", "eighth"], 4)
    assert rhythm_engine.group_triplets([2, 1, 1, 2, 2], grid, rng_mod.XorShift32(2)) == [
        2,
        1,
        1,
        2,
        2,
    ]


@pytest.mark.parametrize("seed", [1, 7, 99, 1234])
def test_quota_rhythm_places_exact_note_count(seed):
    """Quota rhythms hold exactly the quota and end on a bar line."""

    rhythm = rhythm_engine.build_bars_rhythm_for_quota(
        4, 4, ["quarter", "eighth"], note_quota=5, rest_prob=0.3, seed=seed
    )
    assert rhythm_fit.note_count(rhythm) == 5
    assert rhythm_fit.total_beats(rhythm, 4) % 4 == 0


def test_quota_rhythm_without_rests_stops_at_quota():
    """Without rests the rhythm ends on the last required note."""

    rhythm = rhythm_engine.build_bars_rhythm_for_quota(
        4, 4, ["quarter", "eighth"], note_quota=5, allow_rests=False, seed=11
    )
    assert len(rhythm) == 5
    assert all(ev.is_note for ev in rhythm)


@pytest.mark.parametrize("quota", [4, 5, 8, 9, 15])
def test_quota_rhythm_without_rests_spans_several_bars(quota):
    """Quotas longer than one bar still place every note when rests are off."""

    rhythm = rhythm_engine.build_bars_rhythm_for_quota(
        4, 4, ["quarter"], note_quota=quota, allow_rests=False
    )
    assert rhythm_fit.note_count(rhythm) == quota
    assert len(rhythm) == quota
    assert rhythm_fit.total_beats(rhythm, 4) == quota


def test_ensure_first_bar_note_only_touches_silent_first_bar():
    """Only a first bar of rests gets its opening event turned into a note."""

    rest, note = timing.RhythmEvent.rest, timing.RhythmEvent.note
    silent = [rest("half"), rest("half"), note("quarter")]
    rhythm_engine.ensure_first_bar_note(silent, 4, 4)
    assert silent[0] == note("half")

    late = [rest("half"), note("half")]
    rhythm_engine.ensure_first_bar_note(late, 4, 4)
    assert late == [rest("half"), note("half")]


def test_quota_rhythm_forces_a_note_per_bar():
    """All-rest bars contribute one forced note each."""

    rhythm = rhythm_engine.build_bars_rhythm_for_quota(
        4, 4, ["quarter"], note_quota=3, rest_prob=1.0
    )
    assert rhythm_fit.note_count(rhythm) == 3
    assert rhythm_fit.total_beats(rhythm, 4) == 12


def test_quota_rhythm_rejects_zero_quota():
    """A non-positive quota is an error."""

    with pytest.raises(ValueError):
        rhythm_engine.build_bars_rhythm_for_quota(4, 4, ["quarter"], note_quota=0)


def test_note_values_first_seen_order():
    """Distinct values keep their first appearance order."""

    events = [
        timing.RhythmEvent.note("eighth"),
        timing.RhythmEvent.rest("quarter"),
        timing.RhythmEvent.note("eighth"),
    ]
    assert rhythm_engine.note_values(events) == (NoteValue.EIGHTH, NoteValue.QUARTER)
