"""Tests for multi-take generation."""

import importlib
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

batch = importlib.import_module("exercise_generator.batch_generation")
config = importlib.import_module("exercise_generator.config")
note_utils = importlib.import_module("exercise_generator.note_utils")


def test_take_sessions_derives_new_seeds():
    """Later takes get fresh, reproducible seeds."""

    takes = batch.take_sessions(config.DEFAULT_SESSION_CONFIG, 3)
    assert len(takes) == 3
    assert takes[0] == config.DEFAULT_SESSION_CONFIG
    seeds = {(t.scale.seed, t.rhythm.seed) for t in takes}
    assert len(seeds) == 3
    assert batch.take_sessions(config.DEFAULT_SESSION_CONFIG, 3) == takes
    assert takes[1].bpm == config.DEFAULT_SESSION_CONFIG.bpm


def test_take_sessions_rejects_zero():
    """At least one take is required."""

    with pytest.raises(ValueError):
        batch.take_sessions(config.DEFAULT_SESSION_CONFIG, 0)


def test_generate_batch_uses_process_pool(monkeypatch):
    """``generate_batch`` should create a ``ProcessPoolExecutor`` when workers>1."""

    calls = {}

    class DummyExec:
        def __init__(self, max_workers=None):
            calls["workers"] = max_workers

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            pass

        def submit(self, fn, job):
            class DummyFut:
                def result(self_inner):
                    return fn(job)

            return DummyFut()

    monkeypatch.setattr(batch, "ProcessPoolExecutor", DummyExec)

    rng = note_utils.PitchRange(55, 76)
    jobs = [(s, rng) for s in batch.take_sessions(config.DEFAULT_SESSION_CONFIG, 2)]
    results = batch.generate_batch(jobs, workers=2)

    assert calls["workers"] == 2
    assert results == batch.generate_batch(jobs, workers=1)


def test_generate_batch_serial_for_single_job(monkeypatch):
    """A single job never starts a pool."""

    def fail(*_a, **_k):
        raise AssertionError("pool should not be used")

    monkeypatch.setattr(batch, "ProcessPoolExecutor", fail)
    jobs = [(config.DEFAULT_SESSION_CONFIG, note_utils.PitchRange(55, 76))]
    assert len(batch.generate_batch(jobs, workers=4)) == 1


def test_generate_batch_rejects_bad_workers():
    """Zero or negative worker counts are errors."""

    with pytest.raises(ValueError):
        batch.generate_batch([], workers=0)
