"""Generate several exercises at once.

Every generation call is independent and deterministic, so a batch can be
spread across worker processes with
:class:`concurrent.futures.ProcessPoolExecutor` and still return exactly what
a serial loop would.  :func:`take_sessions` derives fresh seeds for a run of
takes so "regenerate" produces new content that can itself be reproduced.

Example
-------
>>> from exercise_generator.config import DEFAULT_SESSION_CONFIG
>>> from exercise_generator.note_utils import PitchRange
>>> jobs = [(s, PitchRange(55, 76)) for s in take_sessions(DEFAULT_SESSION_CONFIG, 3)]
>>> len(generate_batch(jobs, workers=1))
3
"""

from __future__ import annotations

import os
from concurrent.futures import ProcessPoolExecutor
from dataclasses import replace
from typing import Iterable, List, Optional, Tuple

from .config import SessionConfig
from .exercise import Exercise, generate_exercise
from .note_utils import PitchRange
from .rng import XorShift32

__all__ = ["take_sessions", "generate_batch"]

Job = Tuple[SessionConfig, PitchRange]


def take_sessions(session: SessionConfig, takes: int) -> List[SessionConfig]:
    """Return ``takes`` copies of ``session`` with new pitch and rhythm seeds.

    The first take keeps the original seeds.  Later seeds come from a
    generator seeded by the session itself, so the same session always
    yields the same sequence of takes.
    """

    if takes <= 0:
        raise ValueError("takes must be positive")
    rng = XorShift32(session.scale.seed ^ session.rhythm.seed)
    out = [session]
    for _ in range(takes - 1):
        out.append(
            replace(
                session,
                scale=replace(session.scale, seed=rng.next_uint32()),
                rhythm=replace(session.rhythm, seed=rng.next_uint32()),
            )
        )
    return out


def _generate_single(job: Job) -> Exercise:
    """Wrapper used by worker processes to generate one exercise."""

    session, pitch_range = job
    return generate_exercise(session, pitch_range)


def generate_batch(jobs: Iterable[Job], *, workers: Optional[int] = None) -> List[Exercise]:
    """Generate one exercise per ``(session, pitch_range)`` job.

    Parameters
    ----------
    jobs:
        Pairs passed to :func:`~exercise_generator.exercise.generate_exercise`.
    workers:
        Number of worker processes.  ``None`` uses the CPU count and ``1``
        runs serially in the calling process.

    Returns
    -------
    list[Exercise]
        Results in the order of ``jobs``.

    Raises
    ------
    ValueError
        If ``workers`` is zero or negative.
    """

    job_list = list(jobs)
    if workers is not None and workers <= 0:
        raise ValueError("workers must be positive")
    if workers is None:
        workers = os.cpu_count() or 1
    if workers <= 1 or len(job_list) <= 1:
        return [_generate_single(job) for job in job_list]

    with ProcessPoolExecutor(max_workers=workers) as pool:
        futs = [pool.submit(_generate_single, job) for job in job_list]
        return [f.result() for f in futs]
