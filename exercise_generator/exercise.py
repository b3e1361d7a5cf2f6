"""Assemble a complete exercise from a :class:`~exercise_generator.config.SessionConfig`.

The rhythm mode decides which builders run:

``SequenceRhythm``
    Quota rhythm sized to the degree traversal, then the sequence generator.
``IntervalRhythm``
    Two beat-long notes per bar padded with rests, then the interval generator.
``RandomRhythm``
    ``length_bars`` bar-exact bars, then the melodic generator.

The rhythm is seeded from the rhythm config and the pitches from the scale
config, so regenerating one leaves the other untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .config import (
    DEFAULT_SESSION_CONFIG,
    IntervalRhythm,
    RandomRhythm,
    SequenceRhythm,
    SessionConfig,
)
from .intervals import build_interval_phrase, default_pair_rhythm, interval_bar_rhythm
from .melody import build_phrase_from_scale_with_rhythm
from .note_utils import PitchRange
from .phrase import Phrase
from .pitch_window import pick_window, windows_for_key_in_range
from .rhythm_engine import build_bars_rhythm_for_quota, build_two_bar_rhythm
from .scales import sequence_note_count_for_scale
from .sequence import build_phrase_from_scale_sequence
from .timing import RhythmEvent

__all__ = [
    "Exercise",
    "sequence_quota",
    "resolve_tonic_midis",
    "rhythm_line",
    "generate_exercise",
]


@dataclass(frozen=True)
class Exercise:
    """Generated content for one take.

    ``melody_rhythm`` is the rhythm the phrase was built on;
    ``rhythm_line`` is the separate rhythm-staff line, or ``None`` when the
    line is disabled.
    """

    phrase: Phrase
    melody_rhythm: Tuple[RhythmEvent, ...]
    rhythm_line: Optional[Tuple[RhythmEvent, ...]] = None

    def to_dict(self) -> dict:
        out = self.phrase.to_dict()
        out["melodyRhythm"] = [e.to_dict() for e in self.melody_rhythm]
        out["rhythmLine"] = (
            None if self.rhythm_line is None else [e.to_dict() for e in self.rhythm_line]
        )
        return out


def sequence_quota(session: SessionConfig) -> int:
    """Number of NOTE slots a sequence exercise needs.

    ``K`` is the count of distinct whitelisted degrees, or the scale's default
    sequence length.  Mirrored patterns need ``2K - 1`` notes because the
    turnaround is not repeated.
    """

    if session.allowed_degrees:
        k = len({max(0, d) for d in session.allowed_degrees})
    else:
        k = sequence_note_count_for_scale(session.scale.name)
    rhythm = session.rhythm
    mirrored = isinstance(rhythm, SequenceRhythm) and rhythm.pattern.is_mirrored
    return max(1, 2 * k - 1 if mirrored else k)


def resolve_tonic_midis(
    session: SessionConfig, pitch_range: PitchRange
) -> Optional[Tuple[int, ...]]:
    """Explicit tonic windows, else one window picked from the range."""

    if session.tonic_midis:
        return session.tonic_midis
    windows = windows_for_key_in_range(session.scale.tonic_pc, pitch_range)
    preferred = session.preferred_octave_indices[0] if session.preferred_octave_indices else None
    chosen = pick_window(windows, pitch_range, preferred)
    if chosen is None:
        logging.info("No full octave of the tonic fits the range; using the whole range")
        return None
    return (chosen,)


def _strip_rests(events: List[RhythmEvent]) -> List[RhythmEvent]:
    return [e for e in events if e.is_note]


def rhythm_line(session: SessionConfig = DEFAULT_SESSION_CONFIG) -> Optional[List[RhythmEvent]]:
    """Build the rhythm-staff line, governed by the line-level rest policy."""

    rhythm = session.rhythm
    if not rhythm.line_enabled:
        return None
    num, den = session.ts
    if isinstance(rhythm, SequenceRhythm):
        line = build_bars_rhythm_for_quota(
            den,
            num,
            rhythm.available,
            sequence_quota(session),
            rest_prob=rhythm.line_rest_prob,
            allow_rests=rhythm.allow_rests,
            seed=rhythm.seed,
            triplet_groups=rhythm.group_triplets,
        )
        return line if rhythm.allow_rests else _strip_rests(line)
    if isinstance(rhythm, (RandomRhythm, IntervalRhythm)):
        return build_two_bar_rhythm(
            den,
            num,
            rhythm.available,
            rest_prob=rhythm.line_rest_prob,
            allow_rests=rhythm.allow_rests,
            seed=rhythm.seed,
            bars=rhythm.length_bars,
            triplet_groups=rhythm.group_triplets,
        )
    raise TypeError(f"Unsupported rhythm config: {type(rhythm).__name__}")


def _sequence_exercise(
    session: SessionConfig, rhythm: SequenceRhythm, pitch_range: PitchRange, tonic_midis
) -> Tuple[Phrase, List[RhythmEvent]]:
    num, den = session.ts
    quota = sequence_quota(session)
    fabric = build_bars_rhythm_for_quota(
        den,
        num,
        rhythm.available,
        quota,
        rest_prob=rhythm.content_rest_probability,
        allow_rests=rhythm.content_rests,
        seed=rhythm.seed,
        triplet_groups=rhythm.group_triplets,
    )
    if not rhythm.content_rests:
        fabric = _strip_rests(fabric)
    phrase = build_phrase_from_scale_sequence(
        pitch_range,
        session.bpm,
        den,
        session.scale.tonic_pc,
        session.scale.name,
        fabric,
        pattern=rhythm.pattern,
        note_quota=quota,
        seed=session.scale.seed,
        tonic_midis=tonic_midis,
        allowed_degree_indices=session.allowed_degrees,
        allowed_midis=session.allowed_midis,
    )
    return phrase, fabric


def _interval_exercise(
    session: SessionConfig, rhythm: IntervalRhythm, pitch_range: PitchRange, tonic_midis
) -> Tuple[Phrase, List[RhythmEvent]]:
    num, den = session.ts
    pair = default_pair_rhythm(den)
    per_bar = interval_bar_rhythm(pair, den, num)
    phrase = build_interval_phrase(
        pitch_range,
        session.bpm,
        den,
        num,
        session.scale.tonic_pc,
        session.scale.name,
        rhythm.intervals,
        rhythm.num_intervals,
        pair_rhythm=pair,
        seed=session.scale.seed,
        tonic_midis=tonic_midis,
        allowed_degree_indices=session.allowed_degrees,
        allowed_midis=session.allowed_midis,
    )
    return phrase, per_bar * rhythm.num_intervals


def _random_exercise(
    session: SessionConfig, rhythm: RandomRhythm, pitch_range: PitchRange, tonic_midis
) -> Tuple[Phrase, List[RhythmEvent]]:
    num, den = session.ts
    fabric = build_two_bar_rhythm(
        den,
        num,
        rhythm.available,
        rest_prob=rhythm.content_rest_probability,
        allow_rests=rhythm.content_rests,
        seed=rhythm.seed,
        bars=rhythm.length_bars,
        triplet_groups=rhythm.group_triplets,
    )
    phrase = build_phrase_from_scale_with_rhythm(
        pitch_range,
        session.bpm,
        den,
        session.scale.tonic_pc,
        session.scale.name,
        fabric,
        max_per_degree=session.scale.max_per_degree,
        seed=session.scale.seed,
        tonic_midis=tonic_midis,
        include_under=rhythm.include_under,
        include_over=rhythm.include_over,
        allowed_degree_indices=session.allowed_degrees,
        allowed_midis=session.allowed_midis,
        drop_upper_window_degrees=session.drop_upper_window_degrees,
    )
    return phrase, fabric


def generate_exercise(
    session: SessionConfig = DEFAULT_SESSION_CONFIG,
    pitch_range: PitchRange = PitchRange(48, 72),
) -> Exercise:
    """Generate the phrase, its rhythm and the rhythm line for ``session``.

    Raises
    ------
    TypeError
        If ``session.rhythm`` is not one of the known rhythm modes.
    InfeasibleRhythmError
        If the note palette cannot fill a bar.
    """

    rhythm = session.rhythm
    tonic_midis = resolve_tonic_midis(session, pitch_range)
    if isinstance(rhythm, SequenceRhythm):
        phrase, fabric = _sequence_exercise(session, rhythm, pitch_range, tonic_midis)
    elif isinstance(rhythm, IntervalRhythm):
        phrase, fabric = _interval_exercise(session, rhythm, pitch_range, tonic_midis)
    elif isinstance(rhythm, RandomRhythm):
        phrase, fabric = _random_exercise(session, rhythm, pitch_range, tonic_midis)
    else:
        raise TypeError(f"Unsupported rhythm config: {type(rhythm).__name__}")

    line = rhythm_line(session)
    logging.info(
        "Generated %s exercise: %d notes over %.2f s",
        session.mode,
        len(phrase.notes),
        phrase.duration_sec,
    )
    return Exercise(phrase, tuple(fabric), None if line is None else tuple(line))
