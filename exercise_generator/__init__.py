"""Exercise Generator library.

This package builds the musical content of vocal-training exercises: pitch
sequences fitted to a singer's range and key, aligned to rhythms whose total
length is an exact whole number of bars.  A typical workflow is to describe a
session with :class:`~exercise_generator.config.SessionConfig` and call
:func:`generate_exercise` with the singer's :class:`PitchRange`; the result
carries a :class:`Phrase` with absolute note timings plus the rhythm it was
built on.

Underlying Algorithm
--------------------
Rhythm and pitch are built separately.  Every note value in the palette is
mapped onto an integer grid (the LCM of their beat-fraction denominators) so
each bar becomes an exact coin-change problem::

    grid = Grid.build(available, den)
    for bar in range(bars):
        units = random_exact_units(ts_num * grid.grid_den, grid.coins, rng)
        events += [note_or_rest(choice(grid.bucket[u])) for u in units]

Pitches are then assigned to the NOTE slots from the allowed-pitch set (range
∩ scale ∩ tonic windows ∩ whitelists), either by a biased stepwise walk, a
scale-degree traversal or interval pairs.  Start times come from exact
cumulative beats, so there is no floating-point drift across a phrase.

Features include:
- Exact bar filling with automatic filler values and explicit failure.
- Random, sequence (asc/desc/mirrored) and interval exercise modes.
- Reproducible output from a per-call xorshift32 seed.
- JSON settings, MIDI export and a command line interface.
"""

__version__ = "0.1.0"

from .config import (  # noqa: F401
    DEFAULT_SESSION_CONFIG,
    IntervalRhythm,
    RandomRhythm,
    ScaleConfig,
    SequenceRhythm,
    SessionConfig,
    load_settings,
    save_settings,
)
from .exact_fill import InfeasibleRhythmError  # noqa: F401
from .exercise import Exercise, generate_exercise, rhythm_line  # noqa: F401
from .intervals import build_interval_phrase  # noqa: F401
from .melody import build_phrase_from_scale_with_rhythm  # noqa: F401
from .note_utils import PitchRange, midi_to_note, note_to_midi  # noqa: F401
from .phrase import Phrase, PhraseNote  # noqa: F401
from .rhythm_engine import (  # noqa: F401
    build_bars_rhythm_for_quota,
    build_equal_rhythm,
    build_random_rhythm_basic,
    build_random_rhythm_syncopated,
    build_two_bar_rhythm,
)
from .rhythm_fit import fit_rhythm_to_bars  # noqa: F401
from .sequence import SequencePattern, build_phrase_from_scale_sequence  # noqa: F401
from .timing import EventKind, NoteValue, RhythmEvent  # noqa: F401


def run_cli():
    from .cli import run_cli as _run_cli
    _run_cli()


def main():
    from .cli import main as _main
    _main()
