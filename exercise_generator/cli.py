"""Command line interface for the exercise generator.

The CLI builds a :class:`~exercise_generator.config.SessionConfig` from an
optional JSON settings file plus command line overrides, generates one or
more takes and prints them as JSON and/or writes them as MIDI.

Example
-------
Running ``python -m exercise_generator --low C3 --high G4 --mode sequence \
    --pattern asc-desc --degrees 0,2,4 --output triad.mid`` writes a
five-note arpeggio exercise to ``triad.mid``.  Range bounds accept note names
or frequencies in Hertz (``--low 130.8``).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from .batch_generation import generate_batch, take_sessions
from .config import (
    DEFAULT_SESSION_CONFIG,
    IntervalRhythm,
    RandomRhythm,
    SequenceRhythm,
    SessionConfig,
    load_settings,
    save_settings,
    session_config_from_dict,
    session_config_to_dict,
)
from .exercise import Exercise
from .note_utils import PitchRange, hz_to_midi, note_to_midi, pitch_class, round_half_up
from .scales import SCALES
from .sequence import SequencePattern
from .timing import NoteValue
from .utils import parse_csv_ints, validate_probability, validate_time_signature

__all__ = ["build_parser", "run_cli", "main"]

_MODE_CLASSES = {
    "random": RandomRhythm,
    "sequence": SequenceRhythm,
    "interval": IntervalRhythm,
}


def parse_pitch(text: str) -> int:
    """MIDI number for a note name (``"A3"``) or a frequency (``"220"``)."""

    try:
        hz = float(text)
    except ValueError:
        return note_to_midi(text)
    return round_half_up(hz_to_midi(hz))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a vocal exercise and print it as JSON or save it as MIDI."
    )
    parser.add_argument("--list-scales", action="store_true", help="List supported scales and exit")
    parser.add_argument("--low", type=str, help="Lowest singable pitch (note name or Hz).")
    parser.add_argument("--high", type=str, help="Highest singable pitch (note name or Hz).")
    parser.add_argument("--mode", choices=sorted(_MODE_CLASSES), help="Exercise type.")
    parser.add_argument("--bpm", type=float, help="Quarter-note tempo.")
    parser.add_argument("--timesig", type=str, help="Time signature, e.g. 3/4.")
    parser.add_argument("--scale", type=str, help="Scale name, e.g. major or dorian.")
    parser.add_argument("--tonic", type=str, help="Tonic note name without octave, e.g. F#.")
    parser.add_argument("--max-per-degree", type=int, help="Longest run on one degree (random mode).")
    parser.add_argument("--available", type=str, help="Comma-separated note values, e.g. quarter,eighth.")
    parser.add_argument("--bars", type=int, help="Number of bars (random mode).")
    parser.add_argument("--rest-prob", type=float, help="Probability of a rest per event.")
    parser.add_argument("--no-rests", action="store_true", help="Disable rests.")
    parser.add_argument("--group-triplets", action="store_true", help="Keep triplets in groups of three.")
    parser.add_argument("--pattern", choices=[p.value for p in SequencePattern], help="Sequence pattern.")
    parser.add_argument("--intervals", type=str, help="Comma-separated interval sizes in semitones.")
    parser.add_argument("--num-intervals", type=int, help="Number of interval pairs.")
    parser.add_argument("--degrees", type=str, help="Comma-separated scale-degree indices to allow.")
    parser.add_argument("--tonic-midis", type=str, help="Comma-separated MIDI tonics defining windows.")
    parser.add_argument("--seed", type=int, help="Seed for pitch selection.")
    parser.add_argument("--rhythm-seed", type=int, help="Seed for rhythm construction.")
    parser.add_argument("--takes", type=int, default=1, help="Number of takes to generate (default: 1).")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes for multiple takes.")
    parser.add_argument("--config", type=str, help="JSON settings file to start from.")
    parser.add_argument("--save-config", type=str, help="Write the effective settings to this file.")
    parser.add_argument("--json", action="store_true", help="Print the exercise as JSON.")
    parser.add_argument("--output", type=str, help="Output MIDI file path.")
    parser.add_argument("--instrument", type=int, default=0, help="MIDI program number.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def _rhythm_overrides(args: argparse.Namespace, cls) -> dict:
    out = {}
    if args.available:
        out["available"] = tuple(
            NoteValue(v.strip()) for v in args.available.split(",") if v.strip()
        )
    if args.rest_prob is not None:
        out["rest_prob"] = validate_probability(args.rest_prob, "rest probability")
    if args.no_rests:
        out["allow_rests"] = False
    if args.group_triplets:
        out["group_triplets"] = True
    if args.rhythm_seed is not None:
        out["seed"] = args.rhythm_seed
    if cls is SequenceRhythm and args.pattern:
        out["pattern"] = SequencePattern(args.pattern)
    if cls is RandomRhythm and args.bars is not None:
        out["length_bars"] = args.bars
    if cls is IntervalRhythm:
        intervals = parse_csv_ints(args.intervals)
        if intervals:
            out["intervals"] = tuple(intervals)
        if args.num_intervals is not None:
            out["num_intervals"] = args.num_intervals
    return out


def session_from_args(args: argparse.Namespace, base: SessionConfig) -> SessionConfig:
    """Apply command line overrides on top of ``base``.

    Raises
    ------
    ValueError
        If any override fails validation.
    """

    cls = _MODE_CLASSES[args.mode] if args.mode else type(base.rhythm)
    if isinstance(base.rhythm, cls):
        rhythm = base.rhythm
    else:
        # Switching modes keeps the settings every mode shares.
        shared = {
            "available": base.rhythm.available,
            "allow_rests": base.rhythm.allow_rests,
            "rest_prob": base.rhythm.rest_prob,
            "seed": base.rhythm.seed,
        }
        rhythm = cls(**shared)
    rhythm = replace(rhythm, **_rhythm_overrides(args, cls))

    scale_kwargs = {}
    if args.scale:
        scale_kwargs["name"] = args.scale
    if args.tonic:
        scale_kwargs["tonic_pc"] = pitch_class(args.tonic)
    if args.max_per_degree is not None:
        scale_kwargs["max_per_degree"] = args.max_per_degree
    if args.seed is not None:
        scale_kwargs["seed"] = args.seed
    scale = replace(base.scale, **scale_kwargs)

    session_kwargs = {"scale": scale, "rhythm": rhythm}
    if args.bpm is not None:
        session_kwargs["bpm"] = args.bpm
    if args.timesig:
        num, den = validate_time_signature(args.timesig)
        session_kwargs["time_signature"] = f"{num}/{den}"
    degrees = parse_csv_ints(args.degrees)
    if degrees:
        session_kwargs["allowed_degrees"] = tuple(degrees)
    tonics = parse_csv_ints(args.tonic_midis)
    if tonics:
        session_kwargs["tonic_midis"] = tuple(tonics)
    return replace(base, **session_kwargs)


def _midi_paths(output: str, takes: int) -> List[Path]:
    path = Path(output).expanduser()
    if takes == 1:
        return [path]
    return [path.with_name(f"{path.stem}_{i + 1}{path.suffix}") for i in range(takes)]


def _write_midi(exercises: List[Exercise], session: SessionConfig, output: str, program: int) -> None:
    from .midi_io import create_midi_file

    for exercise, path in zip(exercises, _midi_paths(output, len(exercises))):
        create_midi_file(exercise.phrase, session.bpm, session.ts, str(path), program=program)


def run_cli(argv: Optional[List[str]] = None) -> None:
    """Parse ``argv`` (defaults to ``sys.argv[1:]``) and generate exercises.

    Validation problems are logged and terminate the process with status 1.
    """

    args = build_parser().parse_args(argv)
    if args.list_scales:
        print("\n".join(sorted(SCALES)))
        return
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    if not args.low or not args.high:
        logging.error("Both --low and --high are required.")
        sys.exit(1)
    if args.takes <= 0:
        logging.error("Number of takes must be a positive integer.")
        sys.exit(1)
    if args.workers <= 0:
        logging.error("Number of workers must be a positive integer.")
        sys.exit(1)
    if not 0 <= args.instrument <= 127:
        logging.error("Instrument must be between 0 and 127.")
        sys.exit(1)

    try:
        pitch_range = PitchRange(parse_pitch(args.low), parse_pitch(args.high))
        base = DEFAULT_SESSION_CONFIG
        if args.config:
            base = session_config_from_dict(load_settings(Path(args.config).expanduser()))
        session = session_from_args(args, base)
        sessions = take_sessions(session, args.takes)
        exercises = generate_batch(
            [(s, pitch_range) for s in sessions], workers=args.workers
        )
    except ValueError as exc:
        logging.error(str(exc))
        sys.exit(1)

    if args.save_config:
        save_settings(session_config_to_dict(session), Path(args.save_config).expanduser())

    if args.output:
        try:
            _write_midi(exercises, session, args.output, args.instrument)
        except OSError as exc:
            logging.error("Could not write MIDI file: %s", exc)
            sys.exit(1)

    if args.json or not args.output:
        payload = [e.to_dict() for e in exercises]
        print(json.dumps(payload[0] if len(payload) == 1 else payload, indent=2))
    logging.info("Exercise generation complete.")


def main(argv: Optional[List[str]] = None) -> None:
    """Console entry point: configure logging and run the CLI."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    run_cli(argv)
