"""Render a :class:`~exercise_generator.phrase.Phrase` as a MIDI file.

Phrase timing is absolute seconds; ticks are derived from the quarter-note
``bpm`` at 480 ticks per quarter so the file plays back at the tempo the
exercise was generated for.  Trailing silence up to ``duration_sec`` is kept
so the exported file lasts exactly the whole number of bars.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, List, Tuple

from .phrase import Phrase
from .utils import VALID_DENOMINATORS

if TYPE_CHECKING:
    from mido import MidiFile

__all__ = ["TICKS_PER_BEAT", "seconds_to_ticks", "create_midi_file"]

TICKS_PER_BEAT = 480


def seconds_to_ticks(seconds: float, bpm: float) -> int:
    return int(round(seconds * bpm / 60.0 * TICKS_PER_BEAT))


def create_midi_file(
    phrase: Phrase,
    bpm: float,
    time_signature: Tuple[int, int],
    output_file: str,
    program: int = 0,
    velocity: int = 64,
) -> "MidiFile":
    """Write ``phrase`` to ``output_file`` and return the ``MidiFile``.

    The parent directory of ``output_file`` is created when missing.

    Raises
    ------
    ValueError
        If ``bpm`` is not positive or the time signature is invalid.
    ImportError
        If ``mido`` is not installed.
    """

    try:
        import mido
        from mido import Message, MetaMessage, MidiFile, MidiTrack
    except ModuleNotFoundError as exc:
        raise ImportError(
            "mido is required to create MIDI files; install it with 'pip install mido'"
        ) from exc

    if bpm <= 0:
        raise ValueError("bpm must be positive")
    num, den = time_signature
    if num <= 0 or den not in VALID_DENOMINATORS:
        raise ValueError(
            "time_signature denominator must be one of 1, 2, 4, 8, 16 or 32 and numerator must be > 0"
        )

    mid = MidiFile(ticks_per_beat=TICKS_PER_BEAT)
    track = MidiTrack()
    mid.tracks.append(track)
    track.append(MetaMessage("set_tempo", tempo=mido.bpm2tempo(bpm)))
    track.append(MetaMessage("time_signature", numerator=num, denominator=den))
    track.append(Message("program_change", program=program, time=0))

    # (tick, order, kind, note); note_off sorts before a note_on at the same tick.
    events: List[Tuple[int, int, str, int]] = []
    for note in phrase.notes:
        start = seconds_to_ticks(note.start_sec, bpm)
        end = max(start + 1, seconds_to_ticks(note.start_sec + note.dur_sec, bpm))
        events.append((start, 1, "note_on", note.midi))
        events.append((end, 0, "note_off", note.midi))
    events.sort()

    now = 0
    for tick, _, kind, midi in events:
        track.append(Message(kind, note=midi, velocity=velocity, time=tick - now))
        now = tick

    end_tick = max(now, seconds_to_ticks(phrase.duration_sec, bpm))
    track.append(MetaMessage("end_of_track", time=end_tick - now))

    Path(output_file).expanduser().parent.mkdir(parents=True, exist_ok=True)
    mid.save(output_file)
    logging.info("MIDI file saved to %s", output_file)
    return mid
