"""
Audio generation - Score AST to timed MIDI events.

Walks each block's lyric stream, pulling a pitch or chord from the pitch
stream for every attack. Key and relative-pitch state are block-scoped
(fresh per block, as in layout); the tick clock, tempo, beat duration,
instrument and velocity run continuously through the whole score.

Subdivision semantics:
    Syllable / Melisma  cut off sounding notes, attack the next pitch
    Hyphen              sustain (no cutoff, no attack)
    Rest / Partial      cut off sounding notes

Every subdivision advances the clock by an equal share of its beat.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from fractions import Fraction
from typing import NamedTuple

from chuk_mcp_fqs.compiler.midi import (
    MAX_VLQ,
    MidiEvent,
    MidiTrack,
    velocity_percent_to_midi,
    write_midi_file,
)
from chuk_mcp_fqs.config import AudioSettings
from chuk_mcp_fqs.constants import BEAT_MULTIPLIERS
from chuk_mcp_fqs.core.pitch import to_midi
from chuk_mcp_fqs.core.resolver import KeySignatureState, PitchState, ResolvedPitch
from chuk_mcp_fqs.core.sequencing import (
    BarlineItem,
    BeatItem,
    DirectiveItem,
    PitchCursor,
    consume_through_barline,
    flatten_lyrics,
    next_sounding_element,
)
from chuk_mcp_fqs.models.score import (
    Beat,
    BeatDurationDirective,
    Chord,
    Directive,
    InstrumentDirective,
    KeySignatureDirective,
    MusicBlock,
    ReferenceOctaveDirective,
    Score,
    TempoDirective,
    VolumeDirective,
)

logger = logging.getLogger(__name__)

# Largest tempo a 3-byte set-tempo event can carry
MAX_TEMPO = 0xFFFFFF


class BeatTimingMap(NamedTuple):
    """Tick at which each rendered beat starts, keyed "<block>:<beat>"."""

    beats: dict[str, int]
    total_ticks: int


def beat_key(block_index: int, beat_index: int) -> str:
    """Key shared by the timing map and the layout's beat counters."""
    return f"{block_index}:{beat_index}"


def beat_multiplier(duration: str) -> Fraction:
    """Quarter-note multiple of a beat-duration code (unknown codes count as 1)."""
    return BEAT_MULTIPLIERS.get(duration, Fraction(1))


def microseconds_per_quarter(tempo_bpm: int, duration: str) -> int:
    """
    MIDI tempo for `tempo_bpm` beats of `duration` per minute.

    T is measured in the current beat unit, so [B8 T120] means 120 eighths
    per minute, i.e. 60 quarters per minute.
    """
    quarters_per_minute = max(tempo_bpm, 1) * beat_multiplier(duration)
    tempo = math.floor(Fraction(60_000_000) / quarters_per_minute + Fraction(1, 2))
    return min(tempo, MAX_TEMPO)


def beat_ticks(beat: Beat, duration: str, ticks_per_quarter: int) -> Fraction:
    """Length of one beat in (possibly fractional) ticks."""
    return beat_multiplier(duration) * ticks_per_quarter * beat.scale


@dataclass
class PlaybackState:
    """
    Score-global playback state.

    `now` is exact (Fraction) so that uneven subdivisions never drift;
    event ticks are rounded from it.
    """

    tempo_bpm: int
    beat_duration: str
    velocity: int
    instrument: int
    now: Fraction = Fraction(0)
    last_event_tick: int = 0
    last_tempo: int | None = None
    active_notes: dict[int, None] = field(default_factory=dict)

    @classmethod
    def initial(cls, settings: AudioSettings) -> PlaybackState:
        return cls(
            tempo_bpm=settings.default_tempo,
            beat_duration=settings.default_beat_duration,
            velocity=settings.default_velocity,
            instrument=settings.default_instrument,
        )


class AudioGenerator:
    """
    Generates MIDI events, MIDI bytes and the beat timing map for a Score.

    Example:
        generator = AudioGenerator()
        data = generator.generate_midi(parse(text))
    """

    def __init__(self, settings: AudioSettings | None = None) -> None:
        self.settings = settings or AudioSettings()

    # --- Public API ---

    def generate_midi(self, score: Score) -> bytes:
        """Generate a single-track (format 0) MIDI file."""
        events = self.generate_events(score)
        return write_midi_file([MidiTrack(events)], self.settings.ticks_per_quarter)

    def generate_events(self, score: Score) -> list[MidiEvent]:
        """
        Generate the ordered MIDI event list for a score.

        The list starts with a tempo event and a program change, and ends
        with every still-sounding note silenced.
        """
        walk = _EventWalk(self.settings)
        for block in score.blocks:
            walk.play_block(block)
        walk.silence_all()
        logger.debug("Generated %d events over %s ticks", len(walk.events), walk.state.now)
        return walk.events

    def get_beat_timing_map(self, score: Score) -> BeatTimingMap:
        """
        Map each rendered beat to its start tick without building events.

        Beats with no subdivisions are not rendered and get no entry, so
        beat numbering matches the layout's beat counters.
        """
        ticks_per_quarter = self.settings.ticks_per_quarter
        duration = self.settings.default_beat_duration
        now = Fraction(0)
        beats: dict[str, int] = {}

        for block_index, block in enumerate(score.blocks):
            beat_index = 0
            for item in flatten_lyrics(block):
                if isinstance(item, DirectiveItem):
                    duration = _timing_duration(item.directive, duration)
                elif isinstance(item, BeatItem):
                    for directive in item.beat.directives:
                        duration = _timing_duration(directive, duration)
                    if not item.beat.subdivisions:
                        continue
                    beats[beat_key(block_index, beat_index)] = round(now)
                    beat_index += 1
                    now += beat_ticks(item.beat, duration, ticks_per_quarter)

        return BeatTimingMap(beats=beats, total_ticks=round(now))


def _timing_duration(directive: Directive, duration: str) -> str:
    if isinstance(directive, BeatDurationDirective):
        return directive.duration
    return duration


class _EventWalk:
    """One generate_events traversal: playback state plus the event list."""

    def __init__(self, settings: AudioSettings) -> None:
        self.settings = settings
        self.channel = settings.channel
        self.state = PlaybackState.initial(settings)
        self.events: list[MidiEvent] = []

        initial_tempo = microseconds_per_quarter(self.state.tempo_bpm, self.state.beat_duration)
        self.events.append(MidiEvent.set_tempo(0, initial_tempo))
        self.events.append(MidiEvent.program_change(0, self.state.instrument, self.channel))
        self.state.last_tempo = initial_tempo

    # --- Event emission ---

    def _delta(self) -> int:
        tick = round(self.state.now)
        delta = tick - self.state.last_event_tick
        # Gaps longer than one delta time are carried by repeats of the current tempo
        while delta > MAX_VLQ:
            self.events.append(MidiEvent.set_tempo(MAX_VLQ, self.state.last_tempo))
            delta -= MAX_VLQ
        self.state.last_event_tick = tick
        return delta

    def silence_all(self) -> None:
        """Note-on with velocity 0 for every sounding note."""
        for note in self.state.active_notes:
            self.events.append(MidiEvent.note_on(self._delta(), note, 0, self.channel))
        self.state.active_notes.clear()

    def _update_tempo(self) -> None:
        tempo = microseconds_per_quarter(self.state.tempo_bpm, self.state.beat_duration)
        if tempo != self.state.last_tempo:
            self.events.append(MidiEvent.set_tempo(self._delta(), tempo))
            self.state.last_tempo = tempo

    def _play(self, pitch: ResolvedPitch, key_sig: KeySignatureState) -> None:
        accidental = key_sig.get_accidental(pitch.note, pitch.octave, pitch.accidental)
        note = to_midi(pitch.note, pitch.octave, accidental)
        if not 0 <= note <= 127:
            logger.warning("Pitch %s%d out of MIDI range, clamped", pitch.note, pitch.octave)
            note = max(0, min(127, note))
        velocity = velocity_percent_to_midi(self.state.velocity)
        self.events.append(MidiEvent.note_on(self._delta(), note, velocity, self.channel))
        self.state.active_notes[note] = None

    # --- Directives ---

    def _apply_lyric_directive(self, directive: Directive) -> None:
        if isinstance(directive, TempoDirective):
            self.state.tempo_bpm = directive.bpm
            self._update_tempo()
        elif isinstance(directive, BeatDurationDirective):
            self.state.beat_duration = directive.duration
            self._update_tempo()

    def _apply_pitch_directive(
        self,
        directive: Directive,
        key_sig: KeySignatureState,
        pitch_state: PitchState,
    ) -> None:
        if isinstance(directive, KeySignatureDirective):
            key_sig.set_key(directive.accidental, directive.count)
        elif isinstance(directive, ReferenceOctaveDirective):
            pitch_state.set_reference_octave(directive.octave)
        elif isinstance(directive, InstrumentDirective):
            self.state.instrument = max(0, min(127, directive.instrument - 1))
            self.events.append(
                MidiEvent.program_change(self._delta(), self.state.instrument, self.channel)
            )
        elif isinstance(directive, VolumeDirective):
            self.state.velocity = max(0, min(100, directive.level))

    # --- Traversal ---

    def play_block(self, block: MusicBlock) -> None:
        key_sig = KeySignatureState()
        pitch_state = PitchState()
        cursor = PitchCursor.for_block(block)

        def on_pitch_directive(directive: Directive) -> None:
            self._apply_pitch_directive(directive, key_sig, pitch_state)

        for item in flatten_lyrics(block):
            if isinstance(item, BarlineItem):
                consume_through_barline(cursor)
                key_sig.reset_measure()
            elif isinstance(item, DirectiveItem):
                self._apply_lyric_directive(item.directive)
            else:
                self._play_beat(item.beat, cursor, key_sig, pitch_state, on_pitch_directive)

    def _play_beat(
        self,
        beat: Beat,
        cursor: PitchCursor,
        key_sig: KeySignatureState,
        pitch_state: PitchState,
        on_pitch_directive: Callable[[Directive], None],
    ) -> None:
        for directive in beat.directives:
            self._apply_lyric_directive(directive)

        subdivisions = beat.subdivisions
        if not subdivisions:
            return

        total = beat_ticks(beat, self.state.beat_duration, self.settings.ticks_per_quarter)
        step = total / len(subdivisions)

        for sub in subdivisions:
            if sub.is_attack:
                element = next_sounding_element(cursor, on_pitch_directive)
                self.silence_all()
                if isinstance(element, Chord):
                    for pitch in pitch_state.calculate_chord_pitches(element):
                        self._play(pitch, key_sig)
                elif element is not None:
                    resolved = pitch_state.calculate_pitch(element.note, element.octave_shift)
                    self._play(
                        ResolvedPitch(resolved.note, resolved.octave, element.accidental), key_sig
                    )
            elif sub.is_silence:
                self.silence_all()

            self.state.now += step
