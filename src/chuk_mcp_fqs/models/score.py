"""
Score AST - the parsed form of a notation document.

A Score is immutable once parsed. Each MusicBlock pairs one logical lyric
line (beats and barlines) with one logical pitch line (pitches, chords and
barlines); the two are consumed in lockstep by layout and audio.
"""

from __future__ import annotations

import re
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator

from chuk_mcp_fqs.constants import ATTACK_KINDS, NOTE_LETTERS, SILENCE_KINDS, SubdivisionKind

# Leading beat-length multiplier on a syllable, e.g. "2Se"
_BEAT_PREFIX = re.compile(r"^(\d+)")


class SourceLocation(BaseModel):
    """1-based line/column of the token a node was built from."""

    line: int = 0
    col: int = 0

    model_config = {"frozen": True}


# --- Directives ---


class _DirectiveBase(BaseModel):
    location: SourceLocation = Field(default_factory=SourceLocation)

    model_config = {"frozen": True}


class PickupDirective(_DirectiveBase):
    """[N<count>] - restart the beat counter at `count`."""

    type: Literal["N"] = "N"
    count: int


class BeatDurationDirective(_DirectiveBase):
    """[B<code>] - note value of one beat ("4" = quarter, "8." = dotted eighth)."""

    type: Literal["B"] = "B"
    duration: str


class TempoDirective(_DirectiveBase):
    """[T<bpm>] - beats per minute, measured in the current beat duration."""

    type: Literal["T"] = "T"
    bpm: int


class KeySignatureDirective(_DirectiveBase):
    """[K<acc><count>] - key signature, e.g. K#2 (D major), K&1 (F major), K0."""

    type: Literal["K"] = "K"
    accidental: str | None = None
    count: int


class ReferenceOctaveDirective(_DirectiveBase):
    """[O<octave>] - octave drawn on the staff center line."""

    type: Literal["O"] = "O"
    octave: int


class InstrumentDirective(_DirectiveBase):
    """[I<program>] - General MIDI program, 1-based."""

    type: Literal["I"] = "I"
    instrument: int


class VolumeDirective(_DirectiveBase):
    """[V<level>] - note velocity on a 0-100 scale."""

    type: Literal["V"] = "V"
    level: int


AnyDirective = (
    PickupDirective
    | BeatDurationDirective
    | TempoDirective
    | KeySignatureDirective
    | ReferenceOctaveDirective
    | InstrumentDirective
    | VolumeDirective
)
Directive = Annotated[AnyDirective, Field(discriminator="type")]

DIRECTIVE_TYPES = (
    PickupDirective,
    BeatDurationDirective,
    TempoDirective,
    KeySignatureDirective,
    ReferenceOctaveDirective,
    InstrumentDirective,
    VolumeDirective,
)


def is_directive(node: object) -> bool:
    """True for any of the seven directive node types."""
    return isinstance(node, DIRECTIVE_TYPES)


# --- Lyric line ---


class Subdivision(BaseModel):
    """The smallest rhythmic unit: an attack, a sustain or a silence."""

    kind: SubdivisionKind
    text: str
    location: SourceLocation = Field(default_factory=SourceLocation)

    model_config = {"frozen": True}

    @property
    def is_attack(self) -> bool:
        return self.kind in ATTACK_KINDS

    @property
    def is_silence(self) -> bool:
        return self.kind in SILENCE_KINDS

    @property
    def display_text(self) -> str:
        """Text drawn under the staff (a Partial is drawn as nothing)."""
        return "" if self.kind == SubdivisionKind.PARTIAL else self.text


BeatElement = Subdivision | AnyDirective


class Beat(BaseModel):
    """
    Subdivisions written without whitespace between them.

    Inline directives may sit among the subdivisions; they take effect
    when the beat is reached.
    """

    elements: tuple[BeatElement, ...] = ()
    location: SourceLocation = Field(default_factory=SourceLocation)

    model_config = {"frozen": True}

    @property
    def subdivisions(self) -> tuple[Subdivision, ...]:
        return tuple(el for el in self.elements if isinstance(el, Subdivision))

    @property
    def directives(self) -> tuple[Directive, ...]:
        return tuple(el for el in self.elements if not isinstance(el, Subdivision))

    @property
    def scale(self) -> int:
        """
        Beat-length multiplier.

        A leading integer on the first subdivision's syllable ("2Se")
        stretches the beat; otherwise 1.
        """
        subs = self.subdivisions
        if subs and subs[0].kind == SubdivisionKind.SYLLABLE:
            match = _BEAT_PREFIX.match(subs[0].text)
            if match:
                return int(match.group(1))
        return 1


class LyricMeasure(BaseModel):
    """Beats up to a barline (barline=False for an unterminated tail)."""

    beats: tuple[Beat, ...] = ()
    barline: bool = False
    location: SourceLocation = Field(default_factory=SourceLocation)

    model_config = {"frozen": True}


class LyricLine(BaseModel):
    """One logical lyric line, possibly spanning several physical lines."""

    directives: tuple[Directive, ...] = ()
    measures: tuple[LyricMeasure, ...] = ()
    location: SourceLocation = Field(default_factory=SourceLocation)

    model_config = {"frozen": True}


# --- Pitch line ---


class Pitch(BaseModel):
    """A relative pitch: letter, optional accidental, octave shift (^ minus /)."""

    kind: Literal["Pitch"] = "Pitch"
    note: str
    accidental: str | None = None
    octave_shift: int = 0
    location: SourceLocation = Field(default_factory=SourceLocation)

    model_config = {"frozen": True}

    @field_validator("note")
    @classmethod
    def _check_note(cls, value: str) -> str:
        if value not in NOTE_LETTERS:
            raise ValueError(f"Note must be one of a-g, got {value!r}")
        return value


class Chord(BaseModel):
    """Parenthesized pitches sounded together, voiced upward from the first."""

    kind: Literal["Chord"] = "Chord"
    pitches: tuple[Pitch, ...] = ()
    location: SourceLocation = Field(default_factory=SourceLocation)

    model_config = {"frozen": True}


PitchElement = Pitch | Chord | AnyDirective


class PitchMeasure(BaseModel):
    """Pitch-line content up to a barline."""

    elements: tuple[PitchElement, ...] = ()
    barline: bool = False
    location: SourceLocation = Field(default_factory=SourceLocation)

    model_config = {"frozen": True}


class PitchLine(BaseModel):
    """One logical pitch line."""

    directives: tuple[Directive, ...] = ()
    measures: tuple[PitchMeasure, ...] = ()
    location: SourceLocation = Field(default_factory=SourceLocation)

    model_config = {"frozen": True}


# --- Document ---


class MusicBlock(BaseModel):
    """One stanza: a lyric line over a pitch line."""

    kind: Literal["MusicBlock"] = "MusicBlock"
    lyric_lines: tuple[LyricLine, ...] = ()
    pitch_lines: tuple[PitchLine, ...] = ()

    model_config = {"frozen": True}


class Score(BaseModel):
    """A parsed document: title paragraph plus music blocks."""

    title: tuple[str, ...] = ()
    blocks: tuple[MusicBlock, ...] = ()

    model_config = {"frozen": True}
