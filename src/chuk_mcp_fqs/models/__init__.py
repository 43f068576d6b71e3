"""
Pydantic models for scores and layouts.

This module provides:
- Score: Title lines plus music blocks (the parsed AST)
- MusicBlock: Lyric lines paired with pitch lines
- Directive models: N, B, T, K, O, I, V
- DrawCommand / BlockLayout / ScoreLayout: Layout engine output
"""

from chuk_mcp_fqs.models.layout import BlockLayout, DrawCommand, ScoreLayout
from chuk_mcp_fqs.models.score import (
    AnyDirective,
    Beat,
    BeatDurationDirective,
    Chord,
    Directive,
    InstrumentDirective,
    KeySignatureDirective,
    LyricLine,
    LyricMeasure,
    MusicBlock,
    PickupDirective,
    Pitch,
    PitchLine,
    PitchMeasure,
    ReferenceOctaveDirective,
    Score,
    SourceLocation,
    Subdivision,
    TempoDirective,
    VolumeDirective,
    is_directive,
)

__all__ = [
    # Score
    "Score",
    "MusicBlock",
    "LyricLine",
    "LyricMeasure",
    "Beat",
    "Subdivision",
    "PitchLine",
    "PitchMeasure",
    "Pitch",
    "Chord",
    "SourceLocation",
    # Directives
    "AnyDirective",
    "Directive",
    "PickupDirective",
    "BeatDurationDirective",
    "TempoDirective",
    "KeySignatureDirective",
    "ReferenceOctaveDirective",
    "InstrumentDirective",
    "VolumeDirective",
    "is_directive",
    # Layout
    "DrawCommand",
    "BlockLayout",
    "ScoreLayout",
]
