"""
Core pitch logic shared by layout and audio.

- pitch: Note letters, accidentals and MIDI note numbers
- resolver: Key signature memory and relative-pitch resolution
- sequencing: Lyric/pitch stream flattening and barline resync
"""

from chuk_mcp_fqs.core.pitch import accidental_semitones, spell, to_midi
from chuk_mcp_fqs.core.resolver import KeySignatureState, PitchState, ResolvedPitch
from chuk_mcp_fqs.core.sequencing import (
    BarlineItem,
    BeatItem,
    DirectiveItem,
    PitchCursor,
    consume_through_barline,
    flatten_lyrics,
    flatten_pitches,
    next_sounding_element,
)

__all__ = [
    # Pitch
    "accidental_semitones",
    "spell",
    "to_midi",
    # Resolver
    "KeySignatureState",
    "PitchState",
    "ResolvedPitch",
    # Sequencing
    "BarlineItem",
    "BeatItem",
    "DirectiveItem",
    "PitchCursor",
    "consume_through_barline",
    "flatten_lyrics",
    "flatten_pitches",
    "next_sounding_element",
]
