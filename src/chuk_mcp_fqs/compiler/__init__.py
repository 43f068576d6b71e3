"""
Compilation back ends - layout, audio and MIDI export.

The pipeline:
    Score (AST)
    → ScoreLayout (draw commands)
    → MIDI events + beat timing map
    → MIDI file bytes
"""

from chuk_mcp_fqs.compiler.audio import AudioGenerator, BeatTimingMap
from chuk_mcp_fqs.compiler.layout import LayoutEngine
from chuk_mcp_fqs.compiler.midi import (
    MidiEvent,
    MidiEventType,
    MidiTrack,
    encode_vlq,
    to_mido,
    used_programs,
    write_midi_file,
)
from chuk_mcp_fqs.compiler.pipeline import CompileResult, compile_source

__all__ = [
    # Layout
    "LayoutEngine",
    # Audio
    "AudioGenerator",
    "BeatTimingMap",
    # MIDI
    "MidiEvent",
    "MidiEventType",
    "MidiTrack",
    "encode_vlq",
    "to_mido",
    "used_programs",
    "write_midi_file",
    # Pipeline
    "CompileResult",
    "compile_source",
]
