"""
Compile pipeline - source text to every output in one call.

    source → tokens → Score → ScoreLayout
                            → MIDI events → MIDI bytes
                            → beat timing map
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from chuk_mcp_fqs.compiler.audio import AudioGenerator, BeatTimingMap
from chuk_mcp_fqs.compiler.layout import LayoutEngine
from chuk_mcp_fqs.compiler.midi import MidiEvent, MidiTrack, used_programs, write_midi_file
from chuk_mcp_fqs.config import EngineSettings
from chuk_mcp_fqs.models.layout import ScoreLayout
from chuk_mcp_fqs.models.score import Score
from chuk_mcp_fqs.parsing.lexer import tokenize
from chuk_mcp_fqs.parsing.parser import parse

logger = logging.getLogger(__name__)


@dataclass
class CompileResult:
    """Everything produced from one source text."""

    score: Score
    layout: ScoreLayout
    events: list[MidiEvent]
    midi_bytes: bytes
    beat_map: BeatTimingMap

    @property
    def total_ticks(self) -> int:
        return self.beat_map.total_ticks

    @property
    def programs(self) -> set[int]:
        return used_programs(self.events)


def compile_source(text: str, settings: EngineSettings | None = None) -> CompileResult:
    """
    Compile score source text.

    Args:
        text: Score source
        settings: Optional engine settings (defaults if None)

    Returns:
        CompileResult with the AST, layout, events, MIDI bytes and timing map

    Raises:
        ScoreSyntaxError: The source does not parse
    """
    settings = settings or EngineSettings()
    score = parse(tokenize(text))

    generator = AudioGenerator(settings.audio)
    events = generator.generate_events(score)
    midi_bytes = write_midi_file([MidiTrack(events)], settings.audio.ticks_per_quarter)

    result = CompileResult(
        score=score,
        layout=LayoutEngine(settings.layout).layout(score),
        events=events,
        midi_bytes=midi_bytes,
        beat_map=generator.get_beat_timing_map(score),
    )
    logger.debug(
        "Compiled %d blocks: %d events, %d ticks",
        len(score.blocks),
        len(events),
        result.total_ticks,
    )
    return result
