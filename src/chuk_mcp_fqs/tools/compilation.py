"""
Compilation tools - MCP tools for parsing, layout and MIDI export.

Every tool takes score source text and returns a JSON string with a
`status` field ("success" or "error").
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from chuk_mcp_fqs.compiler import AudioGenerator, LayoutEngine, compile_source, to_mido
from chuk_mcp_fqs.config import EngineSettings
from chuk_mcp_fqs.errors import FQSError, ScoreSyntaxError
from chuk_mcp_fqs.models.score import Score
from chuk_mcp_fqs.parsing import parse

if TYPE_CHECKING:
    from chuk_mcp_server import ChukMCPServer

logger = logging.getLogger(__name__)


def _error(message: str) -> str:
    return json.dumps({"status": "error", "message": message})


def summarize_score(score: Score) -> dict[str, Any]:
    """Counts of blocks, measures and beats, for a quick look at a parse."""
    blocks = []
    for block in score.blocks:
        measures = [m for line in block.lyric_lines for m in line.measures]
        pitch_measures = [m for line in block.pitch_lines for m in line.measures]
        blocks.append(
            {
                "lyric_lines": len(block.lyric_lines),
                "pitch_lines": len(block.pitch_lines),
                "measures": len(measures),
                "beats": sum(len(m.beats) for m in measures),
                "pitch_measures": len(pitch_measures),
            }
        )
    return {"title": list(score.title), "blocks": blocks}


def register_compilation_tools(
    mcp: ChukMCPServer,
    output_dir: Path,
    settings: EngineSettings | None = None,
) -> dict[str, Any]:
    """
    Register compilation tools with the MCP server.

    Args:
        mcp: The MCP server instance
        output_dir: Directory for MIDI files
        settings: Engine settings (defaults if None)

    Returns:
        Dictionary of registered tool functions
    """
    tools: dict[str, Any] = {}
    settings = settings or EngineSettings()
    layout_engine = LayoutEngine(settings.layout)
    generator = AudioGenerator(settings.audio)

    @mcp.tool  # type: ignore[arg-type]
    async def fqs_parse(source: str) -> str:
        """
        Parse score source and summarize its structure.

        Args:
            source: Score text (title paragraph, then music blocks)

        Returns:
            JSON string with title lines and per-block counts

        Example:
            fqs_parse(source="My Song\\n\\nDo Re Mi |\\nc d e |")
        """
        try:
            score = parse(source)
            return json.dumps({"status": "success", **summarize_score(score)})
        except ScoreSyntaxError as e:
            return _error(str(e))
        except Exception as e:
            logger.exception("Failed to parse score")
            return _error(str(e))

    tools["fqs_parse"] = fqs_parse

    @mcp.tool  # type: ignore[arg-type]
    async def fqs_layout(source: str) -> str:
        """
        Lay out a score as renderer-neutral draw commands.

        Args:
            source: Score text

        Returns:
            JSON string with the title commands and one entry per block
            (commands, width, height)
        """
        try:
            layout = layout_engine.layout(parse(source))
            return json.dumps(
                {"status": "success", "layout": layout.model_dump(exclude_none=True)}
            )
        except ScoreSyntaxError as e:
            return _error(str(e))
        except Exception as e:
            logger.exception("Failed to lay out score")
            return _error(str(e))

    tools["fqs_layout"] = fqs_layout

    @mcp.tool  # type: ignore[arg-type]
    async def fqs_compile_midi(source: str, output_name: str = "score") -> str:
        """
        Compile a score to a MIDI file.

        Args:
            source: Score text
            output_name: Output filename (without .mid extension)

        Returns:
            JSON string with the file path and compilation stats

        Example:
            fqs_compile_midi(source=text, output_name="amazing-grace")
        """
        try:
            result = compile_source(source, settings)

            output_path = output_dir / f"{output_name}.mid"
            output_dir.mkdir(parents=True, exist_ok=True)
            to_mido(result.midi_bytes).save(str(output_path))

            return json.dumps(
                {
                    "status": "success",
                    "path": str(output_path),
                    "compilation": {
                        "blocks": len(result.score.blocks),
                        "total_events": len(result.events),
                        "total_ticks": result.total_ticks,
                        "programs": sorted(result.programs),
                    },
                    "message": f"Compiled {len(result.events)} events, {result.total_ticks} ticks",
                }
            )
        except FQSError as e:
            return _error(str(e))
        except Exception as e:
            logger.exception("Failed to compile MIDI")
            return _error(str(e))

    tools["fqs_compile_midi"] = fqs_compile_midi

    @mcp.tool  # type: ignore[arg-type]
    async def fqs_beat_timing(source: str) -> str:
        """
        Start tick of every rendered beat, keyed "<block>:<beat>".

        The keys match the data-block-idx / data-beat-idx attributes of the
        layout's beat counters, so a player can highlight the current beat.

        Args:
            source: Score text

        Returns:
            JSON string with the beat map, total ticks and resolution
        """
        try:
            timing = generator.get_beat_timing_map(parse(source))
            return json.dumps(
                {
                    "status": "success",
                    "beats": timing.beats,
                    "total_ticks": timing.total_ticks,
                    "ticks_per_quarter": settings.audio.ticks_per_quarter,
                }
            )
        except ScoreSyntaxError as e:
            return _error(str(e))
        except Exception as e:
            logger.exception("Failed to compute beat timing")
            return _error(str(e))

    tools["fqs_beat_timing"] = fqs_beat_timing

    @mcp.tool  # type: ignore[arg-type]
    async def fqs_validate(source: str) -> str:
        """
        Check that score source parses.

        Args:
            source: Score text

        Returns:
            JSON string with valid flag and any errors (with line/col)
        """
        try:
            parse(source)
            return json.dumps({"status": "success", "valid": True, "errors": []})
        except ScoreSyntaxError as e:
            return json.dumps(
                {
                    "status": "success",
                    "valid": False,
                    "errors": [
                        {
                            "line": e.line,
                            "col": e.col,
                            "token": e.token,
                            "message": e.message,
                        }
                    ],
                }
            )
        except Exception as e:
            logger.exception("Failed to validate score")
            return _error(str(e))

    tools["fqs_validate"] = fqs_validate

    return tools
