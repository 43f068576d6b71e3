"""
MCP tool implementations.

- compilation - Parse, layout, MIDI export, beat timing and validation
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from chuk_mcp_server import ChukMCPServer

from chuk_mcp_fqs.config import EngineSettings
from chuk_mcp_fqs.tools.compilation import register_compilation_tools


def build_server(
    settings: EngineSettings | None = None,
    output_dir: Path | None = None,
) -> tuple[ChukMCPServer, dict[str, Any]]:
    """Create a server with every tool registered. Output goes to ./output by default."""
    server = ChukMCPServer("chuk-mcp-fqs")
    tools = register_compilation_tools(server, output_dir or Path.cwd() / "output", settings)
    return server, tools


__all__ = [
    "build_server",
    "register_compilation_tools",
]
