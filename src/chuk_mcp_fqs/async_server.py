#!/usr/bin/env python3
"""
Async notation compiler MCP server using chuk-mcp-server

This server compiles lyric/pitch score text. It provides tools for:
- Parsing scores and reporting their structure
- Laying out scores as draw commands for an external renderer
- Compiling scores to MIDI files
- Mapping beats to ticks for playback highlighting
- Validating score text with line/column errors

Settings come from ./fqs.yaml when present (see chuk_mcp_fqs.config).
"""

import logging
from pathlib import Path

from chuk_mcp_fqs.config import load_settings
from chuk_mcp_fqs.tools import build_server

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Paths - use standard project structure
BASE_PATH = Path.cwd()
CONFIG_PATH = BASE_PATH / "fqs.yaml"
OUTPUT_DIR = BASE_PATH / "output"


# Create the MCP server instance
mcp, compilation_tools = build_server(load_settings(CONFIG_PATH), OUTPUT_DIR)

# Export tool functions for direct access
fqs_parse = compilation_tools["fqs_parse"]
fqs_layout = compilation_tools["fqs_layout"]
fqs_compile_midi = compilation_tools["fqs_compile_midi"]
fqs_beat_timing = compilation_tools["fqs_beat_timing"]
fqs_validate = compilation_tools["fqs_validate"]

logger.info("CHUK FQS MCP Server initialized")
logger.info(f"  Config: {CONFIG_PATH if CONFIG_PATH.exists() else 'defaults'}")
logger.info(f"  Output dir: {OUTPUT_DIR}")
