#!/usr/bin/env python3
"""
Entry point for the CHUK FQS MCP Server.

This module provides the main entry point for the MCP server,
supporting multiple transport modes (stdio, http), plus a one-shot
compile mode that writes a MIDI file without starting a server.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def compile_file(source: Path, output: Path, config: Path | None = None) -> int:
    """Compile one score file to MIDI. Returns a process exit code."""
    from chuk_mcp_fqs.compiler import compile_source, to_mido
    from chuk_mcp_fqs.config import load_settings
    from chuk_mcp_fqs.errors import FQSError

    try:
        settings = load_settings(config)
        result = compile_source(source.read_text(encoding="utf-8"), settings)
    except (OSError, FQSError) as e:
        logger.error(f"Could not compile {source}: {e}")
        return 1

    output.parent.mkdir(parents=True, exist_ok=True)
    to_mido(result.midi_bytes).save(str(output))
    logger.info(f"Wrote {output} ({len(result.events)} events, {result.total_ticks} ticks)")
    return 0


def load_server(config: Path | None = None) -> Any:
    """The module-level server, or a fresh one built from `config` alone."""
    if config is None:
        # Import after argument parsing to avoid issues
        from chuk_mcp_fqs.async_server import mcp

        return mcp

    from chuk_mcp_fqs.config import load_settings
    from chuk_mcp_fqs.tools import build_server

    server, _ = build_server(load_settings(config))
    return server


def main() -> None:
    """Main entry point with transport detection."""
    parser = argparse.ArgumentParser(description="CHUK FQS MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport mode (default: stdio)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="HTTP port (only for http transport)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Settings YAML file",
    )
    parser.add_argument(
        "--compile",
        type=Path,
        metavar="SRC",
        help="Compile a score file to MIDI and exit",
    )
    parser.add_argument(
        "--output",
        type=Path,
        metavar="OUT",
        help="MIDI output path for --compile (default: SRC with .mid suffix)",
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.compile:
        output = args.output or args.compile.with_suffix(".mid")
        sys.exit(compile_file(args.compile, output, args.config))

    mcp = load_server(args.config)

    if args.transport == "stdio":
        logger.info("Starting CHUK FQS MCP Server (stdio)")
        asyncio.run(mcp.run_stdio())
    else:
        logger.info(f"Starting CHUK FQS MCP Server (http:{args.port})")
        asyncio.run(mcp.run_http(port=args.port))


if __name__ == "__main__":
    main()
