#!/usr/bin/env python3
"""
Example: Compile a score to MIDI and inspect its layout.

This runs the whole pipeline on a short score: parse, lay out, generate
events, write MIDI. Open the MIDI file in any DAW or player.

Usage:
    python examples/compile_score.py
    # Creates: examples/output/happy_birthday.mid
"""

from pathlib import Path

from chuk_mcp_fqs.compiler import compile_source, to_mido

HAPPY_BIRTHDAY = """Happy Birthday
Traditional

[T120 B4] Hap.py Birth- day to | you ; ; |
[K&1 O4] cc d c f | e |

Hap.py Birth- day to | you ; ; |
cc d c g | f |
"""


def main() -> None:
    """Compile the example score."""
    output_dir = Path(__file__).parent / "output"
    output_dir.mkdir(exist_ok=True)

    result = compile_source(HAPPY_BIRTHDAY)

    print(f"Title: {' / '.join(result.score.title)}")
    for i, block in enumerate(result.layout.blocks):
        print(f"  Block {i}: {len(block.commands)} draw commands, {block.width:.0f}x{block.height:.0f}")

    print(f"\nEvents: {len(result.events)}, ticks: {result.total_ticks}")
    for key, tick in result.beat_map.beats.items():
        print(f"  beat {key} at tick {tick}")

    path = output_dir / "happy_birthday.mid"
    to_mido(result.midi_bytes).save(str(path))
    print(f"\nCreated: {path}")


if __name__ == "__main__":
    main()
