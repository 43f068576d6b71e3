"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import pytest

from chuk_mcp_fqs.models.score import Score
from chuk_mcp_fqs.parsing import parse

SIMPLE_SOURCE = "Title\n\nDo Re Mi |\n[K0] c d e |\n"


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_midi_path(temp_dir: Path) -> Path:
    """Path for a temporary MIDI file."""
    return temp_dir / "test.mid"


@pytest.fixture
def simple_source() -> str:
    """Three quarter-note syllables on c d e."""
    return SIMPLE_SOURCE


@pytest.fixture
def simple_score(simple_source: str) -> Score:
    """Parsed simple_source."""
    return parse(simple_source)
