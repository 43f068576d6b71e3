"""
Engine settings - layout metrics and playback defaults.

Settings are optional: the defaults reproduce the standard engraving and
playback behavior. A YAML file can override any subset, e.g.

    layout:
      staff_line_spacing: 40
    audio:
      default_velocity: 90
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from chuk_mcp_fqs.constants import (
    BEAT_MULTIPLIERS,
    DEFAULT_BEAT_DURATION,
    DEFAULT_INSTRUMENT,
    DEFAULT_TEMPO_BPM,
    DEFAULT_VELOCITY,
    TICKS_PER_QUARTER,
)
from chuk_mcp_fqs.errors import ConfigError


class LayoutSettings(BaseModel):
    """Metrics and colors used by the layout engine."""

    font_width: float = Field(9.6, gt=0, description="Advance width of one lyric glyph")
    font_height: float = Field(20, gt=0, description="Line height of lyric text")
    staff_line_spacing: float = Field(35, gt=0, description="Distance between octave lines")
    base_margin: float = Field(50, ge=0, description="Left margin of every block")
    top_margin: float = Field(50, ge=0, description="Y of the top guide line")
    lyric_offset: float = Field(30, description="Gap between lowest guide line and lyrics")
    counter_offset: float = Field(20, description="Gap between lyrics and beat counters")
    bottom_margin: float = Field(50, ge=0, description="Space below the beat counters")
    beat_gap: float = Field(10, ge=0, description="Horizontal space after each beat")
    barline_padding: float = Field(5, ge=0, description="Extra space after a barline")
    chord_stagger: float = Field(4, ge=0, description="Horizontal offset of chord tones")
    counter_radius: float = Field(8, gt=0, description="Radius of the beat highlight circle")

    title_x: float = Field(400, ge=0, description="Center x of title lines")
    title_top: float = Field(50, ge=0, description="Baseline of the first title line")
    title_line_height: float = Field(30, gt=0, description="Spacing of title lines")

    guide_color: str = "#e0e0e0"
    barline_color: str = "#aaa"
    counter_color: str = "#888"
    annotation_color: str = "#888"
    natural_color: str = "black"
    sharp_color: str = "#d00"
    flat_color: str = "#00d"

    title_font: str = "bold 24px monospace"
    lyric_font: str = "16px monospace"
    pitch_font: str = "bold 16px sans-serif"
    counter_font: str = "10px sans-serif"
    tempo_font: str = "12px sans-serif"
    octave_font: str = "italic bold 14px serif"

    model_config = {"frozen": True}


class AudioSettings(BaseModel):
    """Playback state at tick 0 and MIDI file resolution."""

    ticks_per_quarter: int = Field(TICKS_PER_QUARTER, gt=0, le=0x7FFF)
    default_tempo: int = Field(DEFAULT_TEMPO_BPM, gt=0)
    default_beat_duration: str = DEFAULT_BEAT_DURATION
    default_velocity: int = Field(DEFAULT_VELOCITY, ge=0, le=100)
    default_instrument: int = Field(DEFAULT_INSTRUMENT, ge=0, le=127)
    channel: int = Field(0, ge=0, le=15)

    model_config = {"frozen": True}

    @field_validator("default_beat_duration")
    @classmethod
    def _check_duration(cls, value: str) -> str:
        if value not in BEAT_MULTIPLIERS:
            raise ValueError(f"Unknown beat duration {value!r}")
        return value


class EngineSettings(BaseModel):
    """All settings, grouped by consumer."""

    layout: LayoutSettings = Field(default_factory=LayoutSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)

    model_config = {"frozen": True}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineSettings:
        """Validate a plain mapping (as loaded from YAML)."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e}") from e


def load_settings(path: Path | str | None = None) -> EngineSettings:
    """
    Load settings from a YAML file.

    Args:
        path: YAML file; None or a missing file gives the defaults

    Returns:
        Validated EngineSettings

    Raises:
        ConfigError: the file is not valid YAML or fails validation
    """
    if path is None:
        return EngineSettings()

    path = Path(path)
    if not path.exists():
        return EngineSettings()

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e

    if data is None:
        return EngineSettings()
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")

    return EngineSettings.from_dict(data)
