"""
Layout models - renderer-neutral draw commands.

The layout engine produces these; an external renderer turns them into
SVG, canvas calls, etc. All coordinates are absolute and non-negative,
and each block's width/height bound all of its commands.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

CommandType = Literal["text", "line", "rect", "circle"]


class DrawCommand(BaseModel):
    """
    One drawing primitive.

    text:   text at (x, y) with font, color and anchor
    line:   segment from (x, y) to (x2, y2)
    rect:   box at (x, y) of width x height
    circle: circle centered at (x, y) with radius r
    """

    type: CommandType
    x: float
    y: float
    x2: float | None = None
    y2: float | None = None
    width: float | None = None
    height: float | None = None
    r: float | None = None
    text: str | None = None
    font: str | None = None
    anchor: Literal["start", "middle", "end"] | None = None
    color: str | None = None
    stroke: str | None = None
    stroke_width: float | None = None
    fill: str | None = None
    attributes: dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def translated(self, dx: float = 0, dy: float = 0) -> DrawCommand:
        """Copy of this command moved by (dx, dy)."""
        update: dict[str, float] = {"x": self.x + dx, "y": self.y + dy}
        if self.x2 is not None:
            update["x2"] = self.x2 + dx
        if self.y2 is not None:
            update["y2"] = self.y2 + dy
        return self.model_copy(update=update)


class BlockLayout(BaseModel):
    """Draw commands for one music block, with its bounding size."""

    commands: list[DrawCommand] = Field(default_factory=list)
    width: float = 0
    height: float = 0


class ScoreLayout(BaseModel):
    """Title commands plus one BlockLayout per music block."""

    title: list[DrawCommand] = Field(default_factory=list)
    blocks: list[BlockLayout] = Field(default_factory=list)
