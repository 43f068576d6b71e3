"""
Layout engine - Score AST to renderer-neutral draw commands.

Each block is laid out on its own horizontal cursor:

    staff     three guide lines: reference octave (center) and +/-1 octave
    pitches   one colored letter per attack, placed vertically by pitch
    lyrics    subdivision text along a baseline below the staff
    counters  beat numbers below the lyrics, restarting at each barline

Pitch letters are colored by resolved accidental: black for natural, red
for sharps, blue for flats.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from chuk_mcp_fqs.config import LayoutSettings
from chuk_mcp_fqs.core.pitch import ACCIDENTAL_SYMBOLS, is_flat, is_sharp
from chuk_mcp_fqs.core.resolver import KeySignatureState, PitchState, ResolvedPitch
from chuk_mcp_fqs.core.sequencing import (
    BarlineItem,
    DirectiveItem,
    PitchCursor,
    consume_through_barline,
    flatten_lyrics,
    next_sounding_element,
)
from chuk_mcp_fqs.models.layout import BlockLayout, DrawCommand, ScoreLayout
from chuk_mcp_fqs.models.score import (
    Beat,
    Chord,
    Directive,
    KeySignatureDirective,
    MusicBlock,
    PickupDirective,
    ReferenceOctaveDirective,
    Score,
    TempoDirective,
)

logger = logging.getLogger(__name__)

# Scale position of each (accidental glyph + letter) within an octave.
# Higher values sit lower on the page; g natural (5) is the center line.
VERTICAL_OFFSETS: dict[str, float] = {
    "\U0001d12aa": 1, "♮b": 1, "♭c": 13,
    "♯a": 2, "♭b": 2, "\U0001d12bc": 14,
    "\U0001d12ag": 3, "♮a": 3, "\U0001d12bb": 3,
    "♯g": 4, "♭a": 4,
    "\U0001d12af": 5.8, "♮g": 5, "\U0001d12ba": 5,
    "\U0001d12ae": 6, "♯f": 6.8, "♭g": 6,
    "♯e": 7, "♮f": 7.8, "\U0001d12bg": 7,
    "\U0001d12ad": 8, "♮e": 8, "♭f": 8.8,
    "♯d": 9, "♭e": 9, "\U0001d12bf": 9.8,
    "\U0001d12ac": 10, "♮d": 10, "\U0001d12be": 10,
    "\U0001d12ab": -1, "♯c": 11, "♭d": 11,
    "♯b": 0, "♮c": 12, "\U0001d12bd": 12,
}  # fmt: skip

CENTER_SCALE_VALUE = 5


def pitch_y(
    center_line_y: float,
    octave: int,
    note: str,
    accidental: str,
    reference_octave: int,
    line_spacing: float,
) -> float:
    """
    Vertical position of a resolved pitch.

    Octave lines are `line_spacing` apart with the reference octave's g on
    the center line; each scale step is a twelfth of an octave.

    An unknown (accidental, letter) combination logs a warning and falls
    back to the center line.
    """
    key = ACCIDENTAL_SYMBOLS.get(accidental, ACCIDENTAL_SYMBOLS["%"]) + note
    offset = VERTICAL_OFFSETS.get(key)
    if offset is None:
        logger.warning("No vertical offset for %r, drawing on the center line", key)
        return center_line_y

    y = center_line_y - (octave - reference_octave) * line_spacing
    return y + (offset - CENTER_SCALE_VALUE) * (line_spacing / 12)


class LayoutEngine:
    """
    Lays out a Score as draw commands.

    Example:
        layout = LayoutEngine().layout(parse(text))
        for block in layout.blocks:
            render(block.commands, block.width, block.height)
    """

    def __init__(self, settings: LayoutSettings | None = None) -> None:
        self.settings = settings or LayoutSettings()

    def layout(self, score: Score) -> ScoreLayout:
        """Lay out the title and every block."""
        return ScoreLayout(
            title=self.layout_title(score.title),
            blocks=[self.layout_block(block, index) for index, block in enumerate(score.blocks)],
        )

    def layout_title(self, lines: Iterable[str]) -> list[DrawCommand]:
        s = self.settings
        return [
            DrawCommand(
                type="text",
                x=s.title_x,
                y=s.title_top + i * s.title_line_height,
                text=line,
                font=s.title_font,
                color="black",
                anchor="middle",
            )
            for i, line in enumerate(lines)
        ]

    def layout_block(self, block: MusicBlock, block_index: int = 0) -> BlockLayout:
        """Lay out one block; `block_index` only tags the beat counters."""
        return _BlockLayout(self.settings, block, block_index).run()


class _BlockLayout:
    """Cursor and resolver state for laying out a single block."""

    def __init__(self, settings: LayoutSettings, block: MusicBlock, block_index: int) -> None:
        self.s = settings
        self.block = block
        self.block_index = block_index
        self.commands: list[DrawCommand] = []

        self.staff_top_y = settings.top_margin
        self.center_line_y = self.staff_top_y + settings.staff_line_spacing
        self.lyric_y = self.center_line_y + settings.staff_line_spacing + settings.lyric_offset
        self.counter_y = self.lyric_y + settings.counter_offset

        self.cursor_x = settings.base_margin
        self.counter = 1
        self.beat_index = 0

        self.key_sig = KeySignatureState()
        self.pitch_state = PitchState()
        self.pitches = PitchCursor.for_block(block)

    def run(self) -> BlockLayout:
        for item in flatten_lyrics(self.block):
            if isinstance(item, BarlineItem):
                self._barline()
            elif isinstance(item, DirectiveItem):
                self._lyric_directive(item.directive, self.cursor_x)
            else:
                self._beat(item.beat)
        return self._finish()

    # --- Lyric stream ---

    def _lyric_directive(self, directive: Directive, x: float) -> None:
        if isinstance(directive, PickupDirective):
            self.counter = directive.count
        elif isinstance(directive, TempoDirective):
            self.commands.append(
                DrawCommand(
                    type="text",
                    x=x,
                    y=self.staff_top_y - 30,
                    text=f"T{directive.bpm}",
                    font=self.s.tempo_font,
                    color="black",
                )
            )

    def _barline(self) -> None:
        x = self.cursor_x + self.s.font_width / 2
        self.commands.append(
            DrawCommand(
                type="line",
                x=x,
                y=self.staff_top_y - 20,
                x2=x,
                y2=self.counter_y + 5,
                stroke=self.s.barline_color,
                stroke_width=1,
            )
        )
        self.cursor_x += self.s.font_width + self.s.barline_padding

        consume_through_barline(self.pitches)
        self.counter = 1
        self.key_sig.reset_measure()

    def _beat(self, beat: Beat) -> None:
        for directive in beat.directives:
            self._lyric_directive(directive, self.cursor_x)

        subdivisions = beat.subdivisions
        if not subdivisions:
            return

        x = self.cursor_x
        for sub in subdivisions:
            text = sub.display_text
            self.commands.append(
                DrawCommand(
                    type="text",
                    x=x,
                    y=self.lyric_y,
                    text=text,
                    font=self.s.lyric_font,
                    color="black",
                )
            )
            if sub.is_attack:
                self._attack(x)
            x += len(text) * self.s.font_width

        self._counter()
        self.counter += beat.scale
        self.beat_index += 1
        self.cursor_x = x + self.s.beat_gap

    def _counter(self) -> None:
        x = self.cursor_x + self.s.font_width / 2
        attributes = {
            "data-block-idx": str(self.block_index),
            "data-beat-idx": str(self.beat_index),
        }
        self.commands.append(
            DrawCommand(
                type="circle",
                x=x,
                y=self.counter_y - 4,
                r=self.s.counter_radius,
                fill="none",
                stroke="none",
                attributes={"class": "beat-circle", **attributes},
            )
        )
        self.commands.append(
            DrawCommand(
                type="text",
                x=x,
                y=self.counter_y,
                text=str(self.counter),
                color=self.s.counter_color,
                font=self.s.counter_font,
                anchor="middle",
                attributes={"class": "beat-counter", **attributes},
            )
        )

    # --- Pitch stream ---

    def _attack(self, x: float) -> None:
        def on_directive(directive: Directive) -> None:
            if isinstance(directive, KeySignatureDirective):
                self.key_sig.set_key(directive.accidental, directive.count)
            elif isinstance(directive, ReferenceOctaveDirective):
                self.pitch_state.set_reference_octave(directive.octave)
                self.commands.append(
                    DrawCommand(
                        type="text",
                        x=max(0.0, x - 15),
                        y=self.center_line_y + 5,
                        text=f"G{directive.octave}",
                        font=self.s.octave_font,
                        color=self.s.annotation_color,
                    )
                )

        element = next_sounding_element(self.pitches, on_directive)
        if element is None:
            return

        if isinstance(element, Chord):
            for i, pitch in enumerate(self.pitch_state.calculate_chord_pitches(element)):
                stagger = self.s.chord_stagger if i % 2 == 0 else -self.s.chord_stagger
                self._pitch(pitch, x + stagger)
        else:
            resolved = self.pitch_state.calculate_pitch(element.note, element.octave_shift)
            self._pitch(ResolvedPitch(resolved.note, resolved.octave, element.accidental), x)

    def _pitch(self, pitch: ResolvedPitch, x: float) -> None:
        accidental = self.key_sig.get_accidental(pitch.note, pitch.octave, pitch.accidental)
        color = self.s.natural_color
        if is_sharp(accidental):
            color = self.s.sharp_color
        elif is_flat(accidental):
            color = self.s.flat_color

        y = pitch_y(
            self.center_line_y,
            pitch.octave,
            pitch.note,
            accidental,
            self.pitch_state.reference_octave,
            self.s.staff_line_spacing,
        )
        self.commands.append(
            DrawCommand(
                type="text",
                x=x,
                y=y,
                text=pitch.note,
                color=color,
                font=self.s.pitch_font,
            )
        )

    # --- Bounds ---

    def _finish(self) -> BlockLayout:
        end_x = self.cursor_x
        guides = [
            DrawCommand(
                type="line",
                x=self.s.base_margin,
                y=self.center_line_y - octave * self.s.staff_line_spacing,
                x2=end_x,
                y2=self.center_line_y - octave * self.s.staff_line_spacing,
                stroke=self.s.guide_color,
                stroke_width=1,
            )
            for octave in (-1, 0, 1)
        ]
        commands = guides + self.commands

        # Pitches far above the reference octave can reach above y=0
        top = min(self._top(cmd) for cmd in commands)
        if top < 0:
            commands = [cmd.translated(dy=-top) for cmd in commands]

        width = max([end_x] + [self._right(cmd) for cmd in commands])
        height = max(
            [self.counter_y + self.s.bottom_margin - min(top, 0)]
            + [self._bottom(cmd) for cmd in commands]
        )
        return BlockLayout(commands=commands, width=width, height=height)

    def _top(self, cmd: DrawCommand) -> float:
        if cmd.type == "text":
            return cmd.y - self.s.font_height
        if cmd.type == "circle":
            return cmd.y - (cmd.r or 0)
        return min(cmd.y, cmd.y2 if cmd.y2 is not None else cmd.y)

    def _bottom(self, cmd: DrawCommand) -> float:
        if cmd.type == "circle":
            return cmd.y + (cmd.r or 0)
        if cmd.type == "rect":
            return cmd.y + (cmd.height or 0)
        return max(cmd.y, cmd.y2 if cmd.y2 is not None else cmd.y)

    def _right(self, cmd: DrawCommand) -> float:
        if cmd.type == "text":
            return cmd.x + len(cmd.text or "") * self.s.font_width
        if cmd.type == "circle":
            return cmd.x + (cmd.r or 0)
        if cmd.type == "rect":
            return cmd.x + (cmd.width or 0)
        return max(cmd.x, cmd.x2 if cmd.x2 is not None else cmd.x)
