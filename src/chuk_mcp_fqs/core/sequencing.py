"""
Sequencing - the two linear views of a MusicBlock.

Layout and audio both flatten a block into a lyric stream (directives,
beats, barlines) and a pitch stream (directives, pitches, chords,
barlines), then walk the lyric stream while pulling from the pitch
stream. Every lyric barline re-synchronizes the pitch stream by
discarding whatever is left of the current pitch measure.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from chuk_mcp_fqs.models.score import (
    AnyDirective,
    Beat,
    Chord,
    Directive,
    MusicBlock,
    Pitch,
)


@dataclass(frozen=True)
class DirectiveItem:
    """A line-level directive, applied before the line's first beat."""

    directive: Directive


@dataclass(frozen=True)
class BeatItem:
    beat: Beat


@dataclass(frozen=True)
class BarlineItem:
    measure_index: int


@dataclass(frozen=True)
class PitchBarline:
    """Measure boundary in the pitch stream."""


LyricItem = DirectiveItem | BeatItem | BarlineItem
PitchItem = Pitch | Chord | AnyDirective | PitchBarline
SoundingElement = Pitch | Chord

PITCH_BARLINE = PitchBarline()


def flatten_lyrics(block: MusicBlock) -> list[LyricItem]:
    """Project a block onto its lyric stream."""
    items: list[LyricItem] = []
    for line in block.lyric_lines:
        items.extend(DirectiveItem(directive) for directive in line.directives)
        for index, measure in enumerate(line.measures):
            items.extend(BeatItem(beat) for beat in measure.beats)
            if measure.barline:
                items.append(BarlineItem(index))
    return items


def flatten_pitches(block: MusicBlock) -> list[PitchItem]:
    """Project a block onto its pitch stream."""
    items: list[PitchItem] = []
    for line in block.pitch_lines:
        items.extend(line.directives)
        for measure in line.measures:
            items.extend(measure.elements)
            if measure.barline:
                items.append(PITCH_BARLINE)
    return items


class PitchCursor:
    """Forward-only position in a flattened pitch stream."""

    def __init__(self, items: list[PitchItem]) -> None:
        self._items = items
        self._pos = 0

    @classmethod
    def for_block(cls, block: MusicBlock) -> PitchCursor:
        return cls(flatten_pitches(block))

    @property
    def exhausted(self) -> bool:
        return self._pos >= len(self._items)

    def peek(self) -> PitchItem | None:
        return None if self.exhausted else self._items[self._pos]

    def advance(self) -> PitchItem | None:
        item = self.peek()
        if item is not None:
            self._pos += 1
        return item


def consume_through_barline(cursor: PitchCursor) -> int:
    """
    Re-synchronize the pitch stream at a lyric barline.

    Advances past the next pitch barline, silently dropping any pitches,
    chords or directives left in the current pitch measure.

    Returns:
        Number of items discarded before the barline
    """
    discarded = 0
    while (item := cursor.advance()) is not None:
        if isinstance(item, PitchBarline):
            break
        discarded += 1
    return discarded


def next_sounding_element(
    cursor: PitchCursor,
    on_directive: Callable[[Directive], None],
) -> SoundingElement | None:
    """
    Take the pitch or chord for one attack.

    Directives met on the way are handed to `on_directive` and skipped.
    Stops without consuming at a pitch barline: an attack never reaches
    into the next measure's pitches.

    Returns:
        The next Pitch or Chord in this measure, or None if there is none
    """
    while (item := cursor.peek()) is not None:
        if isinstance(item, PitchBarline):
            return None
        cursor.advance()
        if isinstance(item, (Pitch, Chord)):
            return item
        on_directive(item)
    return None
