"""
Parser - token sequence to Score AST.

Grammar, by paragraph (paragraphs are separated by blank lines):

    score       := title-paragraph music-block*
    music-block := lyric-section pitch-section
    lyric-section ends on the physical line whose last content token is '|'
    pitch-section runs to the next blank line

Whitespace between lyric tokens separates beats; adjacent tokens (or tokens
joined by '.') are subdivisions of the same beat.

Any syntax error aborts the whole parse - there is no partial score.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from chuk_mcp_fqs.constants import NOTE_LETTERS, ErrorMessages, SubdivisionKind
from chuk_mcp_fqs.errors import ScoreSyntaxError
from chuk_mcp_fqs.models.score import (
    Beat,
    BeatDurationDirective,
    BeatElement,
    Chord,
    Directive,
    InstrumentDirective,
    KeySignatureDirective,
    LyricLine,
    LyricMeasure,
    MusicBlock,
    PickupDirective,
    Pitch,
    PitchElement,
    PitchLine,
    PitchMeasure,
    ReferenceOctaveDirective,
    Score,
    SourceLocation,
    Subdivision,
    TempoDirective,
    VolumeDirective,
)
from chuk_mcp_fqs.parsing.lexer import tokenize
from chuk_mcp_fqs.parsing.tokens import Token, TokenType

logger = logging.getLogger(__name__)

# Lyric tokens that map one-to-one onto a subdivision kind
_SUBDIVISION_TOKENS: dict[TokenType, SubdivisionKind] = {
    TokenType.UNDERSCORE: SubdivisionKind.PARTIAL,
    TokenType.HYPHEN: SubdivisionKind.HYPHEN,
    TokenType.ASTERISK: SubdivisionKind.MELISMA,
    TokenType.SEMICOLON: SubdivisionKind.REST,
}


def _is_pitch_letters(value: str) -> bool:
    return all(ch in NOTE_LETTERS for ch in value)


@dataclass
class _LyricBuilder:
    """Accumulates beats and measures for one logical lyric line."""

    directives: list[Directive] = field(default_factory=list)
    measures: list[LyricMeasure] = field(default_factory=list)
    beats: list[Beat] = field(default_factory=list)
    elements: list[BeatElement] = field(default_factory=list)

    @property
    def has_content(self) -> bool:
        return bool(self.measures or self.beats or self.elements)

    def flush_beat(self) -> None:
        if self.elements:
            self.beats.append(Beat(elements=tuple(self.elements), location=self.elements[0].location))
            self.elements = []

    def flush_measure(self, barline: bool, location: SourceLocation) -> None:
        self.flush_beat()
        if self.beats or barline:
            self.measures.append(
                LyricMeasure(beats=tuple(self.beats), barline=barline, location=location)
            )
            self.beats = []

    def build(self) -> LyricLine:
        location = self.measures[0].location if self.measures else SourceLocation()
        return LyricLine(
            directives=tuple(self.directives),
            measures=tuple(self.measures),
            location=SourceLocation(line=location.line, col=0),
        )


@dataclass
class _PitchBuilder:
    """Accumulates measures for one logical pitch line."""

    directives: list[Directive] = field(default_factory=list)
    measures: list[PitchMeasure] = field(default_factory=list)
    elements: list[PitchElement] = field(default_factory=list)

    @property
    def has_content(self) -> bool:
        return bool(self.measures or self.elements)

    def flush_measure(self, barline: bool, location: SourceLocation) -> None:
        if self.elements or barline:
            self.measures.append(
                PitchMeasure(elements=tuple(self.elements), barline=barline, location=location)
            )
            self.elements = []

    def build(self) -> PitchLine:
        location = self.measures[0].location if self.measures else SourceLocation()
        return PitchLine(
            directives=tuple(self.directives),
            measures=tuple(self.measures),
            location=SourceLocation(line=location.line, col=0),
        )


class Parser:
    """
    Recursive-descent parser over a token list.

    Example:
        score = Parser(tokenize(text)).parse_score()
    """

    def __init__(self, tokens: list[Token]) -> None:
        if not tokens or tokens[-1].type != TokenType.EOF:
            raise ValueError("Token list must end with an EOF token")
        self._tokens = tokens
        self._pos = 0

    # --- Token helpers ---

    def _peek(self) -> Token:
        return self._tokens[min(self._pos, len(self._tokens) - 1)]

    def _peek_next(self) -> Token:
        return self._tokens[min(self._pos + 1, len(self._tokens) - 1)]

    def _previous(self) -> Token:
        return self._tokens[self._pos - 1]

    def _at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _advance(self) -> Token:
        if not self._at_end():
            self._pos += 1
        return self._previous()

    def _check(self, token_type: TokenType) -> bool:
        return not self._at_end() and self._peek().type == token_type

    def _match(self, token_type: TokenType) -> bool:
        if self._check(token_type):
            self._advance()
            return True
        return False

    def _consume(self, token_type: TokenType, message: str) -> Token:
        if self._check(token_type):
            return self._advance()
        raise self._error(self._peek(), message)

    def _error(self, token: Token, message: str) -> ScoreSyntaxError:
        return ScoreSyntaxError(message, token.line, token.col, token.value)

    def _skip_newlines(self) -> None:
        while self._match(TokenType.NEWLINE):
            pass

    def _at_blank_line(self) -> bool:
        return self._check(TokenType.NEWLINE) and self._peek_next().type == TokenType.NEWLINE

    @staticmethod
    def _location(token: Token) -> SourceLocation:
        return SourceLocation(line=token.line, col=token.col)

    # --- Document ---

    def parse_score(self) -> Score:
        """Parse the whole token stream into a Score."""
        title: list[str] = []
        blocks: list[MusicBlock] = []

        while not self._at_end():
            if self._check(TokenType.NEWLINE):
                self._advance()
                continue

            if not blocks and not title:
                title.extend(self._parse_title_paragraph())
            else:
                blocks.append(self._parse_music_block())
            self._skip_newlines()

        return Score(title=tuple(title), blocks=tuple(blocks))

    def _parse_title_paragraph(self) -> list[str]:
        """Reconstruct title lines verbatim, one space per whitespace gap."""
        lines: list[str] = []
        while not self._at_end():
            if self._check(TokenType.NEWLINE):
                if self._at_blank_line():
                    self._advance()
                    return lines
                self._advance()
                continue

            text = ""
            previous: Token | None = None
            while not self._check(TokenType.NEWLINE) and not self._at_end():
                token = self._advance()
                if previous is not None and not token.adjacent_to(previous):
                    text += " "
                text += token.value
                previous = token
            lines.append(text)
        return lines

    def _parse_music_block(self) -> MusicBlock:
        lyric = _LyricBuilder()
        while not self._at_end():
            if self._check(TokenType.NEWLINE):
                if self._at_blank_line():
                    break
                self._advance()
                continue

            if self._parse_physical_lyric_line(lyric):
                break

        pitch = _PitchBuilder()
        while not self._at_end():
            if self._check(TokenType.NEWLINE):
                if self._at_blank_line():
                    break
                self._advance()
                continue

            self._parse_physical_pitch_line(pitch)

        return MusicBlock(lyric_lines=(lyric.build(),), pitch_lines=(pitch.build(),))

    # --- Lyric lines ---

    def _parse_physical_lyric_line(self, lyric: _LyricBuilder) -> bool:
        """
        Parse one physical lyric line into the logical line builder.

        Returns:
            True if the last content token on the line was a barline
        """
        ended_with_barline = False
        previous: Token | None = None

        while not self._check(TokenType.NEWLINE) and not self._at_end():
            token = self._peek()

            # Whitespace gap: the previous beat is complete
            if previous is not None and not token.adjacent_to(previous):
                lyric.flush_beat()

            if token.type == TokenType.BARLINE:
                self._advance()
                lyric.flush_measure(True, self._location(token))
                ended_with_barline = True
                previous = token
                continue

            ended_with_barline = False

            if token.type == TokenType.LBRAK:
                at_line_start = not lyric.has_content
                directives = self._parse_directives()
                if at_line_start:
                    lyric.directives.extend(directives)
                else:
                    lyric.elements.extend(directives)
                previous = self._previous()
                continue

            if token.type == TokenType.DOT:
                # Visual separator only
                previous = self._advance()
                continue

            location = self._location(token)
            kind = _SUBDIVISION_TOKENS.get(token.type)
            self._advance()
            if token.type == TokenType.EQUALS:
                # '=' is shorthand for '--'
                lyric.elements.append(
                    Subdivision(kind=SubdivisionKind.HYPHEN, text="-", location=location)
                )
                lyric.elements.append(
                    Subdivision(kind=SubdivisionKind.HYPHEN, text="-", location=location)
                )
            elif kind is not None:
                lyric.elements.append(Subdivision(kind=kind, text=token.value, location=location))
            else:
                # Identifiers, numbers and any other symbol are syllable text
                lyric.elements.append(
                    Subdivision(kind=SubdivisionKind.SYLLABLE, text=token.value, location=location)
                )
            previous = token

        lyric.flush_measure(False, SourceLocation())
        return ended_with_barline

    # --- Pitch lines ---

    def _parse_physical_pitch_line(self, pitch: _PitchBuilder) -> None:
        while not self._check(TokenType.NEWLINE) and not self._at_end():
            token = self._peek()

            if token.type == TokenType.BARLINE:
                self._advance()
                pitch.flush_measure(True, self._location(token))
                continue

            if token.type == TokenType.LBRAK:
                at_line_start = not pitch.has_content
                directives = self._parse_directives()
                if at_line_start:
                    pitch.directives.extend(directives)
                else:
                    pitch.elements.extend(directives)
                continue

            if token.type == TokenType.LPAREN:
                pitch.elements.append(self._parse_chord())
                continue

            pitches = self._parse_pitches()
            if pitches:
                pitch.elements.extend(pitches)
            else:
                logger.debug("Skipping non-pitch token %s", token)
                self._advance()

        pitch.flush_measure(False, SourceLocation())

    def _parse_chord(self) -> Chord:
        start = self._advance()  # (
        pitches: list[Pitch] = []
        while not self._check(TokenType.RPAREN) and not self._at_end():
            parsed = self._parse_pitches()
            if parsed:
                pitches.extend(parsed)
            else:
                logger.debug("Skipping token inside chord: %s", self._peek())
                self._advance()
        self._consume(TokenType.RPAREN, ErrorMessages.EXPECTED_RPAREN)
        return Chord(pitches=tuple(pitches), location=self._location(start))

    def _parse_pitches(self) -> list[Pitch]:
        """
        Parse `(^|/)* accidental? letters`.

        A run of note letters ("ceg") yields one pitch per letter; the
        octave shift and accidental belong to the first letter only.

        Returns:
            The parsed pitches, or an empty list if no pitch starts here

        Raises:
            ScoreSyntaxError: modifiers were given without a note letter
        """
        start = self._peek()
        octave_shift = 0
        accidental: str | None = None

        while self._check(TokenType.CARET) or self._check(TokenType.SLASH):
            octave_shift += 1 if self._advance().type == TokenType.CARET else -1

        if self._check(TokenType.ACCIDENTAL):
            accidental = self._advance().value

        if self._check(TokenType.IDENTIFIER) and _is_pitch_letters(self._peek().value):
            letters = self._advance()
            pitches = [
                Pitch(
                    note=letters.value[0],
                    accidental=accidental,
                    octave_shift=octave_shift,
                    location=self._location(start),
                )
            ]
            for offset, letter in enumerate(letters.value[1:], start=1):
                pitches.append(
                    Pitch(
                        note=letter,
                        location=SourceLocation(line=letters.line, col=letters.col + offset),
                    )
                )
            return pitches

        if octave_shift != 0 or accidental is not None:
            raise self._error(self._peek(), ErrorMessages.EXPECTED_NOTE)

        return []

    # --- Directives ---

    def _number(self, letter: str) -> int:
        token = self._consume(TokenType.NUMBER, ErrorMessages.EXPECTED_NUMBER.format(letter=letter))
        return int(token.value)

    def _parse_directives(self) -> list[Directive]:
        """Parse a bracketed directive group such as `[T120 B4.]`."""
        self._consume(TokenType.LBRAK, ErrorMessages.EXPECTED_LBRAK)
        directives: list[Directive] = []

        while not self._check(TokenType.RBRAK) and not self._at_end():
            token = self._peek()
            if token.type != TokenType.IDENTIFIER:
                logger.debug("Skipping token inside brackets: %s", token)
                self._advance()
                continue

            name = self._advance().value
            location = self._location(token)

            if name == "N":
                directives.append(PickupDirective(count=self._number(name), location=location))
            elif name == "B":
                duration = str(self._number(name))
                if self._match(TokenType.DOT):
                    duration += "."
                directives.append(BeatDurationDirective(duration=duration, location=location))
            elif name == "K":
                accidental = None
                if self._check(TokenType.ACCIDENTAL):
                    accidental = self._advance().value
                directives.append(
                    KeySignatureDirective(
                        accidental=accidental, count=self._number(name), location=location
                    )
                )
            elif name == "T":
                directives.append(TempoDirective(bpm=self._number(name), location=location))
            elif name == "O":
                directives.append(
                    ReferenceOctaveDirective(octave=self._number(name), location=location)
                )
            elif name == "I":
                directives.append(InstrumentDirective(instrument=self._number(name), location=location))
            elif name == "V":
                directives.append(VolumeDirective(level=self._number(name), location=location))
            else:
                logger.debug("Skipping unknown directive %r", name)

        self._consume(TokenType.RBRAK, ErrorMessages.EXPECTED_RBRAK)
        return directives


def parse(source: str | list[Token]) -> Score:
    """
    Parse notation into a Score.

    Args:
        source: Raw notation text, or a token list from `tokenize`

    Returns:
        A new, immutable Score

    Raises:
        ScoreSyntaxError: on malformed input (the whole score is rejected)
    """
    tokens = tokenize(source) if isinstance(source, str) else source
    return Parser(tokens).parse_score()
