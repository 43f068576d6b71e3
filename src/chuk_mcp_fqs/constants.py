"""
Constants and enums for the notation compiler.

No magic strings - use enums and Literal types for constrained values.
"""

from enum import Enum
from fractions import Fraction


class SubdivisionKind(str, Enum):
    """
    The rhythmic role of one subdivision inside a beat.

    Syllable and Melisma attack a new note, Hyphen sustains the sounding
    note, Rest and Partial cut it off.
    """

    SYLLABLE = "Syllable"  # Lyric text, attack
    MELISMA = "Melisma"  # *, attack without new text
    HYPHEN = "Hyphen"  # -, sustain
    REST = "Rest"  # ;, silence
    PARTIAL = "Partial"  # _, silent subdivision


ATTACK_KINDS = frozenset({SubdivisionKind.SYLLABLE, SubdivisionKind.MELISMA})
SILENCE_KINDS = frozenset({SubdivisionKind.REST, SubdivisionKind.PARTIAL})

SHARP = "#"
FLAT = "&"
NATURAL = "%"

# Diatonic letters in scale order (index 0-6)
NOTE_LETTERS: tuple[str, ...] = ("c", "d", "e", "f", "g", "a", "b")

# Order in which key signatures add accidentals
SHARP_ORDER: tuple[str, ...] = ("f", "c", "g", "d", "a", "e", "b")
FLAT_ORDER: tuple[str, ...] = ("b", "e", "a", "d", "g", "c", "f")

# Beat-duration code -> length relative to a quarter note
BEAT_MULTIPLIERS: dict[str, Fraction] = {
    "1": Fraction(4),
    "1.": Fraction(6),
    "2": Fraction(2),
    "2.": Fraction(3),
    "4": Fraction(1),
    "4.": Fraction(3, 2),
    "8": Fraction(1, 2),
    "8.": Fraction(3, 4),
    "16": Fraction(1, 4),
    "16.": Fraction(3, 8),
    "32": Fraction(1, 8),
    "32.": Fraction(3, 16),
}

# Pulses per quarter note
TICKS_PER_QUARTER = 480

# Playback defaults (score-global state at tick 0)
DEFAULT_TEMPO_BPM = 120
DEFAULT_BEAT_DURATION = "4"
DEFAULT_VELOCITY = 70  # 0-100 scale
DEFAULT_INSTRUMENT = 0  # GM program, 0-based

# Pitch resolution defaults (reset at the start of every block)
DEFAULT_PREVIOUS_LETTER = "c"
DEFAULT_OCTAVE = 4


class ErrorMessages:
    """Standardized error messages."""

    EXPECTED_NUMBER = "Expected number for {letter}"
    EXPECTED_NOTE = "Expected note name (a-g) after modifiers"
    EXPECTED_RPAREN = "Expected ')'"
    EXPECTED_LBRAK = "Expected '['"
    EXPECTED_RBRAK = "Expected ']'"
    UNEXPECTED_CHAR = "Unexpected character {char!r}"
