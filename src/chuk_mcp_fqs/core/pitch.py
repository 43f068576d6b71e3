"""
Pitch primitives - note letters, accidentals and MIDI numbers.

Letters are the seven diatonic names c-b; accidentals use the source
spellings (# ## & && %). Octaves follow scientific pitch notation, so
c in octave 4 is middle C (MIDI 60).
"""

from __future__ import annotations

from chuk_mcp_fqs.constants import NOTE_LETTERS

# Semitones above C for each natural letter
DIATONIC_SEMITONES: dict[str, int] = {
    "c": 0,
    "d": 2,
    "e": 4,
    "f": 5,
    "g": 7,
    "a": 9,
    "b": 11,
}

ACCIDENTAL_SEMITONES: dict[str, int] = {
    "#": 1,
    "##": 2,
    "&": -1,
    "&&": -2,
    "%": 0,
}

# Display glyphs for source accidentals
ACCIDENTAL_SYMBOLS: dict[str, str] = {
    "#": "♯",
    "&": "♭",
    "%": "♮",
    "##": "\U0001d12a",
    "&&": "\U0001d12b",
}


def letter_index(letter: str) -> int:
    """Diatonic index of a note letter (c=0 ... b=6)."""
    return NOTE_LETTERS.index(letter)


def accidental_semitones(accidental: str | None) -> int:
    """Chromatic alteration of an accidental (None and unknown are natural)."""
    if accidental is None:
        return 0
    return ACCIDENTAL_SEMITONES.get(accidental, 0)


def to_midi(note: str, octave: int, accidental: str | None = None) -> int:
    """
    Convert a resolved pitch to a MIDI note number.

    Args:
        note: Letter c-b
        octave: Scientific octave (4 = middle octave)
        accidental: Resolved accidental, or None for natural

    Returns:
        MIDI note number; c4 natural = 60
    """
    return (octave + 1) * 12 + DIATONIC_SEMITONES[note] + accidental_semitones(accidental)


def is_sharp(accidental: str | None) -> bool:
    return accidental in ("#", "##")


def is_flat(accidental: str | None) -> bool:
    return accidental in ("&", "&&")


def spell(note: str, octave: int, accidental: str | None = None) -> str:
    """Human-readable name such as 'F#4' or 'Bb3'."""
    suffix = ""
    if is_sharp(accidental):
        suffix = "#" * len(accidental or "")
    elif is_flat(accidental):
        suffix = "b" * len(accidental or "")
    return f"{note.upper()}{suffix}{octave}"
