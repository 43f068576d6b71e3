"""
Pitch and key resolution state.

Both layout and audio walk a block with one KeySignatureState and one
PitchState. Neither carries over between blocks: build a fresh pair at
the start of every MusicBlock.
"""

from __future__ import annotations

from dataclasses import dataclass

from chuk_mcp_fqs.constants import (
    DEFAULT_OCTAVE,
    DEFAULT_PREVIOUS_LETTER,
    FLAT,
    FLAT_ORDER,
    NATURAL,
    SHARP,
    SHARP_ORDER,
)
from chuk_mcp_fqs.core.pitch import letter_index
from chuk_mcp_fqs.models.score import Chord


@dataclass(frozen=True)
class ResolvedPitch:
    """An absolute pitch. `accidental` is the written one (None if absent)."""

    note: str
    octave: int
    accidental: str | None = None


class KeySignatureState:
    """
    Key signature plus accidentals already applied in the current measure.

    An explicit accidental sticks to its exact note+octave until the next
    barline (`reset_measure`); otherwise the key signature decides.
    """

    def __init__(self) -> None:
        self.accidental: str | None = None
        self.count = 0
        self._measure_accidentals: dict[str, str] = {}

    def set_key(self, accidental: str | None, count: int) -> None:
        self.accidental = accidental
        self.count = count

    def reset_measure(self) -> None:
        """Forget accidentals applied in the measure just ended."""
        self._measure_accidentals.clear()

    def key_accidental(self, note: str) -> str:
        """Accidental the key signature alone gives to a letter."""
        if self.accidental == SHARP and note in SHARP_ORDER[: self.count]:
            return SHARP
        if self.accidental == FLAT and note in FLAT_ORDER[: self.count]:
            return FLAT
        return NATURAL

    def get_accidental(self, note: str, octave: int, explicit: str | None = None) -> str:
        """
        Resolve the accidental that applies to a pitch.

        Args:
            note: Letter c-b
            octave: Absolute octave
            explicit: Accidental written on the pitch, if any

        Returns:
            One of '#', '##', '&', '&&', '%'
        """
        pitch_id = f"{note}{octave}"
        if explicit:
            self._measure_accidentals[pitch_id] = explicit
            return explicit
        if pitch_id in self._measure_accidentals:
            return self._measure_accidentals[pitch_id]
        return self.key_accidental(note)


class PitchState:
    """
    Relative-octave resolver ("closest pitch" rule).

    Each letter is placed in the octave that puts it within a fourth of
    the previous pitch, then shifted by its explicit ^ and / marks.
    """

    def __init__(self) -> None:
        self.previous = ResolvedPitch(DEFAULT_PREVIOUS_LETTER, DEFAULT_OCTAVE)
        self.reference_octave = DEFAULT_OCTAVE

    def set_reference_octave(self, octave: int) -> None:
        self.reference_octave = octave

    @staticmethod
    def _closest_octave(previous: ResolvedPitch, note: str) -> int:
        diff = letter_index(note) - letter_index(previous.note)
        if diff > 3:
            return previous.octave - 1
        if diff < -3:
            return previous.octave + 1
        return previous.octave

    def calculate_pitch(self, note: str, octave_shift: int = 0) -> ResolvedPitch:
        """Resolve one pitch and make it the new previous pitch."""
        octave = self._closest_octave(self.previous, note) + octave_shift
        self.previous = ResolvedPitch(note, octave)
        return self.previous

    def calculate_chord_pitches(self, chord: Chord) -> list[ResolvedPitch]:
        """
        Resolve a chord bottom-up.

        The first pitch follows the closest-pitch rule; each later pitch
        takes the nearest octave strictly above the chord pitch before it,
        then its own octave shift. The last chord pitch becomes the
        previous pitch.
        """
        results: list[ResolvedPitch] = []
        local = self.previous

        for index, pitch in enumerate(chord.pitches):
            if index == 0:
                octave = self._closest_octave(local, pitch.note)
            elif letter_index(pitch.note) > letter_index(local.note):
                octave = local.octave
            else:
                octave = local.octave + 1
            octave += pitch.octave_shift

            resolved = ResolvedPitch(pitch.note, octave, pitch.accidental)
            results.append(resolved)
            local = ResolvedPitch(pitch.note, octave)

        self.previous = local
        return results
