"""
Pitch and key resolution tests.
"""

import pytest

from chuk_mcp_fqs.core.pitch import spell, to_midi
from chuk_mcp_fqs.core.resolver import KeySignatureState, PitchState, ResolvedPitch
from chuk_mcp_fqs.models.score import Chord, Pitch


def chord(notes: str) -> Chord:
    return Chord(pitches=tuple(Pitch(note=n) for n in notes))


class TestToMidi:
    """Test MIDI note numbers."""

    def test_middle_c(self) -> None:
        """c4 is MIDI 60."""
        assert to_midi("c", 4) == 60

    @pytest.mark.parametrize(
        "note,octave,accidental,expected",
        [
            ("a", 4, None, 69),
            ("f", 4, "#", 66),
            ("b", 3, "&", 58),
            ("c", 4, "&&", 58),
            ("g", 4, "##", 69),
            ("e", 4, "%", 64),
            ("c", -1, None, 0),
            ("g", 9, None, 127),
        ],
    )
    def test_note_numbers(self, note: str, octave: int, accidental: str | None, expected: int) -> None:
        """Letter, octave and accidental combine additively."""
        assert to_midi(note, octave, accidental) == expected

    def test_spell(self) -> None:
        """Spelled names use # and b."""
        assert spell("f", 4, "#") == "F#4"
        assert spell("b", 3, "&&") == "Bbb3"
        assert spell("c", 5) == "C5"


class TestPitchState:
    """Test the closest-pitch rule."""

    def test_starts_at_middle_c(self) -> None:
        """A fresh state resolves c to c4."""
        assert PitchState().calculate_pitch("c") == ResolvedPitch("c", 4)

    def test_fourth_up_stays(self) -> None:
        """Up to three letters away stays in the same octave."""
        state = PitchState()
        assert state.calculate_pitch("f").octave == 4

    def test_fifth_up_goes_below(self) -> None:
        """g is closer below c4 than above it."""
        state = PitchState()
        assert state.calculate_pitch("g") == ResolvedPitch("g", 3)
        assert state.calculate_pitch("c") == ResolvedPitch("c", 4)

    def test_wraps_downward(self) -> None:
        """b after c4 is the b just below."""
        assert PitchState().calculate_pitch("b") == ResolvedPitch("b", 3)

    def test_octave_shift(self) -> None:
        """^ and / move one octave each and become the new reference."""
        state = PitchState()
        assert state.calculate_pitch("c", 1) == ResolvedPitch("c", 5)
        assert state.calculate_pitch("d") == ResolvedPitch("d", 5)
        assert state.calculate_pitch("d", -2) == ResolvedPitch("d", 3)

    def test_scale_walk(self) -> None:
        """An ascending scale climbs across the octave boundary."""
        state = PitchState()
        octaves = [state.calculate_pitch(n).octave for n in "cdefgabc"]
        assert octaves == [4, 4, 4, 4, 4, 4, 4, 5]

    def test_reference_octave_does_not_move_pitches(self) -> None:
        """The reference octave only affects drawing."""
        state = PitchState()
        state.set_reference_octave(6)
        assert state.calculate_pitch("e") == ResolvedPitch("e", 4)
        assert state.reference_octave == 6


class TestChordPitches:
    """Test the strictly-ascending chord rule."""

    def test_triad(self) -> None:
        """c e g from c4 stays in one octave."""
        pitches = PitchState().calculate_chord_pitches(chord("ceg"))
        assert [(p.note, p.octave) for p in pitches] == [("c", 4), ("e", 4), ("g", 4)]

    def test_descending_letters_stack_upward(self) -> None:
        """Each member is strictly above the one before it."""
        pitches = PitchState().calculate_chord_pitches(chord("gec"))
        assert [(p.note, p.octave) for p in pitches] == [("g", 3), ("e", 4), ("c", 5)]

    def test_repeated_letter_is_an_octave(self) -> None:
        """The same letter twice is an octave apart."""
        pitches = PitchState().calculate_chord_pitches(chord("cc"))
        assert [p.octave for p in pitches] == [4, 5]

    @pytest.mark.parametrize("notes", ["ceg", "gec", "bdfa", "aaa", "fedcb"])
    def test_monotonic(self, notes: str) -> None:
        """Natural chord members always ascend in MIDI number."""
        pitches = PitchState().calculate_chord_pitches(chord(notes))
        midi = [to_midi(p.note, p.octave) for p in pitches]
        assert midi == sorted(set(midi))

    def test_last_member_becomes_previous(self) -> None:
        """The next pitch resolves relative to the top of the chord."""
        state = PitchState()
        state.calculate_chord_pitches(chord("ceg"))
        assert state.previous == ResolvedPitch("g", 4)
        assert state.calculate_pitch("c") == ResolvedPitch("c", 5)

    def test_member_octave_shift(self) -> None:
        """A member's own ^ applies after the ascending rule."""
        members = (Pitch(note="c"), Pitch(note="e", octave_shift=1))
        pitches = PitchState().calculate_chord_pitches(Chord(pitches=members))
        assert [(p.note, p.octave) for p in pitches] == [("c", 4), ("e", 5)]

    def test_written_accidentals_kept(self) -> None:
        """Resolved chord members carry their written accidentals."""
        members = (Pitch(note="c"), Pitch(note="e", accidental="&"))
        pitches = PitchState().calculate_chord_pitches(Chord(pitches=members))
        assert [p.accidental for p in pitches] == [None, "&"]


class TestKeySignatureState:
    """Test key signatures and measure-scoped accidentals."""

    def test_no_key_is_natural(self) -> None:
        """Without a key everything is natural."""
        assert KeySignatureState().get_accidental("f", 4) == "%"

    def test_sharp_key(self) -> None:
        """K#2 sharpens f and c only."""
        key = KeySignatureState()
        key.set_key("#", 2)
        assert key.get_accidental("f", 4) == "#"
        assert key.get_accidental("c", 4) == "#"
        assert key.get_accidental("g", 4) == "%"

    def test_flat_key(self) -> None:
        """K&3 flattens b, e and a."""
        key = KeySignatureState()
        key.set_key("&", 3)
        assert [key.key_accidental(n) for n in "beadg"] == ["&", "&", "&", "%", "%"]

    def test_explicit_accidental_sticks_in_measure(self) -> None:
        """An explicit accidental carries to the same note and octave."""
        key = KeySignatureState()
        key.set_key("#", 1)
        assert key.get_accidental("f", 4, "%") == "%"
        assert key.get_accidental("f", 4) == "%"
        assert key.get_accidental("f", 5) == "#"

    def test_barline_resets_memory(self) -> None:
        """reset_measure restores the key signature."""
        key = KeySignatureState()
        key.get_accidental("c", 4, "#")
        assert key.get_accidental("c", 4) == "#"
        key.reset_measure()
        assert key.get_accidental("c", 4) == "%"

    def test_set_key_keeps_measure_memory(self) -> None:
        """Changing key mid-measure does not forget explicit accidentals."""
        key = KeySignatureState()
        key.get_accidental("b", 4, "&")
        key.set_key("#", 7)
        assert key.get_accidental("b", 4) == "&"
        assert key.get_accidental("b", 3) == "#"
