"""
MIDI writer tests.

Byte-level checks for the chunk layout and running status, plus an
independent decode of generated files with mido.
"""

import struct
from pathlib import Path

import pytest
from mido import MidiFile

from chuk_mcp_fqs.compiler.audio import AudioGenerator
from chuk_mcp_fqs.compiler.midi import (
    MidiEvent,
    MidiEventType,
    MidiTrack,
    encode_vlq,
    to_mido,
    used_programs,
    velocity_percent_to_midi,
    write_midi_file,
)
from chuk_mcp_fqs.models.score import Score

END_OF_TRACK = b"\x00\xff\x2f\x00"


def track_body(data: bytes, index: int = 0) -> bytes:
    """Body of the index-th MTrk chunk."""
    pos = 14
    for _ in range(index + 1):
        assert data[pos : pos + 4] == b"MTrk"
        (length,) = struct.unpack(">I", data[pos + 4 : pos + 8])
        body = data[pos + 8 : pos + 8 + length]
        pos += 8 + length
    return body


class TestVariableLengthQuantity:
    """Test VLQ encoding."""

    @pytest.mark.parametrize(
        "value,encoded",
        [
            (0, b"\x00"),
            (0x7F, b"\x7f"),
            (0x80, b"\x81\x00"),
            (480, b"\x83\x60"),
            (0x3FFF, b"\xff\x7f"),
            (0x4000, b"\x81\x80\x00"),
            (0x0FFFFFFF, b"\xff\xff\xff\x7f"),
        ],
    )
    def test_encoding(self, value: int, encoded: bytes) -> None:
        """Seven bits per byte, continuation bit on all but the last."""
        assert encode_vlq(value) == encoded

    def test_out_of_range(self) -> None:
        """Negative and oversized values are rejected."""
        with pytest.raises(ValueError):
            encode_vlq(-1)
        with pytest.raises(ValueError):
            encode_vlq(0x10000000)


class TestMidiEvent:
    """Test MidiEvent construction."""

    def test_status_byte(self) -> None:
        """Status combines event type and channel."""
        assert MidiEvent.note_on(0, 60, 100, channel=3).status == 0x93
        assert MidiEvent.program_change(0, 5).status == 0xC0
        assert MidiEvent.controller(0, 7, 100, channel=1).status == 0xB1
        assert MidiEvent.note_off(0, 60).status == 0x80
        assert MidiEvent.set_tempo(0, 500_000).status is None

    def test_tempo_bytes(self) -> None:
        """Set-tempo carries three big-endian bytes."""
        event = MidiEvent.set_tempo(0, 500_000)
        assert event.meta_data == b"\x07\xa1\x20"
        assert event.tempo == 500_000

    def test_channel_range(self) -> None:
        """Channel must be 0-15."""
        with pytest.raises(ValueError, match="Channel must be 0-15"):
            MidiEvent.note_on(0, 60, 100, channel=16)

    def test_param_range(self) -> None:
        """Data bytes must be 0-127."""
        with pytest.raises(ValueError, match="param1 must be 0-127"):
            MidiEvent.note_on(0, 128, 100)
        with pytest.raises(ValueError, match="param2 must be 0-127"):
            MidiEvent.note_on(0, 60, -1)

    def test_delta_range(self) -> None:
        """Delta time must fit a VLQ."""
        with pytest.raises(ValueError, match="Delta time"):
            MidiEvent.note_on(-1, 60, 100)

    def test_meta_needs_type(self) -> None:
        """Meta events must name their meta type."""
        with pytest.raises(ValueError, match="Meta type"):
            MidiEvent(0, MidiEventType.META)

    def test_silencing_note_on_is_not_sounding(self) -> None:
        """Velocity 0 note-on is a note-off."""
        assert MidiEvent.note_on(0, 60, 100).is_note_on
        assert not MidiEvent.note_on(0, 60, 0).is_note_on


class TestWriteMidiFile:
    """Test file layout."""

    def test_header(self) -> None:
        """MThd, length 6, format 0, one track, division."""
        data = write_midi_file([MidiTrack()], ticks_per_quarter=96)
        assert data[:14] == b"MThd" + struct.pack(">IHHH", 6, 0, 1, 96)

    def test_empty_track(self) -> None:
        """An empty track holds only end-of-track."""
        data = write_midi_file([[]])
        assert data[14:] == b"MTrk\x00\x00\x00\x04" + END_OF_TRACK

    def test_running_status(self) -> None:
        """A repeated status byte is omitted."""
        events = [MidiEvent.note_on(0, 60, 100), MidiEvent.note_on(480, 60, 0)]
        body = track_body(write_midi_file([events]))
        assert body == b"\x00\x90\x3c\x64" + b"\x83\x60\x3c\x00" + END_OF_TRACK

    def test_meta_resets_running_status(self) -> None:
        """The status byte is repeated after a meta event."""
        events = [
            MidiEvent.note_on(0, 60, 100),
            MidiEvent.set_tempo(0, 500_000),
            MidiEvent.note_on(0, 62, 100),
        ]
        body = track_body(write_midi_file([events]))
        assert body == (
            b"\x00\x90\x3c\x64"
            + b"\x00\xff\x51\x03\x07\xa1\x20"
            + b"\x00\x90\x3e\x64"
            + END_OF_TRACK
        )

    def test_program_change_has_one_data_byte(self) -> None:
        """Program change carries only the program number."""
        body = track_body(write_midi_file([[MidiEvent.program_change(0, 40, channel=2)]]))
        assert body == b"\x00\xc2\x28" + END_OF_TRACK

    def test_multiple_tracks_use_format_1(self) -> None:
        """Two tracks give a format 1 file with two chunks."""
        data = write_midi_file(
            [MidiTrack([MidiEvent.set_tempo(0, 500_000)]), MidiTrack([MidiEvent.note_on(0, 60, 90)])]
        )
        assert struct.unpack(">HH", data[8:12]) == (1, 2)
        assert track_body(data, 1) == b"\x00\x90\x3c\x5a" + END_OF_TRACK

    def test_track_length_matches_body(self, simple_score: Score) -> None:
        """The patched length equals the bytes that follow it."""
        data = AudioGenerator().generate_midi(simple_score)
        (length,) = struct.unpack(">I", data[18:22])
        assert len(data) == 22 + length
        assert data.endswith(END_OF_TRACK[1:])

    def test_deterministic(self, simple_score: Score) -> None:
        """Same score, same bytes."""
        generator = AudioGenerator()
        assert generator.generate_midi(simple_score) == generator.generate_midi(simple_score)


class TestMidoDecode:
    """Decode written files with mido."""

    def test_decoded_messages(self, simple_score: Score) -> None:
        """mido reads back the tempo, program and notes."""
        midi = to_mido(AudioGenerator().generate_midi(simple_score))
        assert midi.type == 0
        assert midi.ticks_per_beat == 480
        assert len(midi.tracks) == 1

        messages = list(midi.tracks[0])
        assert messages[0].type == "set_tempo"
        assert messages[0].tempo == 500_000
        assert messages[1].type == "program_change"
        assert messages[1].program == 0
        notes = [(m.note, m.velocity, m.time) for m in messages if m.type == "note_on"]
        assert notes == [
            (60, 88, 0),
            (60, 0, 480),
            (62, 88, 0),
            (62, 0, 480),
            (64, 88, 0),
            (64, 0, 480),
        ]
        assert messages[-1].type == "end_of_track"

    def test_playback_length(self, simple_score: Score) -> None:
        """Three beats at 120 bpm last 1.5 seconds."""
        midi = to_mido(AudioGenerator().generate_midi(simple_score))
        assert midi.length == pytest.approx(1.5)

    def test_save_and_reload(self, simple_score: Score, temp_midi_path: Path) -> None:
        """to_mido output saves to disk and reads back."""
        to_mido(AudioGenerator().generate_midi(simple_score)).save(str(temp_midi_path))
        assert temp_midi_path.exists()
        reloaded = MidiFile(str(temp_midi_path))
        assert sum(1 for m in reloaded.tracks[0] if m.type == "note_on") == 6


class TestHelpers:
    """Test small MIDI helpers."""

    def test_used_programs_always_has_zero(self) -> None:
        """Program 0 is always loaded."""
        assert used_programs([]) == {0}
        assert used_programs([MidiEvent.program_change(0, 73)]) == {0, 73}

    @pytest.mark.parametrize(
        "level,expected",
        [(0, 0), (50, 63), (70, 88), (100, 127), (150, 127), (-5, 0)],
    )
    def test_velocity_scale(self, level: int, expected: int) -> None:
        """0-100 maps onto 0-127, rounded down and clamped."""
        assert velocity_percent_to_midi(level) == expected
