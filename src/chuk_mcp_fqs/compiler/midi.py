"""
MIDI export - the end of the audio pipeline.

A minimal Standard MIDI File writer. Events carry delta times; the writer
adds the header, one chunk per track, running-status compression for
channel voice messages, and the end-of-track meta event.

All operations are deterministic: same events → same bytes.
"""

from __future__ import annotations

import io
import struct
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from mido import MidiFile

from chuk_mcp_fqs.constants import TICKS_PER_QUARTER

META_SET_TEMPO = 0x51
META_END_OF_TRACK = 0x2F

# Largest value a 4-byte variable-length quantity can hold
MAX_VLQ = 0x0FFFFFFF


class MidiEventType(str, Enum):
    """Event kinds understood by the writer."""

    NOTE_OFF = "note_off"
    NOTE_ON = "note_on"
    CONTROLLER = "controller"
    PROGRAM_CHANGE = "program_change"
    META = "meta"


STATUS_BYTES: dict[MidiEventType, int] = {
    MidiEventType.NOTE_OFF: 0x80,
    MidiEventType.NOTE_ON: 0x90,
    MidiEventType.CONTROLLER: 0xB0,
    MidiEventType.PROGRAM_CHANGE: 0xC0,
}


@dataclass(frozen=True)
class MidiEvent:
    """
    A single MIDI track event.

    `delta_time` is in ticks since the previous event in the same track.
    Channel voice events use param1/param2 (note/velocity, controller/value,
    program); meta events use meta_type/meta_data.
    """

    delta_time: int
    type: MidiEventType
    channel: int = 0
    param1: int | None = None
    param2: int | None = None
    meta_type: int | None = None
    meta_data: bytes = b""

    def __post_init__(self) -> None:
        """Validate MIDI ranges."""
        if not 0 <= self.delta_time <= MAX_VLQ:
            raise ValueError(f"Delta time must be 0-{MAX_VLQ}, got {self.delta_time}")
        if not 0 <= self.channel <= 15:
            raise ValueError(f"Channel must be 0-15, got {self.channel}")
        for name in ("param1", "param2"):
            value = getattr(self, name)
            if value is not None and not 0 <= value <= 127:
                raise ValueError(f"{name} must be 0-127, got {value}")
        if self.type == MidiEventType.META:
            if self.meta_type is None or not 0 <= self.meta_type <= 127:
                raise ValueError(f"Meta type must be 0-127, got {self.meta_type}")

    @property
    def status(self) -> int | None:
        """Status byte for channel voice events, None for meta events."""
        if self.type == MidiEventType.META:
            return None
        return STATUS_BYTES[self.type] | self.channel

    @property
    def is_note_on(self) -> bool:
        """True for a sounding note-on (velocity above 0)."""
        return self.type == MidiEventType.NOTE_ON and bool(self.param2)

    @property
    def tempo(self) -> int | None:
        """Microseconds per quarter note for a set-tempo meta event."""
        if self.type != MidiEventType.META or self.meta_type != META_SET_TEMPO:
            return None
        return int.from_bytes(self.meta_data, "big")

    @classmethod
    def note_on(cls, delta_time: int, note: int, velocity: int, channel: int = 0) -> MidiEvent:
        return cls(delta_time, MidiEventType.NOTE_ON, channel, note, velocity)

    @classmethod
    def note_off(cls, delta_time: int, note: int, velocity: int = 0, channel: int = 0) -> MidiEvent:
        return cls(delta_time, MidiEventType.NOTE_OFF, channel, note, velocity)

    @classmethod
    def controller(cls, delta_time: int, number: int, value: int, channel: int = 0) -> MidiEvent:
        return cls(delta_time, MidiEventType.CONTROLLER, channel, number, value)

    @classmethod
    def program_change(cls, delta_time: int, program: int, channel: int = 0) -> MidiEvent:
        return cls(delta_time, MidiEventType.PROGRAM_CHANGE, channel, program)

    @classmethod
    def set_tempo(cls, delta_time: int, microseconds_per_quarter: int) -> MidiEvent:
        return cls(
            delta_time,
            MidiEventType.META,
            meta_type=META_SET_TEMPO,
            meta_data=microseconds_per_quarter.to_bytes(3, "big"),
        )


@dataclass
class MidiTrack:
    """An ordered list of events for one track chunk."""

    events: list[MidiEvent] = field(default_factory=list)


def encode_vlq(value: int) -> bytes:
    """
    Encode a variable-length quantity.

    7 bits per byte, most significant group first, high bit set on every
    byte except the last.
    """
    if not 0 <= value <= MAX_VLQ:
        raise ValueError(f"VLQ value must be 0-{MAX_VLQ}, got {value}")
    out = [value & 0x7F]
    value >>= 7
    while value:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    return bytes(reversed(out))


def _write_track(buf: bytearray, track: MidiTrack) -> None:
    buf += b"MTrk"

    # Length placeholder, patched once the body is written
    length_pos = len(buf)
    buf += b"\x00\x00\x00\x00"
    body_start = len(buf)

    running_status: int | None = None
    for event in track.events:
        buf += encode_vlq(event.delta_time)

        if event.type == MidiEventType.META:
            running_status = None
            buf.append(0xFF)
            buf.append(event.meta_type or 0)
            buf += encode_vlq(len(event.meta_data))
            buf += event.meta_data
            continue

        status = event.status
        if status != running_status:
            buf.append(status)
            running_status = status
        if event.param1 is not None:
            buf.append(event.param1)
        if event.param2 is not None:
            buf.append(event.param2)

    buf += encode_vlq(0)
    buf += bytes((0xFF, META_END_OF_TRACK, 0x00))

    struct.pack_into(">I", buf, length_pos, len(buf) - body_start)


def write_midi_file(
    tracks: Sequence[MidiTrack] | Sequence[Sequence[MidiEvent]],
    ticks_per_quarter: int = TICKS_PER_QUARTER,
) -> bytes:
    """
    Serialize tracks to Standard MIDI File bytes.

    Args:
        tracks: MidiTrack objects, or plain event lists (one per track)
        ticks_per_quarter: Resolution (default 480)

    Returns:
        The complete file: format 0 for one track, format 1 otherwise
    """
    normalized = [t if isinstance(t, MidiTrack) else MidiTrack(list(t)) for t in tracks]

    buf = bytearray()
    buf += b"MThd"
    fmt = 1 if len(normalized) > 1 else 0
    buf += struct.pack(">IHHH", 6, fmt, len(normalized), ticks_per_quarter)

    for track in normalized:
        _write_track(buf, track)

    return bytes(buf)


def to_mido(data: bytes) -> MidiFile:
    """
    Load written MIDI bytes as a mido MidiFile.

    Useful for saving to disk or inspecting decoded messages.
    """
    return MidiFile(file=io.BytesIO(data))


def used_programs(events: Iterable[MidiEvent]) -> set[int]:
    """Program numbers a player must load (always includes 0)."""
    programs = {0}
    for event in events:
        if event.type == MidiEventType.PROGRAM_CHANGE and event.param1 is not None:
            programs.add(event.param1)
    return programs


def velocity_percent_to_midi(level: int) -> int:
    """Convert a 0-100 velocity to the 0-127 MIDI range (rounded down)."""
    level = max(0, min(100, level))
    return level * 127 // 100
