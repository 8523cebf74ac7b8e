from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Tuple, Union

# --- core enums ---
class MessageKind(Enum):
    """Top-level classifier for decoded MIDI messages."""
    NOTE_ON = auto()
    NOTE_OFF = auto()
    POLY_PRESSURE = auto()
    CONTROL_CHANGE = auto()
    PROGRAM_CHANGE = auto()
    CHANNEL_PRESSURE = auto()
    PITCH_BEND = auto()
    SYSEX = auto()
    INVALID = auto()

class Channel(Enum):
    """The 16 channel encodings carried in the low nibble of a status byte."""
    CH1 = 0x0
    CH2 = 0x1
    CH3 = 0x2
    CH4 = 0x3
    CH5 = 0x4
    CH6 = 0x5
    CH7 = 0x6
    CH8 = 0x7
    CH9 = 0x8
    CH10 = 0x9
    CH11 = 0xA
    CH12 = 0xB
    CH13 = 0xC
    CH14 = 0xD
    CH15 = 0xE
    CH16 = 0xF

    @classmethod
    def from_status(cls, status: int) -> "Channel":
        return cls(status & 0x0F)

def channel_to_num(channel: Channel) -> int:
    """Zero-based channel number, 0..15."""
    return channel.value

# --- base message ---
@dataclass(frozen=True)
class BaseMessage:
    """Common shape for all messages. Immutable, compared by content only."""
    kind: MessageKind = field(init=False, repr=False)    # auto-set by subclasses

# --- channel voice messages ---
@dataclass(frozen=True)
class NoteOn(BaseMessage):
    channel: Channel = Channel.CH1
    key: int = 0
    vel: int = 0

    def __post_init__(self):
        object.__setattr__(self, "kind", MessageKind.NOTE_ON)

@dataclass(frozen=True)
class NoteOff(BaseMessage):
    channel: Channel = Channel.CH1
    key: int = 0
    vel: int = 0

    def __post_init__(self):
        object.__setattr__(self, "kind", MessageKind.NOTE_OFF)

@dataclass(frozen=True)
class PolyPressure(BaseMessage):
    """Per-key aftertouch."""
    channel: Channel = Channel.CH1
    key: int = 0
    value: int = 0

    def __post_init__(self):
        object.__setattr__(self, "kind", MessageKind.POLY_PRESSURE)

@dataclass(frozen=True)
class ControlChange(BaseMessage):
    channel: Channel = Channel.CH1
    control: int = 0
    value: int = 0

    def __post_init__(self):
        object.__setattr__(self, "kind", MessageKind.CONTROL_CHANGE)

@dataclass(frozen=True)
class ProgramChange(BaseMessage):
    channel: Channel = Channel.CH1
    program: int = 0

    def __post_init__(self):
        object.__setattr__(self, "kind", MessageKind.PROGRAM_CHANGE)

@dataclass(frozen=True)
class ChannelPressure(BaseMessage):
    channel: Channel = Channel.CH1
    value: int = 0

    def __post_init__(self):
        object.__setattr__(self, "kind", MessageKind.CHANNEL_PRESSURE)

@dataclass(frozen=True)
class PitchBend(BaseMessage):
    """Bend amount as the two raw data bytes, least significant first on the wire."""
    channel: Channel = Channel.CH1
    lsb: int = 0
    msb: int = 0

    def __post_init__(self):
        object.__setattr__(self, "kind", MessageKind.PITCH_BEND)

# --- system / sentinel ---
@dataclass(frozen=True)
class SysEx(BaseMessage):
    data: Tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "kind", MessageKind.SYSEX)

@dataclass(frozen=True)
class Invalid(BaseMessage):
    """Received but not decodable. Keeps the raw bytes for diagnostics."""
    data: Tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "kind", MessageKind.INVALID)


Message = Union[
    NoteOn, NoteOff, PolyPressure, ControlChange, ProgramChange,
    ChannelPressure, PitchBend, SysEx, Invalid,
]
