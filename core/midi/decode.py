from __future__ import annotations
from typing import Any, Callable, Dict, Sequence
import mido

from .messages import (
    Channel, Message,
    NoteOn, NoteOff, PolyPressure, ControlChange, ProgramChange,
    ChannelPressure, PitchBend, SysEx, Invalid,
)


def _pitch_bend(msg: Any) -> Message:
    # keep the two wire bytes; mido's signed `pitch` loses the byte split
    lsb, msb = msg.bytes()[1:3]
    return PitchBend(channel=Channel(msg.channel), lsb=lsb, msb=msb)


# mido message type -> variant
_BY_TYPE: Dict[str, Callable[[Any], Message]] = {
    "note_on": lambda m: NoteOn(channel=Channel(m.channel), key=m.note, vel=m.velocity),
    "note_off": lambda m: NoteOff(channel=Channel(m.channel), key=m.note, vel=m.velocity),
    "polytouch": lambda m: PolyPressure(channel=Channel(m.channel), key=m.note, value=m.value),
    "control_change": lambda m: ControlChange(channel=Channel(m.channel), control=m.control, value=m.value),
    "program_change": lambda m: ProgramChange(channel=Channel(m.channel), program=m.program),
    "aftertouch": lambda m: ChannelPressure(channel=Channel(m.channel), value=m.value),
    "pitchwheel": _pitch_bend,
    "sysex": lambda m: SysEx(data=tuple(m.bytes())),
}


def decode_mido(msg: Any) -> Message:
    """
    Map a mido.Message onto a Message variant. Never raises: message types
    without a variant (clock, start, song position, ...) come back as Invalid
    carrying the wire bytes.
    """
    build = _BY_TYPE.get(getattr(msg, "type", None))
    if build is None:
        try:
            return Invalid(data=tuple(msg.bytes()))
        except (AttributeError, ValueError, TypeError):
            return Invalid()
    return build(msg)


def decode(data: Sequence[int]) -> Message:
    """Decode one complete raw MIDI message (status byte + data bytes) via mido."""
    raw = tuple(int(b) & 0xFF for b in data)
    try:
        msg = mido.Message.from_bytes(list(raw))
    except (ValueError, TypeError):
        return Invalid(data=raw)
    return decode_mido(msg)
