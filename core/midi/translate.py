from __future__ import annotations
from typing import Any, Callable, Dict, Optional

from .messages import (
    BaseMessage, channel_to_num,
    NoteOn, NoteOff, ControlChange, ProgramChange, PitchBend,
)

Record = Dict[str, Any]


def _note(event: str) -> Callable[[Any], Record]:
    def build(m) -> Record:
        return {
            "event": event,
            "channel": channel_to_num(m.channel),
            "key": m.key,
            "vel": m.vel,
            "is_note": True,
        }
    return build


def _control_change(m: ControlChange) -> Record:
    return {
        "event": "control_change",
        "channel": channel_to_num(m.channel),
        "control": m.control,
        "value": m.value,
    }


def _program_change(m: ProgramChange) -> Record:
    return {
        "event": "program_change",
        "channel": channel_to_num(m.channel),
        "program": m.program,
    }


def pitch_bend_value(lsb: int, msb: int) -> int:
    # Full byte shift, not the 7-bit MIDI layout.
    return ((msb & 0xFF) << 8) | (lsb & 0xFF)


def _pitch_bend(m: PitchBend) -> Record:
    return {
        "event": "pitch_bend",
        "channel": channel_to_num(m.channel),
        "value": pitch_bend_value(m.lsb, m.msb),
    }


# Variants missing from this table are never forwarded to scripts.
TRANSLATIONS: Dict[type, Callable[[Any], Record]] = {
    NoteOn: _note("note_on"),
    NoteOff: _note("note_off"),
    ControlChange: _control_change,
    ProgramChange: _program_change,
    PitchBend: _pitch_bend,
}


def translate(message: BaseMessage) -> Optional[Record]:
    """Map a message to the record handed to script handlers, or None to drop it."""
    build = TRANSLATIONS.get(type(message))
    if build is None:
        return None
    return build(message)
