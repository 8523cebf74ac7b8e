# core/capabilities/midi.py
from __future__ import annotations
import re
import threading
from typing import Callable, List, Optional
import structlog

from core.errors import CapabilityError

log = structlog.get_logger()

NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")
_NOTE_RE = re.compile(r"^([A-Ga-g])([#b]?)(-?\d+)$")
_OFFSETS = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}


def note_name(key: int) -> str:
    """60 -> 'C4' (middle C is C4)."""
    key = int(key)
    if not 0 <= key <= 127:
        raise ValueError(f"note {key} out of range 0..127")
    return f"{NOTE_NAMES[key % 12]}{key // 12 - 1}"


def note_number(name: str) -> int:
    m = _NOTE_RE.match(str(name).strip())
    if not m:
        raise ValueError(f"not a note name: {name!r}")
    letter, accidental, octave = m.groups()
    key = _OFFSETS[letter.upper()] + (12 * (int(octave) + 1))
    if accidental == "#":
        key += 1
    elif accidental == "b":
        key -= 1
    if not 0 <= key <= 127:
        raise ValueError(f"note {name!r} out of range")
    return key


class PortSelection:
    """
    Input ports the script asked to listen on. Filled by midi.connect() while
    the script initializes; the listeners are only opened after init succeeded.
    """
    def __init__(self, list_inputs: Callable[[], List[str]]):
        self.list_inputs = list_inputs
        self._lock = threading.Lock()
        self._selected: List[str] = []

    def resolve(self, wanted: str) -> str:
        """Exact port name first, then the first port containing `wanted`."""
        names = self.list_inputs()
        if wanted in names:
            return wanted
        for n in names:
            if wanted.lower() in n.lower():
                return n
        raise ValueError(f"no MIDI input matching {wanted!r} (have: {names})")

    def select(self, wanted: str) -> str:
        name = self.resolve(wanted)
        with self._lock:
            if name not in self._selected:
                self._selected.append(name)
        log.info("midi.port.selected", port=name)
        return name

    def selected(self) -> List[str]:
        with self._lock:
            return list(self._selected)


class MidiApi:
    """`midi` namespace: input port query and note helpers."""
    name = "midi"

    def register(self, host, context: Optional[PortSelection]) -> None:
        if context is None:
            raise CapabilityError("midi capability needs a PortSelection")
        ports = context

        def inputs():
            return host.table(ports.list_inputs())

        def connect(name):
            return ports.select(str(name))

        def connected():
            return host.table(ports.selected())

        host.install_namespace(self.name, {
            "inputs": inputs,
            "connect": connect,
            "connected": connected,
            "note_name": note_name,
            "note_number": note_number,
        })
