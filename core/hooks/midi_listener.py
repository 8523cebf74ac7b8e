# core/hooks/midi_listener.py
from __future__ import annotations
from typing import Any, Callable, List, Optional
import threading
import mido
import structlog

from core.errors import BusClosedError, HardwareUnavailable
from core.midi.decode import decode_mido

log = structlog.get_logger()


def list_inputs() -> List[str]:
    return list(mido.get_input_names())


class MidiListener:
    """
    mido input port in callback mode pushing decoded messages onto the bus.
    The backend (rtmidi) calls back on its own thread; that thread is the producer.
    """
    def __init__(
        self,
        port_name: str,
        producer,
        open_input: Callable[..., Any] = mido.open_input,
    ):
        self.port_name = port_name
        self.producer = producer
        self._open_input = open_input
        self._port: Optional[Any] = None
        self._lock = threading.Lock()
        self.received = 0

    @property
    def running(self) -> bool:
        return self._port is not None

    def start(self) -> None:
        with self._lock:
            if self._port is not None:
                return
            try:
                self._port = self._open_input(self.port_name, callback=self._on_message)
            except Exception as e:  # backend errors vary (IOError, rtmidi.SystemError)
                raise HardwareUnavailable(self.port_name, f"Could not open MIDI input {self.port_name!r}: {e}") from e
        log.info("midi.start", port=self.port_name)

    def stop(self) -> None:
        with self._lock:
            port, self._port = self._port, None
        if port is not None:
            port.close()
        # dropping the handle is what lets the bus close
        self.producer.close()
        log.info("midi.stop", port=self.port_name, received=self.received)

    def _on_message(self, msg) -> None:
        self.received += 1
        try:
            self.producer.push(decode_mido(msg))
        except BusClosedError:
            log.debug("midi.push.closed", port=self.port_name)
