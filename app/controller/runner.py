from __future__ import annotations
from typing import List, Optional
import structlog

from app.controller.dispatcher import DispatchLoop
from app.controller.event_bus import EventBus
from core.hooks.midi_listener import MidiListener
from core.script.host import InterpreterHost

log = structlog.get_logger()


class BridgeRuntime:
    """Starts/stops the MIDI listeners and the dispatch loop built by bootstrap."""
    def __init__(
        self,
        host: InterpreterHost,
        bus: EventBus,
        dispatcher: DispatchLoop,
        listeners: List[MidiListener],
    ):
        self.host = host
        self.bus = bus
        self.dispatcher = dispatcher
        self.listeners = listeners

    def start(self) -> None:
        # consumer before producers
        self.dispatcher.start()
        try:
            for lis in self.listeners:
                lis.start()
        except Exception:
            self.stop()
            raise
        log.info("runtime.start", ports=[lis.port_name for lis in self.listeners])

    def stop(self) -> None:
        for lis in self.listeners:
            try:
                lis.stop()
            except Exception as e:
                log.warning("runtime.listener.stop.error", port=lis.port_name, err=str(e))
        log.info("runtime.stop")

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """
        Block until dispatch terminates. Returns the process exit code
        (0 clean, 1 after a fatal handler error), or None on timeout.
        """
        if not self.dispatcher.join(timeout):
            return None
        if self.dispatcher.error is not None:
            return 1
        return 0
