from __future__ import annotations
import threading
from enum import Enum, auto
from typing import Any, Callable, Optional
import structlog

from app.config import HandlerErrorPolicy
from app.controller.event_bus import CLOSED, Consumer
from core.midi.messages import BaseMessage
from core.midi.translate import translate
from core.script.host import InterpreterHost

log = structlog.get_logger()


class DispatchState(Enum):
    WAITING = auto()
    TRANSLATING = auto()
    INVOKING = auto()
    TERMINATED = auto()


class DispatchLoop:
    """
    Single consumer of the bus. Translates each message and calls the
    script handler while holding the interpreter for the whole call, so
    handler invocations never overlap and follow drain order.
    """
    def __init__(
        self,
        consumer: Consumer,
        host: InterpreterHost,
        handler_name: str = "on_midi_recv",
        error_policy: HandlerErrorPolicy = HandlerErrorPolicy.LOG,
        on_event: Optional[Callable[[BaseMessage, Optional[dict]], None]] = None,
    ):
        self.consumer = consumer
        self.host = host
        self.handler_name = handler_name
        self.error_policy = error_policy
        self._on_event = on_event

        self.state = DispatchState.WAITING
        self.delivered = 0
        self.dropped = 0
        self.failed = 0
        self.error: Optional[BaseException] = None
        self._thr: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._thr = threading.Thread(target=self.run, name="dispatch", daemon=True)
        self._thr.start()
        log.info("dispatch.start", handler=self.handler_name)

    def join(self, timeout: Optional[float] = None) -> bool:
        """True once the loop has terminated."""
        if self._thr:
            self._thr.join(timeout)
            return not self._thr.is_alive()
        return self.state is DispatchState.TERMINATED

    def run(self) -> None:
        while True:
            self.state = DispatchState.WAITING
            msg = self.consumer.pop()
            if msg is CLOSED:
                break
            self.dispatch(msg)
            if self.error is not None:
                break
        self.state = DispatchState.TERMINATED
        log.info("dispatch.stop", delivered=self.delivered, dropped=self.dropped, failed=self.failed)

    def dispatch(self, msg: BaseMessage) -> bool:
        """Handle one message. Returns True if the script handler was called successfully."""
        self.state = DispatchState.TRANSLATING
        record = translate(msg)
        if record is None:
            self.dropped += 1
            log.debug("dispatch.drop", reason="untranslatable", message=repr(msg))
            self._notify(msg, None)
            return False

        self.state = DispatchState.INVOKING
        try:
            called = self.host.with_exclusive_access(lambda lua: self._invoke(lua, record))
        except Exception as e:
            self.failed += 1
            if self.error_policy is HandlerErrorPolicy.FATAL:
                self.error = e
                log.error("dispatch.handler.fatal", handler=self.handler_name, err=str(e), event=record["event"])
            else:
                log.warning("dispatch.handler.error", handler=self.handler_name, err=str(e), event=record["event"])
            self._notify(msg, record)
            return False

        if not called:
            self.dropped += 1
            log.debug("dispatch.drop", reason="no_handler", event=record["event"])
        else:
            self.delivered += 1
        self._notify(msg, record)
        return called

    def _invoke(self, lua: Any, record: dict) -> bool:
        handler = self.host.lookup(self.handler_name)
        if handler is None:
            return False
        handler(self.host.table(record))
        return True

    def _notify(self, msg: BaseMessage, record: Optional[dict]) -> None:
        if not self._on_event:
            return
        try:
            self._on_event(msg, record)
        except Exception as e:
            log.warning("dispatch.on_event.error", err=str(e))
