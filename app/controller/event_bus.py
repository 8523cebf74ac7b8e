# app/controller/event_bus.py
from __future__ import annotations
import threading
from queue import Queue, Empty
from typing import Iterator, Optional, Union
import structlog

from core.errors import BusError, BusClosedError
from core.midi.messages import BaseMessage

log = structlog.get_logger()


class _Closed:
    """Terminal signal returned by Consumer.pop once every producer is gone."""
    _instance: Optional["_Closed"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CLOSED"

    def __bool__(self) -> bool:
        return False


CLOSED = _Closed()


class EventBus:
    """
    Unbounded FIFO of decoded messages: many producer handles, one consumer.
    - push never blocks; there is no backpressure, a runaway producer grows memory.
    - the bus closes when the last open producer handle is closed.
    - construct one per process and hand the ends to threads at spawn time.
    """
    def __init__(self):
        self._queue: Queue = Queue()  # maxsize=0 -> unbounded
        self._lock = threading.Lock()
        self._open_producers = 0
        self._closed = False
        self._consumer: Optional[Consumer] = None

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def open_producers(self) -> int:
        with self._lock:
            return self._open_producers

    def producer(self) -> "Producer":
        with self._lock:
            if self._closed:
                raise BusClosedError("bus already closed")
            self._open_producers += 1
        return Producer(self)

    def consumer(self) -> "Consumer":
        with self._lock:
            if self._consumer is not None:
                raise BusError("bus already has a consumer")
            self._consumer = Consumer(self._queue)
            return self._consumer

    def _release(self) -> None:
        with self._lock:
            self._open_producers -= 1
            if self._open_producers > 0 or self._closed:
                return
            self._closed = True
        # lands behind everything already queued, so the consumer drains first
        self._queue.put_nowait(CLOSED)
        log.debug("bus.closed")


class Producer:
    """Shared producer end. Clone for every extra owner; close when done."""
    def __init__(self, bus: EventBus):
        self._bus = bus
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, message: BaseMessage) -> None:
        with self._lock:
            if self._closed:
                raise BusClosedError("push on a closed producer handle")
            self._bus._queue.put_nowait(message)

    def clone(self) -> "Producer":
        with self._lock:
            if self._closed:
                raise BusClosedError("clone of a closed producer handle")
            return self._bus.producer()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._bus._release()

    def __enter__(self) -> "Producer":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class Consumer:
    """The single draining end. Only the dispatch thread should hold it."""
    def __init__(self, q: Queue):
        self._q = q
        self._lock = threading.Lock()
        self._done = False

    def pop(self, timeout: Optional[float] = None) -> Union[BaseMessage, _Closed, None]:
        """
        Block until a message arrives or the bus closes (-> CLOSED).
        With a timeout, returns None when nothing arrived in time.
        """
        with self._lock:
            if self._done:
                return CLOSED
            try:
                item = self._q.get(timeout=timeout)
            except Empty:
                return None
            if item is CLOSED:
                self._done = True
            return item

    def __iter__(self) -> Iterator[BaseMessage]:
        while True:
            item = self.pop()
            if item is CLOSED:
                return
            yield item
