# tests/test_event_bus.py
# How to run:
#   pytest -q
#
# What this covers:
#   - FIFO order per producer, interleaving across producers
#   - Closing semantics: CLOSED only after every producer handle is gone
#   - Single consumer, push-after-close errors

import threading

import pytest

from app.controller.event_bus import EventBus, CLOSED
from core.errors import BusError, BusClosedError
from core.midi.messages import Channel, NoteOn, ControlChange


def _note(i):
    return NoteOn(channel=Channel.CH1, key=i % 128, vel=i // 128)


def test_fifo_then_closed():
    bus = EventBus()
    prod = bus.producer()
    cons = bus.consumer()
    prod.push(_note(1))
    prod.push(_note(2))
    prod.close()
    assert cons.pop() == _note(1)
    assert cons.pop() == _note(2)
    assert cons.pop() is CLOSED
    assert cons.pop() is CLOSED  # stays closed
    assert bus.closed


def test_bus_stays_open_while_any_clone_is_alive():
    bus = EventBus()
    a = bus.producer()
    b = a.clone()
    cons = bus.consumer()
    assert bus.open_producers == 2
    a.close()
    a.close()  # idempotent
    assert not bus.closed
    b.push(_note(5))
    assert cons.pop(timeout=1.0) == _note(5)
    assert cons.pop(timeout=0.01) is None  # nothing yet, still open
    b.close()
    assert cons.pop(timeout=1.0) is CLOSED


def test_push_on_closed_handle_raises():
    bus = EventBus()
    with bus.producer() as p:
        p.push(_note(0))
    with pytest.raises(BusClosedError):
        p.push(_note(1))
    with pytest.raises(BusClosedError):
        bus.producer()


def test_only_one_consumer():
    bus = EventBus()
    bus.consumer()
    with pytest.raises(BusError):
        bus.consumer()


def test_iterating_consumer_drains_until_closed():
    bus = EventBus()
    p = bus.producer()
    cons = bus.consumer()
    for i in range(10):
        p.push(_note(i))
    p.close()
    assert list(cons) == [_note(i) for i in range(10)]


def test_order_preserved_per_producer_across_threads():
    bus = EventBus()
    root = bus.producer()
    cons = bus.consumer()
    n, per = 4, 500
    handles = [root.clone() for _ in range(n)]
    root.close()

    def produce(idx, handle):
        with handle:
            for i in range(per):
                handle.push(ControlChange(channel=Channel(idx), control=idx, value=i))

    threads = [threading.Thread(target=produce, args=(i, h)) for i, h in enumerate(handles)]
    for t in threads:
        t.start()
    seen = {i: [] for i in range(n)}
    for msg in cons:
        seen[msg.control].append(msg.value)
    for t in threads:
        t.join()

    for i in range(n):
        assert seen[i] == list(range(per))


def test_push_does_not_wait_for_consumer():
    bus = EventBus()
    p = bus.producer()
    bus.consumer()  # never drained
    for i in range(10_000):
        p.push(_note(i))
    p.close()
