# tests/test_dispatcher.py
# How to run:
#   pytest -q
#
# What this covers:
#   - Only translatable messages reach on_midi_recv (N valid + M invalid -> N calls)
#   - Absent handler means silent drop, never termination
#   - Handler calls never overlap, and follow per-producer order
#   - Handler errors: logged and skipped by default, fatal when configured
#   - End-to-end: script accumulates records in arrival order

import threading
import time

from app.config import HandlerErrorPolicy
from app.controller.dispatcher import DispatchLoop, DispatchState
from app.controller.event_bus import EventBus
from core.midi.messages import (
    Channel, NoteOn, ControlChange, PitchBend, Invalid, SysEx,
)
from core.script.host import InterpreterHost

COLLECT = """
received = {}
function on_script_init() end
function on_midi_recv(ev)
    table.insert(received, ev)
end
"""


def _loop(script, policy=HandlerErrorPolicy.LOG, setup=None):
    host = InterpreterHost()
    if setup:
        setup(host)
    host.load_script(script, name="test.lua")
    bus = EventBus()
    prod = bus.producer()
    loop = DispatchLoop(bus.consumer(), host, error_policy=policy)
    return host, prod, loop


def _received(host):
    return host.to_python(host.get_global("received")) or []


def test_end_to_end_records_in_order():
    host, prod, loop = _loop(COLLECT)
    prod.push(NoteOn(channel=Channel.CH1, key=60, vel=100))
    prod.push(ControlChange(channel=Channel.CH2, control=7, value=127))
    prod.close()

    loop.run()

    assert loop.state is DispatchState.TERMINATED
    assert _received(host) == [
        {"event": "note_on", "channel": 0, "key": 60, "vel": 100, "is_note": True},
        {"event": "control_change", "channel": 1, "control": 7, "value": 127},
    ]


def test_invalid_messages_never_reach_handler():
    host, prod, loop = _loop(COLLECT)
    valid = [NoteOn(channel=Channel.CH1, key=i, vel=1) for i in range(5)]
    invalid = [Invalid(data=(0xF8,)), SysEx(data=(0xF0, 0xF7)), Invalid()]
    for msg in (valid[0], invalid[0], valid[1], invalid[1], valid[2], valid[3], invalid[2], valid[4]):
        prod.push(msg)
    prod.close()

    loop.run()

    got = _received(host)
    assert len(got) == len(valid)
    assert [r["key"] for r in got] == [0, 1, 2, 3, 4]
    assert loop.delivered == 5
    assert loop.dropped == 3


def test_missing_handler_is_a_silent_drop():
    host, prod, loop = _loop("function on_script_init() end")
    prod.push(NoteOn(key=1, vel=1))
    prod.push(PitchBend(lsb=0x34, msb=0x12))
    prod.close()

    loop.run()

    assert loop.state is DispatchState.TERMINATED
    assert loop.delivered == 0 and loop.dropped == 2
    assert loop.error is None


def test_pitch_bend_value_reaches_script():
    host, prod, loop = _loop(COLLECT)
    prod.push(PitchBend(channel=Channel.CH1, lsb=0x34, msb=0x12))
    prod.close()
    loop.run()
    assert _received(host) == [{"event": "pitch_bend", "channel": 0, "value": 4660}]


def test_handler_error_is_logged_and_dispatch_continues():
    script = """
received = {}
function on_midi_recv(ev)
    if ev.key == 13 then error("unlucky") end
    table.insert(received, ev.key)
end
"""
    host, prod, loop = _loop(script)
    for k in (12, 13, 14):
        prod.push(NoteOn(key=k, vel=1))
    prod.close()

    loop.run()

    assert _received(host) == [12, 14]
    assert loop.failed == 1
    assert loop.error is None


def test_handler_error_can_be_fatal():
    script = """
received = {}
function on_midi_recv(ev)
    if ev.key == 13 then error("unlucky") end
    table.insert(received, ev.key)
end
"""
    host, prod, loop = _loop(script, policy=HandlerErrorPolicy.FATAL)
    for k in (12, 13, 14):
        prod.push(NoteOn(key=k, vel=1))
    prod.close()

    loop.run()

    assert _received(host) == [12]
    assert loop.error is not None
    assert loop.state is DispatchState.TERMINATED


def test_handler_invocations_never_overlap():
    spans = []

    def setup(host):
        def enter():
            spans.append([time.perf_counter(), None])
            time.sleep(0.002)

        def leave():
            spans[-1][1] = time.perf_counter()

        host.install_namespace("guard", {"enter": enter, "leave": leave})

    script = """
order = {}
function on_midi_recv(ev)
    guard.enter()
    table.insert(order, ev.control * 1000 + ev.value)
    guard.leave()
end
"""
    host, root, loop = _loop(script, setup=setup)
    n, per = 3, 20
    handles = [root.clone() for _ in range(n)]
    root.close()
    loop.start()

    def produce(idx, handle):
        with handle:
            for i in range(per):
                handle.push(ControlChange(channel=Channel.CH1, control=idx, value=i))

    threads = [threading.Thread(target=produce, args=(i, h)) for i, h in enumerate(handles)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert loop.join(timeout=10.0)

    assert len(spans) == n * per
    for (s1, e1), (s2, e2) in zip(spans, spans[1:]):
        assert e1 is not None and e1 <= s2

    order = host.to_python(host.get_global("order"))
    for idx in range(n):
        mine = [v % 1000 for v in order if v // 1000 == idx]
        assert mine == list(range(per))


def test_on_event_observer_sees_drops_and_deliveries():
    seen = []
    host = InterpreterHost()
    host.load_script(COLLECT, name="obs.lua")
    bus = EventBus()
    prod = bus.producer()
    loop = DispatchLoop(bus.consumer(), host, on_event=lambda m, r: seen.append(r is not None))
    prod.push(Invalid())
    prod.push(NoteOn(key=1, vel=2))
    prod.close()
    loop.run()
    assert seen == [False, True]
