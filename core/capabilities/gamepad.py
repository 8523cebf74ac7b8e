# core/capabilities/gamepad.py
from __future__ import annotations
from typing import Any
import structlog
from evdev import ecodes

from core.devices.gamepad import BUTTONS, AXES
from core.errors import CapabilityError

log = structlog.get_logger()


def _button_code(name: Any) -> int:
    code = BUTTONS.get(str(name).lower())
    if code is None:
        raise ValueError(f"unknown gamepad button {name!r}")
    return code


class GamepadApi:
    """`gamepad` namespace: writes straight to the captured uinput device."""
    name = "gamepad"

    def register(self, host, context: Any) -> None:
        if context is None:
            raise CapabilityError("gamepad capability needs a uinput device")
        dev = context

        def emit(etype: int, code: int, value: int) -> None:
            dev.write(etype, code, value)
            dev.syn()

        def button(name, pressed=True):
            emit(ecodes.EV_KEY, _button_code(name), 1 if pressed else 0)

        def press(name):
            button(name, True)

        def release(name):
            button(name, False)

        def axis(name, value):
            spec = AXES.get(str(name).lower())
            if spec is None:
                raise ValueError(f"unknown gamepad axis {name!r}")
            code, lo, hi = spec
            emit(ecodes.EV_ABS, code, max(lo, min(hi, int(value))))

        def buttons():
            return host.table(sorted(BUTTONS))

        def axes():
            return host.table(sorted(AXES))

        host.install_namespace(self.name, {
            "button": button,
            "press": press,
            "release": release,
            "axis": axis,
            "buttons": buttons,
            "axes": axes,
        })
