from __future__ import annotations
from typing import Any, Optional

from core.devices.keyboard import KeyboardOutput


class KeyboardApi:
    """`keyboard` namespace backed by a pynput controller (optional device)."""
    name = "keyboard"

    def register(self, host, context: Optional[KeyboardOutput]) -> None:
        out = context

        def _ctrl():
            if out is None:
                raise RuntimeError("keyboard output is unavailable in this session")
            return out.controller

        def _key(name: Any):
            s = str(name)
            if len(s) == 1:
                return s
            special = out.keys.__members__.get(s.lower())
            if special is None:
                raise ValueError(f"unknown key {name!r}")
            return special

        def press(name):
            _ctrl().press(_key(name))

        def release(name):
            _ctrl().release(_key(name))

        def tap(name):
            ctrl = _ctrl()
            k = _key(name)
            ctrl.press(k)
            ctrl.release(k)

        def type_text(text):
            _ctrl().type(str(text))

        def available():
            return out is not None

        host.install_namespace(self.name, {
            "press": press,
            "release": release,
            "tap": tap,
            "type": type_text,
            "available": available,
        })
