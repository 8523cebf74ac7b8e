# core/devices/keyboard.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional
import structlog

log = structlog.get_logger()


@dataclass(frozen=True)
class KeyboardOutput:
    """pynput controller plus its Key namespace (special keys by name)."""
    controller: Any
    keys: Any


def open_keyboard_output() -> Optional[KeyboardOutput]:
    """
    Build a pynput keyboard controller. Returns None when no backend is usable
    (e.g. headless session without X/uinput access); keyboard output is optional.
    """
    try:
        # pynput picks its backend at import time and fails without a display
        from pynput import keyboard
        ctrl = keyboard.Controller()
    except Exception as e:
        log.warning("keyboard.unavailable", err=str(e))
        return None
    log.debug("keyboard.opened")
    return KeyboardOutput(controller=ctrl, keys=keyboard.Key)
