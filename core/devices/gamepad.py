# core/devices/gamepad.py
from __future__ import annotations
from pathlib import Path
from typing import Dict, Tuple
import structlog
from evdev import UInput, AbsInfo, ecodes
from evdev.uinput import UInputError

from core.errors import HardwareUnavailable

log = structlog.get_logger()

BUTTONS: Dict[str, int] = {
    "a": ecodes.BTN_A,
    "b": ecodes.BTN_B,
    "x": ecodes.BTN_X,
    "y": ecodes.BTN_Y,
    "tl": ecodes.BTN_TL,
    "tr": ecodes.BTN_TR,
    "tl2": ecodes.BTN_TL2,
    "tr2": ecodes.BTN_TR2,
    "select": ecodes.BTN_SELECT,
    "start": ecodes.BTN_START,
    "mode": ecodes.BTN_MODE,
    "thumbl": ecodes.BTN_THUMBL,
    "thumbr": ecodes.BTN_THUMBR,
    "dpad_up": ecodes.BTN_DPAD_UP,
    "dpad_down": ecodes.BTN_DPAD_DOWN,
    "dpad_left": ecodes.BTN_DPAD_LEFT,
    "dpad_right": ecodes.BTN_DPAD_RIGHT,
}

# name -> (code, min, max)
AXES: Dict[str, Tuple[int, int, int]] = {
    "x": (ecodes.ABS_X, -32768, 32767),
    "y": (ecodes.ABS_Y, -32768, 32767),
    "rx": (ecodes.ABS_RX, -32768, 32767),
    "ry": (ecodes.ABS_RY, -32768, 32767),
    "z": (ecodes.ABS_Z, 0, 255),        # left trigger
    "rz": (ecodes.ABS_RZ, 0, 255),      # right trigger
    "hat0x": (ecodes.ABS_HAT0X, -1, 1),
    "hat0y": (ecodes.ABS_HAT0Y, -1, 1),
}

DEFAULT_NAME = "padscript virtual gamepad"


def device_capabilities() -> Dict[int, list]:
    return {
        ecodes.EV_KEY: list(BUTTONS.values()),
        ecodes.EV_ABS: [
            (code, AbsInfo(value=0, min=lo, max=hi, fuzz=0, flat=0, resolution=0))
            for code, lo, hi in AXES.values()
        ],
    }


def open_virtual_gamepad(uinput_path: str = "/dev/uinput", name: str = DEFAULT_NAME) -> UInput:
    """Create the virtual gamepad. Raises HardwareUnavailable when uinput can't be used."""
    node = Path(uinput_path)
    if not node.exists():
        raise HardwareUnavailable(str(node), f"Could not find {node}. Is uinput installed?")
    try:
        dev = UInput(
            events=device_capabilities(),
            name=name,
            bustype=ecodes.BUS_USB,
            devnode=str(node),
        )
    except (OSError, UInputError) as e:
        raise HardwareUnavailable(str(node), f"Could not open {node}: {e}") from e
    log.debug("uinput.opened", devnode=str(node), name=name)
    return dev
