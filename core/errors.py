# core/errors.py
from __future__ import annotations
from typing import Optional


class BridgeError(Exception):
    """Base class for every error raised by the bridge."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BootstrapError(BridgeError):
    """A startup step failed; the process must exit before dispatching anything."""

    def __init__(self, step: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.step = step
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.step}] {self.message}"


class ScriptLoadError(BridgeError):
    """Script could not be compiled or its top level raised."""

    def __init__(self, message: str, phase: str = "compile"):
        super().__init__(message)
        self.phase = phase  # "compile" | "exec"


class CapabilityError(BridgeError):
    pass


class HardwareUnavailable(BridgeError):
    """A device node or output backend could not be opened."""

    def __init__(self, resource: str, message: str):
        super().__init__(message)
        self.resource = resource


class BusError(BridgeError):
    pass


class BusClosedError(BusError):
    pass
