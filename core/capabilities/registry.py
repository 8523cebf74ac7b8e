# core/capabilities/registry.py
from __future__ import annotations
from typing import Any, Mapping, Sequence, Tuple
import structlog

from core.errors import CapabilityError
from .base import Capability
from .midi import MidiApi
from .gamepad import GamepadApi
from .keyboard import KeyboardApi
from .misc import MiscApi

log = structlog.get_logger()

# Registration order is part of the contract; keep this list static.
CAPABILITIES: Tuple[Capability, ...] = (
    MidiApi(),
    GamepadApi(),
    KeyboardApi(),
    MiscApi(),
)


def register_all(
    host: Any,
    contexts: Mapping[str, Any],
    capabilities: Sequence[Capability] = CAPABILITIES,
) -> None:
    """Register every capability once, in order. Any failure raises CapabilityError."""
    seen = set()
    for cap in capabilities:
        if cap.name in seen:
            raise CapabilityError(f"duplicate capability namespace {cap.name!r}")
        seen.add(cap.name)
        try:
            cap.register(host, contexts.get(cap.name))
        except CapabilityError:
            raise
        except Exception as e:
            raise CapabilityError(f"registering {cap.name!r} failed: {e}") from e
        log.debug("capability.registered", name=cap.name)
