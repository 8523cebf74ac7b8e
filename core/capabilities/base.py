"""
Capability contract.

A capability installs one namespace of native functions into the script's
globals. It is registered exactly once during bootstrap with a context value
of its own type (None for stateless modules, a device handle for stateful
ones); the functions it installs close over whatever they need, so nothing
of the capability object itself is consulted afterwards.
"""
from __future__ import annotations
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Capability(Protocol):
    """Interface every capability module implements."""

    name: str

    def register(self, host: Any, context: Any) -> None:
        """
        Install this capability's namespace into `host`.

        Args:
            host: the InterpreterHost being bootstrapped.
            context: module-specific value acquired before the host was built.

        Raises:
            CapabilityError: the namespace could not be installed.
        """
        ...
