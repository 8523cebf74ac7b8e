from __future__ import annotations
import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Mapping, Optional


class HandlerErrorPolicy(Enum):
    LOG = "log"        # log and keep dispatching
    FATAL = "fatal"    # stop dispatching, exit 1


_TRUE = {"1", "true", "yes", "on"}


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUE


@dataclass(frozen=True)
class BridgeConfig:
    # devices
    uinput_path: str = "/dev/uinput"
    gamepad_name: str = "padscript virtual gamepad"
    midi_port: Optional[str] = None       # None -> script selection, else first input

    # script ABI
    init_hook: str = "on_script_init"
    handler_name: str = "on_midi_recv"
    sandbox: bool = True

    # runtime
    handler_errors: HandlerErrorPolicy = HandlerErrorPolicy.LOG

    # logging
    debug: bool = False
    json_logs: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BridgeConfig":
        env = os.environ if environ is None else environ
        base = cls()
        policy = env.get("PADSCRIPT_HANDLER_ERRORS", base.handler_errors.value).strip().lower()
        try:
            handler_errors = HandlerErrorPolicy(policy)
        except ValueError:
            handler_errors = base.handler_errors
        return replace(
            base,
            uinput_path=env.get("PADSCRIPT_UINPUT_PATH") or base.uinput_path,
            gamepad_name=env.get("PADSCRIPT_GAMEPAD_NAME") or base.gamepad_name,
            midi_port=env.get("PADSCRIPT_MIDI_PORT") or base.midi_port,
            sandbox=_flag(env.get("PADSCRIPT_SANDBOX"), base.sandbox),
            handler_errors=handler_errors,
            debug=_flag(env.get("PADSCRIPT_DEBUG"), base.debug),
            json_logs=_flag(env.get("PADSCRIPT_LOG_JSON"), base.json_logs),
        )

    def with_overrides(self, **changes) -> "BridgeConfig":
        """Apply CLI overrides; None values leave the current setting alone."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
