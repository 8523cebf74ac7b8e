# app/bootstrap.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
import structlog
from blake3 import blake3

from app.config import BridgeConfig
from app.controller.dispatcher import DispatchLoop
from app.controller.event_bus import EventBus
from app.controller.runner import BridgeRuntime
from core.capabilities.midi import PortSelection
from core.capabilities.registry import register_all
from core.devices.gamepad import open_virtual_gamepad
from core.devices.keyboard import open_keyboard_output
from core.errors import BootstrapError, CapabilityError, HardwareUnavailable, ScriptLoadError
from core.hooks.midi_listener import MidiListener, list_inputs
from core.script.host import InterpreterHost

log = structlog.get_logger()


class Bootstrap:
    """
    Ordered startup: script -> hardware -> interpreter -> capabilities ->
    top level -> init hook. Every failure raises BootstrapError before the
    bus exists, so nothing is drained and no listener runs on a broken setup.
    Device openers are injectable for tests.
    """
    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        open_gamepad: Callable[[str, str], Any] = open_virtual_gamepad,
        open_keyboard: Callable[[], Any] = open_keyboard_output,
        list_ports: Callable[[], List[str]] = list_inputs,
        listener_factory: Callable[[str, Any], Any] = MidiListener,
    ):
        self.config = config or BridgeConfig()
        self._open_gamepad = open_gamepad
        self._open_keyboard = open_keyboard
        self._list_ports = list_ports
        self._listener_factory = listener_factory
        self.steps: List[str] = []

    def run(self, script_path) -> BridgeRuntime:
        cfg = self.config
        path = Path(script_path)

        # 1. script source
        source = self._read_script(path)
        self.steps.append("script")

        # 2. hardware contexts
        contexts = self._acquire_contexts(path)
        self.steps.append("hardware")

        # 3. interpreter
        host = InterpreterHost(sandbox=cfg.sandbox)
        self.steps.append("interpreter")

        # 4. capabilities
        try:
            register_all(host, contexts)
        except CapabilityError as e:
            raise BootstrapError("capabilities", str(e), e) from e
        self.steps.append("capabilities")

        # 5. top level
        log.debug("bootstrap.exec", script=str(path))
        try:
            host.load_script(source, name=path.name)
        except ScriptLoadError as e:
            raise BootstrapError("script_exec", f"{e.phase} error: {e.message}", e) from e
        self.steps.append("exec")

        # 6. init hook
        self._call_init(host)
        self.steps.append("init")

        return self._build_runtime(host, contexts["midi"])

    def _read_script(self, path: Path) -> str:
        if not path.is_file():
            raise BootstrapError("script", f"Script at path {str(path)!r} does not exist, aborting.")
        try:
            raw = path.read_bytes()
            source = raw.decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise BootstrapError("script", f"Could not read script {str(path)!r}: {e}", e) from e
        log.info("script.loaded", path=str(path), size=len(raw), digest=blake3(raw).hexdigest()[:16])
        return source

    def _acquire_contexts(self, path: Path) -> Dict[str, Any]:
        cfg = self.config
        try:
            gamepad = self._open_gamepad(cfg.uinput_path, cfg.gamepad_name)
        except HardwareUnavailable as e:
            raise BootstrapError("hardware", e.message, e) from e
        log.debug("bootstrap.gamepad", devnode=cfg.uinput_path)

        return {
            "midi": PortSelection(self._list_ports),
            "gamepad": gamepad,
            "keyboard": self._open_keyboard(),
            "misc": path.name,
        }

    def _call_init(self, host: InterpreterHost) -> None:
        hook = self.config.init_hook
        if host.lookup(hook) is None:
            raise BootstrapError("init", f"Script does not define {hook}()")
        log.debug("bootstrap.init", hook=hook)
        try:
            host.call(hook)
        except Exception as e:
            raise BootstrapError("init", f"{hook}() failed: {e}", e) from e

    def _resolve_ports(self, selection: PortSelection) -> List[str]:
        chosen = selection.selected()
        if chosen:
            return chosen
        try:
            if self.config.midi_port:
                return [selection.resolve(self.config.midi_port)]
            available = selection.list_inputs()
        except ValueError as e:
            raise BootstrapError("midi", str(e), e) from e
        except Exception as e:
            raise BootstrapError("midi", f"Could not list MIDI inputs: {e}", e) from e
        if not available:
            raise BootstrapError("midi", "No MIDI input ports available")
        return [available[0]]

    def _build_runtime(self, host: InterpreterHost, selection: PortSelection) -> BridgeRuntime:
        cfg = self.config
        ports = self._resolve_ports(selection)

        bus = EventBus()
        listeners = []
        first = bus.producer()
        for i, port in enumerate(ports):
            producer = first if i == 0 else first.clone()
            listeners.append(self._listener_factory(port, producer))

        dispatcher = DispatchLoop(
            bus.consumer(),
            host,
            handler_name=cfg.handler_name,
            error_policy=cfg.handler_errors,
        )
        log.info("bootstrap.ready", ports=ports, handler=cfg.handler_name)
        return BridgeRuntime(host, bus, dispatcher, listeners)
