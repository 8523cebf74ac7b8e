# core/capabilities/misc.py
from __future__ import annotations
import time
from typing import Optional
import structlog
import pyperclip

log = structlog.get_logger()


class MiscApi:
    """`misc` namespace: timing, logging and clipboard helpers."""
    name = "misc"

    def register(self, host, context: Optional[str]) -> None:
        script = context or "script"
        t0 = time.perf_counter()
        slog = log.bind(script=script)

        def sleep(ms):
            time.sleep(max(0.0, float(ms)) / 1000.0)

        def millis():
            return int((time.perf_counter() - t0) * 1000)

        def info(message):
            slog.info("script.log", msg=str(message))

        def warn(message):
            slog.warning("script.warn", msg=str(message))

        def clipboard_get():
            return pyperclip.paste()

        def clipboard_set(text):
            pyperclip.copy(str(text))

        host.install_namespace(self.name, {
            "sleep": sleep,
            "millis": millis,
            "log": info,
            "warn": warn,
            "clipboard_get": clipboard_get,
            "clipboard_set": clipboard_set,
        })
