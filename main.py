# main.py
from __future__ import annotations
import argparse
import sys
from typing import Optional, Sequence
import structlog

from app.bootstrap import Bootstrap
from app.config import BridgeConfig, HandlerErrorPolicy
from app.logging_config import configure_logging
from core.errors import BootstrapError, HardwareUnavailable

__version__ = "0.3.0"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="padscript", description="Run a Lua script against MIDI input")
    ap.add_argument("-s", "--script", required=True, help="Path to the Lua script")
    ap.add_argument("-p", "--port", default=None, help="MIDI input port (name or substring)")
    ap.add_argument("--debug", action="store_true", default=None, help="Debug logging")
    ap.add_argument("--pretty-logs", action="store_true", help="Console log renderer instead of JSON")
    ap.add_argument("--fatal-handler-errors", action="store_true",
                    help="Exit when on_midi_recv raises instead of logging and continuing")
    return ap.parse_args(argv)


def build_config(args: argparse.Namespace) -> BridgeConfig:
    cfg = BridgeConfig.from_env()
    return cfg.with_overrides(
        midi_port=args.port,
        debug=args.debug,
        json_logs=False if args.pretty_logs else None,
        handler_errors=HandlerErrorPolicy.FATAL if args.fatal_handler_errors else None,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    cfg = build_config(args)
    configure_logging(debug=cfg.debug, json=cfg.json_logs)
    log = structlog.get_logger()

    log.info("app.start", version=__version__, script=args.script)
    try:
        runtime = Bootstrap(cfg).run(args.script)
        runtime.start()
    except BootstrapError as e:
        log.error("bootstrap.fatal", step=e.step, err=e.message)
        return 1
    except HardwareUnavailable as e:
        log.error("bootstrap.fatal", step="midi", err=e.message)
        return 1

    try:
        code = runtime.wait()
    except KeyboardInterrupt:
        log.info("app.interrupt")
        runtime.stop()
        code = runtime.wait(timeout=2.0)
    else:
        runtime.stop()
    if code is None:
        # dispatch still inside a handler; not a clean shutdown
        log.error("app.stop.timeout")
        return 1
    log.info("app.stop", code=code)
    return code


if __name__ == "__main__":
    sys.exit(main())
