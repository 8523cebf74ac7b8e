from __future__ import annotations
import argparse, sys
from pathlib import Path


class _Stub:
    """Accepts any output call; used to run a script's top level without devices."""
    def write(self, *a): pass
    def syn(self): pass


def check_script(path: str, init_hook: str = "on_script_init", handler: str = "on_midi_recv"):
    """Compile + run the top level against stub devices. Returns (ok, messages)."""
    from core.capabilities.midi import PortSelection
    from core.capabilities.registry import register_all
    from core.errors import CapabilityError, ScriptLoadError
    from core.script.host import InterpreterHost

    p = Path(path)
    if not p.is_file():
        return False, [f"no such script: {path}"]
    host = InterpreterHost()
    try:
        register_all(host, {
            "midi": PortSelection(lambda: []),
            "gamepad": _Stub(),
            "keyboard": None,
            "misc": p.name,
        })
        host.load_script(p.read_text(encoding="utf-8"), name=p.name)
    except (CapabilityError, ScriptLoadError) as e:
        return False, [str(e)]

    notes = []
    ok = True
    if host.lookup(init_hook) is None:
        ok = False
        notes.append(f"missing required {init_hook}()")
    if host.lookup(handler) is None:
        notes.append(f"no {handler}(event): MIDI input will be ignored")
    return ok, notes


def main():
    ap = argparse.ArgumentParser(prog="padscript-cli", description="padscript tools")
    sub = ap.add_subparsers(dest="cmd", required=True)

    sub.add_parser("ports", help="List MIDI input ports")

    p_check = sub.add_parser("check", help="Compile a script and check its hooks")
    p_check.add_argument("script")

    p_run = sub.add_parser("run", help="Run a script (same as main.py)")
    p_run.add_argument("rest", nargs=argparse.REMAINDER)

    args = ap.parse_args()

    if args.cmd == "ports":
        from core.hooks.midi_listener import list_inputs
        names = list_inputs()
        if not names:
            print("No MIDI input ports.")
            sys.exit(1)
        for i, n in enumerate(names):
            print(f"  [{i}] {n}")
        return

    if args.cmd == "check":
        ok, notes = check_script(args.script)
        for n in notes:
            print(" -", n)
        print("OK" if ok else "FAILED")
        sys.exit(0 if ok else 1)

    if args.cmd == "run":
        from main import main as run_main
        sys.exit(run_main(args.rest))

if __name__ == "__main__":
    main()
