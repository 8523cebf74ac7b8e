# tests/test_cli.py
# How to run:
#   pytest -q

import logging
import sys

import main as main_module
from main import main, parse_args, build_config
from app.logging_config import configure_logging
from app.config import HandlerErrorPolicy
from tools.padscript_cli import check_script


def test_main_exits_1_on_missing_script(tmp_path):
    assert main(["--script", str(tmp_path / "missing.lua")]) == 1


def test_cli_flags_override_env(monkeypatch):
    monkeypatch.setenv("PADSCRIPT_MIDI_PORT", "env-port")
    args = parse_args(["-s", "x.lua", "-p", "cli-port", "--fatal-handler-errors", "--pretty-logs"])
    cfg = build_config(args)
    assert cfg.midi_port == "cli-port"
    assert cfg.handler_errors is HandlerErrorPolicy.FATAL
    assert cfg.json_logs is False


def test_check_script(tmp_path):
    good = tmp_path / "good.lua"
    good.write_text("function on_script_init() gamepad.press('a') end\nfunction on_midi_recv(ev) end")
    ok, notes = check_script(str(good))
    assert ok and notes == []

    no_init = tmp_path / "no_init.lua"
    no_init.write_text("x = 1")
    ok, notes = check_script(str(no_init))
    assert not ok
    assert any("on_script_init" in n for n in notes)
    assert any("on_midi_recv" in n for n in notes)

    broken = tmp_path / "broken.lua"
    broken.write_text("function (")
    ok, notes = check_script(str(broken))
    assert not ok


class _StuckRuntime:
    """Interrupted by Ctrl-C, then never finishes within the stop timeout."""

    def __init__(self):
        self.stopped = False
        self.waits = []

    def start(self):
        pass

    def stop(self):
        self.stopped = True

    def wait(self, timeout=None):
        self.waits.append(timeout)
        if timeout is None:
            raise KeyboardInterrupt
        return None


def test_main_exits_1_when_stop_times_out(monkeypatch, tmp_path):
    runtime = _StuckRuntime()

    class FakeBootstrap:
        def __init__(self, cfg):
            pass

        def run(self, script):
            return runtime

    monkeypatch.setattr(main_module, "Bootstrap", FakeBootstrap)
    script = tmp_path / "s.lua"
    script.write_text("function on_script_init() end")
    assert main(["-s", str(script)]) == 1
    assert runtime.stopped
    assert runtime.waits == [None, 2.0]


def test_stdlib_logging_goes_to_stdout(monkeypatch):
    seen = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: seen.update(kw))
    configure_logging(debug=True, json=True)
    assert seen["stream"] is sys.stdout
    assert seen["level"] == logging.DEBUG
