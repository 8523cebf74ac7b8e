# core/script/host.py
from __future__ import annotations
import threading
from typing import Any, Callable, Mapping, Optional, Sequence, TypeVar, Union
import structlog
from lupa import LuaRuntime, LuaError, lua_type

from core.errors import CapabilityError, ScriptLoadError

log = structlog.get_logger()

T = TypeVar("T")

# Globals removed before any script code runs.
_SANDBOX_PRELUDE = """
io = nil
package = nil
require = nil
dofile = nil
loadfile = nil
debug = nil
collectgarbage = nil
python = nil
if string then
    string.dump = nil
end
do
    -- text chunks only
    local _load = load
    load = function(chunk, name, mode, ...)
        if select("#", ...) > 0 then
            return _load(chunk, name, "t", ...)
        end
        return _load(chunk, name, "t")
    end
end
if os then
    os.execute = nil
    os.exit = nil
    os.remove = nil
    os.rename = nil
    os.tmpname = nil
    os.getenv = nil
    os.setlocale = nil
end
"""


def _public_attributes_only(obj, attr_name, is_setting):
    # Lua may reach Python objects through installed functions; keep dunders out of reach.
    if isinstance(attr_name, str) and not attr_name.startswith("_"):
        return attr_name
    raise AttributeError(f"access to {attr_name!r} is not allowed")


class InterpreterHost:
    """
    Owns the embedded Lua runtime. Every call into it after bootstrap goes
    through with_exclusive_access, so at most one native call runs at a time.
    The lock is re-entrant: capability functions invoked from inside a
    handler run on the dispatch thread that already holds it.
    """
    def __init__(self, sandbox: bool = True):
        self._lock = threading.RLock()
        self._lua = LuaRuntime(
            unpack_returned_tuples=True,
            register_eval=False,
            register_builtins=False,
            attribute_filter=_public_attributes_only,
        )
        # grab the loader before the sandbox hides anything
        self._load = self._lua.eval("load")
        if sandbox:
            self._lua.execute(_SANDBOX_PRELUDE)
        self.sandboxed = sandbox
        log.debug("interp.created", sandbox=sandbox)

    def with_exclusive_access(self, fn: Callable[[LuaRuntime], T]) -> T:
        with self._lock:
            return fn(self._lua)

    # --- table helpers (safe to call while the lock is held) ---
    def table(self, value: Union[Mapping[str, Any], Sequence[Any], None] = None) -> Any:
        if value is None:
            return self._lua.table()
        return self._lua.table_from(value)

    def to_python(self, value: Any) -> Any:
        """Recursively turn Lua tables into dicts (or lists, for 1..n keys)."""
        if lua_type(value) != "table":
            return value
        items = {k: self.to_python(v) for k, v in value.items()}
        if items and all(isinstance(k, int) for k in items) and sorted(items) == list(range(1, len(items) + 1)):
            return [items[i] for i in range(1, len(items) + 1)]
        return items

    # --- globals ---
    def install_namespace(self, name: str, functions: Mapping[str, Callable[..., Any]]) -> None:
        def install(lua: LuaRuntime) -> None:
            g = lua.globals()
            if g[name] is not None:
                raise CapabilityError(f"global {name!r} is already defined")
            g[name] = lua.table_from(dict(functions))
        self.with_exclusive_access(install)
        log.debug("interp.namespace", name=name, functions=sorted(functions))

    def lookup(self, name: str) -> Optional[Any]:
        """The global Lua function called `name`, or None when the script did not define one."""
        def find(lua: LuaRuntime):
            fn = lua.globals()[name]
            return fn if lua_type(fn) == "function" else None
        return self.with_exclusive_access(find)

    def get_global(self, name: str) -> Any:
        return self.with_exclusive_access(lambda lua: lua.globals()[name])

    # --- script lifecycle ---
    def load_script(self, source: str, name: str = "script") -> None:
        """Compile `source` as a text chunk and run its top level."""
        def run(lua: LuaRuntime) -> None:
            loaded = self._load(source, "@" + name, "t")
            if isinstance(loaded, tuple):
                chunk, err = (tuple(loaded) + (None, None))[:2]
            else:
                chunk, err = loaded, None
            if chunk is None:
                raise ScriptLoadError(f"{name}: {err}", phase="compile")
            try:
                chunk()
            except LuaError as e:
                raise ScriptLoadError(f"{name}: {e}", phase="exec") from e
            except Exception as e:
                # a capability function raised while the top level was running
                raise ScriptLoadError(f"{name}: {type(e).__name__}: {e}", phase="exec") from e
        self.with_exclusive_access(run)
        log.debug("interp.loaded", name=name)

    def call(self, fn: Union[str, Any], *args: Any) -> Any:
        """Call a Lua function (or a global by name) holding the interpreter lock."""
        def invoke(lua: LuaRuntime) -> Any:
            target = lua.globals()[fn] if isinstance(fn, str) else fn
            if lua_type(target) != "function":
                raise LuaError(f"{fn!r} is not a function")
            return target(*args)
        return self.with_exclusive_access(invoke)
