"""
SSR Kernel — Environment Builder

Builds one isolated sandbox per render: browser-ish globals, no-op timers,
a console routed to Python logging, the host bridge, and the preload
polyfills. Nothing here is shared between renders.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from ssr.runtime import Runtime, RuntimeFactory, ScriptError, create_runtime
from ssr.types import (
    BOOTSTRAP_SCRIPT,
    DATA_INJECTION_SCRIPT,
    RequestContext,
    SSROptions,
)

logger = logging.getLogger(__name__)
js_logger = logging.getLogger("ssr.js")

BOOTSTRAP_JS = """\
var window = this;
var global = window, self = window;
var isSSR = true;
var print = function (text) { __ssr_print(String(text)); };
var Host = {
\tlog: function (message) { __ssr_log('info', String(message)); },
\tapiFetch: function (args) { return __ssr_fetch(args); }
};
var console = {
\tlog: function (it) { __ssr_log('info', JSON.stringify(it)); },
\tinfo: function (it) { __ssr_log('info', JSON.stringify(it)); },
\twarn: function (it) { __ssr_log('warning', String(it)); },
\terror: function (it) { __ssr_log('error', String(it)); }
};
window.ReactDOM = {};
window.setTimeout = window.clearTimeout = function () {};
window.setInterval = window.clearInterval = function () {};
delete window.require;
delete window.process;
delete window.exit;
delete window.sleep;
delete window.std;
delete window.os;
"""

_LOG_LEVELS: dict[str, int] = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Sandbox:
    """
    One JavaScript execution context, owned by a single render.

    Tracks which script handles have been loaded and collects whatever
    scripts print into a stack of capture buffers.
    """

    def __init__(self, runtime: Runtime) -> None:
        self.runtime = runtime
        self.loaded: list[str] = []
        self._buffers: list[list[str]] = []

    def is_loaded(self, handle: str) -> bool:
        return handle in self.loaded

    def mark_loaded(self, handle: str) -> None:
        if handle not in self.loaded:
            self.loaded.append(handle)

    def write(self, text: str) -> None:
        """Print target. Output outside any capture is dropped."""
        if self._buffers:
            self._buffers[-1].append(text)

    @contextmanager
    def capture(self) -> Iterator[list[str]]:
        buffer: list[str] = []
        self._buffers.append(buffer)
        try:
            yield buffer
        finally:
            self._buffers.pop()

    def eval(self, source: str, filename: str) -> None:
        self.runtime.eval(source, filename)

    def close(self) -> None:
        self.runtime.close()


def _log_from_script(level: str, message: str) -> None:
    js_logger.log(_LOG_LEVELS.get(level, logging.INFO), "[SSR] %s", message)


def build_sandbox(
    request: RequestContext,
    fetch: Callable[[Any], list[Any]],
    options: SSROptions,
    runtime_factory: RuntimeFactory = create_runtime,
    functions: dict[str, Callable[..., Any]] | None = None,
) -> Sandbox:
    """
    Construct a fresh sandbox for one render.

    Args:
        request: The page request, reflected into `window.location`
        fetch: Data bridge callable exposed as `Host.apiFetch`
        options: Limits and preload scripts
        runtime_factory: Engine constructor (raises EngineUnavailable)
        functions: Extra host functions, exposed as `Host.<name>`

    Returns:
        A Sandbox with the bootstrap, data injection and preloads evaluated

    Raises:
        EngineUnavailable: The engine could not be constructed
        ScriptError: The bootstrap or a preload script failed
    """
    runtime = runtime_factory(options)
    sandbox = Sandbox(runtime)
    try:
        runtime.expose("__ssr_print", sandbox.write)
        runtime.expose("__ssr_log", _log_from_script)
        runtime.expose("__ssr_fetch", fetch)

        sandbox.eval(BOOTSTRAP_JS, BOOTSTRAP_SCRIPT)

        for name, fn in (functions or {}).items():
            runtime.expose(f"__ssr_fn_{name}", fn)
            sandbox.eval(f"Host[{json.dumps(name)}] = __ssr_fn_{name};", BOOTSTRAP_SCRIPT)

        window = json.dumps(request.window_object(), ensure_ascii=False)
        sandbox.eval(f"Object.assign(window, {window});", DATA_INJECTION_SCRIPT)

        for path in options.preload_scripts:
            sandbox.eval(path.read_text(encoding="utf-8"), str(path))
    except (ScriptError, OSError):
        sandbox.close()
        raise

    logger.debug("Built sandbox for %s", request.path)
    return sandbox
