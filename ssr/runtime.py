"""
SSR Kernel — JavaScript Runtime Adapter

The only module that talks to the embedded engine (QuickJS). Everything
else sees a `Runtime`: evaluate a named source string, expose a host
function, close. Values cross the boundary as JSON documents only.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from typing import Any

from ssr.types import FailureReport, SSROptions

logger = logging.getLogger(__name__)

# QuickJS names every evaluated chunk "<input>"; frames look like "(<input>:12)" or "(<input>:12:5)"
_FRAME_RE = re.compile(r"<input>:(\d+)(?::(\d+))?")
# Top-level frame of the chunk being evaluated; inner frames may point into dependencies
_EVAL_FRAME_RE = re.compile(r"at <eval> \(<input>:(\d+)(?::(\d+))?\)")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class EngineUnavailable(Exception):
    """The embedded JavaScript engine cannot be constructed."""

    pass


class ScriptError(Exception):
    """A script raised while executing inside the sandbox."""

    def __init__(
        self,
        filename: str,
        message: str,
        trace: str | None = None,
        line_number: int | None = None,
        source_line: str | None = None,
        start_column: int = 0,
        end_column: int = 0,
    ) -> None:
        super().__init__(f"{filename}: {message}")
        self.filename = filename
        self.message = message
        self.trace = trace
        self.line_number = line_number
        self.source_line = source_line
        self.start_column = start_column
        self.end_column = end_column

    @classmethod
    def from_engine_error(cls, error: Exception, source: str, filename: str) -> ScriptError:
        """Build from an engine exception and the source that was being run."""
        text = str(error).strip()
        message = text.splitlines()[0] if text else type(error).__name__

        line_number = None
        source_line = None
        start_column = end_column = 0
        frames = _EVAL_FRAME_RE.findall(text) or _FRAME_RE.findall(text)
        if frames:
            line, column = frames[-1]
            line_number = int(line)
            lines = source.splitlines()
            if 0 < line_number <= len(lines):
                source_line = lines[line_number - 1]
                if column:
                    start_column = max(int(column) - 1, 0)
                    end_column = _token_end(source_line, start_column)
                else:
                    # No column: underline the trimmed line
                    start_column = len(source_line) - len(source_line.lstrip())
                    end_column = max(len(source_line.rstrip()), start_column)

        return cls(
            filename=filename,
            message=message,
            trace=text or None,
            line_number=line_number,
            source_line=source_line,
            start_column=start_column,
            end_column=end_column,
        )

    def to_report(self) -> FailureReport:
        return FailureReport(
            script=self.filename,
            message=self.message,
            trace=self.trace,
            line_number=self.line_number,
            source_line=self.source_line,
            start_column=self.start_column,
            end_column=self.end_column,
        )


def _token_end(line: str, start: int) -> int:
    """End column of the identifier-ish token starting at `start`."""
    end = start
    while end < len(line) and (line[end].isalnum() or line[end] in "_$."):
        end += 1
    return end if end > start else min(start + 1, len(line))


# ---------------------------------------------------------------------------
# Runtime protocol
# ---------------------------------------------------------------------------


class Runtime:
    """
    Abstract JavaScript execution context.
    Implement with QuickJS for production, or a recording fake for tests.
    """

    def eval(self, source: str, filename: str) -> None:
        """Run `source`; raise ScriptError on failure."""
        raise NotImplementedError

    def expose(self, name: str, fn: Callable[..., Any]) -> None:
        """Define global function `name` calling `fn` with JSON-decoded arguments."""
        raise NotImplementedError

    def close(self) -> None:
        pass


class QuickJSRuntime(Runtime):
    """Runtime backed by a `quickjs.Context`."""

    def __init__(self, time_limit: float | None = None, memory_limit: int | None = None) -> None:
        import quickjs

        self._quickjs = quickjs
        self._context = quickjs.Context()
        if time_limit:
            self._context.set_time_limit(time_limit)
        if memory_limit:
            self._context.set_memory_limit(memory_limit)

    def eval(self, source: str, filename: str) -> None:
        if self._context is None:
            raise RuntimeError("Runtime is closed")
        try:
            self._context.eval(source)
        except self._quickjs.JSException as e:
            raise ScriptError.from_engine_error(e, source, filename) from e

    def expose(self, name: str, fn: Callable[..., Any]) -> None:
        native = f"__py_{name}"

        def call(payload: str) -> str:
            args = json.loads(payload) if payload else []
            return json.dumps(fn(*args), ensure_ascii=False)

        self._context.add_callable(native, call)
        self._context.eval(
            f"var {name} = function () {{"
            f" return JSON.parse({native}(JSON.stringify(Array.prototype.slice.call(arguments))));"
            f" }};"
        )

    def close(self) -> None:
        self._context = None


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


RuntimeFactory = Callable[[SSROptions], Runtime]


def create_runtime(options: SSROptions) -> Runtime:
    """Construct a QuickJS runtime, or raise EngineUnavailable."""
    try:
        return QuickJSRuntime(time_limit=options.time_limit, memory_limit=options.memory_limit)
    except ImportError as e:
        raise EngineUnavailable("the quickjs package is not installed") from e
    except Exception as e:
        raise EngineUnavailable(f"could not create a QuickJS context: {e}") from e
