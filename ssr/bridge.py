"""
SSR Kernel — Data Bridge

The fetch surface sandboxed scripts call as `Host.apiFetch(args)`.
Requests are dispatched in-process by the host, never over the network,
and every result is recorded for client-side replay under a canonical
key the browser can compute from the same request description.
"""

from __future__ import annotations

import contextvars
import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol
from urllib.parse import parse_qsl

from pydantic import TypeAdapter

from ssr.hydration import HydrationState

logger = logging.getLogger(__name__)

_plain = TypeAdapter(Any)

QueryPairs = list[tuple[str, str]]


@dataclass
class DispatchResult:
    """What the host dispatcher returns for one internal request."""

    status: int
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)


class Dispatcher(Protocol):
    def dispatch(self, method: str, path: str, query: QueryPairs) -> DispatchResult: ...


# ---------------------------------------------------------------------------
# Request descriptors
# ---------------------------------------------------------------------------


def _js_number(value: float) -> str:
    """`String(value)` for a JavaScript number."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"
    if value < 0:
        return "-" + _js_number(-value)

    # Shortest round-trip digits, laid out as in Number.prototype.toString
    _, digit_tuple, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    k = len(digits)
    n = exponent + k
    if k <= n <= 21:
        return digits + "0" * (n - k)
    if 0 < n <= 21:
        return f"{digits[:n]}.{digits[n:]}"
    if -6 < n <= 0:
        return "0." + "0" * -n + digits
    e = n - 1
    sign = "+" if e >= 0 else "-"
    mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
    return f"{mantissa}e{sign}{abs(e)}"


def _query_value(value: Any) -> str:
    """Stringify a query value the way `String()` does in the browser."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int) and abs(value) < 10**21:
        return str(value)
    if isinstance(value, (int, float)):
        return _js_number(float(value))
    return str(value)


def parse_descriptor(descriptor: Mapping[str, Any] | str) -> tuple[str, str, QueryPairs]:
    """
    Split a fetch descriptor into (method, path, query pairs).

    Accepts `{"path": "/api/x?a=1", "method": "GET", "query": {"b": 2}}`
    or a bare path string. Method defaults to GET.
    """
    if isinstance(descriptor, str):
        descriptor = {"path": descriptor}

    # Split on "?" and "#" only; "//host/x" is a path here, not a netloc
    path, _, search = str(descriptor.get("path") or "/").partition("?")
    path = path.split("#")[0] or "/"
    method = str(descriptor.get("method") or "GET").upper()
    query: QueryPairs = parse_qsl(search.split("#")[0].removeprefix("?"), keep_blank_values=True)

    extra = descriptor.get("query") or {}
    for name, value in extra.items():
        values = value if isinstance(value, list) else [value]
        query.extend((str(name), _query_value(v)) for v in values)

    return method, path, query


def _utf16_pair(pair: tuple[str, str]) -> tuple[bytes, bytes]:
    # JavaScript compares strings by UTF-16 code unit
    return pair[0].encode("utf-16-be", "surrogatepass"), pair[1].encode("utf-16-be", "surrogatepass")


def canonical_key(descriptor: Mapping[str, Any] | str) -> str:
    """
    Deterministic hydration key for a fetch descriptor.

    Compact JSON of {"method", "path", "query"} in that order, query
    pairs sorted by name then value, slashes and non-ASCII left as is.
    `canonicalKey` in ssr-runtime.js must produce the same string.
    """
    method, path, query = parse_descriptor(descriptor)
    return json.dumps(
        {"method": method, "path": path, "query": [list(pair) for pair in sorted(query, key=_utf16_pair)]},
        separators=(",", ":"),
        ensure_ascii=False,
    )


# ---------------------------------------------------------------------------
# Bridge
# ---------------------------------------------------------------------------


class DataBridge:
    """
    Synchronous fetch for sandboxed code.

    Usage:
        bridge = DataBridge(dispatcher, hydration)
        status, body, headers = bridge.fetch({"path": "/api/pages"})
    """

    def __init__(self, dispatcher: Dispatcher, hydration: HydrationState) -> None:
        self.dispatcher = dispatcher
        self.hydration = hydration

    def fetch(self, descriptor: Mapping[str, Any] | str) -> list[Any]:
        """
        Dispatch a request and return [status, body, headers].

        Dispatch runs in a copy of the current context, so context variables
        the host sets while handling the request do not leak back into the
        page render. Dispatcher errors come back as a 500 triple.
        """
        method, path, query = parse_descriptor(descriptor)
        try:
            result = contextvars.copy_context().run(self.dispatcher.dispatch, method, path, query)
        except Exception as e:
            logger.exception("SSR fetch %s %s failed", method, path)
            result = DispatchResult(500, {"code": "internal_error", "message": str(e)}, {})

        triple = [
            int(result.status),
            _plain.dump_python(result.body, mode="json"),
            {str(k): str(v) for k, v in (result.headers or {}).items()},
        ]
        self.hydration.record(canonical_key(descriptor), triple)
        return triple
