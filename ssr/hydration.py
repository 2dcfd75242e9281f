"""
SSR Kernel — Hydration Emitter

Collects every bridge fetch made while one page renders and writes them
into the page once, as `window.SSRHydrationData`, ahead of the client
scripts that replay them.
"""

from __future__ import annotations

import json
import re
from typing import Any

_HYDRATION_RE = re.compile(r"var SSRHydrationData = (.*?);\s*</script>", re.DOTALL)

# Characters that could end the <script> element or break older parsers
_SCRIPT_ESCAPES: dict[str, str] = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class HydrationState:
    """
    Request-scoped record of bridge fetches: canonical key -> [status, body, headers].
    Create one per page response.
    """

    def __init__(self) -> None:
        self.records: dict[str, list[Any]] = {}

    def record(self, key: str, result: list[Any]) -> None:
        self.records[key] = result

    def get(self, key: str) -> list[Any] | None:
        return self.records.get(key)

    def __len__(self) -> int:
        return len(self.records)

    def __bool__(self) -> bool:
        return bool(self.records)

    def to_json(self) -> str:
        payload = json.dumps(self.records, ensure_ascii=False, separators=(",", ":"))
        for char, escaped in _SCRIPT_ESCAPES.items():
            payload = payload.replace(char, escaped)
        return payload


def emit_hydration_data(state: HydrationState) -> str:
    """Markup for the page footer. Empty string when nothing was fetched."""
    if not state:
        return ""
    return f"<script>\nvar SSRHydrationData = {state.to_json()};\n</script>\n"


def parse_hydration_data(markup: str) -> dict[str, Any]:
    """What a browser sees as `window.SSRHydrationData` for emitted markup."""
    match = _HYDRATION_RE.search(markup)
    if not match:
        return {}
    return json.loads(match.group(1))
