"""
SSR Kernel — Shared Types

Data classes used across the environment builder, loader, bridge,
orchestrator and failure reporter. These are the contracts that bind
the kernel together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

ASSETS_DIR = Path(__file__).parent / "assets"

# Script names the failure reporter recognises
BOOTSTRAP_SCRIPT = "ssrBootstrap"
DATA_INJECTION_SCRIPT = "ssrDataInjection"

# Handle of the bundled client/server runtime library
RUNTIME_HANDLE = "ssr-runtime"

DEFAULT_PORTS: set[str] = {"80", "443"}


# ---------------------------------------------------------------------------
# Request / block data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RequestContext:
    """The page request a render happens inside of."""

    path: str = "/"
    query: str = ""
    host: str = "localhost"
    port: str = "80"
    scheme: str = "http"

    def window_object(self) -> dict[str, Any]:
        """Seed for the sandbox `window` global."""
        port = "" if str(self.port) in DEFAULT_PORTS else str(self.port)
        return {
            "document": None,
            "location": {
                "hash": "",
                "host": f"{self.host}:{port}" if port else self.host,
                "hostname": self.host,
                "pathname": self.path,
                "port": port,
                "protocol": "https:" if self.scheme == "https" else "http:",
                "search": f"?{self.query}" if self.query else "",
            },
        }


@dataclass(frozen=True)
class ParsedBlock:
    """One block instance on a page."""

    name: str
    attrs: dict[str, Any] = field(default_factory=dict)
    inner_html: str = ""


@dataclass(frozen=True)
class BlockType:
    """Registry metadata for a block type."""

    name: str
    script_handle: str
    ssr: bool = False
    frontend_render: bool = True


@dataclass(frozen=True)
class ScriptDescriptor:
    """Registry metadata for a script handle."""

    handle: str
    src: str
    deps: tuple[str, ...] = ()


@dataclass(frozen=True)
class RenderRequest:
    """One SSR attempt. Read-only, discarded after the render."""

    block_name: str
    script_handle: str
    attributes: dict[str, Any]
    request: RequestContext


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class FailureReport:
    """Diagnostic fields pulled out of a script failure."""

    script: str
    message: str
    trace: str | None = None
    line_number: int | None = None
    source_line: str | None = None
    start_column: int = 0
    end_column: int = 0


@dataclass
class RenderResult:
    """Success with output, or failure with a report."""

    output: str = ""
    failure: FailureReport | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass(frozen=True)
class HydrationDirective:
    """How the client script tag for a rendered handle must be emitted."""

    handle: str
    suppress: bool = False


class RenderState(str, Enum):
    NOT_APPLICABLE = "not_applicable"
    PASS_THROUGH = "pass_through"
    RENDERING = "rendering"
    RENDERED = "rendered"
    FAILED = "failed"
    OVERLAY_EMITTED = "overlay_emitted"


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


def _default_overrides() -> dict[str, Path]:
    return {RUNTIME_HANDLE: ASSETS_DIR / "ssr-runtime.js"}


def _default_patches() -> dict[str, str]:
    # lodash detects the engine's `global` and sets global._ instead of window.lodash
    return {"lodash": "\nwindow.lodash = global._;"}


def _default_preloads() -> tuple[Path, ...]:
    return (ASSETS_DIR / "url-search-params.js",)


@dataclass
class SSROptions:
    """Options controlling sandbox construction and failure handling."""

    debug: bool = False
    server_only: bool = False
    time_limit: float | None = 5.0
    memory_limit: int | None = None
    content_url: str = ""
    content_dir: Path | None = None
    site_root: Path = field(default_factory=Path.cwd)
    server_overrides: dict[str, Path] = field(default_factory=_default_overrides)
    source_patches: dict[str, str] = field(default_factory=_default_patches)
    preload_scripts: tuple[Path, ...] = field(default_factory=_default_preloads)
