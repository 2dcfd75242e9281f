"""
SSR Kernel — Dependency Loader

Resolves a script handle's dependency graph and executes each script in
the sandbox exactly once, dependencies first.

The graph is snapshotted from the registry once per render
(`snapshot_graph`) so later registry mutations cannot change what a
render in progress loads.
"""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urlsplit

from ssr.environment import Sandbox
from ssr.registry import ScriptRegistry
from ssr.types import ScriptDescriptor, SSROptions

logger = logging.getLogger(__name__)

ScriptGraph = dict[str, ScriptDescriptor]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ScriptLoadError(Exception):
    """A script could not be resolved or read."""

    def __init__(self, handle: str, message: str) -> None:
        super().__init__(message)
        self.handle = handle


class UnknownScript(ScriptLoadError):
    """A handle is not in the script registry."""

    pass


class DependencyCycle(ScriptLoadError):
    """A handle depends on itself, directly or not."""

    pass


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------


def snapshot_graph(registry: ScriptRegistry, handle: str) -> ScriptGraph:
    """
    Collect every descriptor reachable from `handle`.

    Raises:
        UnknownScript: A handle (root or dependency) is not registered
        DependencyCycle: The graph is not acyclic
    """
    graph: ScriptGraph = {}
    visiting: list[str] = []

    def visit(current: str) -> None:
        if current in graph:
            return
        if current in visiting:
            chain = " -> ".join([*visiting[visiting.index(current) :], current])
            raise DependencyCycle(current, f"Dependency cycle: {chain}")
        descriptor = registry.lookup(current)
        if descriptor is None:
            parent = visiting[-1] if visiting else None
            suffix = f" (required by '{parent}')" if parent else ""
            raise UnknownScript(current, f"Unknown script handle '{current}'{suffix}")
        visiting.append(current)
        for dep in descriptor.deps:
            visit(dep)
        visiting.pop()
        graph[current] = descriptor

    visit(handle)
    return graph


def resolve_order(graph: ScriptGraph, handle: str, loaded: frozenset[str] | set[str] = frozenset()) -> list[str]:
    """
    Execution order for `handle`: depth-first, left-to-right over declared
    dependencies, each dependency before its dependents, each handle once.
    Handles in `loaded` are skipped.
    Pure function.
    """
    order: list[str] = []
    seen = set(loaded)

    def visit(current: str) -> None:
        if current in seen:
            return
        seen.add(current)
        for dep in graph[current].deps:
            visit(dep)
        order.append(current)

    visit(handle)
    return order


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


def resolve_script_path(src: str, options: SSROptions) -> Path:
    """
    Map a script URL to the file backing it.

    - URLs under the static content URL map into the static content dir
    - Host-absolute paths ("/...") map under the site root
    - Anything else is already a path
    """
    if options.content_url and options.content_dir is not None and src.startswith(options.content_url):
        relative = urlsplit(src[len(options.content_url) :]).path.lstrip("/")
        return options.content_dir / relative

    if src.startswith("/"):
        return options.site_root / urlsplit(src).path.lstrip("/")

    return Path(src)


def read_source(descriptor: ScriptDescriptor, options: SSROptions) -> tuple[Path, str]:
    """
    Read the source for a handle, applying its server override and patch.

    Raises:
        ScriptLoadError: The backing file cannot be read
    """
    handle = descriptor.handle
    override = options.server_overrides.get(handle)
    path = Path(override) if override else resolve_script_path(descriptor.src, options)

    try:
        source = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ScriptLoadError(handle, f"Cannot read script '{handle}' from {path}: {e}") from e

    patch = options.source_patches.get(handle)
    if patch:
        source += patch
    return path, source


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def load_script(sandbox: Sandbox, graph: ScriptGraph, handle: str, options: SSROptions) -> str:
    """
    Execute `handle` (and any dependency not yet loaded) in the sandbox.

    Returns:
        Whatever the script printed. Dependency output is discarded.

    Raises:
        ScriptError: Execution failed inside the engine
        ScriptLoadError: A source file could not be read
    """
    descriptor = graph[handle]
    for dep in descriptor.deps:
        if not sandbox.is_loaded(dep):
            load_script(sandbox, graph, dep, options)

    path, source = read_source(descriptor, options)

    sandbox.mark_loaded(handle)
    with sandbox.capture() as buffer:
        sandbox.eval(source, str(path))
    logger.debug("Loaded script %s from %s", handle, path)
    return "".join(buffer)
