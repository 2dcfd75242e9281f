"""
SSR kernel test configuration.

Most kernel tests run against RecordingRuntime (see fakes.py). Tests that
need real JavaScript use `pytest.importorskip("quickjs")`.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from ssr.registry import MemoryBlockRegistry, MemoryScriptRegistry
from ssr.tests.fakes import RecordingRuntime
from ssr.types import RUNTIME_HANDLE, BlockType, ScriptDescriptor, SSROptions


@pytest.fixture(autouse=True)
def _reset_runtimes():
    RecordingRuntime.instances.clear()
    yield
    RecordingRuntime.instances.clear()


@pytest.fixture
def options(tmp_path: Path) -> SSROptions:
    """Options with no preloads so fake-engine tests see only their own scripts."""
    return SSROptions(site_root=tmp_path, preload_scripts=())


@pytest.fixture
def write_scripts(tmp_path: Path):
    """
    Write scripts to disk and register them.

    Usage:
        registry = write_scripts({"app": ('print("hi")', ["lib"]), "lib": ("", [])})
    """

    def _write(scripts: dict[str, tuple[str, list[str]]]) -> MemoryScriptRegistry:
        registry = MemoryScriptRegistry([ScriptDescriptor(handle=RUNTIME_HANDLE, src="/ssr-assets/ssr-runtime.js")])
        for handle, (source, deps) in scripts.items():
            path = tmp_path / f"{handle}.js"
            path.write_text(source, encoding="utf-8")
            registry.register(ScriptDescriptor(handle=handle, src=f"/{path.name}", deps=tuple(deps)))
        return registry

    return _write


@pytest.fixture
def block_registry() -> MemoryBlockRegistry:
    return MemoryBlockRegistry(
        [
            BlockType(name="demo/ssr", script_handle="app", ssr=True),
            BlockType(name="demo/client-only", script_handle="app", ssr=False),
            BlockType(name="demo/server-only", script_handle="app", ssr=True, frontend_render=False),
        ]
    )
