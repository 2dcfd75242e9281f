"""
SSR Kernel — Host Registries

The block-type and script registries the kernel reads from. The host
owns the real data; these are the interfaces plus in-memory versions
for the host app and for tests.
"""

from __future__ import annotations

from dataclasses import replace

from ssr.types import BlockType, ScriptDescriptor


class BlockRegistry:
    """Abstract block-type registry."""

    def lookup(self, name: str) -> BlockType | None:
        raise NotImplementedError


class ScriptRegistry:
    """Abstract script registry."""

    def lookup(self, handle: str) -> ScriptDescriptor | None:
        raise NotImplementedError

    def add_dependency(self, handle: str, dep: str) -> None:
        """Append `dep` to the declared dependencies of `handle` (no-op if present)."""
        raise NotImplementedError


class MemoryBlockRegistry(BlockRegistry):
    """In-memory block registry."""

    def __init__(self, blocks: list[BlockType] | None = None) -> None:
        self.blocks: dict[str, BlockType] = {}
        for block in blocks or []:
            self.register(block)

    def register(self, block: BlockType) -> None:
        self.blocks[block.name] = block

    def lookup(self, name: str) -> BlockType | None:
        return self.blocks.get(name)


class MemoryScriptRegistry(ScriptRegistry):
    """In-memory script registry."""

    def __init__(self, scripts: list[ScriptDescriptor] | None = None) -> None:
        self.scripts: dict[str, ScriptDescriptor] = {}
        for script in scripts or []:
            self.register(script)

    def register(self, script: ScriptDescriptor) -> None:
        self.scripts[script.handle] = script

    def lookup(self, handle: str) -> ScriptDescriptor | None:
        return self.scripts.get(handle)

    def add_dependency(self, handle: str, dep: str) -> None:
        script = self.scripts.get(handle)
        if script is None or dep in script.deps:
            return
        self.scripts[handle] = replace(script, deps=(*script.deps, dep))
