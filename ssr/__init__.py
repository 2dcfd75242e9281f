"""
SSR Kernel — server-side rendering of isomorphic blocks.

Components:
  environment   — one sandboxed JS context per render (shims, console, bridge)
  loader        — dependency-first, load-once script execution
  bridge        — in-process data fetches, recorded for client replay
  orchestrator  — per-block render → container markup + client tag directives
  hydration     — one serialized SSRHydrationData block per page
  failure       — inline diagnostic overlay for script failures
  page          — second-phase rewriting of client script tags
"""

from ssr.bridge import DataBridge, DispatchResult, canonical_key
from ssr.failure import render_failure
from ssr.hydration import HydrationState, emit_hydration_data
from ssr.orchestrator import BlockRenderer
from ssr.page import apply_directives, script_tags
from ssr.registry import MemoryBlockRegistry, MemoryScriptRegistry
from ssr.runtime import EngineUnavailable, ScriptError
from ssr.types import BlockType, ParsedBlock, RequestContext, ScriptDescriptor, SSROptions

__all__ = [
    "BlockRenderer",
    "BlockType",
    "DataBridge",
    "DispatchResult",
    "EngineUnavailable",
    "HydrationState",
    "MemoryBlockRegistry",
    "MemoryScriptRegistry",
    "ParsedBlock",
    "RequestContext",
    "SSROptions",
    "ScriptDescriptor",
    "ScriptError",
    "apply_directives",
    "canonical_key",
    "emit_hydration_data",
    "render_failure",
    "script_tags",
]
