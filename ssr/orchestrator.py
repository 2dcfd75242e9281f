"""
SSR Kernel — Render Orchestrator

Per-block entry point. Decides whether a block is server-rendered, runs
its script in a fresh sandbox, wraps the output in the container the
client script hydrates, and records how the client tag must be emitted.

States per block:
  NOT_APPLICABLE -> PASS_THROUGH                 (SSR disabled / engine unavailable)
  NOT_APPLICABLE -> RENDERING -> RENDERED
  NOT_APPLICABLE -> RENDERING -> FAILED          (production: logged, output suppressed)
  NOT_APPLICABLE -> RENDERING -> FAILED -> OVERLAY_EMITTED   (debug)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from html import escape as _html_escape
from typing import Any

from ssr.bridge import DataBridge, Dispatcher
from ssr.environment import build_sandbox
from ssr.failure import render_failure
from ssr.hydration import HydrationState
from ssr.loader import ScriptLoadError, load_script, snapshot_graph
from ssr.registry import BlockRegistry, ScriptRegistry
from ssr.runtime import EngineUnavailable, RuntimeFactory, ScriptError, create_runtime
from ssr.types import (
    RUNTIME_HANDLE,
    FailureReport,
    HydrationDirective,
    ParsedBlock,
    RenderRequest,
    RenderResult,
    RenderState,
    RequestContext,
    SSROptions,
)

logger = logging.getLogger(__name__)


def merge_class_names(attributes: dict[str, Any]) -> str:
    """className first, then `alignfull` for full-width alignment."""
    classes = [str(attributes.get("className") or "").strip()]
    if attributes.get("align") == "full":
        classes.append("alignfull")
    return " ".join(c for c in classes if c)


def render_container(handle: str, output: str, class_name: str, rendered: bool | None = None) -> str:
    """
    The element the client script finds by id and hydrates.
    `data-rendered` marks server output; it defaults to "output is non-empty".
    """
    if rendered is None:
        rendered = bool(output)
    marker = ' data-rendered=""' if rendered else ""
    return (
        f'<div id="{_html_escape(handle, quote=True)}"{marker}'
        f' class="{_html_escape(class_name, quote=True)}">{output}</div>'
    )


class BlockRenderer:
    """
    Renders the SSR blocks of one page response.

    Usage:
        hydration = HydrationState()
        renderer = BlockRenderer(blocks, scripts, dispatcher, hydration, request, options)
        html = renderer.render_block(content, block)
        ...
        apply_directives(footer_scripts, renderer.directives)
    """

    def __init__(
        self,
        blocks: BlockRegistry,
        scripts: ScriptRegistry,
        dispatcher: Dispatcher,
        hydration: HydrationState,
        request: RequestContext,
        options: SSROptions | None = None,
        runtime_factory: RuntimeFactory = create_runtime,
        functions: dict[str, Callable[..., Any]] | None = None,
    ) -> None:
        self.blocks = blocks
        self.scripts = scripts
        self.request = request
        self.options = options or SSROptions()
        self.runtime_factory = runtime_factory
        self.functions = functions
        self.bridge = DataBridge(dispatcher, hydration)
        self.directives: dict[str, HydrationDirective] = {}
        self.outcomes: list[tuple[str, RenderState]] = []

    def render_block(self, content: str, block: ParsedBlock) -> str:
        """
        Render one block instance.

        Returns the original content for blocks that are not server-rendered
        or when no engine is available; otherwise the SSR container markup.
        """
        block_type = self.blocks.lookup(block.name)
        if block_type is None or not block_type.ssr:
            self.outcomes.append((block.name, RenderState.PASS_THROUGH))
            return content

        handle = block_type.script_handle
        self.scripts.add_dependency(handle, RUNTIME_HANDLE)

        request = RenderRequest(
            block_name=block.name,
            script_handle=handle,
            attributes=dict(block.attrs),
            request=self.request,
        )
        try:
            result = self.render_request(request)
        except EngineUnavailable as e:
            logger.info("Skipping server-side rendering of %s: %s", block.name, e)
            self.outcomes.append((block.name, RenderState.PASS_THROUGH))
            return content

        suppress = not block_type.frontend_render or self.options.server_only
        class_name = merge_class_names(request.attributes)
        if result.ok:
            state = RenderState.RENDERED
            markup = render_container(handle, result.output, class_name)
        elif self.options.debug:
            state = RenderState.OVERLAY_EMITTED
            # The overlay is not server output to hydrate, and must stay on screen
            markup = render_container(handle, render_failure(result.failure), class_name, rendered=False)
            suppress = True
        else:
            state = RenderState.FAILED
            logger.warning("SSR error in %s (%s): %s", handle, result.failure.script, result.failure.message)
            markup = render_container(handle, "", class_name)

        self.outcomes.append((block.name, state))
        # Blocks sharing a script share one tag; once suppressed it stays suppressed
        previous = self.directives.get(handle)
        if previous is not None and previous.suppress:
            suppress = True
        self.directives[handle] = HydrationDirective(handle=handle, suppress=suppress)
        return markup

    def render_request(self, request: RenderRequest) -> RenderResult:
        """
        Run the script for one render request in a fresh sandbox.

        Raises:
            EngineUnavailable: No engine; the caller passes content through
        """
        try:
            sandbox = build_sandbox(
                request.request,
                self.bridge.fetch,
                self.options,
                runtime_factory=self.runtime_factory,
                functions=self.functions,
            )
        except ScriptError as e:
            return RenderResult(failure=e.to_report())

        try:
            graph = snapshot_graph(self.scripts, request.script_handle)
            output = load_script(sandbox, graph, request.script_handle, self.options)
        except ScriptError as e:
            return RenderResult(failure=e.to_report())
        except ScriptLoadError as e:
            return RenderResult(failure=FailureReport(script=e.handle, message=str(e)))
        finally:
            sandbox.close()
        return RenderResult(output=output)
