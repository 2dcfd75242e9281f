"""
SSR Kernel — Page Composition

Second phase of a page render. Blocks collect hydration directives while
the body is composed; once the client script tags are emitted, one pass
applies them: a suppressed handle loses its tag, every other directed
handle gets a `data-container` attribute pointing at its SSR container.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from html import escape as _html_escape

from ssr.loader import ScriptGraph, ScriptLoadError, resolve_order, snapshot_graph
from ssr.registry import ScriptRegistry
from ssr.types import HydrationDirective, ScriptDescriptor

logger = logging.getLogger(__name__)

_SCRIPT_TAG_RE = re.compile(
    r"<script\b(?P<attrs>[^>]*)>(?P<body>.*?)</script>\s*",
    re.DOTALL | re.IGNORECASE,
)
_ID_RE = re.compile(r"""(?:^|\s)id=["']([^"']+)-js["']""")


def script_tag(descriptor: ScriptDescriptor) -> str:
    """Client tag for a script handle."""
    src = _html_escape(descriptor.src, quote=True)
    handle = _html_escape(descriptor.handle, quote=True)
    return f'<script src="{src}" id="{handle}-js"></script>\n'


def script_tags(descriptors: Iterable[ScriptDescriptor]) -> str:
    return "".join(script_tag(d) for d in descriptors)


def apply_directives(html: str, directives: Mapping[str, HydrationDirective]) -> str:
    """Rewrite every `<script id="{handle}-js">` tag that has a directive."""
    if not directives:
        return html

    def rewrite(match: re.Match[str]) -> str:
        tag = match.group(0)
        id_match = _ID_RE.search(match.group("attrs"))
        if not id_match:
            return tag
        directive = directives.get(id_match.group(1))
        if directive is None:
            return tag
        if directive.suppress:
            return ""
        container = _html_escape(directive.handle, quote=True)
        return f'<script data-container="{container}"' + tag[len("<script") :]

    return _SCRIPT_TAG_RE.sub(rewrite, html)


def enqueued_scripts(registry: ScriptRegistry, handles: Iterable[str]) -> list[ScriptDescriptor]:
    """
    Client scripts for the given handles, dependencies first, each once.
    Handles that cannot be resolved are logged and left out.
    """
    order: list[str] = []
    graphs: ScriptGraph = {}
    for handle in handles:
        try:
            graph = snapshot_graph(registry, handle)
        except ScriptLoadError as e:
            logger.warning("Not enqueueing %s: %s", handle, e)
            continue
        graphs.update(graph)
        order.extend(resolve_order(graph, handle, loaded=set(order)))
    return [graphs[handle] for handle in order]
