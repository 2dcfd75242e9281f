"""Page serving — GET /{slug} composes a page, server-rendering its SSR blocks."""

from __future__ import annotations

import logging
from html import escape as _html_escape

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from backend.dispatch import AsgiDispatcher, current_page
from backend.models.site import PageModel
from backend.site import Site, get_site
from ssr.hydration import HydrationState, emit_hydration_data
from ssr.orchestrator import BlockRenderer
from ssr.page import apply_directives, enqueued_scripts, script_tags
from ssr.types import RequestContext

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])

HOME_SLUG = "home"


def request_context(request: Request) -> RequestContext:
    """The parts of the incoming request a sandbox reflects in `window.location`."""
    url = request.url
    default_port = 443 if url.scheme == "https" else 80
    return RequestContext(
        path=url.path,
        query=url.query,
        host=url.hostname or "localhost",
        port=str(url.port or default_port),
        scheme=url.scheme,
    )


def render_document(title: str, body: str, footer: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{_html_escape(title)}</title>
</head>
<body>
<main>
{body}
</main>
{footer}</body>
</html>"""


def compose_page(slug: str, page: PageModel, site: Site, request: Request) -> str:
    """
    Render every block of a page, then the footer.

    Footer order: hydration data first, then the client scripts (dependency
    order) with the blocks' hydration directives applied.
    """
    hydration = HydrationState()
    renderer = BlockRenderer(
        site.blocks,
        site.scripts,
        AsgiDispatcher(request.app),
        hydration,
        request_context(request),
        request.app.state.ssr_options,
    )

    token = current_page.set(slug)
    try:
        parts: list[str] = []
        handles: list[str] = []
        for block_model in page.blocks:
            block = block_model.to_parsed()
            parts.append(renderer.render_block(block.inner_html, block))
            block_type = site.blocks.lookup(block.name)
            if block_type is not None and block_type.script_handle not in handles:
                handles.append(block_type.script_handle)

        scripts = apply_directives(script_tags(enqueued_scripts(site.scripts, handles)), renderer.directives)
        footer = emit_hydration_data(hydration) + scripts
        title = page.title
    finally:
        current_page.reset(token)

    logger.info("Composed page %s: %s", slug, ", ".join(f"{name}={state.value}" for name, state in renderer.outcomes))
    return render_document(title, "\n".join(parts), footer)


@router.get("/", response_class=HTMLResponse)
def serve_home(request: Request, site: Site = Depends(get_site)) -> HTMLResponse:
    """Serve the home page."""
    return serve_page(HOME_SLUG, request, site)


@router.get("/{slug}", response_class=HTMLResponse)
def serve_page(slug: str, request: Request, site: Site = Depends(get_site)) -> HTMLResponse:
    """
    Serve a page by slug. Returns 404 if the slug does not exist.

    Sync route: FastAPI runs it in a worker thread, which the SSR data
    bridge needs to dispatch back onto the event loop.
    """
    page = site.pages.get(slug)
    if page is None:
        return HTMLResponse(
            content="<html><body><h1>404 — Page not found</h1></body></html>",
            status_code=404,
        )
    return HTMLResponse(compose_page(slug, page, site, request))
