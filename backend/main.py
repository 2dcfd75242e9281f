"""
Block SSR FastAPI application.

Entry point for the site server.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from backend.config import settings
from backend.routes import api as api_routes
from backend.routes import pages as pages_routes
from backend.site import Site, load_site
from ssr.types import ASSETS_DIR, SSROptions

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(site: Site | None = None, options: SSROptions | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        site: Site content (defaults to the SITE_MANIFEST file)
        options: SSR kernel options (defaults to settings)
    """
    app = FastAPI(
        title="Block SSR",
        docs_url=None,
        redoc_url=None,
    )
    app.state.site = site if site is not None else load_site(settings.SITE_MANIFEST)
    app.state.ssr_options = options or settings.ssr_options()

    @app.get("/health")
    async def health():
        """Health check endpoint for uptime monitoring."""
        return {"status": "ok"}

    # Static files first; the page catch-all is registered last
    app.mount(settings.RUNTIME_URL, StaticFiles(directory=ASSETS_DIR), name="ssr-assets")
    app.mount(settings.STATIC_URL, StaticFiles(directory=settings.STATIC_DIR, check_dir=False), name="static")
    app.include_router(api_routes.router)
    app.include_router(pages_routes.router)

    logger.info(
        "Block SSR app ready (debug=%s, server_only=%s)",
        app.state.ssr_options.debug,
        app.state.ssr_options.server_only,
    )
    return app


app = create_app()
