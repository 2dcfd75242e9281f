"""
In-process request dispatch for the SSR data bridge.

Bridge fetches are served by the same FastAPI app through an ASGI
transport, without a network hop. Page renders run in a worker thread
(sync route), so each fetch hops back onto the event loop with
anyio.from_thread.run and blocks the render until the response is in.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar

import anyio.from_thread
import httpx
from fastapi import FastAPI

from ssr.bridge import DispatchResult, QueryPairs

logger = logging.getLogger(__name__)

# Ambient host context: slug of the page being displayed
current_page: ContextVar[str | None] = ContextVar("current_page", default=None)

DISPATCH_HEADER = "x-ssr-dispatch"


class AsgiDispatcher:
    """Dispatches bridge requests into an ASGI app."""

    def __init__(self, app: FastAPI, base_url: str = "http://ssr.internal") -> None:
        self.app = app
        self.base_url = base_url

    def dispatch(self, method: str, path: str, query: QueryPairs) -> DispatchResult:
        """Blocking dispatch; must be called from an anyio worker thread."""
        return anyio.from_thread.run(self._dispatch, method, path, query)

    async def _dispatch(self, method: str, path: str, query: QueryPairs) -> DispatchResult:
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=self.app),
            base_url=self.base_url,
        ) as client:
            response = await client.request(method, path, params=query, headers={DISPATCH_HEADER: "1"})

        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            body = response.json()
        else:
            body = response.text

        logger.debug("SSR dispatch %s %s -> %d", method, path, response.status_code)
        return DispatchResult(status=response.status_code, body=body, headers=dict(response.headers))
