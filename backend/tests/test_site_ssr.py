"""
End-to-end server rendering through the host app.

Block scripts run in QuickJS and fetch /api/pages from the same app
through the in-process dispatcher. Skipped without the quickjs package.
"""

import pytest
from httpx import AsyncClient

pytest.importorskip("quickjs")

from ssr.bridge import canonical_key  # noqa: E402
from ssr.hydration import parse_hydration_data  # noqa: E402

PAGE_LIST = "<ul><li>Home</li><li>About us</li><li>Static</li><li>Broken</li></ul>"


class TestRenderedPage:
    async def test_block_is_rendered_into_container(self, client: AsyncClient):
        response = await client.get("/about")
        assert response.status_code == 200
        assert f'<div id="list" data-rendered="" class="alignfull">{PAGE_LIST}</div>' in response.text

    async def test_fetches_are_emitted_for_hydration(self, client: AsyncClient):
        response = await client.get("/about")

        data = parse_hydration_data(response.text)

        status, body, headers = data[canonical_key("/api/pages")]
        assert status == 200
        assert [page["slug"] for page in body] == ["home", "about", "static", "broken"]
        assert "application/json" in headers["content-type"]

    async def test_client_script_points_at_container(self, client: AsyncClient):
        response = await client.get("/about")
        text = response.text

        hydration = text.index("var SSRHydrationData")
        vendor = text.index('id="vendor-js"')
        runtime = text.index('<script src="/ssr-assets/ssr-runtime.js" id="ssr-runtime-js"></script>')
        app = text.index('<script data-container="list" src="/static/blocks/list.js" id="list-js"></script>')
        assert hydration < vendor < runtime < app

    async def test_page_title_is_unaffected_by_fetched_page(self, client: AsyncClient):
        response = await client.get("/about")
        assert "<title>About us</title>" in response.text


class TestSuppressedClientScript:
    async def test_server_only_block_has_no_client_script(self, client: AsyncClient):
        response = await client.get("/static")
        text = response.text
        assert f'<div id="list" data-rendered="" class="">{PAGE_LIST}</div>' in text
        assert 'id="list-js"' not in text
        assert 'id="ssr-runtime-js"' in text

    async def test_server_only_option_drops_every_rendered_client_script(self, make_client):
        async with make_client(server_only=True) as client:
            response = await client.get("/about")
        assert PAGE_LIST in response.text
        assert 'id="list-js"' not in response.text


class TestFailedRender:
    async def test_production_failure_renders_empty_container(self, client: AsyncClient):
        response = await client.get("/broken")
        assert response.status_code == 200
        assert '<div id="broken" class=""></div>' in response.text
        assert '<script data-container="broken" src="/static/blocks/broken.js" id="broken-js"></script>' in (
            response.text
        )
        assert "Failed to render" not in response.text

    async def test_debug_failure_renders_overlay(self, make_client):
        async with make_client(debug=True) as client:
            response = await client.get("/broken")
        text = response.text
        assert response.status_code == 200
        assert '<div id="broken" class=""><style>' in text
        assert "Failed to render" in text
        assert "undefinedFunction" in text
        assert 'id="broken-js"' not in text
