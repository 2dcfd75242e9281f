"""
Pytest configuration and fixtures for the Block SSR host tests.
"""

from __future__ import annotations

import os
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

# Set test environment variables before importing config
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SITE_MANIFEST", "")

from backend.main import create_app  # noqa: E402
from backend.models.site import SiteManifest  # noqa: E402
from backend.site import Site, build_site  # noqa: E402
from ssr.types import SSROptions  # noqa: E402

LIST_PAGES_JS = """\
window.ReactDOMServer = { renderToString: function (c) { return c; } };
BlockSSR.render(function () {
  var result = BlockSSR.useApiFetch({ path: '/api/pages' });
  return '<ul>' + result[1].map(function (p) { return '<li>' + p.title + '</li>'; }).join('') + '</ul>';
});
"""

BROKEN_JS = """\
var ok = true;
undefinedFunction();
"""


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    """A site root with block scripts under static/blocks/."""
    blocks = tmp_path / "static" / "blocks"
    blocks.mkdir(parents=True)
    (blocks / "vendor.js").write_text("var vendorLoaded = true;", encoding="utf-8")
    (blocks / "list.js").write_text(LIST_PAGES_JS, encoding="utf-8")
    (blocks / "broken.js").write_text(BROKEN_JS, encoding="utf-8")
    return tmp_path


@pytest.fixture
def manifest() -> SiteManifest:
    return SiteManifest.model_validate(
        {
            "scripts": {
                "vendor": {"src": "/static/blocks/vendor.js"},
                "list": {"src": "/static/blocks/list.js", "deps": ["vendor"]},
                "broken": {"src": "/static/blocks/broken.js"},
            },
            "blocks": {
                "demo/list": {"script": "list", "ssr": True},
                "demo/static-list": {"script": "list", "ssr": True, "fsr": False},
                "demo/client-list": {"script": "list"},
                "demo/broken": {"script": "broken", "ssr": True},
            },
            "pages": {
                "home": {
                    "title": "Home",
                    "blocks": [
                        {"blockName": "core/paragraph", "innerHTML": "<p>Welcome</p>"},
                        {"blockName": "demo/client-list", "innerHTML": "<div>loading</div>"},
                    ],
                },
                "about": {
                    "title": "About us",
                    "blocks": [{"blockName": "demo/list", "attrs": {"align": "full"}}],
                },
                "static": {"title": "Static", "blocks": [{"blockName": "demo/static-list"}]},
                "broken": {"title": "Broken", "blocks": [{"blockName": "demo/broken"}]},
            },
        }
    )


@pytest.fixture
def site(manifest: SiteManifest) -> Site:
    return build_site(manifest)


@pytest.fixture
def ssr_options(site_root: Path) -> SSROptions:
    return SSROptions(site_root=site_root)


@pytest.fixture
def make_client(site: Site, ssr_options: SSROptions):
    """Build an app for the test site and return a client factory."""

    def _make(**option_changes) -> httpx.AsyncClient:
        for name, value in option_changes.items():
            setattr(ssr_options, name, value)
        app = create_app(site=site, options=ssr_options)
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

    return _make


@pytest_asyncio.fixture
async def client(make_client):
    """Create test client."""
    async with make_client() as client:
        yield client
