"""
Site content — block types, scripts and pages loaded from a manifest.

The manifest is a JSON file (SITE_MANIFEST) validated by SiteManifest.
The bundled ssr-runtime script is always registered.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from fastapi import Request
from pydantic import ValidationError

from backend.config import settings
from backend.models.site import PageModel, SiteManifest
from ssr.registry import MemoryBlockRegistry, MemoryScriptRegistry
from ssr.types import RUNTIME_HANDLE, ScriptDescriptor

logger = logging.getLogger(__name__)


class ManifestError(Exception):
    """Site manifest is missing, not JSON, or invalid."""

    pass


@dataclass
class Site:
    """Everything the page routes need to compose a page."""

    blocks: MemoryBlockRegistry = field(default_factory=MemoryBlockRegistry)
    scripts: MemoryScriptRegistry = field(default_factory=MemoryScriptRegistry)
    pages: dict[str, PageModel] = field(default_factory=dict)


def build_site(manifest: SiteManifest, runtime_url: str = settings.RUNTIME_URL) -> Site:
    """Populate registries from a validated manifest."""
    site = Site(pages=dict(manifest.pages))

    site.scripts.register(
        ScriptDescriptor(
            handle=RUNTIME_HANDLE,
            src=f"{runtime_url}/ssr-runtime.js",
            deps=tuple(manifest.runtime_deps),
        )
    )
    for handle, script in manifest.scripts.items():
        site.scripts.register(script.to_descriptor(handle))
    for name, block in manifest.blocks.items():
        site.blocks.register(block.to_block_type(name))

    return site


def load_site(path: str | Path | None) -> Site:
    """
    Load a site from a manifest file. No path means an empty site.

    Raises:
        ManifestError: The file cannot be read or does not validate
    """
    if not path:
        logger.info("No SITE_MANIFEST configured, serving an empty site")
        return build_site(SiteManifest())

    try:
        raw = Path(path).read_text(encoding="utf-8")
        manifest = SiteManifest.model_validate(json.loads(raw))
    except OSError as e:
        raise ManifestError(f"Cannot read site manifest {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"Site manifest {path} is not valid JSON: {e}") from e
    except ValidationError as e:
        raise ManifestError(f"Site manifest {path} is invalid: {e}") from e

    site = build_site(manifest)
    logger.info(
        "Loaded site manifest %s: %d pages, %d block types, %d scripts",
        path,
        len(site.pages),
        len(site.blocks.blocks),
        len(site.scripts.scripts),
    )
    return site


def get_site(request: Request) -> Site:
    """FastAPI dependency: the site attached to the app."""
    return request.app.state.site
