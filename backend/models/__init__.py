"""
Pydantic models for the Block SSR host.

All data shapes defined here. No imports from routes.
"""

from backend.models.site import (
    BlockModel,
    BlockTypeModel,
    PageDetail,
    PageModel,
    PageSummary,
    ScriptModel,
    SiteManifest,
)

__all__ = [
    # Manifest models
    "SiteManifest",
    "ScriptModel",
    "BlockTypeModel",
    "PageModel",
    "BlockModel",
    # API models
    "PageSummary",
    "PageDetail",
]
