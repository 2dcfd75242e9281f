"""
Block SSR host configuration — all environment variables in one place.

Read from environment at import time.
"""

from __future__ import annotations

import os
from pathlib import Path

from ssr.types import SSROptions


def _flag(name: str, default: str = "") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings from environment variables."""

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")
    SITE_URL: str = os.environ.get("SITE_URL", "http://localhost:8000")

    # Content
    SITE_ROOT: Path = Path(os.environ.get("SITE_ROOT", os.getcwd()))
    SITE_MANIFEST: str = os.environ.get("SITE_MANIFEST", "")
    STATIC_URL: str = os.environ.get("STATIC_URL", "/static")
    RUNTIME_URL: str = "/ssr-assets"

    # Server-side rendering
    SSR_DEBUG: bool = _flag("SSR_DEBUG")
    SSR_DEBUG_SERVER_ONLY: bool = _flag("SSR_DEBUG_SERVER_ONLY")  # suppress client scripts
    SSR_TIME_LIMIT: float = float(os.environ.get("SSR_TIME_LIMIT", "5"))  # seconds per render
    SSR_MEMORY_LIMIT: int = int(os.environ.get("SSR_MEMORY_LIMIT", "0"))  # bytes, 0 = engine default
    REACT_DOM_SERVER_PATH: str = os.environ.get("REACT_DOM_SERVER_PATH", "")

    @property
    def STATIC_DIR(self) -> Path:
        path = os.environ.get("STATIC_DIR")
        if path:
            return Path(path)
        return self.SITE_ROOT / self.STATIC_URL.strip("/")

    def ssr_options(self) -> SSROptions:
        """Kernel options for this deployment."""
        options = SSROptions(
            debug=self.SSR_DEBUG or self.ENVIRONMENT == "development",
            server_only=self.SSR_DEBUG_SERVER_ONLY,
            time_limit=self.SSR_TIME_LIMIT or None,
            memory_limit=self.SSR_MEMORY_LIMIT or None,
            content_url=self.SITE_URL.rstrip("/") + self.STATIC_URL,
            content_dir=self.STATIC_DIR,
            site_root=self.SITE_ROOT,
        )
        if self.REACT_DOM_SERVER_PATH:
            options.server_overrides["react-dom"] = Path(self.REACT_DOM_SERVER_PATH)
        return options


# Singleton instance
settings = Settings()
