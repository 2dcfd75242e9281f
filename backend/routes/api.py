"""Data routes blocks fetch through the SSR bridge (and the browser, after hydration)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from backend.dispatch import current_page
from backend.models.site import PageDetail, PageSummary
from backend.site import Site, get_site

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/pages", status_code=200)
async def list_pages(site: Site = Depends(get_site)) -> list[PageSummary]:
    """List every page of the site."""
    return [PageSummary(slug=slug, title=page.title) for slug, page in site.pages.items()]


@router.get("/pages/{slug}", status_code=200)
async def get_page(slug: str, site: Site = Depends(get_site)) -> PageDetail:
    """Get one page with its blocks."""
    page = site.pages.get(slug)
    if page is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found.")

    # Handlers treat the fetched page as the current one
    current_page.set(slug)
    return PageDetail(
        slug=slug,
        title=page.title,
        blocks=[block.model_dump(by_alias=True) for block in page.blocks],
    )
