"""Site manifest models: scripts, block types and pages."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ssr.types import BlockType, ParsedBlock, ScriptDescriptor


class ScriptModel(BaseModel):
    """A registered script handle."""

    model_config = {"extra": "forbid"}

    src: str = Field(min_length=1)
    deps: list[str] = Field(default_factory=list)

    def to_descriptor(self, handle: str) -> ScriptDescriptor:
        return ScriptDescriptor(handle=handle, src=self.src, deps=tuple(self.deps))


class BlockTypeModel(BaseModel):
    """A registered block type."""

    model_config = {"extra": "forbid"}

    script: str = Field(min_length=1)
    ssr: bool = False
    fsr: bool = True  # frontend (client) rendering

    def to_block_type(self, name: str) -> BlockType:
        return BlockType(name=name, script_handle=self.script, ssr=self.ssr, frontend_render=self.fsr)


class BlockModel(BaseModel):
    """One block instance on a page, in parsed-block form."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    name: str = Field(alias="blockName")
    attrs: dict[str, Any] = Field(default_factory=dict)
    inner_html: str = Field(default="", alias="innerHTML")

    def to_parsed(self) -> ParsedBlock:
        return ParsedBlock(name=self.name, attrs=dict(self.attrs), inner_html=self.inner_html)


class PageModel(BaseModel):
    """A page: a title and its blocks in order."""

    model_config = {"extra": "forbid"}

    title: str = "Untitled"
    blocks: list[BlockModel] = Field(default_factory=list)


class SiteManifest(BaseModel):
    """What a site manifest JSON file contains."""

    model_config = {"extra": "forbid"}

    scripts: dict[str, ScriptModel] = Field(default_factory=dict)
    blocks: dict[str, BlockTypeModel] = Field(default_factory=dict)
    pages: dict[str, PageModel] = Field(default_factory=dict)
    runtime_deps: list[str] = Field(default_factory=list)  # deps of the ssr-runtime script


class PageSummary(BaseModel):
    """What GET /api/pages lists."""

    slug: str
    title: str


class PageDetail(BaseModel):
    """What GET /api/pages/{slug} returns."""

    slug: str
    title: str
    blocks: list[dict[str, Any]]
