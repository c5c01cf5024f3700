"""RenderMap contracts."""

from __future__ import annotations

from typing import Dict, List

from pydantic import Field

from .base import DeckBaseModel


class RenderMapEntry(DeckBaseModel):
    slide_id: str
    slide_index: int
    block_kinds: List[str] = Field(default_factory=list)


class RenderMap(DeckBaseModel):
    entries: Dict[str, RenderMapEntry] = Field(default_factory=dict)
