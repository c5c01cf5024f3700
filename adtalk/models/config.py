"""Config model."""

from __future__ import annotations

from pydantic import Field, constr

from .base import DeckBaseModel

NonEmptyStr = constr(min_length=1)


class Config(DeckBaseModel):
    project_root: NonEmptyStr = Field(..., description="Project root directory")
    talk_path: NonEmptyStr = Field(..., description="Talk source document (.qmd)")
    bibliography_path: NonEmptyStr = Field(..., description="BibTeX file for the talk")
    assets_dir: NonEmptyStr = Field(..., description="Canonical assets directory")
    layout_catalog_path: NonEmptyStr = Field(..., description="Layout catalog JSON path")
    runs_dir: NonEmptyStr = Field(..., description="Runs output directory")
    freeze_dir: NonEmptyStr = Field(..., description="Frozen cell output directory")
