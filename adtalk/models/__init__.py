"""Pydantic models for adtalk contracts."""

from .base import DeckBaseModel
from .bibliography import BibEntry, Bibliography
from .config import Config
from .deck import (
    BulletList,
    Callout,
    CellOptions,
    CellOutput,
    CodeCell,
    Column,
    Columns,
    Deck,
    Image,
    Math,
    Paragraph,
    Slide,
)
from .execution import CellRecord, ExecutionReport
from .front_matter import ExecutePolicy, FrontMatter, RevealOptions
from .render_map import RenderMap, RenderMapEntry
from .validation import ValidationReport, ValidationViolation

__all__ = [
    "Config",
    "DeckBaseModel",
    "BibEntry",
    "Bibliography",
    "BulletList",
    "Callout",
    "CellOptions",
    "CellOutput",
    "CodeCell",
    "Column",
    "Columns",
    "Deck",
    "Image",
    "Math",
    "Paragraph",
    "Slide",
    "CellRecord",
    "ExecutionReport",
    "ExecutePolicy",
    "FrontMatter",
    "RevealOptions",
    "RenderMap",
    "RenderMapEntry",
    "ValidationReport",
    "ValidationViolation",
]
