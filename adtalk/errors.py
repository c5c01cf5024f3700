"""Exceptions raised while building a talk."""

from __future__ import annotations

from typing import Optional


class MarkupError(ValueError):
    """The talk source is not well-formed."""

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        self.line = line
        prefix = f"line {line}: " if line is not None else ""
        super().__init__(prefix + message)


class BibliographyError(ValueError):
    """The BibTeX file could not be read."""


class CellExecutionError(RuntimeError):
    """A code cell raised while errors are not tolerated."""

    def __init__(self, cell_id: str, slide_id: str, summary: str) -> None:
        self.cell_id = cell_id
        self.slide_id = slide_id
        self.summary = summary
        super().__init__(f"Cell {cell_id} on slide {slide_id} failed: {summary}")
