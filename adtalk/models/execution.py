"""ExecutionReport contracts."""

from __future__ import annotations

from typing import List, Literal

from pydantic import Field

from .base import DeckBaseModel

CellStatus = Literal["ok", "error", "skipped", "frozen"]


class CellRecord(DeckBaseModel):
    cell_id: str
    slide_id: str
    status: CellStatus
    duration_s: float = 0.0


class ExecutionReport(DeckBaseModel):
    cells: List[CellRecord] = Field(default_factory=list)

    def count(self, status: CellStatus) -> int:
        return sum(1 for record in self.cells if record.status == status)
