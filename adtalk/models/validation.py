"""ValidationReport contracts."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field

from .base import DeckBaseModel

ValidationSeverity = Literal["BLOCKING", "WARN"]
ViolationType = Literal[
    "UNRESOLVED_CITATION",
    "MISSING_IMAGE",
    "EMPTY_SLIDE",
    "TITLE_TOO_LONG",
    "TOO_MANY_BULLETS",
    "CODE_TOO_LONG",
    "CELL_ERROR",
]


class ValidationViolation(DeckBaseModel):
    slide_id: str
    violation_type: ViolationType
    severity: ValidationSeverity
    detail: Optional[str] = None
    recommended_action: Optional[str] = None


class ValidationReport(DeckBaseModel):
    violations: List[ValidationViolation] = Field(default_factory=list)

    @property
    def blocking(self) -> List[ValidationViolation]:
        return [v for v in self.violations if v.severity == "BLOCKING"]
