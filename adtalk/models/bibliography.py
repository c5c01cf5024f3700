"""Bibliography contracts."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from pydantic import Field, constr

from .base import DeckBaseModel

NonEmptyStr = constr(min_length=1)


class BibEntry(DeckBaseModel):
    key: NonEmptyStr
    entry_type: NonEmptyStr
    fields: Dict[str, str] = Field(default_factory=dict)

    @property
    def authors(self) -> List[str]:
        """Family names of the authors, in order."""
        raw = self.fields.get("author") or self.fields.get("editor") or ""
        names: List[str] = []
        for name in re.split(r"\s+and\s+", raw):
            name = name.strip().strip("{}")
            if not name:
                continue
            if "," in name:
                names.append(name.split(",", 1)[0].strip())
            else:
                names.append(name.split()[-1])
        return names

    @property
    def year(self) -> Optional[str]:
        year = self.fields.get("year")
        if year:
            return year
        date = self.fields.get("date", "")
        return date[:4] or None

    @property
    def title(self) -> str:
        return self.fields.get("title", "").replace("{", "").replace("}", "")


class Bibliography(DeckBaseModel):
    entries: Dict[str, BibEntry] = Field(default_factory=dict)

    def get(self, key: str) -> Optional[BibEntry]:
        return self.entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def missing(self, keys: Iterable[str]) -> List[str]:
        return [key for key in keys if key not in self.entries]
