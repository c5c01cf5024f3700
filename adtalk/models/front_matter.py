"""Front matter contracts."""

from __future__ import annotations

import datetime
from typing import Any, List, Literal, Optional, Union

from pydantic import ConfigDict, Field, field_validator

from .base import DeckBaseModel

FreezeMode = Union[bool, Literal["auto"]]


class RevealOptions(DeckBaseModel):
    """Presentation options under ``format: revealjs``.

    Only the options the renderer honours are modelled; anything else the
    source declares is kept out of the way rather than rejected.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    slide_number: bool = Field(False, alias="slide-number")
    overview: bool = True
    code_line_numbers: bool = Field(True, alias="code-line-numbers")
    scrollable: bool = False
    width: int = Field(1050, gt=0)
    height: int = Field(700, gt=0)


class ExecutePolicy(DeckBaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    echo: bool = True
    eval: bool = True
    freeze: FreezeMode = False
    error: bool = False

    @property
    def frozen(self) -> bool:
        return self.freeze is True or self.freeze == "auto"


class FrontMatter(DeckBaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: str = "Untitled"
    subtitle: Optional[str] = None
    author: Union[str, List[str], None] = None
    date: Optional[str] = None
    bibliography: Union[str, List[str], None] = None
    format: RevealOptions = Field(default_factory=RevealOptions)
    execute: ExecutePolicy = Field(default_factory=ExecutePolicy)

    @field_validator("date", mode="before")
    @classmethod
    def _date_to_str(cls, value: Any) -> Any:
        # YAML turns 2023-09-14 into a date object
        if isinstance(value, (datetime.date, datetime.datetime)):
            return value.isoformat()
        return value

    @field_validator("format", mode="before")
    @classmethod
    def _unwrap_revealjs(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return {}
        if isinstance(value, dict) and "revealjs" in value:
            return value["revealjs"] or {}
        return value

    @property
    def authors(self) -> List[str]:
        if self.author is None:
            return []
        if isinstance(self.author, str):
            return [self.author]
        return list(self.author)

    @property
    def bibliography_files(self) -> List[str]:
        if self.bibliography is None:
            return []
        if isinstance(self.bibliography, str):
            return [self.bibliography]
        return list(self.bibliography)
