"""Deck contracts: slides and the content blocks they hold."""

from __future__ import annotations

import re
from typing import Annotated, Iterator, List, Literal, Optional, Tuple, Union

from pydantic import Field, constr

from .base import DeckBaseModel
from .front_matter import FrontMatter

NonEmptyStr = constr(min_length=1)
CalloutType = Literal["note", "important", "tip", "warning", "caution"]
OutputType = Literal["stream", "result", "error"]

# Pandoc citation keys may contain internal punctuation but never end with it.
CITATION_PATTERN = re.compile(r"(?<![\w@])@([A-Za-z0-9_](?:[\w:.#$%&+?<>~/-]*\w)?)")
INLINE_CODE_PATTERN = re.compile(r"`[^`]*`")


class Paragraph(DeckBaseModel):
    kind: Literal["paragraph"] = "paragraph"
    text: str


class BulletList(DeckBaseModel):
    kind: Literal["bullets"] = "bullets"
    items: List[str] = Field(default_factory=list)
    ordered: bool = False


class Math(DeckBaseModel):
    kind: Literal["math"] = "math"
    tex: str


class Image(DeckBaseModel):
    kind: Literal["image"] = "image"
    path: NonEmptyStr
    alt: str = ""
    width: Optional[str] = None


class CellOptions(DeckBaseModel):
    """Per-cell ``#|`` directives. ``None`` inherits the front matter."""

    echo: Optional[bool] = None
    eval: Optional[bool] = None
    output: Optional[bool] = None
    error: Optional[bool] = None
    label: Optional[str] = None
    code_line_numbers: Optional[bool] = Field(None, alias="code-line-numbers")


class CellOutput(DeckBaseModel):
    output_type: OutputType
    text: str


class CodeCell(DeckBaseModel):
    kind: Literal["code"] = "code"
    cell_id: NonEmptyStr
    language: str = ""
    source: str = ""
    executable: bool = True
    options: CellOptions = Field(default_factory=CellOptions)
    outputs: List[CellOutput] = Field(default_factory=list)

    @property
    def line_count(self) -> int:
        return len(self.source.splitlines())

    @property
    def has_error(self) -> bool:
        return any(o.output_type == "error" for o in self.outputs)


class Callout(DeckBaseModel):
    kind: Literal["callout"] = "callout"
    callout_type: CalloutType = "note"
    title: Optional[str] = None
    blocks: List[Block] = Field(default_factory=list)


class Column(DeckBaseModel):
    width: Optional[str] = None
    blocks: List[Block] = Field(default_factory=list)

    @property
    def fraction(self) -> Optional[float]:
        if self.width and self.width.endswith("%"):
            return float(self.width[:-1]) / 100.0
        return None


class Columns(DeckBaseModel):
    kind: Literal["columns"] = "columns"
    columns: List[Column] = Field(default_factory=list)


Block = Annotated[
    Union[Paragraph, BulletList, Math, Image, CodeCell, Callout, Columns],
    Field(discriminator="kind"),
]


class Slide(DeckBaseModel):
    slide_id: NonEmptyStr
    title: Optional[str] = None
    level: int = 2
    blocks: List[Block] = Field(default_factory=list)
    notes: str = ""
    classes: List[str] = Field(default_factory=list)
    line: int = 0

    def iter_blocks(self) -> Iterator[Block]:
        """Yield every block on the slide, descending into containers."""
        yield from _walk(self.blocks)

    def texts(self) -> Iterator[str]:
        """Yield the prose on the slide, where citations can appear."""
        if self.title:
            yield self.title
        for block in self.iter_blocks():
            if isinstance(block, Paragraph):
                yield block.text
            elif isinstance(block, BulletList):
                yield from block.items
            elif isinstance(block, Callout) and block.title:
                yield block.title
            elif isinstance(block, Image) and block.alt:
                yield block.alt
        if self.notes:
            yield self.notes


def _walk(blocks: List[Block]) -> Iterator[Block]:
    for block in blocks:
        yield block
        if isinstance(block, Callout):
            yield from _walk(block.blocks)
        elif isinstance(block, Columns):
            for column in block.columns:
                yield from _walk(column.blocks)


class Deck(DeckBaseModel):
    deck_id: NonEmptyStr
    source_hash: NonEmptyStr
    front_matter: FrontMatter = Field(default_factory=FrontMatter)
    slides: List[Slide] = Field(default_factory=list)

    def code_cells(self) -> Iterator[Tuple[Slide, CodeCell]]:
        for slide in self.slides:
            for block in slide.iter_blocks():
                if isinstance(block, CodeCell):
                    yield slide, block

    def images(self) -> Iterator[Tuple[Slide, Image]]:
        for slide in self.slides:
            for block in slide.iter_blocks():
                if isinstance(block, Image):
                    yield slide, block

    @staticmethod
    def citation_keys_in(text: str) -> List[str]:
        """Citation keys in a run of prose, ignoring inline code."""
        return [m.group(1) for m in CITATION_PATTERN.finditer(INLINE_CODE_PATTERN.sub("", text))]

    def citations(self) -> Iterator[Tuple[Slide, str]]:
        """Yield (slide, key) for each citation, in document order."""
        for slide in self.slides:
            for text in slide.texts():
                for key in self.citation_keys_in(text):
                    yield slide, key

    def citation_keys(self) -> List[str]:
        seen: List[str] = []
        for _, key in self.citations():
            if key not in seen:
                seen.append(key)
        return seen


Callout.model_rebuild()
Column.model_rebuild()
Columns.model_rebuild()
Slide.model_rebuild()
Deck.model_rebuild()
