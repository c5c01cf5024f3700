"""Talk source to Deck parser.

Parses a Quarto-flavoured Markdown talk into a Deck. The parser recognizes:
- A YAML front matter block
- Slide headings (# section slides, ## content slides) with {.class #id} attributes
- Horizontal rules (---) as untitled slide breaks
- Fenced code: ```{python} cells with #| directives, ```python display blocks
- Fenced divs: callouts, columns/column, speaker notes, generic groups
- Bullet and ordered lists, paragraphs, display math, images
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from ..errors import MarkupError
from ..models.deck import (
    BulletList,
    Callout,
    CellOptions,
    CodeCell,
    Column,
    Columns,
    Deck,
    Image,
    Math,
    Paragraph,
    Slide,
)
from .front_matter import split_front_matter

CALLOUT_TYPES = ("note", "important", "tip", "warning", "caution")
CELL_OPTION_KEYS = ("echo", "eval", "output", "error", "label", "code-line-numbers")

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)(?:\s+\{([^}]*)\})?\s*$")
_CODE_FENCE_RE = re.compile(r"^(`{3,}|~{3,})\s*(.*?)\s*$")
_DIV_FENCE_RE = re.compile(r"^(:{3,})\s*(.*?)\s*$")
_BULLET_RE = re.compile(r"^\s*[-*+]\s+(.+)$")
_ORDERED_RE = re.compile(r"^\s*\d+[.)]\s+(.+)$")
_IMAGE_RE = re.compile(r"^!\[(.*?)\]\((\S+?)(?:\s+\"[^\"]*\")?\)(\{[^}]*\})?\s*$")
_DIRECTIVE_RE = re.compile(r"^#\|\s?(.*)$")
_COMMENT_RE = re.compile(r"^<!--.*-->$")
_PERCENT_RE = re.compile(r"^\d+(?:\.\d+)?%$")


def _compute_hash(content: str) -> str:
    """Compute a stable hash of the content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


def _slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower().strip())
    return slug.strip("-")


def parse_attributes(text: str) -> Tuple[Optional[str], List[str], Dict[str, str]]:
    """Parse a Pandoc attribute string into (id, classes, key/values).

    Accepts both ``{.callout-note title="x"}`` and the bare ``callout-note``
    shorthand.
    """
    text = text.strip()
    if text.startswith("{") and text.endswith("}"):
        text = text[1:-1]
    elif text and not text.startswith("{"):
        text = "." + text if re.match(r"^[\w-]+$", text) else text

    ident: Optional[str] = None
    classes: List[str] = []
    values: Dict[str, str] = {}
    for match in re.finditer(
        r"""([\w-]+)=("[^"]*"|'[^']*'|[^\s]+)|\.([\w-]+)|#([\w-]+)""", text
    ):
        key, value, cls, hid = match.groups()
        if key:
            values[key] = value.strip("\"'")
        elif cls:
            classes.append(cls)
        elif hid:
            ident = hid
    return ident, classes, values


def _parse_directives(lines: List[str], line_no: int) -> Tuple[CellOptions, List[str]]:
    """Split leading ``#|`` lines off a cell and parse them as YAML."""
    directive_lines: List[str] = []
    idx = 0
    while idx < len(lines):
        match = _DIRECTIVE_RE.match(lines[idx])
        if not match:
            break
        directive_lines.append(match.group(1))
        idx += 1
    if not directive_lines:
        return CellOptions(), lines

    try:
        data = yaml.safe_load("\n".join(directive_lines)) or {}
    except yaml.YAMLError as exc:
        raise MarkupError(f"Invalid cell directives: {exc}", line=line_no) from exc
    if not isinstance(data, dict):
        raise MarkupError("Cell directives must be key: value pairs", line=line_no)

    known = {k: v for k, v in data.items() if k in CELL_OPTION_KEYS}
    if "label" in known and known["label"] is not None:
        known["label"] = str(known["label"])
    try:
        options = CellOptions.model_validate(known)
    except ValidationError as exc:
        raise MarkupError(f"Invalid cell directives: {exc}", line=line_no) from exc
    return options, lines[idx:]


class _Container:
    """An open fenced div."""

    def __init__(
        self, role: str, colons: int, line: int, attrs: Dict[str, str], classes: List[str]
    ) -> None:
        self.role = role
        self.colons = colons
        self.line = line
        self.attrs = attrs
        self.classes = classes
        self.blocks: List[Any] = []
        self.columns: List[Column] = []
        self.raw_lines: List[str] = []
        self.title: Optional[str] = attrs.get("title")


class _TalkBuilder:
    def __init__(self) -> None:
        self.slides: List[Slide] = []
        self.slide: Optional[Dict[str, Any]] = None
        self.stack: List[_Container] = []
        self.paragraph: List[str] = []
        self.list_items: List[str] = []
        self.list_ordered = False
        self.cell_index = 0
        self.used_ids: Dict[str, int] = {}

    # -- block plumbing -------------------------------------------------

    def _target(self) -> List[Any]:
        if self.stack:
            return self.stack[-1].blocks
        if self.slide is None:
            self._start_slide(None, 2, [], None, 0)
        return self.slide["blocks"]

    def add_block(self, block: Any, line: int) -> None:
        if self.stack and self.stack[-1].role == "columns":
            raise MarkupError("Content inside .columns must be wrapped in a .column div", line)
        self._target().append(block)

    def flush_text(self, line: int) -> None:
        if self.paragraph:
            text = " ".join(part.strip() for part in self.paragraph)
            self.paragraph = []
            self.add_block(Paragraph(text=text), line)
        if self.list_items:
            items, self.list_items = self.list_items, []
            self.add_block(BulletList(items=items, ordered=self.list_ordered), line)

    # -- slides ---------------------------------------------------------

    def _unique_id(self, base: str) -> str:
        count = self.used_ids.get(base, 0) + 1
        self.used_ids[base] = count
        return base if count == 1 else f"{base}-{count}"

    def _start_slide(
        self,
        title: Optional[str],
        level: int,
        classes: List[str],
        ident: Optional[str],
        line: int,
    ) -> None:
        self.finish_slide()
        base = ident or (_slugify(title) if title else "") or f"slide-{len(self.slides) + 1}"
        self.slide = {
            "slide_id": self._unique_id(base),
            "title": title,
            "level": level,
            "blocks": [],
            "notes": [],
            "classes": classes,
            "line": line,
        }

    def finish_slide(self) -> None:
        if self.slide is None:
            return
        self.slides.append(
            Slide(
                slide_id=self.slide["slide_id"],
                title=self.slide["title"],
                level=self.slide["level"],
                blocks=self.slide["blocks"],
                notes="\n\n".join(self.slide["notes"]),
                classes=self.slide["classes"],
                line=self.slide["line"],
            )
        )
        self.slide = None

    def heading(self, level: int, title: str, attr_text: Optional[str], line: int) -> None:
        self.flush_text(line)
        top = self.stack[-1] if self.stack else None
        if top is not None and top.role == "callout" and top.title is None and not top.blocks:
            top.title = title
            return
        if level > 2:
            self.add_block(Paragraph(text=f"**{title}**"), line)
            return
        if top is not None:
            raise MarkupError(
                f"Slide heading '{title}' inside unclosed div opened on line {top.line}", line
            )
        ident, classes, _ = parse_attributes(attr_text or "")
        self._start_slide(title, level, classes, ident, line)

    def rule(self, line: int) -> None:
        self.flush_text(line)
        if self.stack:
            raise MarkupError(
                f"Slide break inside unclosed div opened on line {self.stack[-1].line}", line
            )
        if self.slide is not None and (self.slide["title"] or self.slide["blocks"]):
            self._start_slide(None, 2, [], None, line)

    # -- fenced divs ----------------------------------------------------

    def open_div(self, colons: int, attr_text: str, line: int) -> None:
        self.flush_text(line)
        _, classes, values = parse_attributes(attr_text)
        role = "group"
        callout_type = None
        for cls in classes:
            if cls.startswith("callout-"):
                callout_type = cls[len("callout-"):]
                if callout_type not in CALLOUT_TYPES:
                    raise MarkupError(f"Unknown callout kind: {callout_type}", line)
                role = "callout"
                break
            if cls in ("columns", "column", "notes"):
                role = cls
                break

        parent = self.stack[-1] if self.stack else None
        if role == "column" and (parent is None or parent.role != "columns"):
            raise MarkupError(".column div outside of a .columns div", line)
        width = values.get("width", "")
        if role == "column" and width.endswith("%") and not _PERCENT_RE.match(width):
            raise MarkupError(f"Invalid column width: {width}", line)
        if role != "column" and parent is not None and parent.role == "columns":
            raise MarkupError("Content inside .columns must be wrapped in a .column div", line)
        if role == "notes" and parent is not None:
            raise MarkupError("Speaker notes must not be nested in another div", line)
        if self.slide is None:
            self._start_slide(None, 2, [], None, line)

        container = _Container(role, colons, line, values, classes)
        if callout_type:
            container.attrs["callout_type"] = callout_type
        self.stack.append(container)

    def close_div(self, line: int) -> None:
        self.flush_text(line)
        if not self.stack:
            raise MarkupError("Closing ':::' without an open div", line)
        container = self.stack.pop()
        if container.role == "notes":
            self.slide["notes"].append("\n".join(container.raw_lines).strip())
        elif container.role == "callout":
            self.add_block(
                Callout(
                    callout_type=container.attrs["callout_type"],
                    title=container.title,
                    blocks=container.blocks,
                ),
                line,
            )
        elif container.role == "columns":
            self.add_block(Columns(columns=container.columns), line)
        elif container.role == "column":
            self.stack[-1].columns.append(
                Column(width=container.attrs.get("width"), blocks=container.blocks)
            )
        else:
            for block in container.blocks:
                self.add_block(block, line)

    def in_notes(self) -> bool:
        return bool(self.stack) and self.stack[-1].role == "notes"

    # -- leaf blocks ----------------------------------------------------

    def code(self, fence_info: str, lines: List[str], line: int) -> None:
        self.flush_text(line)
        info = fence_info.strip()
        executable = False
        language = ""
        if info.startswith("{"):
            inner = info[1:-1].strip() if info.endswith("}") else info[1:].strip()
            first = inner.split()[0] if inner.split() else ""
            if first and not first.startswith("."):
                executable = True
                language = first
            else:
                _, classes, _ = parse_attributes(info)
                language = classes[0] if classes else ""
        elif info:
            language = info.split()[0]

        self.cell_index += 1
        options, source_lines = _parse_directives(lines, line)
        if not executable:
            options = options.model_copy(update={"eval": False})
        self.add_block(
            CodeCell(
                cell_id=options.label or f"cell-{self.cell_index}",
                language=language.lower(),
                source="\n".join(source_lines).strip("\n"),
                executable=executable,
                options=options,
            ),
            line,
        )

    def math(self, tex: str, line: int) -> None:
        self.flush_text(line)
        self.add_block(Math(tex=tex.strip()), line)

    def image(self, alt: str, path: str, attr_text: Optional[str], line: int) -> None:
        self.flush_text(line)
        _, _, values = parse_attributes(attr_text or "")
        width = values.get("width", "")
        if width.endswith("%") and not _PERCENT_RE.match(width):
            raise MarkupError(f"Invalid image width: {width}", line)
        self.add_block(Image(path=path, alt=alt, width=values.get("width")), line)

    def bullet(self, text: str, ordered: bool, line: int) -> None:
        if self.paragraph:
            self.flush_text(line)
        if self.list_items and self.list_ordered != ordered:
            self.flush_text(line)
        self.list_ordered = ordered
        self.list_items.append(text.strip())

    def text(self, raw: str) -> None:
        if self.list_items and raw.startswith((" ", "\t")):
            self.list_items[-1] = f"{self.list_items[-1]} {raw.strip()}"
            return
        if self.list_items:
            self.flush_text(0)
        self.paragraph.append(raw)

    def finish(self, line: int) -> List[Slide]:
        self.flush_text(line)
        if self.stack:
            top = self.stack[-1]
            raise MarkupError(f"Div opened on line {top.line} is never closed", top.line)
        self.finish_slide()
        return self.slides


def _parse_body(body: str, line_offset: int) -> List[Slide]:
    builder = _TalkBuilder()
    lines = body.split("\n")
    idx = 0
    while idx < len(lines):
        raw = lines[idx]
        stripped = raw.strip()
        line_no = line_offset + idx + 1

        code_match = _CODE_FENCE_RE.match(stripped)
        if code_match and not builder.in_notes():
            fence = code_match.group(1)
            closing = re.compile(r"^" + re.escape(fence[0]) + "{" + str(len(fence)) + r",}\s*$")
            end = idx + 1
            while end < len(lines) and not closing.match(lines[end].strip()):
                end += 1
            if end >= len(lines):
                raise MarkupError("Code fence is never closed", line_no)
            builder.code(code_match.group(2), lines[idx + 1:end], line_no)
            idx = end + 1
            continue

        div_match = _DIV_FENCE_RE.match(stripped)
        if div_match:
            if div_match.group(2):
                if builder.in_notes():
                    raise MarkupError("Speaker notes must not contain divs", line_no)
                builder.open_div(len(div_match.group(1)), div_match.group(2), line_no)
            else:
                builder.close_div(line_no)
            idx += 1
            continue

        if builder.in_notes():
            builder.stack[-1].raw_lines.append(raw)
            idx += 1
            continue

        if not stripped:
            builder.flush_text(line_no)
            idx += 1
            continue

        if _COMMENT_RE.match(stripped):
            idx += 1
            continue

        if stripped.startswith("$$"):
            rest = stripped[2:]
            if rest.endswith("$$") and rest:
                builder.math(rest[:-2], line_no)
                idx += 1
                continue
            end = idx + 1
            collected = [rest] if rest else []
            while end < len(lines) and not lines[end].strip().endswith("$$"):
                collected.append(lines[end])
                end += 1
            if end >= len(lines):
                raise MarkupError("Display math is never closed", line_no)
            collected.append(lines[end].strip()[:-2])
            builder.math("\n".join(collected), line_no)
            idx = end + 1
            continue

        if stripped == "---":
            builder.rule(line_no)
            idx += 1
            continue

        heading = _HEADING_RE.match(stripped)
        if heading:
            builder.heading(len(heading.group(1)), heading.group(2).strip(), heading.group(3), line_no)
            idx += 1
            continue

        image = _IMAGE_RE.match(stripped)
        if image:
            builder.image(image.group(1), image.group(2), image.group(3), line_no)
            idx += 1
            continue

        bullet = _BULLET_RE.match(raw)
        if bullet:
            builder.bullet(bullet.group(1), False, line_no)
            idx += 1
            continue

        ordered = _ORDERED_RE.match(raw)
        if ordered:
            builder.bullet(ordered.group(1), True, line_no)
            idx += 1
            continue

        builder.text(raw)
        idx += 1

    return builder.finish(line_offset + len(lines))


def parse_talk_string(content: str, deck_id: str = "inline") -> Deck:
    """Parse a talk source string into a Deck."""
    front_matter, body, offset = split_front_matter(content)
    slides = _parse_body(body, offset)
    return Deck(
        deck_id=deck_id,
        source_hash=_compute_hash(content),
        front_matter=front_matter,
        slides=slides,
    )


def parse_talk(path: Path) -> Deck:
    """Parse a talk file into a Deck.

    Args:
        path: Path to the .qmd (or .md) talk source

    Returns:
        Deck with stable slide ids and source hash

    Raises:
        MarkupError: when the source is not well-formed
    """
    content = path.read_text(encoding="utf-8")
    return parse_talk_string(content, deck_id=path.stem or "untitled")
