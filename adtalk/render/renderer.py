"""Deck to PPTX renderer."""

from __future__ import annotations

import json
import math
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import MSO_ANCHOR, PP_ALIGN
from pptx.util import Emu, Inches, Pt

from ..models.bibliography import Bibliography
from ..models.deck import (
    BulletList,
    Callout,
    CodeCell,
    Columns,
    Deck,
    Image,
    Math,
    Paragraph,
    Slide,
)
from ..models.render_map import RenderMap, RenderMapEntry
from ..validate.drift import open_template
from ..validate.preflight import layout_id_for
from .citations import format_reference, replace_citations

EMU_PER_PX = 9525  # 96 dpi
BODY_PT = 18
CODE_PT = 13
CODE_FONT = "Consolas"
MARGIN = Inches(0.5)
BLOCK_GAP = Inches(0.15)

CALLOUT_COLORS = {
    "note": RGBColor(0xDA, 0xE8, 0xFC),
    "important": RGBColor(0xF8, 0xCE, 0xCC),
    "tip": RGBColor(0xD5, 0xE8, 0xD4),
    "warning": RGBColor(0xFF, 0xE6, 0xCC),
    "caution": RGBColor(0xFF, 0xF2, 0xCC),
}
CODE_FILL = RGBColor(0xF4, 0xF4, 0xF4)
ERROR_COLOR = RGBColor(0xC0, 0x00, 0x00)

_INLINE_RE = re.compile(r"(\*\*[^*]+\*\*|`[^`]+`|\*[^*]+\*|\$[^$]+\$)")


def _line_height(size_pt: int) -> int:
    return int(Pt(size_pt) * 1.25)


def _estimate_lines(text: str, width: int, size_pt: int) -> int:
    """Estimate wrapped line count for text in a box ``width`` EMU wide."""
    chars_per_line = max(int(width / (Pt(size_pt) * 0.55)), 10)
    total = 0
    for line in text.split("\n") or [""]:
        total += max(1, math.ceil(len(line) / chars_per_line))
    return total


class Renderer:
    def __init__(
        self, layout_catalog_path: Path, template_path: Optional[Path] = None
    ) -> None:
        self.layout_catalog_path = layout_catalog_path
        self.template_path = template_path

    def render(
        self,
        deck: Deck,
        bibliography: Bibliography,
        output_path: Path,
        assets_root: Optional[Path] = None,
    ) -> RenderMap:
        """Render a Deck to PPTX and return a RenderMap."""
        layout_catalog = self._load_layout_catalog()
        self._bibliography = bibliography
        self._assets_root = assets_root
        reveal = deck.front_matter.format

        prs = open_template(self.template_path)
        self._remove_existing_slides(prs)
        prs.slide_width = Emu(reveal.width * EMU_PER_PX)
        prs.slide_height = Emu(reveal.height * EMU_PER_PX)
        self._line_numbers = reveal.code_line_numbers
        self._echo = deck.front_matter.execute.echo
        self._cite = True
        render_map = RenderMap()

        title_slide = prs.slides.add_slide(self._layout(prs, layout_catalog, "title"))
        self._fill_title_slide(prs, title_slide, deck)
        render_map.entries["title-slide"] = RenderMapEntry(slide_id="title-slide", slide_index=0)

        for slide_spec in deck.slides:
            layout_id = layout_id_for(slide_spec)
            slide = prs.slides.add_slide(self._layout(prs, layout_catalog, layout_id))
            if layout_id == "section":
                self._fill_section_slide(prs, slide, slide_spec)
            else:
                self._fill_content_slide(prs, slide, slide_spec)
            slide.notes_slide.notes_text_frame.text = slide_spec.notes

            render_map.entries[slide_spec.slide_id] = RenderMapEntry(
                slide_id=slide_spec.slide_id,
                slide_index=len(prs.slides) - 1,
                block_kinds=[block.kind for block in slide_spec.blocks],
            )

        cited = [key for key in deck.citation_keys() if key in bibliography]
        if cited:
            slide = prs.slides.add_slide(self._layout(prs, layout_catalog, "content"))
            refs = Slide(
                slide_id="references-slide",
                title="References",
                blocks=[BulletList(items=[format_reference(bibliography.get(k)) for k in cited])],
            )
            self._fill_content_slide(prs, slide, refs, cite=False)
            render_map.entries["references-slide"] = RenderMapEntry(
                slide_id="references-slide",
                slide_index=len(prs.slides) - 1,
                block_kinds=["bullets"],
            )

        if reveal.slide_number:
            for number, slide in enumerate(prs.slides, start=1):
                self._add_slide_number(prs, slide, number)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        prs.save(str(output_path))
        return render_map

    # -- slide kinds ----------------------------------------------------

    def _fill_title_slide(self, prs, slide, deck: Deck) -> None:
        fm = deck.front_matter
        self._set_placeholder(slide, 0, fm.title)
        byline = [line for line in (fm.subtitle, ", ".join(fm.authors), fm.date) if line]
        self._set_placeholder(slide, 1, "\n".join(byline))

    def _fill_section_slide(self, prs, slide, slide_spec: Slide) -> None:
        self._set_placeholder(slide, 0, slide_spec.title or "")
        body = [b.text for b in slide_spec.blocks if isinstance(b, Paragraph)]
        self._set_placeholder(slide, 1, replace_citations("\n".join(body), self._bibliography))

    def _fill_content_slide(self, prs, slide, slide_spec: Slide, cite: bool = True) -> None:
        width = prs.slide_width - 2 * MARGIN
        title_shape = self._placeholder(slide, 0)
        if title_shape is not None:
            title_shape.left, title_shape.top = MARGIN, Inches(0.25)
            title_shape.width, title_shape.height = width, Inches(0.9)
            title_shape.text_frame.text = slide_spec.title or ""
        self._cite = cite
        top = Inches(1.25)
        for block in slide_spec.blocks:
            top += self._render_block(slide, block, MARGIN, top, width) + BLOCK_GAP

    # -- blocks ---------------------------------------------------------

    def _render_block(self, slide, block: Any, left: int, top: int, width: int) -> int:
        """Draw one block and return the height it used."""
        if isinstance(block, Paragraph):
            return self._render_text(slide, [block.text], left, top, width)
        if isinstance(block, BulletList):
            marks = [f"{i}. " if block.ordered else "• " for i in range(1, len(block.items) + 1)]
            return self._render_text(slide, [m + item for m, item in zip(marks, block.items)], left, top, width)
        if isinstance(block, Math):
            return self._render_text(slide, [block.tex], left, top, width, italic=True, align=PP_ALIGN.CENTER)
        if isinstance(block, Image):
            return self._render_image(slide, block, left, top, width)
        if isinstance(block, CodeCell):
            return self._render_code(slide, block, left, top, width)
        if isinstance(block, Callout):
            return self._render_callout(slide, block, left, top, width)
        if isinstance(block, Columns):
            return self._render_columns(slide, block, left, top, width)
        raise ValueError(f"Unknown block kind: {getattr(block, 'kind', block)}")

    def _render_text(
        self,
        slide,
        lines: List[str],
        left: int,
        top: int,
        width: int,
        size_pt: int = BODY_PT,
        italic: bool = False,
        align=None,
    ) -> int:
        if self._cite:
            lines = [replace_citations(line, self._bibliography) for line in lines]
        height = sum(_estimate_lines(line, width, size_pt) for line in lines) * _line_height(size_pt)
        box = slide.shapes.add_textbox(left, top, width, height)
        frame = box.text_frame
        frame.word_wrap = True
        for idx, line in enumerate(lines):
            paragraph = frame.paragraphs[0] if idx == 0 else frame.add_paragraph()
            if align is not None:
                paragraph.alignment = align
            self._add_runs(paragraph, line, size_pt, italic)
        return height

    def _add_runs(self, paragraph, text: str, size_pt: int, italic: bool = False) -> None:
        for piece in _INLINE_RE.split(text):
            if not piece:
                continue
            run = paragraph.add_run()
            run.font.size = Pt(size_pt)
            run.font.italic = italic
            if piece.startswith("**") and piece.endswith("**"):
                run.text = piece[2:-2]
                run.font.bold = True
            elif piece.startswith("`") and piece.endswith("`"):
                run.text = piece[1:-1]
                run.font.name = CODE_FONT
            elif piece.startswith("$") and piece.endswith("$"):
                run.text = piece[1:-1]
                run.font.italic = True
            elif piece.startswith("*") and piece.endswith("*"):
                run.text = piece[1:-1]
                run.font.italic = True
            else:
                run.text = piece

    def _render_code(self, slide, cell: CodeCell, left: int, top: int, width: int) -> int:
        used = 0
        echo = self._echo if cell.options.echo is None else cell.options.echo
        if echo and cell.source:
            numbered = self._line_numbers if cell.options.code_line_numbers is None else cell.options.code_line_numbers
            lines = cell.source.split("\n")
            if numbered:
                pad = len(str(len(lines)))
                lines = [f"{n:>{pad}}  {line}" for n, line in enumerate(lines, start=1)]
            used += self._code_box(slide, lines, left, top, width, CODE_FILL)

        if cell.options.output is not False and cell.outputs:
            if used:
                used += BLOCK_GAP
            for output in cell.outputs:
                color = ERROR_COLOR if output.output_type == "error" else None
                used += self._code_box(slide, output.text.split("\n"), left, top + used, width, None, color)
        return used

    def _code_box(self, slide, lines: List[str], left, top, width, fill, color=None) -> int:
        height = len(lines) * _line_height(CODE_PT) + Inches(0.1)
        box = slide.shapes.add_textbox(left, top, width, height)
        if fill is not None:
            box.fill.solid()
            box.fill.fore_color.rgb = fill
        frame = box.text_frame
        frame.word_wrap = False
        for idx, line in enumerate(lines):
            paragraph = frame.paragraphs[0] if idx == 0 else frame.add_paragraph()
            run = paragraph.add_run()
            run.text = line
            run.font.name = CODE_FONT
            run.font.size = Pt(CODE_PT)
            if color is not None:
                run.font.color.rgb = color
        return height

    def _render_callout(self, slide, callout: Callout, left: int, top: int, width: int) -> int:
        pad = Inches(0.15)
        shape = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, left, top, width, _line_height(BODY_PT))
        shape.fill.solid()
        shape.fill.fore_color.rgb = CALLOUT_COLORS[callout.callout_type]
        shape.line.color.rgb = CALLOUT_COLORS[callout.callout_type]
        frame = shape.text_frame
        frame.word_wrap = True
        frame.vertical_anchor = MSO_ANCHOR.TOP
        heading = frame.paragraphs[0]
        heading.alignment = PP_ALIGN.LEFT
        run = heading.add_run()
        run.text = callout.title or callout.callout_type.capitalize()
        if self._cite:
            run.text = replace_citations(run.text, self._bibliography)
        run.font.bold = True
        run.font.size = Pt(BODY_PT)
        run.font.color.rgb = RGBColor(0, 0, 0)

        # children sit on top of the rectangle, below its title
        y = top + pad + _line_height(BODY_PT)
        for block in callout.blocks:
            y += self._render_block(slide, block, left + pad, y, width - 2 * pad) + BLOCK_GAP
        shape.height = y - top + pad
        return shape.height

    def _render_columns(self, slide, columns: Columns, left: int, top: int, width: int) -> int:
        count = len(columns.columns)
        if not count:
            return 0
        gap = Inches(0.3)
        usable = width - gap * (count - 1)
        explicit = [c.fraction for c in columns.columns]
        remaining = max(1.0 - sum(f for f in explicit if f), 0.0)
        implicit = sum(1 for f in explicit if not f)
        tallest = 0
        x = left
        for column, fraction in zip(columns.columns, explicit):
            if not fraction:
                fraction = remaining / implicit if implicit else 1.0 / count
            col_width = int(usable * fraction)
            y = top
            for block in column.blocks:
                y += self._render_block(slide, block, x, y, col_width) + BLOCK_GAP
            tallest = max(tallest, y - top)
            x += col_width + gap
        return tallest

    def _render_image(self, slide, image: Image, left: int, top: int, width: int) -> int:
        path = self._resolve_asset_path(image.path)
        if image.width and image.width.endswith("%"):
            width = int(width * float(image.width[:-1]) / 100.0)
        picture = slide.shapes.add_picture(str(path), left, top, width=width)
        if image.alt:
            self._set_alt_text(picture, image.alt)
        return picture.height

    # -- helpers --------------------------------------------------------

    def _add_slide_number(self, prs, slide, number: int) -> None:
        box = slide.shapes.add_textbox(
            prs.slide_width - Inches(1.0), prs.slide_height - Inches(0.5), Inches(0.8), Inches(0.4)
        )
        paragraph = box.text_frame.paragraphs[0]
        paragraph.alignment = PP_ALIGN.RIGHT
        run = paragraph.add_run()
        run.text = str(number)
        run.font.size = Pt(12)

    def _placeholder(self, slide, idx: int):
        for shape in slide.placeholders:
            if shape.placeholder_format.idx == idx:
                return shape
        return None

    def _set_placeholder(self, slide, idx: int, text: str) -> None:
        shape = self._placeholder(slide, idx)
        if shape is not None:
            shape.text_frame.text = text

    def _layout(self, prs, layout_catalog: Dict[str, Dict[str, Any]], layout_id: str):
        layout_entry = layout_catalog.get(layout_id)
        if not layout_entry:
            raise ValueError(f"Unknown layout_id: {layout_id}")
        master = prs.slide_masters[layout_entry["master_index"]]
        return master.slide_layouts[layout_entry["layout_index"]]

    def _remove_existing_slides(self, prs) -> None:
        while len(prs.slides) > 0:
            slide_id = prs.slides._sldIdLst[0]
            r_id = slide_id.rId
            prs.part.drop_rel(r_id)
            del prs.slides._sldIdLst[0]

    def _set_alt_text(self, shape, text: str) -> None:
        shape._element.nvPicPr.cNvPr.set("descr", text)

    def _load_layout_catalog(self) -> Dict[str, Dict[str, Any]]:
        with open(self.layout_catalog_path, "r", encoding="utf-8") as handle:
            catalog = json.load(handle)
        layouts = catalog.get("layouts", [])
        return {entry["layout_id"]: entry for entry in layouts}

    def _resolve_asset_path(self, asset: str) -> Path:
        asset_path = Path(asset)
        if asset_path.is_absolute():
            if asset_path.exists():
                return asset_path
            raise FileNotFoundError(f"Missing asset: {asset}")
        if self._assets_root is not None:
            candidate = self._assets_root / asset
            if candidate.exists():
                return candidate
        raise FileNotFoundError(f"Missing asset: {asset}")
