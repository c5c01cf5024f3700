"""Talk source normalization tests."""

import tempfile
import unittest
from pathlib import Path

from adtalk.config import load_config
from adtalk.errors import MarkupError
from adtalk.models.deck import BulletList, Callout, CodeCell, Columns, Image, Math, Paragraph
from adtalk.normalize.front_matter import split_front_matter
from adtalk.normalize.parser import parse_attributes, parse_talk, parse_talk_string

SAMPLE = """---
title: "AD in ten minutes"
author: Someone
date: 2024-07-10
bibliography: refs.bib
format:
  revealjs:
    slide-number: true
    width: 1280
    height: 720
execute:
  echo: false
  error: true
---

# Background

Why we care.

## Dual numbers {.smaller #duals}

A dual number carries a derivative
alongside its value [@revels2016].

- Overload `+`
- Overload `*`

```{python}
#| label: dual-demo
#| echo: true
x = 1 + 1
x
```

::: {.notes}
Mention ForwardDiff here.
:::

## Dual numbers

```python
print("display only")
```
"""


class TestFrontMatter(unittest.TestCase):
    def test_no_front_matter_gives_defaults(self) -> None:
        fm, body, offset = split_front_matter("## Slide\n")
        self.assertEqual(fm.title, "Untitled")
        self.assertEqual(body, "## Slide\n")
        self.assertEqual(offset, 0)

    def test_front_matter_parsed(self) -> None:
        fm, body, offset = split_front_matter(SAMPLE)
        self.assertEqual(fm.title, "AD in ten minutes")
        self.assertEqual(fm.date, "2024-07-10")
        self.assertEqual(fm.bibliography_files, ["refs.bib"])
        self.assertTrue(fm.format.slide_number)
        self.assertEqual((fm.format.width, fm.format.height), (1280, 720))
        self.assertFalse(fm.execute.echo)
        self.assertTrue(fm.execute.error)
        self.assertEqual(offset, 14)
        self.assertTrue(body.startswith("\n# Background"))

    def test_unclosed_front_matter(self) -> None:
        with self.assertRaises(MarkupError):
            split_front_matter("---\ntitle: x\n\n## Slide\n")

    def test_front_matter_must_be_mapping(self) -> None:
        with self.assertRaises(MarkupError):
            split_front_matter("---\n- a\n- b\n---\n")


class TestAttributes(unittest.TestCase):
    def test_braced_attributes(self) -> None:
        ident, classes, values = parse_attributes('{.callout-note #intro title="Read me" width=40%}')
        self.assertEqual(ident, "intro")
        self.assertEqual(classes, ["callout-note"])
        self.assertEqual(values, {"title": "Read me", "width": "40%"})

    def test_bare_class(self) -> None:
        _, classes, _ = parse_attributes("columns")
        self.assertEqual(classes, ["columns"])


class TestTalkParser(unittest.TestCase):
    def setUp(self) -> None:
        self.deck = parse_talk_string(SAMPLE, deck_id="sample")

    def test_slides_and_levels(self) -> None:
        ids = [s.slide_id for s in self.deck.slides]
        self.assertEqual(ids, ["background", "duals", "dual-numbers"])
        self.assertEqual(self.deck.slides[0].level, 1)
        self.assertEqual(self.deck.slides[1].level, 2)
        self.assertEqual(self.deck.slides[1].classes, ["smaller"])

    def test_heading_line_numbers_are_absolute(self) -> None:
        self.assertEqual(self.deck.slides[0].line, 16)

    def test_paragraph_lines_joined(self) -> None:
        paragraph = self.deck.slides[1].blocks[0]
        self.assertIsInstance(paragraph, Paragraph)
        self.assertEqual(
            paragraph.text,
            "A dual number carries a derivative alongside its value [@revels2016].",
        )

    def test_bullets(self) -> None:
        bullets = self.deck.slides[1].blocks[1]
        self.assertIsInstance(bullets, BulletList)
        self.assertEqual(bullets.items, ["Overload `+`", "Overload `*`"])
        self.assertFalse(bullets.ordered)

    def test_code_cell_directives(self) -> None:
        cell = self.deck.slides[1].blocks[2]
        self.assertIsInstance(cell, CodeCell)
        self.assertEqual(cell.cell_id, "dual-demo")
        self.assertEqual(cell.language, "python")
        self.assertTrue(cell.executable)
        self.assertTrue(cell.options.echo)
        self.assertIsNone(cell.options.eval)
        self.assertEqual(cell.source, "x = 1 + 1\nx")

    def test_display_only_block(self) -> None:
        cell = self.deck.slides[2].blocks[0]
        self.assertFalse(cell.executable)
        self.assertFalse(cell.options.eval)
        self.assertEqual(cell.cell_id, "cell-2")

    def test_notes(self) -> None:
        self.assertEqual(self.deck.slides[1].notes, "Mention ForwardDiff here.")

    def test_citations(self) -> None:
        self.assertEqual(self.deck.citation_keys(), ["revels2016"])

    def test_source_hash_stability(self) -> None:
        other = parse_talk_string(SAMPLE)
        self.assertEqual(other.source_hash, self.deck.source_hash)
        changed = parse_talk_string(SAMPLE.replace("Why we care.", "Why we care!"))
        self.assertNotEqual(changed.source_hash, self.deck.source_hash)

    def test_callout_with_heading_title(self) -> None:
        deck = parse_talk_string("## S\n\n::: {.callout-warning}\n## Careful\nBody text.\n:::\n")
        callout = deck.slides[0].blocks[0]
        self.assertIsInstance(callout, Callout)
        self.assertEqual(callout.callout_type, "warning")
        self.assertEqual(callout.title, "Careful")
        self.assertEqual(callout.blocks[0].text, "Body text.")

    def test_columns(self) -> None:
        text = (
            "## S\n\n:::: {.columns}\n::: {.column width=\"60%\"}\nLeft\n:::\n"
            "::: {.column}\n- Right\n:::\n::::\n"
        )
        block = parse_talk_string(text).slides[0].blocks[0]
        self.assertIsInstance(block, Columns)
        self.assertEqual(len(block.columns), 2)
        self.assertEqual(block.columns[0].width, "60%")
        self.assertEqual(block.columns[0].blocks[0].text, "Left")
        self.assertEqual(block.columns[1].blocks[0].items, ["Right"])

    def test_math_and_image(self) -> None:
        text = "## S\n\n$$\nf(x) = x^2\n$$\n\n![A graph](img/graph.png){width=50%}\n"
        blocks = parse_talk_string(text).slides[0].blocks
        self.assertIsInstance(blocks[0], Math)
        self.assertEqual(blocks[0].tex, "f(x) = x^2")
        self.assertIsInstance(blocks[1], Image)
        self.assertEqual(blocks[1].path, "img/graph.png")
        self.assertEqual(blocks[1].width, "50%")

    def test_ordered_list(self) -> None:
        deck = parse_talk_string("## S\n\n1. One\n2. Two\n")
        self.assertTrue(deck.slides[0].blocks[0].ordered)
        self.assertEqual(deck.slides[0].blocks[0].items, ["One", "Two"])

    def test_horizontal_rule_starts_untitled_slide(self) -> None:
        deck = parse_talk_string("## First\n\nText\n\n---\n\nMore text\n")
        self.assertEqual(len(deck.slides), 2)
        self.assertIsNone(deck.slides[1].title)
        self.assertEqual(deck.slides[1].slide_id, "slide-2")

    def test_duplicate_titles_get_suffix(self) -> None:
        deck = parse_talk_string("## Demo\n\nA\n\n## Demo\n\nB\n")
        self.assertEqual([s.slide_id for s in deck.slides], ["demo", "demo-2"])

    def test_empty_content(self) -> None:
        self.assertEqual(parse_talk_string("").slides, [])

    def test_orphan_content_gets_slide(self) -> None:
        deck = parse_talk_string("- Orphan bullet one\n- Orphan bullet two\n")
        self.assertEqual(len(deck.slides), 1)
        self.assertEqual(len(deck.slides[0].blocks[0].items), 2)


class TestMalformedMarkup(unittest.TestCase):
    def test_unclosed_code_fence(self) -> None:
        with self.assertRaises(MarkupError) as ctx:
            parse_talk_string("## S\n\n```{python}\nx = 1\n")
        self.assertEqual(ctx.exception.line, 3)

    def test_unclosed_div(self) -> None:
        with self.assertRaises(MarkupError):
            parse_talk_string("## S\n\n::: {.callout-note}\ntext\n")

    def test_heading_inside_open_div(self) -> None:
        with self.assertRaises(MarkupError):
            parse_talk_string("## S\n\n::: {.callout-note title=\"t\"}\ntext\n\n## Next\n:::\n")

    def test_stray_closing_fence(self) -> None:
        with self.assertRaises(MarkupError):
            parse_talk_string("## S\n\ntext\n:::\n")

    def test_column_outside_columns(self) -> None:
        with self.assertRaises(MarkupError):
            parse_talk_string("## S\n\n::: {.column}\ntext\n:::\n")

    def test_unknown_callout_kind(self) -> None:
        with self.assertRaises(MarkupError):
            parse_talk_string("## S\n\n::: {.callout-danger}\ntext\n:::\n")

    def test_bad_percent_width(self) -> None:
        text = "## S\n\n:::: {.columns}\n::: {.column width=\"wide%\"}\nLeft\n:::\n::::\n"
        with self.assertRaises(MarkupError) as ctx:
            parse_talk_string(text)
        self.assertEqual(ctx.exception.line, 4)
        with self.assertRaises(MarkupError) as ctx:
            parse_talk_string("## S\n\n![plot](plot.png){width=x%}\n")
        self.assertEqual(ctx.exception.line, 3)

    def test_bad_directive_value(self) -> None:
        with self.assertRaises(MarkupError):
            parse_talk_string("## S\n\n```{python}\n#| echo: [1, 2]\nx = 1\n```\n")


class TestBundledTalk(unittest.TestCase):
    def test_parse_bundled_talk(self) -> None:
        config = load_config()
        deck = parse_talk(Path(config.talk_path))
        self.assertEqual(deck.deck_id, "talk")
        self.assertEqual(deck.front_matter.title, "What is automatic differentiation?")
        slide_ids = [s.slide_id for s in deck.slides]
        self.assertIn("dual-numbers", slide_ids)
        self.assertIn("reverse-mode", slide_ids)
        labels = [cell.cell_id for _, cell in deck.code_cells()]
        self.assertIn("babylonian", labels)
        self.assertIn("dual", labels)
        for _, cell in deck.code_cells():
            self.assertLess(cell.line_count, 15)

    def test_parse_from_file(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "mini.qmd"
            path.write_text("## Only slide\n\nHello.\n", encoding="utf-8")
            deck = parse_talk(path)
        self.assertEqual(deck.deck_id, "mini")
        self.assertEqual(deck.slides[0].slide_id, "only-slide")


if __name__ == "__main__":
    unittest.main()
