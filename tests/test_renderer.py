"""Renderer tests."""

import tempfile
import unittest
from pathlib import Path

from PIL import Image as PILImage
from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE

from adtalk.config import load_config
from adtalk.execute.runner import execute_deck
from adtalk.models.bibliography import BibEntry, Bibliography
from adtalk.normalize.parser import parse_talk_string
from adtalk.render.renderer import CALLOUT_COLORS, EMU_PER_PX, Renderer

TALK = """---
title: Derivatives for free
subtitle: A tour of AD
author: [Ada, Grace]
format:
  revealjs:
    slide-number: true
    width: 1280
    height: 720
execute:
  error: true
---

# Part one

## Dual numbers

Carry a tangent along [@baydin2018].

::: {.callout-tip}
## Rule of thumb
Forward mode suits few inputs.
:::

```{python}
#| label: square
x = 3
x * x
```

```{python}
#| label: boom
#| echo: false
1 / 0
```

::: notes
Mention Clifford.
:::

## Side by side

:::: {.columns}
::: {.column width="40%"}
![A plot](plot.png){width=50%}
:::
::: {.column width="60%"}
- left to right
- one pass
:::
::::
"""


def _boxes(slide) -> list:
    return [shape.text_frame.text for shape in slide.shapes if shape.has_text_frame]


def _texts(slide) -> str:
    return "\n".join(_boxes(slide))


class TestRenderer(unittest.TestCase):
    def setUp(self) -> None:
        config = load_config()
        self.renderer = Renderer(Path(config.layout_catalog_path))
        self.bibliography = Bibliography(entries={
            "baydin2018": BibEntry(
                key="baydin2018",
                entry_type="article",
                fields={"author": "Baydin, Atilim and Pearlmutter, Barak and Radul, Alexey", "year": "2018",
                        "title": "Automatic Differentiation in Machine Learning"},
            ),
        })

    def _render(self, temp_dir: str, text: str = TALK):
        root = Path(temp_dir)
        PILImage.new("RGB", (40, 30), "white").save(root / "plot.png")
        deck, _ = execute_deck(parse_talk_string(text))
        output_path = root / "out" / "deck.pptx"
        render_map = self.renderer.render(deck, self.bibliography, output_path, root)
        return render_map, output_path

    def test_render_writes_pptx_and_map(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            render_map, output_path = self._render(temp_dir)
            self.assertTrue(output_path.exists())
            prs = Presentation(str(output_path))

            self.assertEqual(len(prs.slides), 5)
            self.assertEqual(
                list(render_map.entries),
                ["title-slide", "part-one", "dual-numbers", "side-by-side", "references-slide"],
            )
            entry = render_map.entries["dual-numbers"]
            self.assertEqual(entry.slide_index, 2)
            self.assertEqual(entry.block_kinds, ["paragraph", "callout", "code", "code"])
            self.assertEqual(prs.slide_width, 1280 * EMU_PER_PX)
            self.assertEqual(prs.slide_height, 720 * EMU_PER_PX)

    def test_title_and_section_slides(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            _, output_path = self._render(temp_dir)
            prs = Presentation(str(output_path))
            title = _texts(prs.slides[0])
            self.assertIn("Derivatives for free", title)
            self.assertIn("A tour of AD", title)
            self.assertIn("Ada, Grace", title)
            self.assertIn("Part one", _texts(prs.slides[1]))

    def test_content_slide_text_citations_and_notes(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            _, output_path = self._render(temp_dir)
            slide = Presentation(str(output_path)).slides[2]
            text = _texts(slide)
            self.assertIn("Dual numbers", text)
            self.assertIn("(Baydin et al. 2018)", text)
            self.assertIn("Rule of thumb", text)
            self.assertIn("x * x", text)
            self.assertIn("9", text)
            self.assertIn("ZeroDivisionError", text)
            self.assertNotIn("1 / 0", text)
            self.assertEqual(slide.notes_slide.notes_text_frame.text, "Mention Clifford.")

    def test_image_alt_text_and_references(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            _, output_path = self._render(temp_dir)
            prs = Presentation(str(output_path))
            pictures = [s for s in prs.slides[3].shapes if s.shape_type == MSO_SHAPE_TYPE.PICTURE]
            self.assertEqual(len(pictures), 1)
            self.assertEqual(pictures[0]._element.nvPicPr.cNvPr.get("descr"), "A plot")
            self.assertIn("left to right", _texts(prs.slides[3]))

            references = _texts(prs.slides[4])
            self.assertIn("References", references)
            self.assertIn("Baydin, Pearlmutter, and Radul (2018).", references)

    def test_slide_numbers(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            _, output_path = self._render(temp_dir)
            prs = Presentation(str(output_path))
            for number, slide in enumerate(prs.slides, start=1):
                numbers = [
                    s.text_frame.text for s in slide.shapes
                    if s.has_text_frame and s.text_frame.text == str(number)
                ]
                self.assertEqual(numbers, [str(number)])

    def test_no_references_slide_without_citations(self) -> None:
        text = TALK.replace(" [@baydin2018]", "")
        with tempfile.TemporaryDirectory() as temp_dir:
            render_map, output_path = self._render(temp_dir, text)
            self.assertNotIn("references-slide", render_map.entries)
            self.assertEqual(len(Presentation(str(output_path)).slides), 4)

    def test_missing_image_raises(self) -> None:
        deck = parse_talk_string("## Pic\n\n![gone](nowhere.png)\n")
        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(FileNotFoundError):
                self.renderer.render(deck, Bibliography(), Path(temp_dir) / "deck.pptx", Path(temp_dir))

    def test_callout_takes_its_kind_colour(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            _, output_path = self._render(temp_dir)
            slide = Presentation(str(output_path)).slides[2]
            callouts = [
                s for s in slide.shapes
                if s.shape_type == MSO_SHAPE_TYPE.AUTO_SHAPE and s.text_frame.text == "Rule of thumb"
            ]
            self.assertEqual(len(callouts), 1)
            self.assertEqual(callouts[0].fill.fore_color.rgb, CALLOUT_COLORS["tip"])
            self.assertIn("Forward mode suits few inputs.", _boxes(slide))

    def test_column_widths_follow_percentages(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            _, output_path = self._render(temp_dir)
            slide = Presentation(str(output_path)).slides[3]
            picture = [s for s in slide.shapes if s.shape_type == MSO_SHAPE_TYPE.PICTURE][0]
            bullets = [s for s in slide.shapes if s.has_text_frame and "left to right" in s.text_frame.text][0]
            # the picture fills half of the 40% column
            first_column = picture.width * 2
            self.assertAlmostEqual(bullets.width / first_column, 1.5, places=3)
            self.assertGreater(bullets.left, picture.left + first_column)

    def test_output_false_hides_outputs(self) -> None:
        text = TALK.replace("#| label: square", "#| label: square\n#| output: false")
        with tempfile.TemporaryDirectory() as temp_dir:
            _, output_path = self._render(temp_dir, text)
            boxes = _boxes(Presentation(str(output_path)).slides[2])
            self.assertIn("1  x = 3\n2  x * x", boxes)
            self.assertNotIn("9", boxes)

    def test_echo_false_in_front_matter_hides_source(self) -> None:
        text = TALK.replace("  error: true", "  error: true\n  echo: false")
        with tempfile.TemporaryDirectory() as temp_dir:
            _, output_path = self._render(temp_dir, text)
            boxes = _boxes(Presentation(str(output_path)).slides[2])
            self.assertNotIn("1  x = 3\n2  x * x", boxes)
            self.assertIn("9", boxes)

    def test_code_line_numbers(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            _, output_path = self._render(temp_dir)
            self.assertIn("1  x = 3\n2  x * x", _boxes(Presentation(str(output_path)).slides[2]))

        text = TALK.replace("    slide-number: true", "    slide-number: true\n    code-line-numbers: false")
        with tempfile.TemporaryDirectory() as temp_dir:
            _, output_path = self._render(temp_dir, text)
            self.assertIn("x = 3\nx * x", _boxes(Presentation(str(output_path)).slides[2]))

    def test_level_one_slide_with_blocks_uses_content_layout(self) -> None:
        text = (
            "# Part two\n\n- first point\n\n"
            "::: {.callout-important}\nNever skip the tangent.\n:::\n"
        )
        with tempfile.TemporaryDirectory() as temp_dir:
            _, output_path = self._render(temp_dir, text)
            slide = Presentation(str(output_path)).slides[1]
            self.assertEqual(slide.slide_layout.name, "Title Only")
            shown = _texts(slide)
            self.assertIn("Part two", shown)
            self.assertIn("• first point", shown)
            self.assertIn("Never skip the tangent.", shown)

    def test_callout_draws_cells_and_images(self) -> None:
        text = (
            "## Inside\n\n::: {.callout-note}\n## Try it\n"
            "```{python}\n#| label: shout\n#| echo: false\nprint('OUT42')\n```\n\n"
            "![A plot](plot.png)\n:::\n"
        )
        with tempfile.TemporaryDirectory() as temp_dir:
            _, output_path = self._render(temp_dir, text)
            slide = Presentation(str(output_path)).slides[1]
            boxes = _boxes(slide)
            self.assertIn("OUT42", boxes)
            self.assertNotIn("print('OUT42')", "\n".join(boxes))

            callout = [s for s in slide.shapes if s.shape_type == MSO_SHAPE_TYPE.AUTO_SHAPE][0]
            pictures = [s for s in slide.shapes if s.shape_type == MSO_SHAPE_TYPE.PICTURE]
            self.assertEqual(len(pictures), 1)
            self.assertGreater(pictures[0].left, callout.left)
            self.assertLessEqual(pictures[0].top + pictures[0].height, callout.top + callout.height)



if __name__ == "__main__":
    unittest.main()
