"""Citation formatting tests."""

import unittest

from adtalk.models.bibliography import BibEntry, Bibliography
from adtalk.render.citations import (
    author_label,
    format_citation,
    format_reference,
    replace_citations,
)


def _entry(key: str, author: str, year: str = "2018", **fields: str) -> BibEntry:
    return BibEntry(key=key, entry_type="article", fields={"author": author, "year": year, **fields})


BIB = Bibliography(entries={
    "griewank2008": _entry("griewank2008", "Griewank, Andreas and Walther, Andrea", "2008"),
    "baydin2018": _entry(
        "baydin2018",
        "Atilim Gunes Baydin and Barak A. Pearlmutter and Alexey Andreyevich Radul and Jeffrey Mark Siskind",
        title="Automatic Differentiation in {M}achine Learning",
        journal="Journal of Machine Learning Research",
    ),
    "revels2016": _entry("revels2016", "Revels, Jarrett", "2016"),
})


class TestAuthorLabel(unittest.TestCase):
    def test_one_two_many(self) -> None:
        self.assertEqual(author_label(BIB.get("revels2016")), "Revels")
        self.assertEqual(author_label(BIB.get("griewank2008")), "Griewank and Walther")
        self.assertEqual(author_label(BIB.get("baydin2018")), "Baydin et al.")

    def test_no_author_falls_back_to_title(self) -> None:
        entry = BibEntry(key="jax", entry_type="misc", fields={"title": "{JAX}"})
        self.assertEqual(author_label(entry), "JAX")


class TestReplaceCitations(unittest.TestCase):
    def test_parenthetical(self) -> None:
        self.assertEqual(
            format_citation(["baydin2018", "griewank2008"], BIB),
            "(Baydin et al. 2018; Griewank and Walther 2008)",
        )

    def test_bracketed_group(self) -> None:
        text = replace_citations("Surveyed in [@baydin2018; @revels2016].", BIB)
        self.assertEqual(text, "Surveyed in (Baydin et al. 2018; Revels 2016).")

    def test_prefix_locator_and_suppressed_author(self) -> None:
        text = replace_citations("[see @griewank2008, ch. 3]", BIB)
        self.assertEqual(text, "(see Griewank and Walther 2008, ch. 3)")
        text = replace_citations("Revels says so [-@revels2016].", BIB)
        self.assertEqual(text, "Revels says so (2016).")

    def test_narrative(self) -> None:
        text = replace_citations("As @revels2016 shows, duals are fast.", BIB)
        self.assertEqual(text, "As Revels (2016) shows, duals are fast.")

    def test_unknown_key(self) -> None:
        self.assertEqual(replace_citations("[@missing]", BIB), "(?missing)")
        self.assertEqual(replace_citations("per @missing.", BIB), "per ?missing.")

    def test_email_left_alone(self) -> None:
        text = "Mail me at speaker@example.org"
        self.assertEqual(replace_citations(text, BIB), text)

    def test_inline_code_left_alone(self) -> None:
        text = "Zygote uses `@adjoint` rules"
        self.assertEqual(replace_citations(text, BIB), text)
        text = replace_citations("Per @revels2016, mark with `@adjoint` [@griewank2008].", BIB)
        self.assertEqual(text, "Per Revels (2016), mark with `@adjoint` (Griewank and Walther 2008).")



class TestFormatReference(unittest.TestCase):
    def test_reference_line(self) -> None:
        line = format_reference(BIB.get("baydin2018"))
        self.assertEqual(
            line,
            "Baydin, Pearlmutter, Radul, and Siskind (2018). "
            "Automatic Differentiation in Machine Learning. "
            "Journal of Machine Learning Research.",
        )

    def test_reference_without_venue(self) -> None:
        self.assertEqual(format_reference(BIB.get("revels2016")), "Revels (2016).")


if __name__ == "__main__":
    unittest.main()
