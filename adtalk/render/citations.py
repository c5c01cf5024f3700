"""Author-year citation formatting."""

from __future__ import annotations

import re
from typing import List, Optional

from ..models.bibliography import BibEntry, Bibliography
from ..models.deck import CITATION_PATTERN, INLINE_CODE_PATTERN

_CODE_SPLIT_RE = re.compile("(" + INLINE_CODE_PATTERN.pattern + ")")
_BRACKET_RE = re.compile(r"\[([^\[\]]*@[^\[\]]*)\]")
_ITEM_RE = re.compile(r"^(.*?)(-?)@([A-Za-z0-9_](?:[\w:.#$%&+?<>~/-]*\w)?)(.*)$", re.S)


def author_label(entry: BibEntry) -> str:
    names = entry.authors
    if not names:
        return entry.title or entry.key
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} and {names[1]}"
    return f"{names[0]} et al."


def _entry(key: str, bibliography: Bibliography) -> Optional[BibEntry]:
    return bibliography.get(key)


def format_citation(keys: List[str], bibliography: Bibliography) -> str:
    """Render parenthetical citations: ``(Baydin et al. 2018; Griewank 2008)``."""
    parts = []
    for key in keys:
        entry = _entry(key, bibliography)
        if entry is None:
            parts.append(f"?{key}")
        else:
            parts.append(f"{author_label(entry)} {entry.year or 'n.d.'}")
    return "(" + "; ".join(parts) + ")"


def _format_bracket(body: str, bibliography: Bibliography) -> Optional[str]:
    parts = []
    for item in body.split(";"):
        match = _ITEM_RE.match(item.strip())
        if not match:
            return None
        prefix, suppress, key, suffix = match.groups()
        entry = _entry(key, bibliography)
        if entry is None:
            text = f"?{key}"
        elif suppress:
            text = entry.year or "n.d."
        else:
            text = f"{author_label(entry)} {entry.year or 'n.d.'}"
        prefix = prefix.strip()
        suffix = suffix.strip()
        if prefix:
            text = f"{prefix} {text}"
        if suffix:
            text = f"{text}{suffix if suffix.startswith(',') else ' ' + suffix}"
        parts.append(text)
    return "(" + "; ".join(parts) + ")"


def replace_citations(text: str, bibliography: Bibliography) -> str:
    """Rewrite ``[@key]`` and narrative ``@key`` citations in running text.

    Inline code spans are left untouched.
    """

    def bracket(match: re.Match) -> str:
        formatted = _format_bracket(match.group(1), bibliography)
        return formatted if formatted is not None else match.group(0)

    def narrative(match: re.Match) -> str:
        entry = _entry(match.group(1), bibliography)
        if entry is None:
            return f"?{match.group(1)}"
        return f"{author_label(entry)} ({entry.year or 'n.d.'})"

    def prose(segment: str) -> str:
        return CITATION_PATTERN.sub(narrative, _BRACKET_RE.sub(bracket, segment))

    # odd segments are the code spans captured by the split
    parts = _CODE_SPLIT_RE.split(text)
    return "".join(part if idx % 2 else prose(part) for idx, part in enumerate(parts))


def format_reference(entry: BibEntry) -> str:
    """One line of the reference list."""
    names = entry.authors
    if len(names) > 1:
        who = ", ".join(names[:-1]) + ", and " + names[-1]
    else:
        who = names[0] if names else ""
    venue = (
        entry.fields.get("journal")
        or entry.fields.get("booktitle")
        or entry.fields.get("publisher")
        or entry.fields.get("howpublished")
        or entry.fields.get("url")
        or ""
    ).replace("{", "").replace("}", "")
    pieces = [f"{who} ({entry.year or 'n.d.'})." if who else f"({entry.year or 'n.d.'})."]
    if entry.title:
        pieces.append(f"{entry.title}.")
    if venue:
        pieces.append(f"{venue}.")
    return " ".join(pieces)
