"""BibTeX reader for the talk bibliography."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Tuple

from ..errors import BibliographyError
from ..models.bibliography import BibEntry, Bibliography

_SKIPPED_TYPES = {"comment", "string", "preamble"}
_ENTRY_START_RE = re.compile(r"@\s*([A-Za-z]+)\s*([{(])")


def _matching_close(text: str, start: int, open_char: str) -> int:
    """Index of the delimiter closing the one at ``start``."""
    close_char = "}" if open_char == "{" else ")"
    depth = 0
    idx = start - 1
    while idx + 1 < len(text):
        idx += 1
        char = text[idx]
        if char == "\\":
            idx += 1
            continue
        if char == open_char or (open_char == "(" and char == "{"):
            depth += 1
        elif char == close_char or (open_char == "(" and char == "}"):
            depth -= 1
            if depth == 0:
                return idx
    raise BibliographyError(f"Unbalanced delimiters starting at offset {start}")


def _read_value(body: str, pos: int) -> Tuple[str, int]:
    """Read one field value (braced, quoted or bare) starting at ``pos``."""
    while pos < len(body) and body[pos].isspace():
        pos += 1
    if pos >= len(body):
        return "", pos
    char = body[pos]
    if char == "{":
        end = _matching_close(body, pos, "{")
        return body[pos + 1:end], end + 1
    if char == '"':
        depth = 0
        for idx in range(pos + 1, len(body)):
            if body[idx] == "{":
                depth += 1
            elif body[idx] == "}":
                depth -= 1
            elif body[idx] == '"' and depth == 0:
                return body[pos + 1:idx], idx + 1
        raise BibliographyError("Unterminated quoted value")
    match = re.match(r"[^,\s}]+", body[pos:])
    value = match.group(0) if match else ""
    return value, pos + len(value)


def _parse_fields(body: str) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    pos = 0
    while True:
        match = re.compile(r"\s*,?\s*([A-Za-z][\w-]*)\s*=").match(body, pos)
        if not match:
            break
        name = match.group(1).lower()
        value, pos = _read_value(body, match.end())
        parts: List[str] = [value]
        # string concatenation: "a" # "b"
        while True:
            concat = re.compile(r"\s*#").match(body, pos)
            if not concat:
                break
            value, pos = _read_value(body, concat.end())
            parts.append(value)
        fields[name] = " ".join("".join(parts).split())
    return fields


def parse_bibtex(text: str) -> Bibliography:
    """Parse BibTeX source into a Bibliography keyed by citation key."""
    entries: Dict[str, BibEntry] = {}
    pos = 0
    while True:
        match = _ENTRY_START_RE.search(text, pos)
        if not match:
            break
        entry_type = match.group(1).lower()
        open_idx = match.end() - 1
        close_idx = _matching_close(text, open_idx, match.group(2))
        body = text[open_idx + 1:close_idx]
        pos = close_idx + 1

        if entry_type in _SKIPPED_TYPES:
            continue

        # an entry may carry a key and no fields: @misc{lonely}
        key, _, rest = body.partition(",")
        key = key.strip()
        if not key or "=" in key:
            raise BibliographyError(f"@{entry_type} entry without a citation key")
        if key in entries:
            raise BibliographyError(f"Duplicate citation key: {key}")
        entries[key] = BibEntry(key=key, entry_type=entry_type, fields=_parse_fields(rest))

    return Bibliography(entries=entries)


def load_bibliography(path: Path) -> Bibliography:
    if not path.exists():
        raise FileNotFoundError(f"Missing bibliography: {path}")
    return parse_bibtex(path.read_text(encoding="utf-8"))
