"""Front matter extraction."""

from __future__ import annotations

from typing import Tuple

import yaml

from ..errors import MarkupError
from ..models.front_matter import FrontMatter


def split_front_matter(text: str) -> Tuple[FrontMatter, str, int]:
    """Split a leading YAML block off the document.

    Returns the parsed front matter, the remaining body, and the number of
    lines consumed so that body line numbers can be reported against the
    original file.
    """
    lines = text.split("\n")
    if not lines or lines[0].strip() != "---":
        return FrontMatter(), text, 0

    for idx in range(1, len(lines)):
        if lines[idx].strip() in ("---", "..."):
            raw = "\n".join(lines[1:idx])
            try:
                data = yaml.safe_load(raw) or {}
            except yaml.YAMLError as exc:
                raise MarkupError(f"Invalid front matter: {exc}", line=1) from exc
            if not isinstance(data, dict):
                raise MarkupError("Front matter must be a mapping", line=1)
            body = "\n".join(lines[idx + 1:])
            return FrontMatter.model_validate(data), body, idx + 1

    raise MarkupError("Front matter opened with '---' but never closed", line=1)
