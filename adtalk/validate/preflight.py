"""Preflight validation + remediation for a Deck."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..models.bibliography import Bibliography
from ..models.deck import BulletList, Deck, Paragraph, Slide
from ..models.validation import ValidationReport, ValidationViolation

DEFAULT_CONSTRAINTS: Dict[str, int] = {
    "max_title_chars": 60,
    "max_bullets": 7,
    "max_code_lines": 15,
}


def _load_layout_catalog(catalog_path: Path) -> Dict[str, Dict[str, Any]]:
    """Load layout catalog and index by layout_id."""
    with open(catalog_path, "r", encoding="utf-8") as f:
        catalog = json.load(f)
    return {entry["layout_id"]: entry for entry in catalog.get("layouts", [])}


def layout_id_for(slide: Slide) -> str:
    """Section layout for level-1 slides that hold at most prose."""
    if slide.level == 1 and all(isinstance(b, Paragraph) for b in slide.blocks):
        return "section"
    return "content"


def _truncate_text(text: str, max_chars: int) -> str:
    """Truncate text to max chars, preserving word boundaries."""
    if max_chars <= 0:
        return ""
    if len(text) <= max_chars:
        return text
    if max_chars <= 3:
        return text[:max_chars]
    truncated = text[: max_chars - 3]
    last_space = truncated.rfind(" ")
    if last_space > (max_chars - 3) * 0.7:  # Keep at least 70% of allowed length
        truncated = truncated[:last_space]
    return truncated.rstrip() + "..."


def _is_scrollable(slide: Slide, deck: Deck) -> bool:
    return "scrollable" in slide.classes or deck.front_matter.format.scrollable


def _validate_slide(
    slide: Slide,
    deck: Deck,
    bibliography: Bibliography,
    assets_root: Optional[Path],
    constraints: Dict[str, int],
) -> List[ValidationViolation]:
    """Validate a single slide's structure and references."""
    violations: List[ValidationViolation] = []
    max_title_chars = constraints.get("max_title_chars", DEFAULT_CONSTRAINTS["max_title_chars"])
    max_bullets = constraints.get("max_bullets", DEFAULT_CONSTRAINTS["max_bullets"])
    max_code_lines = constraints.get("max_code_lines", DEFAULT_CONSTRAINTS["max_code_lines"])

    if slide.title and len(slide.title) > max_title_chars:
        violations.append(ValidationViolation(
            slide_id=slide.slide_id,
            violation_type="TITLE_TOO_LONG",
            severity="WARN",
            detail=f"{len(slide.title)} chars",
            recommended_action=f"Truncate title to {max_title_chars} chars",
        ))

    if slide.level == 2 and not slide.blocks:
        violations.append(ValidationViolation(
            slide_id=slide.slide_id,
            violation_type="EMPTY_SLIDE",
            severity="WARN",
            recommended_action="Add content or remove the slide",
        ))

    seen_keys: List[str] = []
    for text in slide.texts():
        for key in Deck.citation_keys_in(text):
            if key in bibliography or key in seen_keys:
                continue
            seen_keys.append(key)
            violations.append(ValidationViolation(
                slide_id=slide.slide_id,
                violation_type="UNRESOLVED_CITATION",
                severity="BLOCKING",
                detail=key,
                recommended_action=f"Add @{key} to the bibliography or fix the key",
            ))

    for block in slide.iter_blocks():
        if block.kind == "image":
            image_path = Path(block.path)
            if not image_path.is_absolute() and assets_root is not None:
                image_path = assets_root / image_path
            if not image_path.exists():
                violations.append(ValidationViolation(
                    slide_id=slide.slide_id,
                    violation_type="MISSING_IMAGE",
                    severity="BLOCKING",
                    detail=block.path,
                    recommended_action="Fix the image path or add the file",
                ))
        elif block.kind == "bullets":
            if max_bullets > 0 and len(block.items) > max_bullets and not _is_scrollable(slide, deck):
                violations.append(ValidationViolation(
                    slide_id=slide.slide_id,
                    violation_type="TOO_MANY_BULLETS",
                    severity="WARN",
                    detail=f"{len(block.items)} bullets",
                    recommended_action=f"Reduce to {max_bullets} bullets or move overflow to notes",
                ))
        elif block.kind == "code":
            if max_code_lines > 0 and block.line_count > max_code_lines:
                violations.append(ValidationViolation(
                    slide_id=slide.slide_id,
                    violation_type="CODE_TOO_LONG",
                    severity="WARN",
                    detail=f"{block.cell_id}: {block.line_count} lines",
                    recommended_action=f"Keep demo cells under {max_code_lines} lines",
                ))
            if block.has_error:
                violations.append(ValidationViolation(
                    slide_id=slide.slide_id,
                    violation_type="CELL_ERROR",
                    severity="WARN",
                    detail=block.cell_id,
                    recommended_action="Fix the cell or mark the failure as intended",
                ))

    return violations


def _remediate_slide(
    slide: Slide,
    violations: List[ValidationViolation],
    constraints: Dict[str, int],
) -> Slide:
    """Apply deterministic remediation to a slide.

    Remediation order:
    1. Truncate an over-long title
    2. Move overflow bullets to speaker notes
    Reference and image problems are left for the author.
    """
    max_title_chars = constraints.get("max_title_chars", DEFAULT_CONSTRAINTS["max_title_chars"])
    max_bullets = constraints.get("max_bullets", DEFAULT_CONSTRAINTS["max_bullets"])
    kinds = {v.violation_type for v in violations}

    remediated = slide.model_copy(deep=True)
    notes_additions: List[str] = []

    if "TITLE_TOO_LONG" in kinds and remediated.title:
        remediated.title = _truncate_text(remediated.title, max_title_chars)

    if "TOO_MANY_BULLETS" in kinds:
        for block in remediated.iter_blocks():
            if isinstance(block, BulletList) and len(block.items) > max_bullets:
                overflow = block.items[max_bullets:]
                block.items = block.items[:max_bullets]
                notes_additions.append("[Overflow bullets]: " + " | ".join(overflow))

    if notes_additions:
        separator = "\n\n---\n[REMEDIATION OVERFLOW]\n" if remediated.notes else "[REMEDIATION OVERFLOW]\n"
        remediated.notes = remediated.notes + separator + "\n".join(notes_additions)

    return remediated


def validate_and_remediate(
    deck: Deck,
    bibliography: Bibliography,
    layout_catalog_path: Optional[Path] = None,
    assets_root: Optional[Path] = None,
) -> Tuple[Deck, ValidationReport]:
    """Validate and remediate a Deck, returning (remediated deck, report).

    Args:
        deck: Input Deck to validate; it is not mutated
        bibliography: Entries that citations must resolve against
        layout_catalog_path: Optional layout_catalog.json with per-layout constraints
        assets_root: Directory image paths are relative to

    Returns:
        Tuple of (remediated Deck, ValidationReport)
    """
    layout_catalog = _load_layout_catalog(layout_catalog_path) if layout_catalog_path else {}
    all_violations: List[ValidationViolation] = []
    remediated_slides: List[Slide] = []

    for slide in deck.slides:
        layout_entry = layout_catalog.get(layout_id_for(slide), {})
        constraints = {**DEFAULT_CONSTRAINTS, **layout_entry.get("constraints", {})}

        slide_violations = _validate_slide(slide, deck, bibliography, assets_root, constraints)
        all_violations.extend(slide_violations)

        if slide_violations:
            remediated_slides.append(_remediate_slide(slide, slide_violations, constraints))
        else:
            remediated_slides.append(slide)

    remediated_deck = deck.model_copy(update={"slides": remediated_slides})
    report = ValidationReport(violations=all_violations)
    return remediated_deck, report
