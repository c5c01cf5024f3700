"""Layout catalog drift detection."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from pptx import Presentation

REQUIRED_LAYOUT_IDS = ("title", "section", "content")


def _layout_placeholder_idx(layout) -> Set[int]:
    return {shape.placeholder_format.idx for shape in layout.placeholders}


def _load_catalog(catalog_path: Path) -> Dict[str, Any]:
    with open(catalog_path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def open_template(template_path: Optional[Path] = None):
    """Open the template, or python-pptx's built-in default."""
    if template_path is None:
        return Presentation()
    return Presentation(str(template_path))


def validate_layout_catalog(
    catalog_path: Path, template_path: Optional[Path] = None
) -> List[str]:
    """Return a list of validation errors; empty list means pass."""
    errors: List[str] = []
    catalog = _load_catalog(catalog_path)
    layouts = catalog.get("layouts", [])

    prs = open_template(template_path)
    masters = prs.slide_masters

    seen_layout_ids: Set[str] = set()

    for layout_entry in layouts:
        layout_id = layout_entry.get("layout_id")
        if not layout_id:
            errors.append("Catalog entry missing layout_id")
            continue

        if layout_id in seen_layout_ids:
            errors.append(f"Duplicate layout_id in catalog: {layout_id}")
            continue
        seen_layout_ids.add(layout_id)

        master_index = layout_entry.get("master_index")
        layout_index = layout_entry.get("layout_index")
        template_layout_name = layout_entry.get("template_layout_name")

        if not isinstance(master_index, int) or master_index < 0 or master_index >= len(masters):
            errors.append(
                f"Layout {layout_id} missing in template: master_index={master_index}"
            )
            continue

        master = masters[master_index]
        if not isinstance(layout_index, int) or layout_index < 0 or layout_index >= len(master.slide_layouts):
            errors.append(
                f"Layout {layout_id} missing in template: master_index={master_index}, layout_index={layout_index}"
            )
            continue

        layout = master.slide_layouts[layout_index]
        if template_layout_name and layout.name != template_layout_name:
            errors.append(
                f"Layout {layout_id} name mismatch: catalog='{template_layout_name}' template='{layout.name}'"
            )

        placeholder_idx = _layout_placeholder_idx(layout)
        for field in layout_entry.get("fields", []):
            if not field.get("required", False):
                continue
            if field.get("placeholder_idx") not in placeholder_idx:
                errors.append(
                    f"Layout {layout_id} missing required field_key: {field.get('field_key')}"
                )

    for layout_id in REQUIRED_LAYOUT_IDS:
        if layout_id not in seen_layout_ids:
            errors.append(f"Catalog missing layout_id: {layout_id}")

    return errors
