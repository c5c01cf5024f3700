"""Runtime configuration loader."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .models.config import Config

PACKAGE_ROOT = Path(__file__).resolve().parent


def _require_file(path: Path, label: str) -> None:
    if not path.exists():
        raise FileNotFoundError(f"Missing {label}: {path}")


def load_config(
    project_root: Optional[Path] = None, talk_path: Optional[Path] = None
) -> Config:
    """Load configuration with canonical defaults and validate paths.

    Without a project root the bundled talk and layout catalog are used and
    run artifacts go to the current directory.
    """
    root = project_root or PACKAGE_ROOT
    work_dir = project_root or Path.cwd()
    talk = talk_path or root / "talk" / "talk.qmd"
    assets_dir = root / "assets"
    layout_catalog_path = assets_dir / "layout_catalog.json"
    if not layout_catalog_path.exists():
        layout_catalog_path = PACKAGE_ROOT / "assets" / "layout_catalog.json"

    _require_file(talk, "talk")
    _require_file(layout_catalog_path, "layout_catalog")

    return Config(
        project_root=str(root),
        talk_path=str(talk),
        bibliography_path=str(talk.parent / "references.bib"),
        assets_dir=str(assets_dir),
        layout_catalog_path=str(layout_catalog_path),
        runs_dir=str(work_dir / "runs"),
        freeze_dir=str(work_dir / "_freeze"),
    )
