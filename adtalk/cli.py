"""CLI entry point for the adtalk build."""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

from pydantic import ValidationError

from .config import load_config
from .errors import BibliographyError, CellExecutionError, MarkupError
from .execute.runner import execute_deck
from .logging_utils import log_event
from .models.bibliography import Bibliography
from .models.config import Config
from .models.deck import Deck
from .normalize.bibtex import load_bibliography
from .normalize.parser import parse_talk
from .render.renderer import Renderer
from .validate.drift import validate_layout_catalog
from .validate.preflight import validate_and_remediate

_INPUT_ERRORS = (FileNotFoundError, MarkupError, BibliographyError, ValidationError)


def _generate_run_id() -> str:
    """Generate a timestamp-based run ID."""
    return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--project-root",
        type=str,
        default=None,
        help="Path to project root (default: the bundled talk)",
    )
    parser.add_argument(
        "--talk",
        type=str,
        default=None,
        help="Path to the talk source (default: talk/talk.qmd under the project root)",
    )


def _config_from_args(args: argparse.Namespace) -> Config:
    return load_config(
        Path(args.project_root) if args.project_root else None,
        Path(args.talk) if getattr(args, "talk", None) else None,
    )


def load_talk_bibliography(deck: Deck, config: Config) -> Bibliography:
    """Merge the bibliography files the front matter declares.

    Falls back to references.bib next to the talk, and to an empty
    bibliography when there is none.
    """
    talk_dir = Path(config.talk_path).parent
    files = [talk_dir / name for name in deck.front_matter.bibliography_files]
    if not files:
        default = Path(config.bibliography_path)
        files = [default] if default.exists() else []
    merged = Bibliography()
    for path in files:
        merged.entries.update(load_bibliography(path).entries)
    return merged


def _load(config: Config, log_path: Optional[Path] = None) -> Tuple[Deck, Bibliography]:
    deck = parse_talk(Path(config.talk_path))
    log_event(log_path, "TALK_PARSED", {
        "path": config.talk_path,
        "slide_count": len(deck.slides),
        "image_count": len(list(deck.images())),
        "source_hash": deck.source_hash,
    })
    return deck, load_talk_bibliography(deck, config)


def cmd_validate(args: argparse.Namespace) -> int:
    """Check markup, citations, images and the layout catalog."""
    try:
        config = _config_from_args(args)
        deck, bibliography = _load(config)
    except _INPUT_ERRORS as exc:
        print(f"ERROR: {exc}")
        return 1

    errors = validate_layout_catalog(Path(config.layout_catalog_path))
    _, report = validate_and_remediate(
        deck,
        bibliography,
        Path(config.layout_catalog_path),
        Path(config.talk_path).parent,
    )
    for violation in report.violations:
        label = "ERROR" if violation.severity == "BLOCKING" else "WARN"
        print(f"{label}: [{violation.slide_id}] {violation.violation_type} {violation.detail or ''}".rstrip())
    for error in errors:
        print(f"ERROR: {error}")
    if errors or report.blocking:
        return 1
    print(
        f"Validation passed: {len(deck.slides)} slides, {len(list(deck.images()))} images, "
        f"{len(deck.citation_keys())} citations."
    )
    return 0


def cmd_execute(args: argparse.Namespace) -> int:
    """Run the talk's code cells and report each one."""
    try:
        config = _config_from_args(args)
        deck, _ = _load(config)
        executed, report = execute_deck(deck, Path(config.freeze_dir))
    except _INPUT_ERRORS + (CellExecutionError,) as exc:
        print(f"ERROR: {exc}")
        return 1

    outputs = {cell.cell_id: cell for _, cell in executed.code_cells()}
    for record in report.cells:
        print(f"{record.status:>7}  {record.slide_id} / {record.cell_id}")
        if args.show_output:
            for output in outputs[record.cell_id].outputs:
                for line in output.text.split("\n"):
                    print(f"         | {line}")
    print(
        f"Executed {report.count('ok')} cells "
        f"({report.count('error')} errors, {report.count('frozen')} frozen, "
        f"{report.count('skipped')} skipped)."
    )
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    """Parse, execute, validate and render the talk to PPTX."""
    try:
        config = _config_from_args(args)
    except FileNotFoundError as exc:
        print(f"ERROR: {exc}")
        return 1

    errors = validate_layout_catalog(Path(config.layout_catalog_path))
    if errors:
        for error in errors:
            print(f"ERROR: {error}")
        return 1

    run_id = args.run_id if args.run_id else _generate_run_id()
    run_dir = Path(config.runs_dir) / run_id
    run_dir.mkdir(parents=True, exist_ok=True)
    log_path = run_dir / "run_log.jsonl"
    talk_dir = Path(config.talk_path).parent

    try:
        deck, bibliography = _load(config, log_path)
        executed, execution_report = execute_deck(deck, Path(config.freeze_dir), log_path)
    except _INPUT_ERRORS + (CellExecutionError,) as exc:
        log_event(log_path, "RUN_FAILED", {"error": str(exc)})
        print(f"ERROR: {exc}")
        return 1

    with open(run_dir / "execution_report.json", "w", encoding="utf-8") as f:
        f.write(execution_report.to_json())

    final_deck, validation_report = validate_and_remediate(
        executed, bibliography, Path(config.layout_catalog_path), talk_dir
    )
    with open(run_dir / "validation_report.json", "w", encoding="utf-8") as f:
        f.write(validation_report.to_json())
    with open(run_dir / "deck.json", "w", encoding="utf-8") as f:
        f.write(final_deck.to_json())

    log_event(log_path, "VALIDATE_DONE", {
        "violations_count": len(validation_report.violations),
        "blocking_count": len(validation_report.blocking),
    })
    if validation_report.blocking:
        log_event(log_path, "RUN_FAILED", {
            "error": "blocking violations",
            "blocking_count": len(validation_report.blocking),
        })
        for violation in validation_report.blocking:
            print(f"ERROR: [{violation.slide_id}] {violation.violation_type} {violation.detail or ''}".rstrip())
        return 1

    renderer = Renderer(Path(config.layout_catalog_path))
    output_path = run_dir / "deck.pptx"
    render_map = renderer.render(final_deck, bibliography, output_path, talk_dir)

    with open(run_dir / "render_map.json", "w", encoding="utf-8") as f:
        f.write(render_map.to_json())

    log_event(log_path, "RENDER_DONE", {
        "output_path": str(output_path),
        "slides_rendered": len(render_map.entries),
    })

    print(f"Rendered {len(render_map.entries)} slides to: {output_path}")
    print(f"  Cells: {execution_report.count('ok')} ok, {execution_report.count('error')} errors, "
          f"{execution_report.count('frozen')} frozen")
    print(f"  Warnings: {len(validation_report.violations)}")
    print(f"Run artifacts in: {run_dir}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="adtalk - build the automatic differentiation talk")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser(
        "validate", help="Check markup, citations, images and layouts"
    )
    _add_common_args(validate_parser)
    validate_parser.set_defaults(func=cmd_validate)

    execute_parser = subparsers.add_parser(
        "execute", help="Run the talk's code cells"
    )
    _add_common_args(execute_parser)
    execute_parser.add_argument(
        "--show-output", action="store_true", help="Print captured cell output"
    )
    execute_parser.set_defaults(func=cmd_execute)

    render_parser = subparsers.add_parser(
        "render", help="Execute, validate and render the talk to PPTX"
    )
    _add_common_args(render_parser)
    render_parser.add_argument(
        "--run-id", type=str, default=None, help="Run ID (default: auto-generated timestamp)"
    )
    render_parser.set_defaults(func=cmd_render)

    return parser


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
