"""Code cell execution for the live-demo snippets."""

from __future__ import annotations

import ast
import contextlib
import hashlib
import io
import json
import time
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..errors import CellExecutionError
from ..logging_utils import log_event
from ..models.deck import CellOutput, CodeCell, Deck
from ..models.execution import CellRecord, ExecutionReport
from ..models.front_matter import ExecutePolicy

RUNNABLE_LANGUAGES = ("python", "py")


def _cell_hash(source: str) -> str:
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


def _resolve(option: Optional[bool], default: bool) -> bool:
    return default if option is None else option


def _is_runnable(cell: CodeCell, policy: ExecutePolicy) -> bool:
    if not cell.executable or cell.language not in RUNNABLE_LANGUAGES:
        return False
    return _resolve(cell.options.eval, policy.eval)


def _error_summary(exc: BaseException) -> str:
    return traceback.format_exception_only(type(exc), exc)[-1].strip()


def run_source(
    source: str, namespace: Dict[str, Any], outputs: Optional[List[CellOutput]] = None
) -> List[CellOutput]:
    """Run one cell in ``namespace`` the way a notebook kernel would.

    Printed text becomes a stream output and the value of a trailing
    expression becomes a result output. Exceptions propagate; text printed
    before the exception has already been appended to ``outputs``.
    """
    outputs = [] if outputs is None else outputs
    tree = ast.parse(source, mode="exec")
    tail: Optional[ast.Expression] = None
    if tree.body and isinstance(tree.body[-1], ast.Expr):
        tail = ast.Expression(tree.body.pop().value)

    buffer = io.StringIO()
    value: Any = None
    try:
        with contextlib.redirect_stdout(buffer), contextlib.redirect_stderr(buffer):
            exec(compile(tree, "<cell>", "exec"), namespace)
            if tail is not None:
                value = eval(compile(tail, "<cell>", "eval"), namespace)
    finally:
        if buffer.getvalue():
            outputs.append(CellOutput(output_type="stream", text=buffer.getvalue().rstrip("\n")))
    if value is not None:
        outputs.append(CellOutput(output_type="result", text=repr(value)))
    return outputs


def _load_frozen(path: Optional[Path]) -> Dict[str, List[Dict[str, str]]]:
    if path is None or not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _store_frozen(path: Path, frozen: Dict[str, List[Dict[str, str]]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(frozen, handle, sort_keys=True, indent=2)


def execute_deck(
    deck: Deck,
    freeze_dir: Optional[Path] = None,
    log_path: Optional[Path] = None,
) -> Tuple[Deck, ExecutionReport]:
    """Execute the deck's code cells and attach their outputs.

    All python cells share one namespace, in document order. Freezing is
    all-or-nothing: the stored outputs are reused only when every runnable
    cell is unchanged, since later cells depend on names earlier ones define.

    Args:
        deck: Parsed deck; it is not mutated
        freeze_dir: Directory holding frozen outputs (used when freeze is on)
        log_path: Optional JSONL run log

    Returns:
        Tuple of (deck with outputs, ExecutionReport)

    Raises:
        CellExecutionError: when a cell raises and errors are not tolerated
    """
    policy = deck.front_matter.execute
    executed = deck.model_copy(deep=True)
    report = ExecutionReport()

    runnable = [(s, c) for s, c in executed.code_cells() if _is_runnable(c, policy)]
    freeze_path = None
    if policy.frozen and freeze_dir is not None:
        freeze_path = Path(freeze_dir) / f"{deck.deck_id}.json"
    frozen = _load_frozen(freeze_path)
    use_frozen = bool(runnable) and all(_cell_hash(c.source) in frozen for _, c in runnable)

    namespace: Dict[str, Any] = {"__name__": "__adtalk__"}
    fresh: Dict[str, List[Dict[str, str]]] = {}

    for slide, cell in executed.code_cells():
        if not _is_runnable(cell, policy):
            report.cells.append(CellRecord(cell_id=cell.cell_id, slide_id=slide.slide_id, status="skipped"))
            continue

        key = _cell_hash(cell.source)
        if use_frozen:
            cell.outputs = [CellOutput.model_validate(o) for o in frozen[key]]
            report.cells.append(CellRecord(cell_id=cell.cell_id, slide_id=slide.slide_id, status="frozen"))
            continue

        started = time.perf_counter()
        status = "ok"
        outputs: List[CellOutput] = []
        try:
            cell.outputs = run_source(cell.source, namespace, outputs)
        except Exception as exc:
            summary = _error_summary(exc)
            log_event(log_path, "CELL_FAILED", {
                "cell_id": cell.cell_id,
                "slide_id": slide.slide_id,
                "error": summary,
            })
            if not _resolve(cell.options.error, policy.error):
                raise CellExecutionError(cell.cell_id, slide.slide_id, summary) from exc
            cell.outputs = outputs + [CellOutput(output_type="error", text=summary)]
            status = "error"
        duration = round(time.perf_counter() - started, 6)

        fresh[key] = [o.to_dict() for o in cell.outputs]
        report.cells.append(CellRecord(
            cell_id=cell.cell_id,
            slide_id=slide.slide_id,
            status=status,
            duration_s=duration,
        ))
        log_event(log_path, "CELL_EXECUTED", {
            "cell_id": cell.cell_id,
            "status": status,
            "duration_s": duration,
        })

    if freeze_path is not None and not use_frozen and fresh:
        _store_frozen(freeze_path, fresh)

    return executed, report
