"""
Notebook Store
JSON persistence of notebook cells and their rendered outputs
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import TypeAdapter, ValidationError

from core import CellKind, CellOutput, NotebookCell, NotebookDocument


logger = logging.getLogger(__name__)

_OUTPUT_ADAPTER = TypeAdapter(CellOutput)


def _cell_id(index: int) -> str:
    return f"cell_{index}"


def _parse_outputs(raw: Any) -> List[CellOutput]:
    outputs: List[CellOutput] = []
    if not isinstance(raw, list):
        return outputs
    for entry in raw:
        try:
            outputs.append(_OUTPUT_ADAPTER.validate_python(entry))
        except ValidationError as exc:
            logger.warning("Skip malformed cell output: %s", exc.errors()[:1])
    return outputs


def _parse_cell(index: int, raw: Any) -> Optional[NotebookCell]:
    if not isinstance(raw, dict):
        return None
    try:
        kind = CellKind(int(raw.get("kind", CellKind.CODE)))
    except (TypeError, ValueError):
        kind = CellKind.CODE
    return NotebookCell(
        cell_id=_cell_id(index),
        kind=kind,
        language=str(raw.get("language") or "github-issues"),
        value=str(raw.get("value") or ""),
        outputs=_parse_outputs(raw.get("outputs")),
    )


def loads(uri: str, contents: str) -> NotebookDocument:
    """
    Parse persisted notebook contents

    Unparseable contents yield an empty document instead of an error.
    """
    try:
        raw = json.loads(contents) if str(contents or "").strip() else []
    except json.JSONDecodeError as exc:
        logger.warning("Malformed notebook %s, starting empty: %s", uri, exc)
        raw = []

    if not isinstance(raw, list):
        logger.warning("Notebook %s is not a list of cells, starting empty", uri)
        raw = []

    cells: List[NotebookCell] = []
    for entry in raw:
        cell = _parse_cell(len(cells), entry)
        if cell is not None:
            cells.append(cell)
    return NotebookDocument(uri=uri, cells=cells)


def dumps(document: NotebookDocument, *, include_outputs: bool = True) -> str:
    """Serialize cells to the persisted JSON list."""
    records: List[Dict[str, Any]] = []
    for cell in document.cells:
        record: Dict[str, Any] = {
            "kind": int(cell.kind),
            "language": cell.language,
            "value": cell.value,
        }
        if include_outputs and cell.outputs:
            record["outputs"] = [output.model_dump(mode="json") for output in cell.outputs]
        records.append(record)
    return json.dumps(records, ensure_ascii=False, indent=1)


class NotebookStore:
    """File-backed notebook persistence keyed by path."""

    def __init__(self, *, include_outputs: bool = True):
        self.include_outputs = include_outputs

    def load(self, path: Union[str, Path]) -> NotebookDocument:
        file_path = Path(path)
        try:
            contents = file_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            contents = ""
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read notebook %s: %s", file_path, exc)
            contents = ""
        return loads(str(file_path), contents)

    def save(self, document: NotebookDocument, path: Optional[Union[str, Path]] = None) -> str:
        """Write the document and return the persisted contents."""
        file_path = Path(path or document.uri)
        contents = dumps(document, include_outputs=self.include_outputs)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = file_path.with_name(file_path.name + ".tmp")
        tmp_path.write_text(contents, encoding="utf-8")
        tmp_path.replace(file_path)
        logger.info("Saved notebook %s (%s cells)", file_path, len(document.cells))
        return contents
