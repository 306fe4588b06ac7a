"""Line-oriented query language with ``$name=value`` symbols.

A cell holds symbol definitions, ``//`` comments and query lines. Each query
line becomes one descriptor after symbol substitution; a ``sort:<key>[-asc|-desc]``
qualifier is lifted into the descriptor's sort fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import itertools
import logging
import re
from threading import Lock
from typing import Dict, List, Optional, Set, Tuple

from core import NotebookCell, QueryDescriptor, SortKey, SortOrder
from utils.exceptions import QueryResolutionError

from .base import BaseProject


logger = logging.getLogger(__name__)

_DEFINITION = re.compile(r"^\s*\$([A-Za-z_][\w-]*)\s*=\s*(.*?)\s*$")
_REFERENCE = re.compile(r"\$([A-Za-z_][\w-]*)")
_SORT_QUALIFIER = re.compile(r"(?<!\S)sort:([a-z]+)(?:-(asc|desc))?(?!\S)", re.IGNORECASE)
_SORT_KEYS = {key.value for key in SortKey}


@dataclass
class ParsedCell:
    source: str
    definitions: List[Tuple[str, str]] = field(default_factory=list)
    queries: List[str] = field(default_factory=list)


@dataclass
class _CellSymbols:
    seq: int
    values: Dict[str, str] = field(default_factory=dict)


def parse_cell_text(text: str) -> ParsedCell:
    parsed = ParsedCell(source=text)
    for raw_line in str(text or "").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("//"):
            continue
        match = _DEFINITION.match(line)
        if match:
            parsed.definitions.append((match.group(1), match.group(2)))
            continue
        parsed.queries.append(line)
    return parsed


def extract_sort(query: str) -> Tuple[str, Optional[SortKey], SortOrder]:
    """Split a ``sort:`` qualifier off the query text; the last valid one wins."""
    sort: Optional[SortKey] = None
    order = SortOrder.DESC

    def _lift(match: re.Match) -> str:
        nonlocal sort, order
        key = match.group(1).lower()
        if key not in _SORT_KEYS:
            return match.group(0)
        sort = SortKey(key)
        order = SortOrder((match.group(2) or "desc").lower())
        return ""

    remaining = _SORT_QUALIFIER.sub(_lift, query)
    return re.sub(r"\s+", " ", remaining).strip(), sort, order


class SymbolTable:
    """Name -> most recently defined value across executed cells."""

    def __init__(self) -> None:
        self._by_cell: Dict[str, _CellSymbols] = {}
        self._seq = itertools.count()
        self._lock = Lock()

    def update(self, cell_id: str, definitions: List[Tuple[str, str]]) -> None:
        """Record ``cell_id``'s definitions as the most recent ones."""
        with self._lock:
            self._by_cell[cell_id] = _CellSymbols(seq=next(self._seq), values=dict(definitions))

    def remove_cell(self, cell_id: str) -> None:
        with self._lock:
            self._by_cell.pop(cell_id, None)

    def get(self, name: str) -> Optional[str]:
        with self._lock:
            owners = [entry for entry in self._by_cell.values() if name in entry.values]
            if not owners:
                return None
            return max(owners, key=lambda entry: entry.seq).values[name]

    def names(self) -> List[str]:
        with self._lock:
            return sorted({name for entry in self._by_cell.values() for name in entry.values})

    def resolve(self, text: str, _stack: Optional[Set[str]] = None) -> str:
        """Substitute ``$name`` references recursively."""
        stack = set(_stack or ())

        def _substitute(match: re.Match) -> str:
            name = match.group(1)
            if name in stack:
                raise QueryResolutionError(f"Cyclic definition of ${name}", symbol=name)
            value = self.get(name)
            if value is None:
                raise QueryResolutionError(f"Unknown symbol ${name}", symbol=name)
            return self.resolve(value, stack | {name})

        return _REFERENCE.sub(_substitute, str(text or ""))


class QueryProject(BaseProject):
    """Reference project: one symbol table per notebook, parse cache per cell."""

    def __init__(self) -> None:
        self.symbols = SymbolTable()
        self._cells: Dict[str, ParsedCell] = {}

    def get_or_create(self, cell: NotebookCell) -> ParsedCell:
        cached = self._cells.get(cell.cell_id)
        if cached is not None and cached.source == cell.value:
            return cached
        parsed = parse_cell_text(cell.value)
        self._cells[cell.cell_id] = parsed
        return parsed

    def update_symbols(self, cell: NotebookCell) -> None:
        parsed = self.get_or_create(cell)
        self.symbols.update(cell.cell_id, parsed.definitions)

    def query_data(self, cell: NotebookCell) -> List[QueryDescriptor]:
        parsed = self.get_or_create(cell)
        descriptors: List[QueryDescriptor] = []
        for query in parsed.queries:
            text, sort, order = extract_sort(self.symbols.resolve(query))
            if not text:
                raise QueryResolutionError(f"Empty query in cell {cell.cell_id}: {query!r}")
            descriptors.append(QueryDescriptor(q=text, sort=sort, order=order))
        logger.debug("cell %s resolved %s queries", cell.cell_id, len(descriptors))
        return descriptors

    def forget(self, cell_id: str) -> None:
        self._cells.pop(cell_id, None)
        self.symbols.remove_cell(cell_id)

    def dispose(self) -> None:
        for cell_id in list(self._cells):
            self.forget(cell_id)
