"""Execution orchestrator: resolve, fetch, render and attach outputs per cell."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Dict, List, Optional, Tuple

from aggregator import QueryAggregator
from core import (
    CancellationToken,
    CellExecution,
    ErrorOutput,
    ExecutionState,
    NotebookCell,
    NotebookDocument,
    QueryDescriptor,
    never_cancelled,
)
from outputs import render_outputs
from sources import BaseSearchClient, GitHubSearchClient, PaginatedFetcher
from storage import NotebookStore
from utils.exceptions import IssueNotebookError, NotebookNotOpenError

from .registry import ProjectRegistry


logger = logging.getLogger(__name__)


def _error_value(exc: BaseException) -> str:
    if isinstance(exc, IssueNotebookError):
        return exc.message
    return str(exc) or repr(exc)


class NotebookExecutionService:
    """
    Host-facing notebook provider

    One project per open document; cells execute sequentially so that
    symbol definitions of earlier executions are visible to later ones.
    """

    def __init__(
        self,
        *,
        client: Optional[BaseSearchClient] = None,
        fetcher: Optional[PaginatedFetcher] = None,
        store: Optional[NotebookStore] = None,
        registry: Optional[ProjectRegistry] = None,
    ) -> None:
        self._client = client or GitHubSearchClient()
        self._aggregator = QueryAggregator(fetcher or PaginatedFetcher(self._client))
        self._store = store or NotebookStore()
        self._registry = registry or ProjectRegistry()
        self._documents: Dict[str, NotebookDocument] = {}
        self._executions: Dict[Tuple[str, str], CellExecution] = {}
        self._lock = Lock()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        for uri in list(self._documents):
            self.close_notebook(uri)
        await self._client.close()

    # -- document lifetime --

    def open_notebook(self, uri: str, document: Optional[NotebookDocument] = None) -> NotebookDocument:
        """Load (or adopt) a document and register a fresh project for it."""
        doc = document or self._store.load(uri)
        project = self._registry.register(uri)
        with self._lock:
            self._documents[uri] = doc

        # definitions become known in document order before any cell runs
        for cell in doc.code_cells():
            try:
                project.get_or_create(cell)
                project.update_symbols(cell)
            except Exception:
                logger.exception("Failed to feed cell %s of %s into project", cell.cell_id, uri)
        logger.info("Opened notebook %s (%s cells)", uri, len(doc.cells))
        return doc

    def get_document(self, uri: str) -> NotebookDocument:
        with self._lock:
            doc = self._documents.get(uri)
        if doc is None:
            raise NotebookNotOpenError(f"Notebook {uri} is not open")
        return doc

    def close_notebook(self, uri: str) -> bool:
        with self._lock:
            doc = self._documents.pop(uri, None)
            for key in [key for key in self._executions if key[0] == uri]:
                del self._executions[key]
        self._registry.unregister(uri)
        return doc is not None

    def save(self, uri: str, path: Optional[str] = None) -> str:
        """Persist the document; returns the written contents."""
        return self._store.save(self.get_document(uri), path)

    # -- resolution --

    def resolve(self, uri: str) -> Dict[str, List[QueryDescriptor]]:
        """
        Descriptors of every code cell, resolved in document order

        Symbols are updated as a run-all would; cells that fail to resolve
        are logged and left out.
        """
        doc = self.get_document(uri)
        project = self._registry.lookup(uri)
        resolved: Dict[str, List[QueryDescriptor]] = {}
        for cell in doc.code_cells():
            try:
                project.update_symbols(cell)
                resolved[cell.cell_id] = project.query_data(cell)
            except Exception as exc:
                logger.warning("Cell %s of %s does not resolve: %s", cell.cell_id, uri, exc)
        return resolved

    # -- execution --

    def last_execution(self, uri: str, cell_id: str) -> Optional[CellExecution]:
        with self._lock:
            execution = self._executions.get((uri, cell_id))
            return execution.model_copy(deep=True) if execution else None

    async def execute_cell(
        self,
        uri: str,
        cell_id: str,
        token: Optional[CancellationToken] = None,
    ) -> CellExecution:
        """Run one cell through resolve -> fetch -> render."""
        doc = self.get_document(uri)
        cell = doc.get_cell(cell_id)
        if cell is None:
            raise NotebookNotOpenError(f"Cell {cell_id} not found in {uri}")
        return await self._execute(uri, cell, token or never_cancelled())

    async def execute_all(self, uri: str, token: Optional[CancellationToken] = None) -> List[CellExecution]:
        """Execute code cells in document order; failures do not stop later cells."""
        doc = self.get_document(uri)
        token = token or never_cancelled()
        executions: List[CellExecution] = []
        for cell in doc.code_cells():
            if token.is_cancellation_requested:
                logger.info("Run all of %s cancelled before %s", uri, cell.cell_id)
                break
            executions.append(await self._execute(uri, cell, token))
        return executions

    async def _execute(self, uri: str, cell: NotebookCell, token: CancellationToken) -> CellExecution:
        execution = CellExecution(cell_id=cell.cell_id)
        with self._lock:
            self._executions[(uri, cell.cell_id)] = execution

        if not cell.is_code:
            execution.transition(ExecutionState.IDLE, "not a code cell")
            return execution

        execution.transition(ExecutionState.RESOLVING)
        try:
            project = self._registry.lookup(uri)
            project.update_symbols(cell)
            descriptors = project.query_data(cell)
        except Exception as exc:
            logger.error("Resolving cell %s of %s failed: %s", cell.cell_id, uri, exc)
            return self._fail(cell, execution, exc)
        execution.descriptor_count = len(descriptors)

        execution.transition(ExecutionState.FETCHING, f"{len(descriptors)} queries")
        try:
            result = await self._aggregator.aggregate(descriptors, token)
        except Exception as exc:
            logger.warning("Fetching cell %s of %s failed: %s", cell.cell_id, uri, exc)
            return self._fail(cell, execution, exc)

        if result is None:
            execution.transition(ExecutionState.CANCELLED)
            logger.info("Cell %s of %s cancelled, outputs kept", cell.cell_id, uri)
            return execution

        execution.transition(ExecutionState.RENDERING)
        try:
            output = render_outputs(result)
        except Exception as exc:
            logger.exception("Rendering cell %s of %s failed", cell.cell_id, uri)
            return self._fail(cell, execution, exc)

        cell.outputs = [output]
        execution.item_count = len(result.items)
        execution.total_count = result.total_count
        execution.elapsed_ms = result.elapsed_ms
        execution.transition(ExecutionState.DONE, f"{len(result.items)} items")
        return execution

    def _fail(self, cell: NotebookCell, execution: CellExecution, exc: BaseException) -> CellExecution:
        evalue = _error_value(exc)
        cell.outputs = [ErrorOutput(ename=type(exc).__name__, evalue=evalue)]
        execution.error = evalue
        execution.transition(ExecutionState.FAILED, evalue)
        return execution
