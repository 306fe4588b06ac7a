"""Core contracts and shared types for the notebook pipeline."""

from .cancellation import CancellationToken, CancellationTokenSource, never_cancelled
from .contracts import (
    CellExecution,
    CellKind,
    CellOutput,
    ErrorOutput,
    ExecutionEvent,
    ExecutionResult,
    ExecutionState,
    FetchResult,
    FetchState,
    Item,
    Label,
    NotebookCell,
    NotebookDocument,
    QueryDescriptor,
    RichOutput,
    SearchPage,
    SortKey,
    SortOrder,
    User,
    has_many_repos,
)

__all__ = [
    "CancellationToken",
    "CancellationTokenSource",
    "CellExecution",
    "CellKind",
    "CellOutput",
    "ErrorOutput",
    "ExecutionEvent",
    "ExecutionResult",
    "ExecutionState",
    "FetchResult",
    "FetchState",
    "Item",
    "Label",
    "NotebookCell",
    "NotebookDocument",
    "QueryDescriptor",
    "RichOutput",
    "SearchPage",
    "SortKey",
    "SortOrder",
    "User",
    "has_many_repos",
    "never_cancelled",
]
