"""Notebook execution orchestration."""

from .registry import ProjectRegistry
from .service import NotebookExecutionService

__all__ = [
    "NotebookExecutionService",
    "ProjectRegistry",
]
