"""
Utils Module
"""
from .logger import setup_logger
from .exceptions import (
    IssueNotebookError,
    ConfigurationError,
    FetchError,
    NotebookNotOpenError,
    OperationCancelled,
    QueryResolutionError,
)

__all__ = [
    "setup_logger",
    "IssueNotebookError",
    "ConfigurationError",
    "FetchError",
    "NotebookNotOpenError",
    "OperationCancelled",
    "QueryResolutionError",
]
