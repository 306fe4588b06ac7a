"""
Custom Exceptions
"""
from typing import Optional


class IssueNotebookError(Exception):
    """Base exception for the issue notebook"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(IssueNotebookError):
    """Invalid configuration"""
    pass


class FetchError(IssueNotebookError):
    """Search API request failed"""

    def __init__(self, message: str, source: str = None, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, kwargs)
        self.source = source
        self.status_code = status_code


class QueryResolutionError(IssueNotebookError):
    """Cell text could not be turned into query descriptors"""

    def __init__(self, message: str, symbol: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.symbol = symbol


class NotebookNotOpenError(IssueNotebookError):
    """Unknown notebook document or cell"""
    pass


class OperationCancelled(IssueNotebookError):
    """Raised inside the fetch loop when the cancellation token fires"""

    def __init__(self, message: str = "operation cancelled"):
        super().__init__(message)
