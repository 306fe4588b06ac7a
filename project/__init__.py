"""Query projects: cell text to query descriptors."""

from .base import BaseProject
from .query_project import QueryProject, SymbolTable, extract_sort, parse_cell_text

__all__ = [
    "BaseProject",
    "QueryProject",
    "SymbolTable",
    "extract_sort",
    "parse_cell_text",
]
