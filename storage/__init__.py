"""
Storage Module
"""
from .notebook_store import NotebookStore, dumps, loads

__all__ = [
    "NotebookStore",
    "dumps",
    "loads",
]
