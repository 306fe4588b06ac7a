"""Interface of the project that turns cell text into query descriptors."""

from abc import ABC, abstractmethod
from typing import List

from core import NotebookCell, QueryDescriptor


class BaseProject(ABC):
    """
    Per-document query project
    Owns the symbol table shared by all cells of one notebook
    """

    @abstractmethod
    def update_symbols(self, cell: NotebookCell) -> None:
        """Make the definitions of ``cell`` win over earlier ones"""
        pass

    @abstractmethod
    def query_data(self, cell: NotebookCell) -> List[QueryDescriptor]:
        """Descriptors for every query of ``cell``, in cell order"""
        pass

    def get_or_create(self, cell: NotebookCell) -> None:
        """Feed a cell into the project ahead of execution"""
        pass

    def dispose(self) -> None:
        """Release per-document state"""
        pass
