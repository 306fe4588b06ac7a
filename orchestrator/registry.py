"""Explicit document -> project registry with lifetime tied to open/close."""

from __future__ import annotations

from threading import Lock
from typing import Callable, Dict, Optional

from project import BaseProject, QueryProject
from utils.exceptions import NotebookNotOpenError


class ProjectRegistry:
    """Thread-safe mapping of notebook uri to its query project."""

    def __init__(self, project_factory: Optional[Callable[[], BaseProject]] = None) -> None:
        self._factory = project_factory or QueryProject
        self._projects: Dict[str, BaseProject] = {}
        self._lock = Lock()

    def register(self, uri: str, project: Optional[BaseProject] = None) -> BaseProject:
        """Register (or replace) the project of ``uri``."""
        created = project or self._factory()
        with self._lock:
            previous = self._projects.get(uri)
            self._projects[uri] = created
        if previous is not None and previous is not created:
            previous.dispose()
        return created

    def lookup(self, uri: str) -> BaseProject:
        with self._lock:
            project = self._projects.get(uri)
        if project is None:
            raise NotebookNotOpenError(f"No project registered for {uri}")
        return project

    def unregister(self, uri: str) -> bool:
        """Tear down the project of ``uri``. Returns False when unknown."""
        with self._lock:
            project = self._projects.pop(uri, None)
        if project is None:
            return False
        project.dispose()
        return True
