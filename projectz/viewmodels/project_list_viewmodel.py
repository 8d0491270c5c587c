# Rev 0.2.0: live list, ordering switch restarts the query
from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Iterable, List, Optional

from PySide6.QtCore import QObject, Qt, Signal, Slot

from projectz.models.entities import Project, ProjectOrdering
from projectz.models.random_projects import make_random_project
from projectz.repositories.live_query import LiveQuery

log = logging.getLogger(__name__)


class ProjectListViewModel(QObject):
    """
    VM for the ordered project list.
    Emits:
      - projectsChanged(projects: list[Project])   on every delivery of the live query
      - orderingChanged(ordering: ProjectOrdering)
      - errorOccurred(message: str)                when a re-read fails (observation keeps going)
    Commands raise PersistenceError on failure; the caller decides what to show.

    Live-query results may arrive on a worker thread. They are handed to the
    VM's own thread first and dropped there unless they belong to the query
    that is still current, so nothing from a previous ordering is emitted.
    """

    projectsChanged = Signal(list)
    orderingChanged = Signal(object)
    errorOccurred = Signal(str)

    _resultReady = Signal(int, object)
    _errorReady = Signal(int, str)

    def __init__(
        self,
        projects_repo,
        *,
        ordering: ProjectOrdering = ProjectOrdering.BY_PRIORITY,
        executor: Optional[Executor] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._repo = projects_repo
        self._ordering = ordering
        self._executor = executor
        self._projects: List[Project] = []
        self._query: Optional[LiveQuery] = None
        self._generation = 0

        # worker threads -> this thread; inline mode stays synchronous
        conn = Qt.QueuedConnection if executor is not None else Qt.DirectConnection
        self._resultReady.connect(self._accept_projects, conn)
        self._errorReady.connect(self._accept_error, conn)

    # ---- state
    @property
    def projects(self) -> List[Project]:
        return self._projects

    @property
    def ordering(self) -> ProjectOrdering:
        return self._ordering

    @property
    def is_observing(self) -> bool:
        return self._query is not None and self._query.is_active

    def set_ordering(self, ordering: ProjectOrdering) -> None:
        if ordering is self._ordering:
            return
        self._ordering = ordering
        self.orderingChanged.emit(ordering)
        if self._query is not None:
            self.observe_projects()

    # ---- observation
    def observe_projects(self) -> None:
        """Start (or restart) observing with the current ordering."""
        self.stop()
        ordering = self._ordering
        generation = self._generation
        log.debug("Observing projects ordered %s (generation %d)", ordering.value, generation)
        self._query = LiveQuery(
            self._repo,
            lambda repo: repo.list_projects(ordering),
            lambda projects: self._resultReady.emit(generation, projects),
            lambda exc: self._errorReady.emit(generation, str(exc)),
            executor=self._executor,
        )
        self._query.start()

    def stop(self) -> None:
        self._generation += 1
        if self._query is not None:
            self._query.cancel()
            self._query = None

    def _is_current(self, generation: int) -> bool:
        return self._query is not None and generation == self._generation

    @Slot(int, object)
    def _accept_projects(self, generation: int, projects: List[Project]) -> None:
        if not self._is_current(generation):
            log.debug("Dropping stale project list (generation %d)", generation)
            return
        self._projects = list(projects)
        self.projectsChanged.emit(self._projects)

    @Slot(int, str)
    def _accept_error(self, generation: int, message: str) -> None:
        if self._is_current(generation):
            self.errorOccurred.emit(message)

    # ---- commands
    def save_project(self, project: Project) -> Project:
        return self._repo.save_project(project)

    def add_random_project(self) -> Project:
        return self._repo.save_project(make_random_project())

    def delete_projects(self, ids: Iterable[int]) -> int:
        return self._repo.delete_projects(ids)

    def delete_all_projects(self) -> int:
        return self._repo.delete_all_projects()
