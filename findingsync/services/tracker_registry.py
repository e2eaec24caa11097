"""Per-project issue trackers with an explicit open/close lifecycle."""

import logging
import threading
from datetime import datetime
from typing import Callable, Optional, Sequence

from findingsync.analyzers.base import Finding
from findingsync.config import Settings, get_settings
from findingsync.services.issue_store import PersistentIssueStore
from findingsync.services.issue_tracker import IssueTracker, TrackedAnnotation
from findingsync.services.position_resolver import TextSnapshot
from findingsync.services.workspace import Resource

logger = logging.getLogger(__name__)


class ProjectNotOpenError(Exception):
    """No tracker is open for the project."""


class ProjectIssueTracker:
    """Tracked state of one project's files.

    Each file's state is read and replaced under that file's lock, so two
    pipelines never interleave on the same file. State is cached in memory
    and written to the persistent store by ``flush_all``.
    """

    def __init__(
        self,
        project: str,
        tracker: IssueTracker,
        issue_store: Optional[PersistentIssueStore] = None,
        unknown_creation_date_on_first_analysis: bool = False,
    ):
        self.project = project
        self.tracker = tracker
        self.issue_store = issue_store
        self.unknown_creation_date_on_first_analysis = unknown_creation_date_on_first_analysis
        self._cache: dict[str, list[TrackedAnnotation]] = {}
        self._dirty: set[str] = set()
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, path: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(path, threading.Lock())

    def _load(self, path: str) -> Optional[list[TrackedAnnotation]]:
        if path in self._cache:
            return self._cache[path]
        if self.issue_store is None:
            return None
        stored = self.issue_store.read(self.project, path)
        if stored is not None:
            self._cache[path] = stored
        return stored

    def process(
        self,
        resource: Resource | str,
        findings: Sequence[Finding],
        snapshot: Optional[TextSnapshot],
    ) -> list[TrackedAnnotation]:
        """Reconcile a file's findings and replace its tracked state."""
        path = str(resource)
        with self._lock_for(path):
            previous = self._load(path)
            if previous is None and self.unknown_creation_date_on_first_analysis:
                logger.debug(f"First analysis of {path}, creation dates unknown")
                current = self.tracker.track_as_unknown(findings, snapshot, path)
            else:
                current = self.tracker.reconcile(previous or [], findings, snapshot, path)
            with self._guard:
                self._cache[path] = current
                self._dirty.add(path)
            return current

    def get_tracked(self, resource: Resource | str) -> list[TrackedAnnotation]:
        path = str(resource)
        with self._lock_for(path):
            return list(self._load(path) or [])

    def clear(self, resource: Resource | str) -> None:
        """Drop every tracked annotation of a file."""
        path = str(resource)
        with self._lock_for(path):
            with self._guard:
                self._cache[path] = []
                self._dirty.add(path)

    def flush_all(self) -> int:
        """Write changed files to the persistent store."""
        if self.issue_store is None:
            return 0
        with self._guard:
            dirty = sorted(self._dirty)
            self._dirty.clear()
        for path in dirty:
            with self._lock_for(path):
                self.issue_store.save(self.project, path, self._cache.get(path, []))
        if dirty:
            logger.debug(f"Persisted tracked state of {len(dirty)} files in {self.project}")
        return len(dirty)


class TrackerRegistry:
    """Owns one ``ProjectIssueTracker`` per open project."""

    def __init__(
        self,
        issue_store: Optional[PersistentIssueStore] = None,
        clock: Callable[[], datetime] | None = None,
        settings: Optional[Settings] = None,
    ):
        self.issue_store = issue_store
        self.clock = clock
        self.settings = settings or get_settings()
        self._projects: dict[str, ProjectIssueTracker] = {}
        self._lock = threading.Lock()

    @property
    def projects(self) -> list[str]:
        with self._lock:
            return sorted(self._projects)

    def open_project(self, project: str) -> ProjectIssueTracker:
        """Open a project's tracker, or return the already open one."""
        with self._lock:
            tracker = self._projects.get(project)
            if tracker is None:
                tracker = ProjectIssueTracker(
                    project,
                    IssueTracker(clock=self.clock),
                    self.issue_store,
                    self.settings.unknown_creation_date_on_first_analysis,
                )
                self._projects[project] = tracker
                logger.info(f"Opened issue tracker for project {project}")
            return tracker

    def get(self, project: str) -> ProjectIssueTracker:
        with self._lock:
            tracker = self._projects.get(project)
        if tracker is None:
            raise ProjectNotOpenError(f"Project {project} is not open")
        return tracker

    def close_project(self, project: str) -> None:
        """Persist and release a project's tracked state."""
        with self._lock:
            tracker = self._projects.pop(project, None)
        if tracker is None:
            return
        tracker.flush_all()
        logger.info(f"Closed issue tracker for project {project}")

    def close_all(self) -> None:
        for project in self.projects:
            self.close_project(project)
