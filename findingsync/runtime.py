"""Wiring of the reconciliation services for worker processes."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from sqlalchemy import Engine

from findingsync.config import Settings, configure_logging, get_settings
from findingsync.database import create_db_engine, create_session_factory, init_db
from findingsync.services.annotation_applier import AnnotationBatchApplier
from findingsync.services.annotation_store import AnnotationStore
from findingsync.services.issue_store import PersistentIssueStore
from findingsync.services.reconcile_service import ReconcileService
from findingsync.services.tracker_registry import TrackerRegistry
from findingsync.services.workspace import Workspace


@dataclass
class Runtime:
    engine: Engine
    workspace: Workspace
    store: AnnotationStore
    registry: TrackerRegistry
    applier: AnnotationBatchApplier
    service: ReconcileService

    def close(self) -> None:
        self.registry.close_all()
        self.engine.dispose()


def build_runtime(settings: Optional[Settings] = None) -> Runtime:
    settings = settings or get_settings()
    engine = create_db_engine(settings.database_url, settings.database_echo)
    init_db(engine)
    session_factory = create_session_factory(engine)

    workspace = Workspace(settings.workspace_root, settings.file_encoding)
    store = AnnotationStore(session_factory)
    registry = TrackerRegistry(PersistentIssueStore(session_factory), settings=settings)
    applier = AnnotationBatchApplier(store, workspace, settings.default_category)
    service = ReconcileService(workspace, registry, applier, settings=settings)
    return Runtime(engine, workspace, store, registry, applier, service)


@lru_cache
def get_runtime() -> Runtime:
    """Runtime shared by every task of a worker process."""
    configure_logging()
    return build_runtime()
