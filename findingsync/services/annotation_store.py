"""Host annotation store with batched, coalesced change notifications."""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from findingsync.models.annotation import Annotation
from findingsync.schemas.annotations import AnnotationRecord

logger = logging.getLogger(__name__)


@dataclass
class AnnotationChangeEvent:
    """Aggregate notification for every mutation of one batch."""

    created: list[int] = field(default_factory=list)
    updated: list[int] = field(default_factory=list)
    deleted: list[int] = field(default_factory=list)
    resources: set[str] = field(default_factory=set)

    @property
    def touched(self) -> bool:
        return bool(self.created or self.updated or self.deleted)


AnnotationListener = Callable[[AnnotationChangeEvent], Any]


class AnnotationBatch:
    """Mutation primitives available inside ``AnnotationStore.batch()``."""

    def __init__(self, session: Session):
        self.session = session
        self.event = AnnotationChangeEvent()

    @contextmanager
    def savepoint(self) -> Iterator["AnnotationBatch"]:
        """Group mutations that are undone together if the block raises.

        The rest of the batch, and the pending change event, keep only what
        happened outside the failed block.
        """
        created, updated, deleted = len(self.event.created), len(self.event.updated), len(self.event.deleted)
        resources = set(self.event.resources)
        try:
            with self.session.begin_nested():
                yield self
        except Exception:
            del self.event.created[created:]
            del self.event.updated[updated:]
            del self.event.deleted[deleted:]
            self.event.resources = resources
            raise

    def find(self, resource: str, category: Optional[str] = None) -> list[Annotation]:
        query = select(Annotation).where(Annotation.resource == resource)
        if category is not None:
            query = query.where(Annotation.category == category)
        return list(self.session.scalars(query.order_by(Annotation.id)))

    def find_category(self, category: str) -> list[Annotation]:
        query = select(Annotation).where(Annotation.category == category).order_by(Annotation.id)
        return list(self.session.scalars(query))

    def get(self, annotation_id: int) -> Optional[Annotation]:
        return self.session.get(Annotation, annotation_id)

    def create(self, resource: str, record: AnnotationRecord) -> int:
        annotation = Annotation(resource=resource, **record.column_values())
        self.session.add(annotation)
        self.session.flush()
        self.event.created.append(annotation.id)
        self.event.resources.add(resource)
        return annotation.id

    def update(self, annotation: Annotation, values: dict[str, Any]) -> int:
        """Rewrite an annotation in place; only differing attributes are set.

        Returns the number of attributes that changed.
        """
        changed = 0
        for name, value in values.items():
            if getattr(annotation, name) != value:
                setattr(annotation, name, value)
                changed += 1
        self.event.updated.append(annotation.id)
        self.event.resources.add(annotation.resource)
        return changed

    def delete(self, annotation: Annotation) -> None:
        self.event.deleted.append(annotation.id)
        self.event.resources.add(annotation.resource)
        self.session.delete(annotation)


class AnnotationStore:
    """SQLAlchemy-backed annotation store.

    Every mutation happens inside ``batch()``. A batch holds the store lock
    until it exits and emits at most one ``AnnotationChangeEvent``, after a
    successful commit. Batches opened while one is already active on the same
    thread join it.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory
        self._lock = threading.RLock()
        self._local = threading.local()
        self._listeners: list[AnnotationListener] = []

    def add_listener(self, listener: AnnotationListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: AnnotationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def find(self, resource: str, category: Optional[str] = None) -> list[Annotation]:
        with self._lock, self.session_factory() as session:
            return AnnotationBatch(session).find(resource, category)

    def find_category(self, category: str) -> list[Annotation]:
        with self._lock, self.session_factory() as session:
            return AnnotationBatch(session).find_category(category)

    def get(self, annotation_id: int) -> Optional[Annotation]:
        with self._lock, self.session_factory() as session:
            return session.get(Annotation, annotation_id)

    @contextmanager
    def batch(self) -> Iterator[AnnotationBatch]:
        self._lock.acquire()
        try:
            active = getattr(self._local, "batch", None)
            if active is not None:
                yield active
                return

            session = self.session_factory()
            batch = AnnotationBatch(session)
            self._local.batch = batch
            try:
                yield batch
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                self._local.batch = None
                session.close()

            if batch.event.touched:
                self._notify(batch.event)
        finally:
            self._lock.release()

    def _notify(self, event: AnnotationChangeEvent) -> None:
        logger.debug(
            "Annotation change: %d created, %d updated, %d deleted",
            len(event.created),
            len(event.updated),
            len(event.deleted),
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Annotation listener %r failed", listener)
