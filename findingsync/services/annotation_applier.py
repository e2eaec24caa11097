"""Apply reconciled annotation sets to the host store in one batch."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from findingsync.analyzers.base import priority_for
from findingsync.models.annotation import Annotation
from findingsync.schemas.annotations import AnnotationCategory, AnnotationRecord
from findingsync.services.annotation_store import AnnotationBatch, AnnotationStore
from findingsync.services.cancellation import CancellationToken
from findingsync.services.issue_tracker import TrackedAnnotation
from findingsync.services.workspace import Resource, ResourceNotFoundError, Workspace

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Outcome of one ``apply`` call."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    processed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    cancelled: bool = False


@dataclass
class _FilePlan:
    resource: str
    creates: list[tuple[TrackedAnnotation, AnnotationRecord]] = field(default_factory=list)
    updates: list[tuple[TrackedAnnotation, Annotation, AnnotationRecord]] = field(default_factory=list)
    deletes: list[Annotation] = field(default_factory=list)
    hidden: list[TrackedAnnotation] = field(default_factory=list)
    marker_ids: list[tuple[TrackedAnnotation, Optional[int]]] = field(default_factory=list)

    def restore_marker_ids(self) -> None:
        for tracked, marker_id in self.marker_ids:
            tracked.marker_id = marker_id


def _as_resource(resource: Resource | str) -> Resource:
    return resource if isinstance(resource, Resource) else Resource(str(resource))


class AnnotationBatchApplier:
    """Turns desired per-file annotation sets into store mutations.

    Each public call runs in a single store batch, so observers see one
    change event per call that touched anything. Within ``apply`` every file
    is written under its own savepoint; a file that fails is rolled back
    alone and reported in ``ApplyResult.failed``.
    """

    def __init__(
        self,
        store: AnnotationStore,
        workspace: Optional[Workspace] = None,
        default_category: str = AnnotationCategory.ON_THE_FLY.value,
    ):
        self.store = store
        self.workspace = workspace
        self.default_category = default_category

    def apply(
        self,
        desired: Mapping[Resource | str, Sequence[TrackedAnnotation]],
        category: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> ApplyResult:
        category = category or self.default_category
        result = ApplyResult()

        with self.store.batch() as batch:
            for resource, annotations in desired.items():
                if cancellation is not None and cancellation.cancelled:
                    logger.info("Annotation update cancelled after %d files", len(result.processed))
                    result.cancelled = True
                    break

                resource = _as_resource(resource)
                plan = None
                try:
                    with batch.savepoint():
                        plan = self._plan(batch, resource, annotations, category)
                        self._execute(batch, plan)
                except (ResourceNotFoundError, SQLAlchemyError) as e:
                    logger.exception(f"Unable to update annotations of {resource.path}")
                    if plan is not None:
                        plan.restore_marker_ids()
                    result.failed[resource.path] = str(e)
                    continue

                result.created += len(plan.creates)
                result.updated += len(plan.updates)
                result.deleted += len(plan.deletes)
                result.processed.append(resource.path)

        logger.debug(
            "Applied %s annotations: %d created, %d updated, %d deleted, %d failed files",
            category,
            result.created,
            result.updated,
            result.deleted,
            len(result.failed),
        )
        return result

    def _plan(
        self,
        batch: AnnotationBatch,
        resource: Resource,
        annotations: Sequence[TrackedAnnotation],
        category: str,
    ) -> _FilePlan:
        if self.workspace is not None and not self.workspace.exists(resource):
            raise ResourceNotFoundError(f"{resource.path} no longer exists")

        plan = _FilePlan(resource.path, marker_ids=[(tracked, tracked.marker_id) for tracked in annotations])
        existing = {annotation.id: annotation for annotation in batch.find(resource.path, category)}
        claimed: set[int] = set()

        for tracked in annotations:
            if tracked.resolved:
                plan.hidden.append(tracked)
                continue
            record = AnnotationRecord.from_tracked(tracked, category)
            marker = existing.get(tracked.marker_id) if tracked.marker_id is not None else None
            if marker is not None and marker.id not in claimed:
                claimed.add(marker.id)
                plan.updates.append((tracked, marker, record))
            else:
                plan.creates.append((tracked, record))

        plan.deletes = [annotation for marker_id, annotation in existing.items() if marker_id not in claimed]
        return plan

    def _execute(self, batch: AnnotationBatch, plan: _FilePlan) -> None:
        for annotation in plan.deletes:
            batch.delete(annotation)
        for tracked in plan.hidden:
            tracked.marker_id = None
        for tracked, marker, record in plan.updates:
            batch.update(marker, record.column_values())
        for tracked, record in plan.creates:
            tracked.marker_id = batch.create(plan.resource, record)

    def clear(self, resources: Iterable[Resource | str], category: Optional[str] = None) -> int:
        """Delete the annotations of the given files in one batch."""
        category = category or self.default_category
        deleted = 0
        with self.store.batch() as batch:
            for resource in resources:
                for annotation in batch.find(_as_resource(resource).path, category):
                    batch.delete(annotation)
                    deleted += 1
        return deleted

    def clear_category(self, category: str) -> int:
        """Delete every annotation of a category, e.g. a stale report."""
        deleted = 0
        with self.store.batch() as batch:
            for annotation in batch.find_category(category):
                batch.delete(annotation)
                deleted += 1
        return deleted

    def update_server_attributes(
        self,
        resource: Resource | str,
        annotations: Sequence[TrackedAnnotation],
    ) -> None:
        """Refresh server-side attributes after matching with server issues.

        Resolved annotations lose their visible annotation.
        """
        path = _as_resource(resource).path
        with self.store.batch() as batch:
            for tracked in annotations:
                if tracked.marker_id is None:
                    continue
                marker = batch.get(tracked.marker_id)
                if marker is None or marker.resource != path:
                    tracked.marker_id = None
                    continue
                if tracked.resolved:
                    batch.delete(marker)
                    tracked.marker_id = None
                    continue
                millis = tracked.creation_millis
                batch.update(
                    marker,
                    {
                        "severity": tracked.severity,
                        "priority": priority_for(tracked.severity),
                        "server_issue_key": tracked.server_issue_key,
                        "creation_date": str(millis) if millis is not None else None,
                    },
                )
