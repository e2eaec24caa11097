"""Persistent tracked-issue state, kept between sessions."""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from findingsync.models.tracked_issue import TrackedFile, TrackedIssue
from findingsync.services.issue_tracker import TrackedAnnotation
from findingsync.services.position_resolver import CharRange

logger = logging.getLogger(__name__)


def _to_db_datetime(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db_datetime(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


class PersistentIssueStore:
    """Stores each file's tracked annotations, keyed by project and path."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def _find_file(self, session: Session, project: str, resource: str) -> Optional[TrackedFile]:
        result = session.execute(
            select(TrackedFile)
            .options(selectinload(TrackedFile.issues))
            .where(TrackedFile.project == project, TrackedFile.resource == resource)
        )
        return result.scalar_one_or_none()

    def contains(self, project: str, resource: str) -> bool:
        """Whether the file was analyzed before, even if it had no issues."""
        with self.session_factory() as session:
            return self._find_file(session, project, resource) is not None

    def read(self, project: str, resource: str) -> Optional[list[TrackedAnnotation]]:
        """Tracked annotations of a file, or None if it was never stored."""
        with self.session_factory() as session:
            tracked_file = self._find_file(session, project, resource)
            if tracked_file is None:
                return None
            return [self._to_annotation(resource, issue) for issue in tracked_file.issues]

    def save(self, project: str, resource: str, annotations: Sequence[TrackedAnnotation]) -> None:
        with self.session_factory() as session:
            tracked_file = self._find_file(session, project, resource)
            if tracked_file is None:
                tracked_file = TrackedFile(project=project, resource=resource)
                session.add(tracked_file)
            tracked_file.issues = [
                self._to_issue(position, annotation)
                for position, annotation in enumerate(annotations)
            ]
            session.commit()

    def delete(self, project: str, resource: str) -> None:
        with self.session_factory() as session:
            tracked_file = self._find_file(session, project, resource)
            if tracked_file is not None:
                session.delete(tracked_file)
                session.commit()

    def clear(self, project: str) -> None:
        """Forget every file of a project."""
        with self.session_factory() as session:
            file_ids = select(TrackedFile.id).where(TrackedFile.project == project)
            session.execute(delete(TrackedIssue).where(TrackedIssue.tracked_file_id.in_(file_ids)))
            session.execute(delete(TrackedFile).where(TrackedFile.project == project))
            session.commit()
        logger.info(f"Cleared tracked issues of project {project}")

    def _to_issue(self, position: int, annotation: TrackedAnnotation) -> TrackedIssue:
        text_range = annotation.text_range
        return TrackedIssue(
            position=position,
            uuid=annotation.id,
            created_at=_to_db_datetime(annotation.created_at),
            rule_key=annotation.rule_key,
            severity=annotation.severity,
            message=annotation.message,
            line=annotation.line,
            char_start=text_range.start if text_range else None,
            char_end=text_range.end if text_range else None,
            checksum=annotation.checksum,
            flows=annotation.flows,
            impacts=annotation.impacts,
            server_issue_key=annotation.server_issue_key,
            marker_id=annotation.marker_id,
            resolved=annotation.resolved,
        )

    def _to_annotation(self, resource: str, issue: TrackedIssue) -> TrackedAnnotation:
        text_range = None
        if issue.char_start is not None and issue.char_end is not None:
            text_range = CharRange(issue.char_start, issue.char_end)
        return TrackedAnnotation(
            id=issue.uuid,
            resource=resource,
            rule_key=issue.rule_key,
            severity=issue.severity,
            message=issue.message or "",
            line=issue.line,
            text_range=text_range,
            checksum=issue.checksum,
            created_at=_from_db_datetime(issue.created_at),
            flows=issue.flows or "",
            impacts=issue.impacts or "",
            server_issue_key=issue.server_issue_key,
            marker_id=issue.marker_id,
            resolved=bool(issue.resolved),
        )
