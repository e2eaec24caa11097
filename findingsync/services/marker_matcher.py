"""Locate the visible annotation an "open in IDE" request refers to."""

import logging
from dataclasses import dataclass
from typing import Optional

from findingsync.models.annotation import Annotation
from findingsync.services.annotation_store import AnnotationStore
from findingsync.services.position_resolver import CharRange, OutOfRangeError, resolve
from findingsync.services.workspace import Resource, SnapshotUnreadableError, Workspace

logger = logging.getLogger(__name__)


@dataclass
class OpenIssueRequest:
    """Issue details sent by the server when a user opens it in the IDE."""

    rule_key: str
    message: str
    server_issue_key: Optional[str] = None
    start_line: Optional[int] = None
    start_line_offset: Optional[int] = None
    end_line: Optional[int] = None
    end_line_offset: Optional[int] = None


class MarkerMatcher:
    def __init__(self, store: AnnotationStore, workspace: Workspace):
        self.store = store
        self.workspace = workspace

    def match(
        self,
        request: OpenIssueRequest,
        resource: Resource,
        category: str,
    ) -> Optional[Annotation]:
        """Return the annotation matching the request, if one is shown."""
        text_range = self._resolve(request, resource)
        for annotation in self.store.find(resource.path, category):
            if self._matches(annotation, request, text_range):
                return annotation
        return None

    def _resolve(self, request: OpenIssueRequest, resource: Resource) -> Optional[CharRange]:
        if request.start_line is None:
            return None
        try:
            snapshot = self.workspace.get_snapshot(resource)
            return resolve(
                snapshot,
                request.start_line,
                request.start_line_offset,
                request.end_line,
                request.end_line_offset,
            )
        except (SnapshotUnreadableError, OutOfRangeError) as e:
            logger.debug(f"Unable to position issue in {resource.path}: {e}")
            return None

    @staticmethod
    def _matches(
        annotation: Annotation,
        request: OpenIssueRequest,
        text_range: Optional[CharRange],
    ) -> bool:
        if request.server_issue_key and annotation.server_issue_key != request.server_issue_key:
            return False
        if annotation.rule_key != request.rule_key or annotation.message != request.message:
            return False
        if text_range is None:
            return True
        return (
            annotation.line_number == request.start_line
            and annotation.char_start == text_range.start
            and annotation.char_end == text_range.end
        )
