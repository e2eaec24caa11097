"""SQLAlchemy models."""

from findingsync.models.annotation import Annotation
from findingsync.models.tracked_issue import TrackedFile, TrackedIssue

__all__ = [
    "Annotation",
    "TrackedFile",
    "TrackedIssue",
]
