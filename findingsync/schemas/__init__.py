"""Pydantic schemas."""

from findingsync.schemas.annotations import AnnotationCategory, AnnotationRecord
from findingsync.schemas.findings import (
    FileFindingsPayload,
    FindingPayload,
    FlowPayload,
    LocationPayload,
    ReconcilePayload,
    TextRangePayload,
)

__all__ = [
    "AnnotationCategory",
    "AnnotationRecord",
    "FileFindingsPayload",
    "FindingPayload",
    "FlowPayload",
    "LocationPayload",
    "ReconcilePayload",
    "TextRangePayload",
]
