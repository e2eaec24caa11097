"""Schemas for visible annotations and their persisted attributes."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from findingsync.analyzers.base import priority_for


class AnnotationCategory(str, Enum):
    """Kinds of visible annotations; each is replaced independently."""

    ON_THE_FLY = "findingsync.on_the_fly"
    REPORT = "findingsync.report"
    TAINT = "findingsync.taint"


class AnnotationRecord(BaseModel):
    """Scalar attributes written on one host annotation."""

    category: str
    rule_key: str
    severity: str | None = None
    priority: int = 0
    message: str = ""
    line: int = Field(default=1, ge=1, description="1-based; file-level findings use line 1")
    char_start: int | None = None
    char_end: int | None = None
    checksum: int | None = None
    creation_date: str | None = Field(default=None, description="Epoch millis as a string")
    flows: str = ""
    impacts: str = ""
    server_issue_key: str | None = None
    tracked_id: str | None = None

    class Config:
        from_attributes = True

    @classmethod
    def from_tracked(cls, tracked, category: str) -> "AnnotationRecord":
        """Build the attributes shown for a tracked annotation."""
        millis: Optional[int] = tracked.creation_millis
        text_range = tracked.text_range
        return cls(
            category=category,
            rule_key=tracked.rule_key,
            severity=tracked.severity,
            priority=priority_for(tracked.severity),
            message=tracked.message,
            line=tracked.line if tracked.line and tracked.line > 0 else 1,
            char_start=text_range.start if text_range else None,
            char_end=text_range.end if text_range else None,
            checksum=tracked.checksum,
            creation_date=str(millis) if millis is not None else None,
            flows=tracked.flows or "",
            impacts=tracked.impacts or "",
            server_issue_key=tracked.server_issue_key,
            tracked_id=tracked.id,
        )

    def column_values(self) -> dict:
        """Values keyed by ``Annotation`` column name."""
        values = self.model_dump()
        values["line_number"] = values.pop("line")
        return values
