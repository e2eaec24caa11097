"""Tests for annotation records."""

from datetime import datetime, timezone

from findingsync.analyzers.base import priority_for
from findingsync.schemas.annotations import AnnotationCategory, AnnotationRecord
from findingsync.services.issue_tracker import TrackedAnnotation
from findingsync.services.position_resolver import CharRange


class TestPriority:
    """Test severity to priority mapping."""

    def test_mapping(self):
        """Blocker and critical are high, major normal, others low."""
        assert priority_for("BLOCKER") == 2
        assert priority_for("critical") == 2
        assert priority_for("MAJOR") == 1
        assert priority_for("MINOR") == 0
        assert priority_for("INFO") == 0
        assert priority_for(None) == 0


class TestAnnotationRecord:
    """Test building records from tracked annotations."""

    def test_from_tracked(self):
        """All scalar attributes are derived from the tracked annotation."""
        tracked = TrackedAnnotation(
            id="5a1c",
            rule_key="js:S1234",
            severity="BLOCKER",
            message="Remove this assignment",
            line=5,
            text_range=CharRange(78, 88),
            checksum=123,
            created_at=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
            flows="f",
            impacts="i",
            server_issue_key="AX-1",
        )

        record = AnnotationRecord.from_tracked(tracked, AnnotationCategory.TAINT.value)

        assert record.category == "findingsync.taint"
        assert record.priority == 2
        assert (record.line, record.char_start, record.char_end) == (5, 78, 88)
        assert record.creation_date == "1709294400000"
        assert record.tracked_id == "5a1c"

    def test_unknown_creation_date(self):
        """An unknown creation date is left out."""
        tracked = TrackedAnnotation(id="1", rule_key="js:S1", severity="INFO", message="")

        record = AnnotationRecord.from_tracked(tracked, AnnotationCategory.ON_THE_FLY.value)

        assert record.creation_date is None
        assert record.line == 1
        assert record.flows == ""

    def test_column_values(self):
        """Column values use the model's column names."""
        record = AnnotationRecord(category="c", rule_key="r", line=3)

        values = record.column_values()

        assert values["line_number"] == 3
        assert "line" not in values
