"""Schemas for analyzer output received as JSON."""

from pydantic import BaseModel, Field, field_validator

from findingsync.analyzers.base import Finding, LocationPoint, LocationTrail, TextRange


class TextRangePayload(BaseModel):
    start_line: int = Field(ge=1)
    start_line_offset: int | None = Field(default=None, ge=0)
    end_line: int | None = Field(default=None, ge=1)
    end_line_offset: int | None = Field(default=None, ge=0)

    def to_text_range(self) -> TextRange:
        return TextRange(
            start_line=self.start_line,
            start_line_offset=self.start_line_offset,
            end_line=self.end_line,
            end_line_offset=self.end_line_offset,
        )


class LocationPayload(BaseModel):
    message: str = ""
    start_line: int
    start_line_offset: int = 0
    end_line: int
    end_line_offset: int = 0

    def to_point(self) -> LocationPoint:
        return LocationPoint(
            self.message,
            self.start_line,
            self.start_line_offset,
            self.end_line,
            self.end_line_offset,
        )


class FlowPayload(BaseModel):
    locations: list[LocationPayload] = Field(min_length=1)


class FindingPayload(BaseModel):
    """One finding as produced by the analyzer."""

    rule_key: str = Field(min_length=1)
    severity: str = "MAJOR"
    message: str = ""
    text_range: TextRangePayload | None = None
    flows: list[FlowPayload] = Field(default_factory=list)
    server_issue_key: str | None = None
    impacts: dict[str, str] = Field(default_factory=dict)
    clean_code_attribute: str | None = None
    rule_type: str | None = None
    resolved: bool = False

    @field_validator("severity", mode="after")
    @classmethod
    def normalize_severity(cls, v: str) -> str:
        return v.upper()

    def to_finding(self) -> Finding:
        return Finding(
            rule_key=self.rule_key,
            severity=self.severity,
            message=self.message,
            text_range=self.text_range.to_text_range() if self.text_range else None,
            flows=[
                LocationTrail([location.to_point() for location in flow.locations])
                for flow in self.flows
            ],
            server_issue_key=self.server_issue_key,
            impacts=dict(self.impacts),
            clean_code_attribute=self.clean_code_attribute,
            rule_type=self.rule_type,
            resolved=self.resolved,
        )


class FileFindingsPayload(BaseModel):
    """All findings of one analyzed file."""

    path: str = Field(min_length=1)
    findings: list[FindingPayload] = Field(default_factory=list)


class ReconcilePayload(BaseModel):
    """Analysis results for a set of files in one project."""

    files: list[FileFindingsPayload] = Field(default_factory=list)
