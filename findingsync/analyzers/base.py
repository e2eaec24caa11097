"""Value types exchanged with the external analyzer."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class UnsupportedOperationError(Exception):
    """Raised when a detached value is asked for live session state."""


class Severity(str, Enum):
    """Finding severity levels, most severe first."""

    BLOCKER = "BLOCKER"
    CRITICAL = "CRITICAL"
    MAJOR = "MAJOR"
    MINOR = "MINOR"
    INFO = "INFO"


# Host priorities, mirroring editor marker conventions
PRIORITY_HIGH = 2
PRIORITY_NORMAL = 1
PRIORITY_LOW = 0


def priority_for(severity: str | None) -> int:
    """Map an analyzer severity onto a host priority."""
    normalized = (severity or "").upper()
    if normalized in (Severity.BLOCKER, Severity.CRITICAL):
        return PRIORITY_HIGH
    if normalized == Severity.MAJOR:
        return PRIORITY_NORMAL
    return PRIORITY_LOW


@dataclass(frozen=True)
class TextRange:
    """Primary location as reported by the analyzer (1-based lines)."""

    start_line: int
    start_line_offset: Optional[int] = None
    end_line: Optional[int] = None
    end_line_offset: Optional[int] = None


@dataclass(frozen=True)
class LocationPoint:
    """One step of a data-flow trail.

    Points built from analyzer output may carry the analyzer's input file.
    Points rebuilt from an encoded flow string are detached from the analysis
    session that produced them, so asking them for their input file fails.
    """

    message: str
    start_line: int
    start_line_offset: int
    end_line: int
    end_line_offset: int
    file: Any = field(default=None, compare=False, repr=False)
    detached: bool = field(default=False, compare=False, repr=False)

    @property
    def input_file(self) -> Any:
        if self.detached:
            raise UnsupportedOperationError("Decoded locations have no input file")
        return self.file


@dataclass(frozen=True)
class LocationTrail:
    """Ordered, non-empty sequence of location points."""

    locations: tuple[LocationPoint, ...]

    def __post_init__(self):
        object.__setattr__(self, "locations", tuple(self.locations))


@dataclass
class Finding:
    """Finding emitted by the analyzer for one file, before reconciliation."""

    rule_key: str
    severity: str
    message: str
    text_range: Optional[TextRange] = None
    flows: list[LocationTrail] = field(default_factory=list)
    server_issue_key: Optional[str] = None
    impacts: dict[str, str] = field(default_factory=dict)
    clean_code_attribute: Optional[str] = None
    rule_type: Optional[str] = None
    resolved: bool = False

    @property
    def line(self) -> Optional[int]:
        return self.text_range.start_line if self.text_range else None


class Analyzer:
    """Base class for analyzers feeding the reconciliation pipeline."""

    name: str = "base"

    def analyze(self, resource: Any, snapshot: Any) -> list[Finding]:
        raise NotImplementedError
