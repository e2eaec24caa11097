"""Analyzer-facing value types."""

from findingsync.analyzers.base import (
    Analyzer,
    Finding,
    LocationPoint,
    LocationTrail,
    Severity,
    TextRange,
    UnsupportedOperationError,
    priority_for,
)

__all__ = [
    "Analyzer",
    "Finding",
    "LocationPoint",
    "LocationTrail",
    "Severity",
    "TextRange",
    "UnsupportedOperationError",
    "priority_for",
]
