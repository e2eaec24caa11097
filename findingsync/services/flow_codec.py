"""Encode data-flow trails and impacts into single scalar attributes.

Control characters U+0011..U+0013 delimit trails, points and fields. Message
text containing them is not escaped.
"""

import logging
from typing import Iterable, Optional

from findingsync.analyzers.base import LocationPoint, LocationTrail

logger = logging.getLogger(__name__)

TRAIL_SEPARATOR = "\u0011"
POINT_SEPARATOR = "\u0012"
FIELD_SEPARATOR = "\u0013"

_FIELD_COUNT = 5


def _encode_point(point: LocationPoint) -> str:
    return FIELD_SEPARATOR.join(
        [
            point.message or "",
            str(point.start_line),
            str(point.start_line_offset),
            str(point.end_line),
            str(point.end_line_offset),
        ]
    )


def encode(trails: Iterable[LocationTrail]) -> str:
    """Encode trails in order; points keep their order within a trail."""
    encoded_trails = []
    for trail in trails:
        points = [_encode_point(point) for point in trail.locations]
        if points:
            encoded_trails.append(POINT_SEPARATOR.join(points))
    return TRAIL_SEPARATOR.join(encoded_trails)


def _decode_point(segment: str) -> Optional[LocationPoint]:
    fields = segment.split(FIELD_SEPARATOR)
    if len(fields) != _FIELD_COUNT:
        return None
    try:
        numbers = [int(value) for value in fields[1:]]
    except ValueError:
        return None
    return LocationPoint(fields[0], *numbers, detached=True)


def decode(encoded: str | None) -> list[LocationTrail]:
    """Decode trails, skipping malformed points and empty trails.

    Never raises. Decoded points are detached from any analysis session.
    """
    if not encoded:
        return []

    trails: list[LocationTrail] = []
    for trail_segment in encoded.split(TRAIL_SEPARATOR):
        points = []
        for segment in trail_segment.split(POINT_SEPARATOR):
            point = _decode_point(segment)
            if point is None:
                logger.debug("Skipping malformed flow location %r", segment)
                continue
            points.append(point)
        if points:
            trails.append(LocationTrail(points))
    return trails


def encode_impacts(clean_code_attribute: Optional[str], impacts: dict[str, str] | None) -> str:
    """Encode the clean-code attribute and quality impacts."""
    impacts = impacts or {}
    if not clean_code_attribute and not impacts:
        return ""
    pairs = POINT_SEPARATOR.join(
        f"{quality}{FIELD_SEPARATOR}{severity}" for quality, severity in impacts.items()
    )
    return f"{clean_code_attribute or ''}{TRAIL_SEPARATOR}{pairs}"


def decode_impacts(encoded: str | None) -> tuple[Optional[str], dict[str, str]]:
    """Decode what ``encode_impacts`` produced. Malformed pairs are skipped."""
    if not encoded:
        return None, {}

    attribute, _, pairs = encoded.partition(TRAIL_SEPARATOR)
    impacts: dict[str, str] = {}
    for pair in pairs.split(POINT_SEPARATOR) if pairs else []:
        fields = pair.split(FIELD_SEPARATOR)
        if len(fields) != 2 or not fields[0]:
            continue
        impacts[fields[0]] = fields[1]
    return attribute or None, impacts
