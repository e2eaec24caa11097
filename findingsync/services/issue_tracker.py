"""Match new findings against previously tracked annotations."""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Hashable, Optional, Sequence

from findingsync.analyzers.base import Finding
from findingsync.services import flow_codec
from findingsync.services.checksum import line_checksum
from findingsync.services.position_resolver import (
    CharRange,
    OutOfRangeError,
    TextSnapshot,
    resolve,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TrackedAnnotation:
    """Identity-stable record of a finding across analysis runs."""

    id: str
    rule_key: str
    severity: Optional[str]
    message: str
    resource: Optional[str] = None
    line: Optional[int] = None
    text_range: Optional[CharRange] = None
    checksum: Optional[int] = None
    created_at: Optional[datetime] = None
    flows: str = ""
    impacts: str = ""
    server_issue_key: Optional[str] = None
    marker_id: Optional[int] = None
    resolved: bool = False

    @property
    def creation_millis(self) -> Optional[int]:
        if self.created_at is None:
            return None
        return int(self.created_at.timestamp() * 1000)


@dataclass
class _Candidate:
    """A finding with its position resolved against the current snapshot."""

    index: int
    finding: Finding
    line: Optional[int]
    text_range: Optional[CharRange] = None
    checksum: Optional[int] = None
    flows: str = ""
    impacts: str = ""
    match: Optional[int] = field(default=None)


class IssueTracker:
    """Reconcile a file's findings with its previously tracked annotations.

    Matching runs in three passes: server key, then rule and line checksum,
    then rule and message. Within a bucket the closest lines pair first.
    Unmatched findings become new annotations; unmatched previous entries
    are dropped.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self.clock = clock or utc_now

    def reconcile(
        self,
        previous: Sequence[TrackedAnnotation],
        findings: Sequence[Finding],
        snapshot: Optional[TextSnapshot],
        resource: Optional[str] = None,
    ) -> list[TrackedAnnotation]:
        candidates = self._prepare(findings, snapshot, resource)
        used_previous: set[int] = set()

        self._match_by_server_key(candidates, previous, used_previous)
        self._match_in_buckets(
            candidates,
            previous,
            used_previous,
            lambda c: (c.finding.rule_key, c.checksum) if c.checksum is not None else None,
            lambda p: (p.rule_key, p.checksum) if p.checksum is not None else None,
        )
        self._match_in_buckets(
            candidates,
            previous,
            used_previous,
            lambda c: (c.finding.rule_key, c.finding.message),
            lambda p: (p.rule_key, p.message),
        )

        result = []
        created = 0
        for candidate in candidates:
            if candidate.match is None:
                result.append(self._create(candidate, resource, self.clock()))
                created += 1
            else:
                result.append(self._update(previous[candidate.match], candidate, resource))

        logger.debug(
            "Reconciled %s: %d findings, %d matched, %d new, %d dropped",
            resource,
            len(candidates),
            len(candidates) - created,
            created,
            len(previous) - len(used_previous),
        )
        return result

    def track_as_unknown(
        self,
        findings: Sequence[Finding],
        snapshot: Optional[TextSnapshot],
        resource: Optional[str] = None,
    ) -> list[TrackedAnnotation]:
        """Track every finding as new, with an unknown creation date."""
        candidates = self._prepare(findings, snapshot, resource)
        return [self._create(candidate, resource, None) for candidate in candidates]

    def _prepare(
        self,
        findings: Sequence[Finding],
        snapshot: Optional[TextSnapshot],
        resource: Optional[str],
    ) -> list[_Candidate]:
        candidates = []
        for index, finding in enumerate(findings):
            candidate = _Candidate(
                index=index,
                finding=finding,
                line=finding.line,
                flows=flow_codec.encode(finding.flows),
                impacts=flow_codec.encode_impacts(finding.clean_code_attribute, finding.impacts),
            )
            text_range = finding.text_range
            if text_range is not None and snapshot is None:
                logger.debug("No content to position %s in %s", finding.rule_key, resource)
            elif text_range is not None:
                try:
                    candidate.text_range = resolve(
                        snapshot,
                        text_range.start_line,
                        text_range.start_line_offset,
                        text_range.end_line,
                        text_range.end_line_offset,
                    )
                    candidate.checksum = line_checksum(snapshot.line_content(text_range.start_line))
                except OutOfRangeError as exc:
                    logger.debug("Position of %s in %s not resolved: %s", finding.rule_key, resource, exc)
            candidates.append(candidate)
        return candidates

    def _match_by_server_key(
        self,
        candidates: list[_Candidate],
        previous: Sequence[TrackedAnnotation],
        used_previous: set[int],
    ) -> None:
        by_key: dict[str, list[int]] = {}
        for index, tracked in enumerate(previous):
            if tracked.server_issue_key:
                by_key.setdefault(tracked.server_issue_key, []).append(index)

        for candidate in candidates:
            key = candidate.finding.server_issue_key
            if not key:
                continue
            for index in by_key.get(key, []):
                if index not in used_previous:
                    candidate.match = index
                    used_previous.add(index)
                    break

    def _match_in_buckets(
        self,
        candidates: list[_Candidate],
        previous: Sequence[TrackedAnnotation],
        used_previous: set[int],
        candidate_key: Callable[[_Candidate], Optional[Hashable]],
        previous_key: Callable[[TrackedAnnotation], Optional[Hashable]],
    ) -> None:
        """Pair candidates with previous entries sharing a key, closest lines first.

        Every pair within a bucket is sorted, so the cost grows with the square
        of a bucket's size. Buckets are small unless one rule fires on many
        identical lines.
        """
        buckets: dict[Hashable, list[int]] = {}
        for index, tracked in enumerate(previous):
            if index in used_previous:
                continue
            key = previous_key(tracked)
            if key is not None:
                buckets.setdefault(key, []).append(index)

        pairs = []
        for candidate in candidates:
            if candidate.match is not None:
                continue
            key = candidate_key(candidate)
            if key is None:
                continue
            for index in buckets.get(key, []):
                distance = abs(_line_or_zero(candidate.line) - _line_or_zero(previous[index].line))
                pairs.append((distance, candidate.index, index))

        # Closest lines first; ties go to finding order, then previous order
        pairs.sort()
        matched_candidates: set[int] = set()
        for _, candidate_index, previous_index in pairs:
            if candidate_index in matched_candidates or previous_index in used_previous:
                continue
            candidates[candidate_index].match = previous_index
            matched_candidates.add(candidate_index)
            used_previous.add(previous_index)

    def _create(
        self,
        candidate: _Candidate,
        resource: Optional[str],
        created_at: Optional[datetime],
    ) -> TrackedAnnotation:
        finding = candidate.finding
        return TrackedAnnotation(
            id=str(uuid.uuid4()),
            resource=resource,
            rule_key=finding.rule_key,
            severity=finding.severity,
            message=finding.message,
            line=candidate.line,
            text_range=candidate.text_range,
            checksum=candidate.checksum,
            created_at=created_at,
            flows=candidate.flows,
            impacts=candidate.impacts,
            server_issue_key=finding.server_issue_key,
            resolved=finding.resolved,
        )

    def _update(
        self,
        tracked: TrackedAnnotation,
        candidate: _Candidate,
        resource: Optional[str],
    ) -> TrackedAnnotation:
        finding = candidate.finding
        return replace(
            tracked,
            resource=resource if resource is not None else tracked.resource,
            rule_key=finding.rule_key,
            severity=finding.severity,
            message=finding.message,
            line=candidate.line,
            text_range=candidate.text_range,
            checksum=candidate.checksum,
            flows=candidate.flows,
            impacts=candidate.impacts,
            server_issue_key=finding.server_issue_key or tracked.server_issue_key,
            resolved=finding.resolved,
        )


def _line_or_zero(line: Optional[int]) -> int:
    return line if line is not None else 0


