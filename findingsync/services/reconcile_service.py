"""Orchestrates analyze -> track -> apply for a set of files."""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from findingsync.analyzers.base import Analyzer, Finding
from findingsync.config import Settings, get_settings
from findingsync.services.annotation_applier import AnnotationBatchApplier, ApplyResult
from findingsync.services.cancellation import CancellationToken
from findingsync.services.issue_tracker import TrackedAnnotation
from findingsync.services.resource_adapters import ResourceResolver
from findingsync.services.tracker_registry import TrackerRegistry
from findingsync.services.workspace import Resource, SnapshotUnreadableError, Workspace

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """The analyzer failed on one file."""


@dataclass
class AnalysisRequest:
    """Files of one project to reconcile.

    ``findings`` carries analyzer output already computed per file;
    ``resources`` lists files the configured analyzer should analyze.
    """

    project: str
    findings: Mapping[Any, Sequence[Finding]] = field(default_factory=dict)
    resources: Sequence[Any] = ()
    category: Optional[str] = None


@dataclass
class ReconcileReport:
    project: str
    tracked: dict[str, list[TrackedAnnotation]] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    apply_result: Optional[ApplyResult] = None
    cancelled: bool = False


class ReconcileService:
    """Runs the reconciliation pipeline for one request."""

    def __init__(
        self,
        workspace: Workspace,
        registry: TrackerRegistry,
        applier: AnnotationBatchApplier,
        resolver: Optional[ResourceResolver] = None,
        analyzer: Optional[Analyzer] = None,
        settings: Optional[Settings] = None,
    ):
        self.workspace = workspace
        self.registry = registry
        self.applier = applier
        self.resolver = resolver or ResourceResolver.for_workspace(workspace)
        self.analyzer = analyzer
        self.settings = settings or get_settings()

    def run(
        self,
        request: AnalysisRequest,
        cancellation: Optional[CancellationToken] = None,
    ) -> ReconcileReport:
        if request.resources and self.analyzer is None:
            raise ValueError(f"No analyzer configured to analyze files of {request.project}")

        report = ReconcileReport(project=request.project)
        tracker = self.registry.open_project(request.project)
        work = self._collect_work(request, report)

        desired: dict[Resource, list[TrackedAnnotation]] = {}
        for resource, findings in work:
            if cancellation is not None and cancellation.cancelled:
                logger.info(f"Reconciliation of {request.project} cancelled after {len(desired)} files")
                report.cancelled = True
                break

            try:
                snapshot = None
                if findings is None:
                    snapshot = self.workspace.get_snapshot(resource)
                    findings = self._analyze(resource, snapshot)
                elif any(finding.text_range is not None for finding in findings):
                    snapshot = self.workspace.get_snapshot(resource)
            except (SnapshotUnreadableError, AnalysisError) as e:
                report.failed[resource.path] = str(e)
                continue

            desired[resource] = tracker.process(resource, findings, snapshot)
            report.tracked[resource.path] = desired[resource]

        if desired:
            # Files already tracked are committed even after cancellation
            report.apply_result = self.applier.apply(desired, request.category)
            report.failed.update(report.apply_result.failed)

        if self.settings.persist_after_apply:
            tracker.flush_all()

        logger.info(
            f"Reconciled {len(report.tracked)} files of {request.project} "
            f"({len(report.failed)} failed, cancelled={report.cancelled})"
        )
        return report

    def _collect_work(
        self,
        request: AnalysisRequest,
        report: ReconcileReport,
    ) -> list[tuple[Resource, Optional[Sequence[Finding]]]]:
        work: list[tuple[Resource, Optional[Sequence[Finding]]]] = []
        for obj, findings in request.findings.items():
            resource = self.resolver.resolve(obj)
            if resource is None:
                report.failed[str(obj)] = "Unsupported resource"
                continue
            work.append((resource, findings))

        for obj in request.resources:
            resource = self.resolver.resolve(obj)
            if resource is None:
                report.failed[str(obj)] = "Unsupported resource"
                continue
            work.append((resource, None))
        return work

    def _analyze(self, resource: Resource, snapshot) -> list[Finding]:
        try:
            return list(self.analyzer.analyze(resource, snapshot))
        except Exception as exc:
            logger.exception("Analysis of %s failed: %s", resource.path, exc)
            raise AnalysisError(f"Analysis of {resource.path} failed: {exc}") from exc
