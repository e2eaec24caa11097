"""Reconcile analyzer results for a project's files."""

import logging
from typing import Any

from pydantic import ValidationError

from findingsync.celery_app import celery_app
from findingsync.runtime import Runtime, get_runtime
from findingsync.schemas.findings import ReconcilePayload
from findingsync.services.reconcile_service import AnalysisRequest

logger = logging.getLogger(__name__)


def run_reconcile(
    runtime: Runtime,
    project: str,
    payload: dict[str, Any],
    category: str | None = None,
) -> dict[str, Any]:
    """Validate the payload, run the pipeline and summarize the outcome."""
    validated = ReconcilePayload.model_validate(payload)
    request = AnalysisRequest(
        project=project,
        findings={
            file.path: [finding.to_finding() for finding in file.findings]
            for file in validated.files
        },
        category=category,
    )
    report = runtime.service.run(request)

    apply_result = report.apply_result
    return {
        "project": project,
        "files": sorted(report.tracked),
        "tracked": sum(len(annotations) for annotations in report.tracked.values()),
        "created": apply_result.created if apply_result else 0,
        "updated": apply_result.updated if apply_result else 0,
        "deleted": apply_result.deleted if apply_result else 0,
        "failed": report.failed,
    }


@celery_app.task(bind=True, max_retries=2)
def reconcile_files(
    self,
    project: str,
    payload: dict[str, Any],
    category: str | None = None,
) -> dict[str, Any]:
    """Celery task entrypoint for reconciliation."""
    try:
        return run_reconcile(get_runtime(), project, payload, category)
    except ValidationError:
        logger.error("Rejected malformed findings payload for %s", project)
        raise
    except Exception as exc:
        logger.error("Reconcile task failed: %s", exc)
        raise self.retry(exc=exc, countdown=10)
