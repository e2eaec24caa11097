"""In-process worker pool running one reconciliation per request."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from findingsync.config import Settings, get_settings
from findingsync.services.cancellation import CancellationToken
from findingsync.services.reconcile_service import (
    AnalysisRequest,
    ReconcileReport,
    ReconcileService,
)

logger = logging.getLogger(__name__)


@dataclass
class ScheduledJob:
    request: AnalysisRequest
    token: CancellationToken
    future: "Future[ReconcileReport]"

    def cancel(self) -> None:
        """Request cooperative cancellation; committed files are kept."""
        self.token.cancel()
        self.future.cancel()

    def result(self, timeout: Optional[float] = None) -> ReconcileReport:
        return self.future.result(timeout)


class JobScheduler:
    def __init__(self, service: ReconcileService, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.service = service
        self._executor = ThreadPoolExecutor(
            max_workers=settings.worker_concurrency,
            thread_name_prefix="findingsync",
        )

    def submit(self, request: AnalysisRequest) -> ScheduledJob:
        token = CancellationToken()
        future = self._executor.submit(self._run, request, token)
        return ScheduledJob(request, token, future)

    def _run(self, request: AnalysisRequest, token: CancellationToken) -> ReconcileReport:
        try:
            return self.service.run(request, token)
        except Exception:
            logger.exception(f"Reconciliation job for {request.project} failed")
            raise

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "JobScheduler":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
