"""
Background scan job management.

Each accepted scan request runs in its own daemon thread. The manager keeps
track of the jobs so clients can poll their progress, cancel them, and so the
number of scans running at once stays bounded.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .data_models import ScanRequest, ScanState, ScanSummary
from .events import EventBroadcaster, FanOutBroadcaster, LoggingBroadcaster
from .range_expander import validate_ip_range
from .scanner_orchestrator import ScanOrchestrator
from ..config.config_loader import ScanConfig
from ..utils.error_handler import ScanAlreadyRunningError


OrchestratorFactory = Callable[[EventBroadcaster, threading.Event], ScanOrchestrator]


class _JobEventRecorder(EventBroadcaster):
    """Keeps the most recent event on the job it belongs to."""

    def __init__(self, job: "ScanJob"):
        self.job = job

    def broadcast(self, event_type: str, data: Dict[str, Any]) -> None:
        self.job.last_event = {"type": event_type, "data": data}


class ScanJob:
    """A scan request together with the thread running it."""

    def __init__(self, request: ScanRequest, scan_id: Optional[str] = None):
        self.scan_id = scan_id or str(uuid.uuid4())
        self.request = request
        self.cancel_event = threading.Event()
        self.orchestrator: Optional[ScanOrchestrator] = None
        self.thread: Optional[threading.Thread] = None
        self.summary: Optional[ScanSummary] = None
        self.last_event: Optional[Dict[str, Any]] = None
        self.error: Optional[str] = None
        self.started_at = datetime.now(timezone.utc)
        self.finished_at: Optional[datetime] = None
        self._failed = False

    @property
    def state(self) -> ScanState:
        if self._failed:
            return ScanState.FAILED
        if self.summary is not None:
            return self.summary.state
        if self.orchestrator is not None:
            return self.orchestrator.state
        return ScanState.PENDING

    @property
    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def to_dict(self) -> Dict[str, Any]:
        progress = self.orchestrator.progress.to_dict() if self.orchestrator else None
        return {
            "scanId": self.scan_id,
            "state": self.state.value,
            "ipRange": self.request.ip_range,
            "progress": progress,
            "lastEvent": self.last_event,
            "scanDetails": self.request.to_scan_details(),
            "summary": self.summary.to_dict() if self.summary else None,
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "error": self.error,
        }


class ScanJobManager:
    """
    Starts scans in background threads and tracks them.

    Args:
        store: Persistence collaborator handed to every orchestrator
        broadcaster: Sink receiving the events of every scan
        config: Scan configuration
        logger: Logger used by the manager and the orchestrators
        orchestrator_factory: Builds the orchestrator for a job from its
            broadcaster and cancel event (defaults to ScanOrchestrator)
    """

    def __init__(
        self,
        store=None,
        broadcaster: Optional[EventBroadcaster] = None,
        config: Optional[ScanConfig] = None,
        logger=None,
        orchestrator_factory: Optional[OrchestratorFactory] = None,
    ):
        self.store = store
        self.config = config or ScanConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.broadcaster = broadcaster or LoggingBroadcaster()
        self.orchestrator_factory = orchestrator_factory or self._default_orchestrator
        self._jobs: Dict[str, ScanJob] = {}
        self._lock = threading.Lock()

    def _default_orchestrator(self, broadcaster: EventBroadcaster, cancel_event: threading.Event) -> ScanOrchestrator:
        return ScanOrchestrator(
            store=self.store,
            broadcaster=broadcaster,
            config=self.config,
            logger=self.logger,
            cancel_event=cancel_event,
        )

    def start_scan(self, request: ScanRequest) -> ScanJob:
        """
        Validate a request and start scanning it in the background.

        Args:
            request: Scan request to run

        Returns:
            The started ScanJob

        Raises:
            InvalidRangeError: If the range is malformed
            ScanAlreadyRunningError: If the concurrent scan limit is reached
        """
        validate_ip_range(request.ip_range)

        with self._lock:
            running = [job for job in self._jobs.values() if job.is_running]
            if len(running) >= self.config.max_concurrent_scans:
                raise ScanAlreadyRunningError(
                    f"A network scan is already running ({running[0].request.ip_range})"
                )

            self._prune_finished_jobs()
            job = ScanJob(request)
            job.orchestrator = self.orchestrator_factory(
                FanOutBroadcaster(_JobEventRecorder(job), self.broadcaster),
                job.cancel_event,
            )
            job.thread = threading.Thread(
                target=self._run_job,
                args=(job,),
                name=f"network-scan-{job.scan_id[:8]}",
                daemon=True,
            )
            self._jobs[job.scan_id] = job
            job.thread.start()

        self.logger.info(f"Started network scan {job.scan_id} for {request.ip_range}")
        return job

    def _prune_finished_jobs(self) -> None:
        # Caller holds self._lock
        finished = sorted(
            (job for job in self._jobs.values() if not job.is_running),
            key=lambda job: job.started_at,
        )
        excess = len(finished) - self.config.max_finished_jobs
        for job in finished[:max(excess, 0)]:
            del self._jobs[job.scan_id]
        if excess > 0:
            self.logger.debug(f"Dropped {excess} finished scan job(s) from history")

    def _run_job(self, job: ScanJob) -> None:
        try:
            job.summary = job.orchestrator.run(job.request)
            job.error = job.summary.error
        except Exception as e:
            job._failed = True
            job.error = str(e)
            self.logger.error(f"Network scan {job.scan_id} aborted: {e}")
        finally:
            job.finished_at = datetime.now(timezone.utc)

    def get_job(self, scan_id: str) -> Optional[ScanJob]:
        return self._jobs.get(scan_id)

    def list_jobs(self) -> List[ScanJob]:
        """Return all known jobs, newest first."""
        return sorted(self._jobs.values(), key=lambda job: job.started_at, reverse=True)

    def cancel(self, scan_id: str) -> Optional[ScanJob]:
        """
        Request cancellation of a job.

        Returns:
            The job, or None if the scan id is unknown
        """
        job = self._jobs.get(scan_id)
        if job is None:
            return None
        if job.is_running:
            self.logger.info(f"Cancellation requested for network scan {scan_id}")
            job.cancel_event.set()
        return job

    def wait(self, scan_id: str, timeout: Optional[float] = None) -> Optional[ScanJob]:
        """Block until a job has finished (or the timeout expires)."""
        job = self._jobs.get(scan_id)
        if job is not None and job.thread is not None:
            job.thread.join(timeout)
        return job
