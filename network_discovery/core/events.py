"""
Progress event sink for discovery scans.

The orchestrator reports through an EventBroadcaster; what happens to the
events (logging, pushing to clients, recording on a job) is up to the
implementation.
"""

import json
import logging
from typing import Any, Dict, List, Optional


SCAN_PROGRESS = "scan_progress"
SCAN_COMPLETED = "scan_completed"
SCAN_ERROR = "scan_error"
SCAN_CANCELLED = "scan_cancelled"

EVENT_TYPES = (SCAN_PROGRESS, SCAN_COMPLETED, SCAN_ERROR, SCAN_CANCELLED)


class EventBroadcaster:
    """Receives scan events. The base implementation discards them."""

    def broadcast(self, event_type: str, data: Dict[str, Any]) -> None:
        pass


class LoggingBroadcaster(EventBroadcaster):
    """Writes every event to the log; clients poll the job status instead."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def broadcast(self, event_type: str, data: Dict[str, Any]) -> None:
        self.logger.info(f"[Update Event] {event_type}: {json.dumps(data, default=str)}")


class FanOutBroadcaster(EventBroadcaster):
    """Forwards each event to several broadcasters in order."""

    def __init__(self, *broadcasters: EventBroadcaster):
        self.broadcasters: List[EventBroadcaster] = list(broadcasters)

    def broadcast(self, event_type: str, data: Dict[str, Any]) -> None:
        for broadcaster in self.broadcasters:
            broadcaster.broadcast(event_type, data)
