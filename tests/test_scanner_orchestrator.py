"""
Tests for the sequential scan orchestrator.
"""
import threading

import pytest

from network_discovery.core.data_models import ScanRequest, ScanState
from network_discovery.core.events import SCAN_CANCELLED, SCAN_COMPLETED, SCAN_ERROR, SCAN_PROGRESS
from network_discovery.core.scanner_orchestrator import ScanOrchestrator
from network_discovery.utils.error_handler import InvalidRangeError
from tests.conftest import FakeInspector, FakeLiveness, FakeStore, RecordingBroadcaster


def _orchestrator(config, store=None, broadcaster=None, liveness=None, inspector=None, cancel_event=None):
    return ScanOrchestrator(
        store=store,
        broadcaster=broadcaster or RecordingBroadcaster(),
        config=config,
        liveness=liveness or FakeLiveness(),
        inspector=inspector or FakeInspector(),
        cancel_event=cancel_event,
    )


class TestSuccessfulScan:
    def test_scans_every_candidate_and_persists_live_hosts(self, fast_config, fake_store, recorder):
        liveness = FakeLiveness(alive={"10.0.0.2", "10.0.0.5"})
        orchestrator = _orchestrator(fast_config, fake_store, recorder, liveness)

        summary = orchestrator.run(ScanRequest(ip_range="10.0.0.0/29"))

        assert summary.state == ScanState.COMPLETED
        assert orchestrator.state == ScanState.COMPLETED
        assert liveness.checked == [f"10.0.0.{n}" for n in range(1, 7)]
        assert summary.total_scanned == 6
        assert summary.hosts_discovered == 2
        assert [record["ipAddress"] for record in fake_store.records] == ["10.0.0.2", "10.0.0.5"]
        assert [host["id"] for host in summary.hosts] == [1, 2]
        assert summary.errors == []

    def test_progress_events(self, fast_config, recorder):
        orchestrator = _orchestrator(fast_config, broadcaster=recorder, liveness=FakeLiveness(alive={"10.0.0.3"}))
        orchestrator.run(ScanRequest(ip_range="10.0.0.0/29"))

        progress = recorder.of_type(SCAN_PROGRESS)
        # 3 of 6 (50%), 5 of 6 (every fifth host), 6 of 6 (last host), then the completion event
        assert [event["scannedHosts"] for event in progress] == [3, 5, 6, 6]
        assert progress[0]["progressPercent"] == 50
        assert progress[0]["message"] == "Scanning 10.0.0.0/29 - 50% complete (1 hosts found)"
        assert progress[0]["currentIp"] == "10.0.0.3"
        assert progress[-1]["completed"] is True
        assert progress[-1]["progressPercent"] == 100
        assert "completed" not in progress[0]

    def test_completed_event_follows_final_progress(self, fast_config, recorder):
        orchestrator = _orchestrator(fast_config, broadcaster=recorder, liveness=FakeLiveness(alive={"10.0.0.1"}))
        request = ScanRequest(ip_range="10.0.0.0/30")
        orchestrator.run(request)

        assert [kind for kind, _ in recorder.events[-2:]] == [SCAN_PROGRESS, SCAN_COMPLETED]
        completed = recorder.of_type(SCAN_COMPLETED)[0]
        assert completed["message"] == "Network scan for 10.0.0.0/30 completed successfully - found 1 hosts"
        assert completed["hostsDiscovered"] == 1
        assert completed["totalScanned"] == 2
        assert completed["ipRange"] == "10.0.0.0/30"
        assert completed["scanDetails"] == request.to_scan_details()
        assert "durationSeconds" in completed
        assert "timestamp" in completed

    def test_without_store_hosts_stay_in_summary(self, fast_config):
        orchestrator = _orchestrator(fast_config, liveness=FakeLiveness(alive={"192.168.5.10"}),
                                     inspector=FakeInspector({"192.168.5.10": "printer"}))
        summary = orchestrator.run(ScanRequest(ip_range="192.168.5.10"))

        assert summary.hosts_discovered == 1
        assert summary.hosts[0]["hostname"] == "printer"
        assert "id" not in summary.hosts[0]

    def test_large_range_is_truncated(self, fast_config):
        liveness = FakeLiveness()
        summary = _orchestrator(fast_config, liveness=liveness).run(ScanRequest(ip_range="10.20.0.0/16"))
        assert summary.truncated
        assert summary.total_scanned == 50
        assert liveness.checked[-1] == "10.20.0.50"


class TestFailureIsolation:
    def test_invalid_range_raises_before_probing(self, fast_config, recorder):
        liveness = FakeLiveness()
        orchestrator = _orchestrator(fast_config, broadcaster=recorder, liveness=liveness)

        with pytest.raises(InvalidRangeError):
            orchestrator.run(ScanRequest(ip_range="10.0.0.0/40"))

        assert liveness.checked == []
        assert recorder.events == []

    def test_host_errors_are_recorded_and_scan_continues(self, fast_config, fake_store):
        liveness = FakeLiveness(alive={"10.0.0.1", "10.0.0.2"}, fail_for={"10.0.0.1"})
        summary = _orchestrator(fast_config, fake_store, liveness=liveness).run(ScanRequest(ip_range="10.0.0.0/30"))

        assert summary.state == ScanState.COMPLETED
        assert summary.total_scanned == 2
        assert summary.hosts_discovered == 1
        assert len(summary.errors) == 1
        assert "10.0.0.1" in summary.errors[0]

    def test_persistence_errors_do_not_stop_the_scan(self, fast_config):
        store = FakeStore(fail_for={"10.0.0.1"})
        liveness = FakeLiveness(alive={"10.0.0.1", "10.0.0.2"})
        summary = _orchestrator(fast_config, store, liveness=liveness).run(ScanRequest(ip_range="10.0.0.0/30"))

        assert summary.state == ScanState.COMPLETED
        assert summary.hosts_discovered == 2
        assert [record["ipAddress"] for record in store.records] == ["10.0.0.2"]
        assert len(summary.errors) == 1
        assert "Error saving discovered host 10.0.0.1" in summary.errors[0]

    def test_unexpected_failure_marks_scan_failed(self, fast_config):
        class FailingProgressBroadcaster(RecordingBroadcaster):
            def broadcast(self, event_type, data):
                super().broadcast(event_type, data)
                if event_type == SCAN_PROGRESS:
                    raise RuntimeError("event sink gone")

        broadcaster = FailingProgressBroadcaster()
        summary = _orchestrator(fast_config, broadcaster=broadcaster).run(ScanRequest(ip_range="10.0.0.1"))

        assert summary.state == ScanState.FAILED
        assert summary.error == "event sink gone"
        errors = broadcaster.of_type(SCAN_ERROR)
        assert errors == [{"message": "Network scan failed: event sink gone", "error": "event sink gone"}]
        assert broadcaster.of_type(SCAN_COMPLETED) == []


class TestCancellation:
    def test_cancel_before_start(self, fast_config, recorder):
        cancel_event = threading.Event()
        cancel_event.set()
        liveness = FakeLiveness()
        summary = _orchestrator(fast_config, broadcaster=recorder, liveness=liveness,
                                cancel_event=cancel_event).run(ScanRequest(ip_range="10.0.0.0/29"))

        assert summary.state == ScanState.CANCELLED
        assert summary.total_scanned == 0
        assert liveness.checked == []
        assert recorder.of_type(SCAN_CANCELLED)[0]["message"] == "Network scan for 10.0.0.0/29 was cancelled"

    def test_cancel_mid_scan_keeps_persisted_hosts(self, fast_config, fake_store, recorder):
        orchestrator = None

        class CancellingLiveness(FakeLiveness):
            def is_alive(self, ip):
                alive = super().is_alive(ip)
                if len(self.checked) == 2:
                    orchestrator.cancel()
                return alive

        liveness = CancellingLiveness(alive={"10.0.0.1"})
        orchestrator = _orchestrator(fast_config, fake_store, recorder, liveness)
        summary = orchestrator.run(ScanRequest(ip_range="10.0.0.0/29"))

        assert summary.state == ScanState.CANCELLED
        assert summary.total_scanned == 2
        assert len(fake_store.records) == 1
        cancelled = recorder.of_type(SCAN_CANCELLED)[0]
        assert cancelled["totalScanned"] == 2
        assert cancelled["hostsDiscovered"] == 1
        assert recorder.of_type(SCAN_COMPLETED) == []
