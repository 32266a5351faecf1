"""
Unit tests for the walk-up listener service.
"""

import pytest
from unittest.mock import MagicMock, patch

from core.exceptions import DeviceRequestError
from models.device import DeviceCapabilities, ScanStatus
from models.event import Event
from models.scan_config import AdfAutoScanConfig
from models.session_result import ScanSessionRecord, SessionKind
from services.walkup_service import SCAN_MODE_ADF, SCAN_MODE_WALKUP, WalkupService

CAPS = DeviceCapabilities(use_walkup_scan_to_comp=True)


def finished_record(kind=SessionKind.WALKUP):
    return ScanSessionRecord.create_running("a1b2c3d4-0000", kind, 1).create_aborted("done")


@pytest.fixture
def scan_service():
    scan_service = MagicMock()
    scan_service.run_walkup_session.return_value = finished_record()
    scan_service.run_adf_session.return_value = finished_record(SessionKind.ADF)
    return scan_service


def make_service(scan_service, scan_mode=SCAN_MODE_WALKUP, **kwargs):
    return WalkupService(scan_service, MagicMock(), CAPS, scan_mode=scan_mode, label="office-pc", **kwargs)


def test_unknown_scan_mode_rejected(scan_service):
    with pytest.raises(ValueError):
        make_service(scan_service, scan_mode="fax")


class TestRunOnce:
    """Test a single listen-and-scan cycle."""

    def test_walkup_cycle(self, scan_service):
        service = make_service(scan_service)
        event = Event("ScanEvent", "1-1", "/dest", "/comp")

        with patch.object(service.listener, "wait_scan_event", return_value=event) as mock_wait:
            assert service.run_once() is True

        mock_wait.assert_called_once_with(CAPS, "office-pc")
        scan_service.run_walkup_session.assert_called_once_with(event)
        scan_service.run_adf_session.assert_not_called()

    @patch("services.walkup_service.wait_adf_loaded")
    def test_adf_cycle(self, mock_wait, scan_service):
        adf_config = AdfAutoScanConfig(polling_interval_ms=250, start_scan_delay_ms=2000)
        mock_wait.return_value = ScanStatus("Idle", "Loaded")
        service = make_service(scan_service, scan_mode=SCAN_MODE_ADF, adf_config=adf_config)

        assert service.run_once() is True

        client, interval, start_delay, _log = mock_wait.call_args[0]
        assert (interval, start_delay) == (250, 2000)
        scan_service.run_adf_session.assert_called_once()
        scan_service.run_walkup_session.assert_not_called()

    def test_failures_counted_and_reset(self, scan_service):
        service = make_service(scan_service)
        error = DeviceRequestError("get_events", "http://192.168.1.53/EventMgmt/EventTable", reason="timeout")
        event = Event("ScanEvent")

        with patch.object(service.listener, "wait_scan_event", side_effect=[error, error, event]):
            assert service.run_once() is False
            assert service.run_once() is False
            assert service.consecutive_failures == 2
            assert service.run_once() is True

        assert service.consecutive_failures == 0

    def test_session_failure_counts_as_cycle_failure(self, scan_service):
        scan_service.run_walkup_session.side_effect = RuntimeError("job vanished")
        service = make_service(scan_service)

        with patch.object(service.listener, "wait_scan_event", return_value=Event("ScanEvent")):
            assert service.run_once() is False

        assert service.consecutive_failures == 1


def test_start_and_stop(scan_service):
    service = make_service(scan_service, retry_interval_seconds=0.01)

    with patch.object(service.listener, "wait_scan_event", side_effect=RuntimeError("offline")):
        service.start()
        assert service.is_running
        service.start()  # no second thread
        service.stop(timeout=2)

    assert not service.is_running
