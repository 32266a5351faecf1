"""
Unit tests for the document feeder ready gate.
"""

from unittest.mock import MagicMock, patch

from models.device import ScanStatus
from modules.adf_gate import wait_adf_loaded

EMPTY = ScanStatus("Idle", "Empty")
LOADED = ScanStatus("Idle", "Loaded")


@patch("modules.adf_gate.delay")
@patch("core.polling.time.sleep")
def test_returns_once_paper_stays_loaded(mock_sleep, mock_delay):
    client = MagicMock()
    client.get_scan_status.side_effect = [EMPTY, EMPTY, LOADED, LOADED, LOADED]

    status = wait_adf_loaded(client, polling_interval_ms=1000, start_scan_delay_ms=1000)

    assert status.is_loaded
    # Two debounce polls cover the 1000 ms start delay
    assert mock_delay.call_count == 2
    assert client.get_scan_status.call_count == 5


@patch("modules.adf_gate.delay")
@patch("core.polling.time.sleep")
def test_restarts_when_paper_removed_during_delay(mock_sleep, mock_delay):
    client = MagicMock()
    client.get_scan_status.side_effect = [
        LOADED,         # first load
        EMPTY,          # removed during the start delay
        EMPTY,          # waiting again
        LOADED,
        LOADED,
        LOADED,
    ]

    status = wait_adf_loaded(client, polling_interval_ms=1000, start_scan_delay_ms=1000)

    assert status.is_loaded
    assert client.get_scan_status.call_count == 6


@patch("modules.adf_gate.delay")
@patch("core.polling.time.sleep")
def test_zero_delay_returns_immediately(mock_sleep, mock_delay):
    client = MagicMock()
    client.get_scan_status.return_value = LOADED

    wait_adf_loaded(client, polling_interval_ms=1000, start_scan_delay_ms=0)

    mock_delay.assert_not_called()
    assert client.get_scan_status.call_count == 1
