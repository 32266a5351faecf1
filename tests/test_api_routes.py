"""
Tests for the Flask app factory and the JSON routes.

The device client is a MagicMock; SCAN_MODE is off so no listener
thread is started.
"""

import pytest
from unittest.mock import MagicMock

from config import TestingConfig
from app import create_app
from core.exceptions import DeviceRequestError, DeviceUnavailableError, ScanSessionBusyError
from models.device import Destination, DeviceCapabilities
from models.session_result import ScanSessionRecord, SessionKind

CAPS = DeviceCapabilities(
    platen_max_width=2550,
    platen_max_height=3508,
    supports_multi_item_scan_from_platen=True,
    use_walkup_scan_to_comp=True,
)


@pytest.fixture
def config_class(tmp_path):
    class LocalTestingConfig(TestingConfig):
        SCAN_DIRECTORY = str(tmp_path / "scans")
        SCAN_TEMP_DIRECTORY = str(tmp_path / "temp")

    return LocalTestingConfig


@pytest.fixture
def device_client():
    client = MagicMock()
    client.get_device_capabilities.return_value = CAPS
    return client


@pytest.fixture
def app(config_class, device_client):
    return create_app(config_class, device_client=device_client)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def scan_service(app):
    """Replace the real scan service with a mock."""
    scan_service = MagicMock()
    scan_service.active_session_id = None
    app.config["SCAN_SERVICE"] = scan_service
    return scan_service


class TestAppFactory:
    """Test application startup."""

    def test_output_folders_created(self, app, tmp_path):
        assert (tmp_path / "scans").is_dir()
        assert (tmp_path / "temp").is_dir()
        assert app.config["WALKUP_SERVICE"] is None

    def test_unreachable_device_fails_fast(self, config_class, device_client):
        device_client.get_device_capabilities.side_effect = DeviceRequestError(
            "get_device_capabilities", "http://192.168.1.53/Scan/ScanCaps", reason="timed out"
        )

        with pytest.raises(DeviceUnavailableError):
            create_app(config_class, device_client=device_client)


class TestHealth:
    """Test the health endpoint."""

    def test_healthy_with_listener_disabled(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "ok"
        assert data["checks"] == {"device": "ok", "listener": "disabled", "scan_service": "idle"}
        assert data["device"]["platen_max_width"] == 2550

    def test_degraded_when_listener_not_running(self, app, client):
        app.config["SCAN_MODE"] = "walkup"

        response = client.get("/health")

        assert response.status_code == 503
        assert response.get_json()["checks"]["listener"] == "not_running"


class TestScans:
    """Test the scan session endpoints."""

    def test_start_scan(self, client, scan_service):
        scan_service.submit_single_scan.return_value = "1234abcd-0000"

        response = client.post("/api/scans", json={"duplex": True, "pdf": False})

        assert response.status_code == 202
        assert response.get_json() == {
            "session_id": "1234abcd-0000",
            "status": "running",
            "status_url": "/api/scans/1234abcd-0000",
        }
        scan_service.submit_single_scan.assert_called_once_with(is_duplex=True, generate_pdf=False)

    def test_start_scan_defaults_without_body(self, client, scan_service):
        scan_service.submit_single_scan.return_value = "1234abcd-0000"

        client.post("/api/scans")

        scan_service.submit_single_scan.assert_called_once_with(is_duplex=False, generate_pdf=True)

    def test_start_scan_while_busy(self, client, scan_service):
        scan_service.submit_single_scan.side_effect = ScanSessionBusyError("feedbeef-0000")

        response = client.post("/api/scans")

        assert response.status_code == 409
        assert response.get_json()["active_session_id"] == "feedbeef-0000"

    def test_list_scans(self, client, scan_service):
        record = ScanSessionRecord.create_running("s1", SessionKind.SINGLE, 1)
        scan_service.recent_records.return_value = [record]

        response = client.get("/api/scans?limit=5")

        assert response.status_code == 200
        assert response.get_json()["sessions"][0]["session_id"] == "s1"
        scan_service.recent_records.assert_called_once_with(5)

    def test_get_scan(self, client, scan_service):
        scan_service.get_record.return_value = ScanSessionRecord.create_running("s1", SessionKind.SINGLE, 1)
        scan_service.is_session_pending.return_value = True

        data = client.get("/api/scans/s1").get_json()

        assert data["status"] == "running"
        assert data["pending"] is True

    def test_get_unknown_scan(self, client, scan_service):
        scan_service.get_record.return_value = None

        response = client.get("/api/scans/nope")

        assert response.status_code == 404
        assert "nope" in response.get_json()["error"]


class TestDestinations:
    """Test destination cleanup."""

    def test_clear_destinations(self, client, device_client):
        device_client.get_walkup_scan_to_comp_destinations.return_value = (
            Destination("a", resource_uri="/d/1"),
            Destination("b", resource_uri="/d/2"),
        )

        response = client.delete("/api/destinations")

        assert response.status_code == 200
        assert response.get_json() == {"removed": 2}
        assert device_client.remove_destination.call_count == 2

    def test_clear_destinations_device_error(self, client, device_client):
        device_client.get_walkup_scan_to_comp_destinations.side_effect = DeviceRequestError(
            "get_walkup_scan_to_comp_destinations", "http://192.168.1.53/x", status_code=500
        )

        response = client.delete("/api/destinations")

        assert response.status_code == 502
        assert "error" in response.get_json()

    def test_listener_client_not_used(self, app, client, device_client):
        walkup_service = MagicMock()
        app.config["WALKUP_SERVICE"] = walkup_service
        device_client.get_walkup_scan_to_comp_destinations.return_value = (
            Destination("a", resource_uri="/d/1"),
        )

        response = client.delete("/api/destinations")

        assert response.get_json() == {"removed": 1}
        walkup_service.listener.clear_registrations.assert_not_called()
        device_client.remove_destination.assert_called_once()

    def test_clear_destinations_while_scanning(self, client, scan_service):
        scan_service.clear_registrations.side_effect = ScanSessionBusyError("feedbeef-0000")

        response = client.delete("/api/destinations")

        assert response.status_code == 409
        assert response.get_json()["active_session_id"] == "feedbeef-0000"


def test_unknown_route_returns_json(client):
    response = client.get("/nowhere")

    assert response.status_code == 404
    assert response.get_json()["code"] == 404
