"""
Custom exceptions for the walk-up scan service.

Exception Hierarchy:
    WalkupScanError (base)
    ├── DeviceUnavailableError  - Device capabilities unreadable (startup failure)
    ├── DeviceRequestError      - HTTP request to the device failed (runtime, fatal for the session)
    │   └── DeviceResponseError - Device answered with something we cannot parse
    └── ScanSessionBusyError    - Another session owns the device (runtime, graceful)

Usage:
    Startup errors (DeviceUnavailableError) cause the app to fail fast.
    DeviceRequestError is never retried by the scanning logic: it propagates
    to the service thread, which records the session as failed.
    Unrecognized device states are NOT exceptions - they are logged and polled again.
"""

from typing import Optional, Dict, Any


class WalkupScanError(Exception):
    """
    Base exception for all walk-up scan errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# STARTUP ERRORS - Application will not start if these occur
# =============================================================================

class DeviceUnavailableError(WalkupScanError):
    """
    The device did not answer the capability queries at startup.

    This is a FATAL error - without capabilities we cannot size a scan job.

    Typical causes:
    - Wrong DEVICE_IP in .env
    - Device switched off or asleep on another network
    - Device is not an HP LEDM-capable multi-function device
    """

    def __init__(self, device_ip: str, reason: str = ""):
        message = f"Scanner device not available at: {device_ip}"
        details = {
            "device_ip": device_ip,
            "resolution": "Check DEVICE_IP in .env and that the device is powered on"
        }
        if reason:
            details["reason"] = reason
        super().__init__(message, details)
        self.device_ip = device_ip


# =============================================================================
# RUNTIME ERRORS
# =============================================================================

class DeviceRequestError(WalkupScanError):
    """
    A single request to the device failed.

    Raised for network errors and HTTP status >= 400. The scanning logic
    cannot tell a transient blip from a device that went offline mid-scan,
    so nothing below the service layer retries it.
    """

    def __init__(
        self,
        operation: str,
        url: str,
        status_code: Optional[int] = None,
        reason: str = ""
    ):
        if status_code is not None:
            message = f"Device {operation} failed with HTTP {status_code}"
        else:
            message = f"Device {operation} failed: {reason or 'no response'}"
        details: Dict[str, Any] = {"operation": operation, "url": url}
        if status_code is not None:
            details["status_code"] = status_code
        if reason:
            details["reason"] = reason
        super().__init__(message, details)
        self.operation = operation
        self.url = url
        self.status_code = status_code
        self.reason = reason


class DeviceResponseError(DeviceRequestError):
    """
    The device answered, but the body is not what the protocol promises.

    Malformed XML or a job submission without a Location header.
    """

    def __init__(self, operation: str, url: str, reason: str):
        super().__init__(operation, url, reason=reason)
        self.message = f"Device {operation} returned an unusable response: {reason}"


class ScanSessionBusyError(WalkupScanError):
    """
    The device is already owned by a running scan session.

    Only one job may be in flight at a time; the caller should retry once
    the current session has finished.
    """

    def __init__(self, active_session_id: Optional[str] = None):
        details = {"resolution": "Wait for the current scan session to finish"}
        if active_session_id:
            details["active_session_id"] = active_session_id
        super().__init__("A scan session is already running", details)
        self.active_session_id = active_session_id
