"""
Core module for the walk-up scan service.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- device_client: HTTP/XML client for the device's scan resources
- polling: Blocking delay and poll-until helpers
"""

from .exceptions import (
    WalkupScanError,
    DeviceUnavailableError,
    DeviceRequestError,
    DeviceResponseError,
    ScanSessionBusyError,
)
from .device_client import HPDeviceClient
from .polling import delay, poll_until

__all__ = [
    "WalkupScanError",
    "DeviceUnavailableError",
    "DeviceRequestError",
    "DeviceResponseError",
    "ScanSessionBusyError",
    "HPDeviceClient",
    "delay",
    "poll_until",
]
