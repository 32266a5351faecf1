"""
Data models for the walk-up scan service.

This module contains immutable dataclasses and enums for:
- Events: device event table entries and the panel interaction event
- Job: snapshot of a device scan job
- Device: destinations, scanner status, capabilities
- Scan: job settings, downloaded pages, session result
- Sessions: service-level record of each scan session

Device snapshots are frozen: every poll yields a new object.
"""

from .event import Event, EventKind, EventTable, WalkupScanToCompEvent
from .job import Job, JobState, PageState
from .device import DeviceCapabilities, Destination, InputSource, ScanStatus, Shortcut
from .scan import ContentType, ScanContent, ScanJobSettings, ScanPage, ScanSessionResult
from .scan_config import AdfAutoScanConfig, ScanConfig, SingleScanConfig
from .session_result import ScanSessionRecord, SessionKind, SessionStatus

__all__ = [
    # Event models
    "Event",
    "EventKind",
    "EventTable",
    "WalkupScanToCompEvent",
    # Job models
    "Job",
    "JobState",
    "PageState",
    # Device models
    "DeviceCapabilities",
    "Destination",
    "InputSource",
    "ScanStatus",
    "Shortcut",
    # Scan models
    "ContentType",
    "ScanContent",
    "ScanJobSettings",
    "ScanPage",
    "ScanSessionResult",
    # Configuration
    "AdfAutoScanConfig",
    "ScanConfig",
    "SingleScanConfig",
    # Session records
    "ScanSessionRecord",
    "SessionKind",
    "SessionStatus",
]
