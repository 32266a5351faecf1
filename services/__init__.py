"""
Services layer for the walk-up scan service.

This module contains the long-running services:
- ScanService: Device ownership, session history, on-demand scan threads
- WalkupService: Background listener thread (walk-up or feeder auto-scan)

Thread Model:
    Main Thread (Flask)
    ├── WalkupService thread (event long poll, runs walk-up/feeder sessions)
    └── ScanService threads (one per on-demand scan)

Sessions never overlap: ScanService holds a device lock for the
duration of each session.
"""

from .scan_service import ScanService, ScanSessionStore
from .walkup_service import WalkupService, SCAN_MODES, SCAN_MODE_ADF, SCAN_MODE_WALKUP

__all__ = [
    "ScanService",
    "ScanSessionStore",
    "WalkupService",
    "SCAN_MODES",
    "SCAN_MODE_ADF",
    "SCAN_MODE_WALKUP",
]
