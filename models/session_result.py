"""
Scan session record models.

These records describe a scan session as the service layer tracks it.
Used for communication between session threads and the Flask API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .scan import ScanSessionResult


class SessionKind(Enum):
    """Which entry point started the session."""

    WALKUP = "walkup"
    """User picked this computer at the device panel."""

    ADF = "adf"
    """Unattended feeder auto-scan."""

    SINGLE = "single"
    """On-demand flatbed scan requested through the API."""


class SessionStatus(Enum):
    """
    Status of a scan session.

    Lifecycle:
        RUNNING -> (COMPLETED | ABORTED | FAILED)
    """

    RUNNING = "running"
    """Session owns the device."""

    COMPLETED = "completed"
    """Jobs finished (possibly cancelled at the device) and post-processing ran."""

    ABORTED = "aborted"
    """Nothing was scanned: the user backed out or never picked a shortcut."""

    FAILED = "failed"
    """A device request or post-processing raised."""


@dataclass
class ScanSessionRecord:
    """
    State of one scan session.

    Session threads replace the record in the ScanSessionStore when the
    session changes state; the API only ever reads.
    """

    session_id: str
    """Unique session identifier (UUID)."""

    kind: SessionKind

    scan_count: int
    """Sequence number of the session, used in output file names."""

    status: SessionStatus

    started_at: datetime

    finished_at: Optional[datetime] = None

    page_count: int = 0

    to_pdf: bool = False

    output_files: List[str] = field(default_factory=list)

    notes: str = ""
    """Additional notes or error messages."""

    @classmethod
    def create_running(
        cls,
        session_id: str,
        kind: SessionKind,
        scan_count: int
    ) -> "ScanSessionRecord":
        return cls(
            session_id=session_id,
            kind=kind,
            scan_count=scan_count,
            status=SessionStatus.RUNNING,
            started_at=datetime.now(timezone.utc),
            notes="Scan session running.",
        )

    def create_completed(self, result: ScanSessionResult) -> "ScanSessionRecord":
        """
        Finished copy of this record.

        Args:
            result: The session result after post-processing

        Returns:
            ScanSessionRecord in COMPLETED status
        """
        return ScanSessionRecord(
            session_id=self.session_id,
            kind=self.kind,
            scan_count=self.scan_count,
            status=SessionStatus.COMPLETED,
            started_at=self.started_at,
            finished_at=datetime.now(timezone.utc),
            page_count=result.page_count,
            to_pdf=result.to_pdf,
            output_files=[str(p) for p in result.output_files],
            notes=f"Scan completed with {result.page_count} page(s).",
        )

    def create_aborted(self, reason: str) -> "ScanSessionRecord":
        return ScanSessionRecord(
            session_id=self.session_id,
            kind=self.kind,
            scan_count=self.scan_count,
            status=SessionStatus.ABORTED,
            started_at=self.started_at,
            finished_at=datetime.now(timezone.utc),
            notes=reason,
        )

    def create_failed(self, error_message: str) -> "ScanSessionRecord":
        return ScanSessionRecord(
            session_id=self.session_id,
            kind=self.kind,
            scan_count=self.scan_count,
            status=SessionStatus.FAILED,
            started_at=self.started_at,
            finished_at=datetime.now(timezone.utc),
            notes=error_message,
        )

    @property
    def is_finished(self) -> bool:
        return self.status is not SessionStatus.RUNNING

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "session_id": self.session_id,
            "kind": self.kind.value,
            "scan_count": self.scan_count,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "page_count": self.page_count,
            "to_pdf": self.to_pdf,
            "output_files": list(self.output_files),
            "notes": self.notes,
        }
