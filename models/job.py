"""
Scan job models.

A Job is an immutable snapshot of the device-side job resource. The job
driver never mutates one; every poll replaces it with a fresh snapshot.

Lifecycle (device reported):
    Processing -> (page ReadyToUpload -> page uploaded)* -> Completed
    Processing -> Canceled   (user pressed cancel, paper jam, ...)
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .xml_helpers import child_int, child_text


class JobState(Enum):
    """Device-reported job state; unknown firmware values map to UNKNOWN."""

    PROCESSING = "Processing"
    COMPLETED = "Completed"
    CANCELED = "Canceled"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "JobState":
        for state in cls:
            if state is not cls.UNKNOWN and state.value == raw:
                return state
        return cls.UNKNOWN


class PageState(Enum):
    """Device-reported state of the current page."""

    READY_TO_UPLOAD = "ReadyToUpload"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "PageState":
        if raw == cls.READY_TO_UPLOAD.value:
            return cls.READY_TO_UPLOAD
        return cls.UNKNOWN


@dataclass(frozen=True)
class Job:
    """
    Snapshot of a device scan job.

    The raw_* fields keep whatever the device actually sent so that the
    UNKNOWN arms can log something useful.
    """

    raw_job_state: Optional[str]
    raw_page_state: Optional[str] = None
    current_page_number: Optional[int] = None
    binary_url: Optional[str] = None
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    x_resolution: Optional[int] = None
    y_resolution: Optional[int] = None

    @property
    def job_state(self) -> JobState:
        return JobState.parse(self.raw_job_state)

    @property
    def page_state(self) -> PageState:
        return PageState.parse(self.raw_page_state)

    @property
    def has_page_ready(self) -> bool:
        """The device holds a page we can download right now."""
        return (
            self.page_state is PageState.READY_TO_UPLOAD
            and self.binary_url is not None
            and self.current_page_number is not None
        )

    @classmethod
    def from_xml(cls, content: bytes) -> "Job":
        """
        Parse the job resource.

        The page being produced lives in PreScanPage; once uploaded the device
        moves it to PostScanPage. PreScanPage wins when both are present.
        """
        root = ET.fromstring(content)
        scan_job = root.find("{*}ScanJob")

        page = None
        if scan_job is not None:
            page = scan_job.find("{*}PreScanPage")
            if page is None:
                page = scan_job.find("{*}PostScanPage")

        buffer_info = page.find("{*}BufferInfo") if page is not None else None

        return cls(
            raw_job_state=child_text(root, "{*}JobState"),
            raw_page_state=child_text(page, "{*}PageState"),
            current_page_number=child_int(page, "{*}PageNumber"),
            binary_url=child_text(page, "{*}BinaryURL"),
            image_width=child_int(buffer_info, "{*}ImageWidth"),
            image_height=child_int(buffer_info, "{*}ImageHeight"),
            x_resolution=child_int(buffer_info, "{*}ScanSettings/{*}XResolution"),
            y_resolution=child_int(buffer_info, "{*}ScanSettings/{*}YResolution"),
        )
