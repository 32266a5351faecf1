"""
Multi-page continuation for flatbed walk-up scans.

Devices that can scan several items from the glass ask the user, after
each page, whether another page follows. While the answer is "new page",
another job runs with the same settings and the same page list.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from models.device import DeviceCapabilities, InputSource
from models.event import Event
from models.job import JobState
from models.scan import ScanContent, ScanJobSettings
from logging_config import get_logger

from .job_driver import JobDriver
from .listening import EventListener


class ContinuationController:
    """
    Runs the first job of a walk-up session and any follow-up pages.

    Attributes:
        listener: Event listener (scan events and panel interaction)
        driver: Job driver
        capabilities: Device capabilities (multi-item flatbed flag)
    """

    def __init__(
        self,
        listener: EventListener,
        driver: JobDriver,
        capabilities: DeviceCapabilities,
        logger: Optional[logging.Logger] = None
    ):
        self.listener = listener
        self.driver = driver
        self.capabilities = capabilities
        self.logger = logger or get_logger(__name__)

    def is_eligible(self, input_source: InputSource, event: Event) -> bool:
        """Whether the device will offer another page after this one."""
        return (
            input_source is not InputSource.ADF
            and event.comp_event_uri is not None
            and event.destination_uri is not None
            and self.capabilities.supports_multi_item_scan_from_platen
        )

    def execute_scan_jobs(
        self,
        settings: ScanJobSettings,
        input_source: InputSource,
        folder: Path,
        scan_count: int,
        content: ScanContent,
        first_event: Event,
        file_pattern: Optional[str] = None,
        date: Optional[datetime] = None
    ) -> JobState:
        """
        Run jobs until the user is done or a job is cancelled.

        Args:
            settings: Reused for every job of the session
            input_source: Continuation never applies to the feeder
            folder: Page folder
            scan_count: Session sequence number
            content: Session page list shared by all jobs
            first_event: Scan event that started the session
            file_pattern: Optional strftime pattern for file names
            date: Session date for file names

        Returns:
            State of the last job that ran
        """
        job_state = self.driver.execute_scan_job(
            settings, input_source, folder, scan_count, content, file_pattern, date
        )

        if job_state is not JobState.COMPLETED or not self.is_eligible(input_source, first_event):
            return job_state

        last_event = first_event
        while True:
            last_event = self.listener.wait_for_scan_event(
                last_event.destination_uri, last_event.aging_stamp
            )
            if not last_event.comp_event_uri:
                return job_state

            if not self.listener.wait_scan_new_page_request(last_event.comp_event_uri):
                self.logger.info(f"User finished multi-page scan after {len(content)} page(s)")
                return job_state

            self.logger.info(f"New page requested, starting job for page {content.next_page_number}")
            job_state = self.driver.execute_scan_job(
                settings, input_source, folder, scan_count, content, file_pattern, date
            )
            if job_state is not JobState.COMPLETED:
                return job_state
