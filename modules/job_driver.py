"""
Scan job driver.

Submits one scan job and follows it to the end, downloading every page
the device makes available.

State Machine (device reported):
    job Processing + page ReadyToUpload  -> download page, re-check job
    job Processing + any other page      -> device between pages, short wait
    job Completed                        -> done
    job Canceled                         -> done, page in flight is dropped
    anything else                        -> log, short wait, keep polling

Pages are appended to the session's ScanContent; a page is only appended
when the job was not cancelled while it was being downloaded. Files
already written to disk are never removed here.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from core.device_client import HPDeviceClient
from core.polling import delay, poll_until
from models.device import InputSource
from models.job import Job, JobState, PageState
from models.scan import ScanContent, ScanJobSettings, ScanPage
from logging_config import get_logger

from .jpeg_util import fix_size_with_dnl
from .path_helper import get_file_for_page

READY_POLL_INTERVAL_MS = 300
BETWEEN_PAGES_DELAY_MS = 200
DEFAULT_RESOLUTION = 200


def repair_page_height(file_path: Path) -> Optional[int]:
    """
    Rewrite a downloaded feeder page with its real height.

    Returns:
        The repaired height, or None if the file had nothing to repair
    """
    buffer = bytearray(Path(file_path).read_bytes())
    height = fix_size_with_dnl(buffer)
    if height is not None:
        Path(file_path).write_bytes(bytes(buffer))
    return height


def create_scan_page(
    job: Job,
    page_number: int,
    file_path: Path,
    height_fixed: Optional[int]
) -> ScanPage:
    """Build the page record, falling back to what the device reported."""
    height = height_fixed if height_fixed is not None else job.image_height
    return ScanPage(
        path=Path(file_path),
        page_number=page_number,
        width=job.image_width or 0,
        height=height or 0,
        x_resolution=job.x_resolution or DEFAULT_RESOLUTION,
        y_resolution=job.y_resolution or DEFAULT_RESOLUTION,
    )


class JobDriver:
    """
    Runs scan jobs against the device.

    One driver may run several jobs in sequence (multi-page continuation);
    it keeps no state between jobs.
    """

    def __init__(self, client: HPDeviceClient, logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or get_logger(__name__)

    def execute_scan_job(
        self,
        settings: ScanJobSettings,
        input_source: InputSource,
        folder: Path,
        scan_count: int,
        content: ScanContent,
        file_pattern: Optional[str] = None,
        date: Optional[datetime] = None
    ) -> JobState:
        """
        Submit a job and download its pages until the device finishes.

        Args:
            settings: Job submission (posted as is)
            input_source: Feeder pages get their height repaired
            folder: Where pages are written
            scan_count: Session sequence number, used in file names
            content: Session page list; pages are appended in download order
            file_pattern: Optional strftime pattern for file names
            date: Date used for pattern-based file names (defaults to now)

        Returns:
            JobState.COMPLETED or JobState.CANCELED

        Raises:
            DeviceRequestError: Any failed device request (not retried)
        """
        job_url = self.client.post_job(settings)
        self.logger.info(f"New job created: {job_url}")

        # Device page number -> times it was offered again after download
        downloaded: Dict[int, int] = {}

        job = self.client.get_job(job_url)
        while job.job_state is not JobState.COMPLETED:
            job = self._wait_ready_to_upload_or_completed(job_url)
            state = job.job_state

            if state is JobState.COMPLETED:
                break

            if state is JobState.PROCESSING:
                page = self._handle_processing_state(
                    job, input_source, folder, scan_count, content,
                    file_pattern, date or datetime.now(), downloaded
                )
                job = self.client.get_job(job_url)
                if page is not None and job.job_state is not JobState.CANCELED:
                    content.add(page)
            elif state is JobState.CANCELED:
                self.logger.info("Job cancelled by device")
                break
            else:
                self.logger.warning(f"Unhandled job state: {job.raw_job_state}")
                delay(BETWEEN_PAGES_DELAY_MS)

        self.logger.info(f"Job state: {job.raw_job_state}, total pages: {len(content)}")
        return JobState.CANCELED if job.job_state is JobState.CANCELED else JobState.COMPLETED

    def _wait_ready_to_upload_or_completed(self, job_url: str) -> Job:
        """Poll the job until a page is ready, or it completed or was cancelled."""

        def log_unknown(_attempt: int, job: Job) -> None:
            if job.job_state is not JobState.PROCESSING:
                self.logger.warning(f"Unknown job state: {job.raw_job_state}")

        return poll_until(
            lambda: self.client.get_job(job_url),
            lambda job: (
                job.job_state in (JobState.CANCELED, JobState.COMPLETED)
                or job.page_state is PageState.READY_TO_UPLOAD
            ),
            interval_ms=READY_POLL_INTERVAL_MS,
            on_retry=log_unknown,
        )

    def _handle_processing_state(
        self,
        job: Job,
        input_source: InputSource,
        folder: Path,
        scan_count: int,
        content: ScanContent,
        file_pattern: Optional[str],
        date: datetime,
        downloaded: Dict[int, int]
    ) -> Optional[ScanPage]:
        """Download the ready page, or wait briefly if there is none."""
        if not job.has_page_ready:
            self.logger.info(f"Unknown page state: {job.raw_page_state}")
            delay(BETWEEN_PAGES_DELAY_MS)
            return None

        if job.current_page_number in downloaded:
            repeats = downloaded[job.current_page_number] + 1
            downloaded[job.current_page_number] = repeats
            message = f"Device page {job.current_page_number} already downloaded, waiting for the next one"
            if repeats == 1:
                self.logger.info(message)
            else:
                self.logger.debug(f"{message} (seen {repeats} times)")
            delay(BETWEEN_PAGES_DELAY_MS)
            return None

        self.logger.info(
            f"Ready to download job page {job.current_page_number} at: {job.binary_url}"
        )

        page_number = content.next_page_number
        destination = get_file_for_page(folder, scan_count, page_number, file_pattern, "jpg", date)
        file_path = self.client.download_page(job.binary_url, destination)
        downloaded[job.current_page_number] = 0
        self.logger.info(f"Page downloaded to: {file_path}")

        height_fixed = None
        if input_source is InputSource.ADF:
            height_fixed = repair_page_height(file_path)
            if height_fixed is None:
                self.logger.info(
                    f"Page height not repaired, no DNL marker found; "
                    f"approximate height is {job.image_height}"
                )

        return create_scan_page(job, page_number, file_path, height_fixed)
