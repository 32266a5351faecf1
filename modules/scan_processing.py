"""
Scan session orchestration.

Three ways to start a session, all ending in the job driver and
post-processing:

    save_scan_from_event()  walk-up scan chosen at the device panel;
                            input source and content type come from the
                            device, continuation may add pages
    scan_from_adf()         unattended feeder scan, settings from config
    single_scan()           on-demand flatbed scan, settings from the caller

Every entry point returns the ScanSessionResult after post-processing, or
None when the session ended before a job was submitted.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Tuple

from core.device_client import HPDeviceClient
from core.polling import poll_until
from models.device import DeviceCapabilities, Destination, InputSource, Shortcut
from models.event import Event
from models.scan import ContentType, ScanContent, ScanJobSettings, ScanSessionResult
from models.scan_config import AdfAutoScanConfig, ScanConfig, SingleScanConfig
from logging_config import get_logger

from .continuation import ContinuationController
from .job_driver import JobDriver
from .listening import EventListener
from .post_processing import post_process

DESTINATION_MAX_ATTEMPTS = 20
DESTINATION_POLL_INTERVAL_MS = 1000

PostProcessor = Callable[[ScanSessionResult, ScanConfig], ScanSessionResult]


def clamp_dimension(requested: Optional[int], maximum: Optional[int]) -> Optional[int]:
    """
    Effective scan dimension.

    A positive request is capped at the device maximum; no request (or 0)
    means "as large as the device allows". None only when neither is known.
    """
    if requested and requested > 0:
        if maximum and requested > maximum:
            return maximum
        return requested
    return maximum


def get_scan_dimensions(
    scan_config: ScanConfig,
    input_source: InputSource,
    is_duplex: bool,
    capabilities: DeviceCapabilities
) -> Tuple[Optional[int], Optional[int]]:
    """(width, height) to request for the input source and plex mode."""
    max_width, max_height = capabilities.max_scan_size(input_source, is_duplex)
    return (
        clamp_dimension(scan_config.width, max_width),
        clamp_dimension(scan_config.height, max_height),
    )


def is_pdf(destination: Destination, logger: logging.Logger) -> bool:
    shortcut = destination.shortcut
    if shortcut is None or shortcut is Shortcut.UNKNOWN:
        logger.warning(
            f"Unexpected shortcut received: {destination.raw_shortcut}, "
            f"considering it as non pdf target"
        )
        return False
    return shortcut.produces_pdf


class ScanOrchestrator:
    """
    Decides what a session scans and where it goes, then runs it.

    One orchestrator serves every session of the process; it holds no
    per-session state. Sessions must not overlap (the service layer owns
    the device lock).
    """

    def __init__(
        self,
        client: HPDeviceClient,
        capabilities: DeviceCapabilities,
        scan_config: ScanConfig,
        post_processor: PostProcessor = post_process,
        logger: Optional[logging.Logger] = None
    ):
        self.client = client
        self.capabilities = capabilities
        self.scan_config = scan_config
        self.post_processor = post_processor
        self.logger = logger or get_logger(__name__)

        self.listener = EventListener(client, self.logger)
        self.driver = JobDriver(client, self.logger)
        self.continuation = ContinuationController(
            self.listener, self.driver, capabilities, self.logger
        )

    # =========================================================================
    # WALK-UP SCAN
    # =========================================================================

    def try_get_destination(self, event: Event) -> Optional[Destination]:
        """
        Fetch the event's destination until the user has picked a shortcut.

        The scan event can arrive before the user chose between document
        and photo at the panel.

        Returns:
            The destination with a shortcut, or None after the attempt budget
        """

        def fetch() -> Optional[Destination]:
            if not event.destination_uri:
                self.logger.warning("No destination URI found")
                return None
            return self.client.get_destination(event.destination_uri)

        def log_retry(attempt: int, _destination: Optional[Destination]) -> None:
            self.logger.info(
                f"No shortcut yet available, attempt: {attempt}/{DESTINATION_MAX_ATTEMPTS}"
            )

        destination = poll_until(
            fetch,
            lambda d: d is not None and d.shortcut is not None,
            interval_ms=DESTINATION_POLL_INTERVAL_MS,
            max_attempts=DESTINATION_MAX_ATTEMPTS,
            on_retry=log_retry,
        )

        if destination is None or destination.shortcut is None:
            self.logger.warning(f"Failing to detect destination shortcut: {destination}")
            return None
        return destination

    def save_scan_from_event(self, event: Event, scan_count: int) -> Optional[ScanSessionResult]:
        """
        Run a walk-up session for a scan event.

        Args:
            event: Scan event addressed to our destination
            scan_count: Session sequence number

        Returns:
            Post-processed result, or None if the user backed out or never
            picked a shortcut
        """
        if event.comp_event_uri:
            if not self.listener.wait_scan_request(event.comp_event_uri):
                return None

        destination = self.try_get_destination(event)
        if destination is None:
            self.logger.warning("No shortcut selected")
            return None
        self.logger.info(f"Selected shortcut: {destination.raw_shortcut}")

        to_pdf = is_pdf(destination, self.logger)
        content_type = ContentType.DOCUMENT if to_pdf else ContentType.PHOTO

        is_duplex = destination.is_duplex
        self.logger.info(f"ScanPlexMode is: {destination.scan_plex_mode}")

        status = self.client.get_scan_status()
        if not status.is_idle:
            self.logger.warning(f"Scanner state is {status.scanner_state}, not Idle")
        self.logger.info(f"ADF is: {status.adf_state}")

        input_source = status.input_source
        width, height = get_scan_dimensions(
            self.scan_config, input_source, is_duplex, self.capabilities
        )
        settings = ScanJobSettings(
            input_source=input_source,
            content_type=content_type,
            resolution=self.scan_config.resolution,
            width=width,
            height=height,
            is_duplex=is_duplex,
        )

        result = self._new_result(scan_count, to_pdf, datetime.now())
        self.continuation.execute_scan_jobs(
            settings,
            input_source,
            self._prepare_folder(result),
            scan_count,
            result.content,
            event,
            self.scan_config.file_pattern,
            result.date,
        )

        self.logger.info(f"Scan of page(s) completed, total pages: {result.page_count}")
        return self.post_processor(result, self.scan_config)

    # =========================================================================
    # CONFIG-DRIVEN SCANS
    # =========================================================================

    def scan_from_adf(
        self,
        scan_count: int,
        adf_config: AdfAutoScanConfig,
        date: Optional[datetime] = None
    ) -> ScanSessionResult:
        """Run one unattended feeder job."""
        return self._run_single_job(
            scan_count, InputSource.ADF, adf_config.is_duplex, adf_config.generate_pdf, date
        )

    def single_scan(
        self,
        scan_count: int,
        single_config: SingleScanConfig,
        date: Optional[datetime] = None
    ) -> ScanSessionResult:
        """Run one on-demand flatbed job."""
        return self._run_single_job(
            scan_count, InputSource.PLATEN, single_config.is_duplex,
            single_config.generate_pdf, date
        )

    def _run_single_job(
        self,
        scan_count: int,
        input_source: InputSource,
        is_duplex: bool,
        to_pdf: bool,
        date: Optional[datetime]
    ) -> ScanSessionResult:
        width, height = get_scan_dimensions(
            self.scan_config, input_source, is_duplex, self.capabilities
        )
        settings = ScanJobSettings(
            input_source=input_source,
            content_type=ContentType.DOCUMENT if to_pdf else ContentType.PHOTO,
            resolution=self.scan_config.resolution,
            width=width,
            height=height,
            is_duplex=is_duplex,
        )

        result = self._new_result(scan_count, to_pdf, date or datetime.now())
        self.driver.execute_scan_job(
            settings,
            input_source,
            self._prepare_folder(result),
            scan_count,
            result.content,
            self.scan_config.file_pattern,
            result.date,
        )

        self.logger.info(f"Scan of page(s) completed, total pages: {result.page_count}")
        return self.post_processor(result, self.scan_config)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _new_result(self, scan_count: int, to_pdf: bool, date: datetime) -> ScanSessionResult:
        return ScanSessionResult(
            folder=self.scan_config.directory,
            temp_folder=self.scan_config.temp_directory,
            scan_count=scan_count,
            date=date,
            to_pdf=to_pdf,
            content=ScanContent(),
        )

    def _prepare_folder(self, result: ScanSessionResult) -> Path:
        folder = result.pages_folder
        folder.mkdir(parents=True, exist_ok=True)
        if result.to_pdf:
            self.logger.info(
                f"Scan will be converted to pdf, using {folder} as temp scan output "
                f"directory for individual pages"
            )
        return folder
