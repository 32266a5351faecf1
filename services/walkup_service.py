"""
Walk-up listener service with a background thread.

Keeps this computer available at the device panel and runs a scan
session every time the user scans to it. In feeder auto-scan mode it
instead waits for paper in the document feeder.

Modes:
    walkup        register destination -> wait scan event -> walk-up session
    adf_autoscan  wait feeder loaded (debounced) -> feeder session

THREAD ISOLATION:
    - The listener thread has its OWN device client for the event long poll
    - Sessions themselves run through ScanService, which serializes them
      with on-demand scans

Usage:
    # At app startup
    walkup_service = WalkupService(scan_service, listener_client, capabilities,
                                   scan_mode="walkup", label="office-pc")
    walkup_service.start()

    # At app shutdown
    walkup_service.stop()
"""

from __future__ import annotations

import threading
from typing import Optional

from core.device_client import HPDeviceClient
from models.device import DeviceCapabilities
from models.scan_config import AdfAutoScanConfig
from modules.adf_gate import wait_adf_loaded
from modules.listening import EventListener
from logging_config import get_logger, set_thread_name

from .scan_service import ScanService


# Module logger
logger = get_logger(__name__)

SCAN_MODE_WALKUP = "walkup"
SCAN_MODE_ADF = "adf_autoscan"
SCAN_MODES = (SCAN_MODE_WALKUP, SCAN_MODE_ADF)


class WalkupService:
    """
    Background service listening for scans started at the device.

    The loop never gives up: a failed cycle (device offline, session
    failure) is counted, logged and retried after retry_interval_seconds.

    Attributes:
        scan_mode: "walkup" or "adf_autoscan"
        is_running: Whether the background thread is active
    """

    def __init__(
        self,
        scan_service: ScanService,
        client: HPDeviceClient,
        capabilities: DeviceCapabilities,
        scan_mode: str = SCAN_MODE_WALKUP,
        label: str = "walkup-scan",
        adf_config: Optional[AdfAutoScanConfig] = None,
        retry_interval_seconds: float = 10.0
    ):
        """
        Initialize the walk-up service.

        Args:
            scan_service: Runs the sessions
            client: Device client owned by the listener thread
            capabilities: Device capabilities read at startup
            scan_mode: "walkup" or "adf_autoscan"
            label: Destination name shown at the device panel
            adf_config: Feeder settings (required for adf_autoscan)
            retry_interval_seconds: Back-off after a failed cycle

        Raises:
            ValueError: If scan_mode is unknown
        """
        if scan_mode not in SCAN_MODES:
            raise ValueError(f"Unknown scan mode: {scan_mode!r} (expected one of {SCAN_MODES})")

        self._scan_service = scan_service
        self._client = client
        self._capabilities = capabilities
        self._scan_mode = scan_mode
        self._label = label
        self._adf_config = adf_config or AdfAutoScanConfig()
        self._retry_interval = retry_interval_seconds

        self._listener = EventListener(client, logger)

        # Thread control
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._is_running = False

        # Track consecutive failures for logging
        self._consecutive_failures = 0

        logger.info(f"WalkupService initialized (mode: {scan_mode}, label: {label})")

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def scan_mode(self) -> str:
        return self._scan_mode

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def listener(self) -> EventListener:
        return self._listener

    def start(self) -> None:
        """
        Start the listener thread.

        Safe to call multiple times - only starts if not already running.
        """
        if self._is_running:
            logger.warning("WalkupService already running")
            return

        logger.info("Starting walk-up listener thread...")

        self._stop_event.clear()

        self._thread = threading.Thread(
            target=self._listen_loop,
            name="Walkup",
            daemon=True  # A pending long poll must not keep the process alive
        )
        self._is_running = True
        self._thread.start()

        logger.info("Walk-up listener thread started")

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop the listener thread.

        A long poll in progress cannot be interrupted; the thread exits
        once it returns (or with the process, it is a daemon thread).
        """
        if not self._is_running:
            return

        logger.info("Stopping walk-up listener thread...")

        self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)

            if self._thread.is_alive():
                logger.warning("Walk-up thread did not stop cleanly (blocked in device wait)")

        self._is_running = False
        self._thread = None

        logger.info("Walk-up listener thread stopped")

    def run_once(self) -> bool:
        """
        Run a single listen-and-scan cycle in the calling thread.

        Returns:
            True if the cycle succeeded, False otherwise
        """
        try:
            if self._scan_mode == SCAN_MODE_ADF:
                wait_adf_loaded(
                    self._client,
                    self._adf_config.polling_interval_ms,
                    self._adf_config.start_scan_delay_ms,
                    logger,
                )
                record = self._scan_service.run_adf_session()
            else:
                event = self._listener.wait_scan_event(self._capabilities, self._label)
                record = self._scan_service.run_walkup_session(event)

            if self._consecutive_failures > 0:
                logger.info(
                    f"Walk-up listener recovered after {self._consecutive_failures} failures"
                )
            self._consecutive_failures = 0

            logger.info(
                f"Session {record.session_id[:8]} {record.status.value}: "
                f"{record.page_count} page(s)"
            )
            return True

        except Exception as e:
            self._consecutive_failures += 1

            # Log with increasing severity based on consecutive failures
            if self._consecutive_failures == 1:
                logger.warning(f"Walk-up cycle failed: {e}")
            elif self._consecutive_failures <= 3:
                logger.error(f"Walk-up cycle failed ({self._consecutive_failures} consecutive): {e}")
            elif self._consecutive_failures % 5 == 0:
                # Only log every 5th failure after that to avoid spam
                logger.error(
                    f"Walk-up cycle still failing ({self._consecutive_failures} consecutive): {e}"
                )

            return False

    def _listen_loop(self) -> None:
        """Background thread main loop; runs until stop_event is set."""
        set_thread_name("Walkup")

        logger.info("Walk-up listen loop starting")

        while not self._stop_event.is_set():
            if self.run_once():
                continue

            # Back off after a failure (or stop)
            if self._stop_event.wait(timeout=self._retry_interval):
                break

        logger.info("Walk-up listen loop exiting")
