"""
Scan session service.

Owns the device: only one scan session may drive it at a time. Sessions
come from three places:

    - the walk-up listener thread (run_walkup_session, synchronous)
    - the ADF auto-scan thread (run_adf_session, synchronous)
    - the HTTP API (submit_single_scan, one background thread per session)

Thread Safety:
    - _device_lock serializes sessions; submit_single_scan never blocks,
      it raises ScanSessionBusyError instead
    - ScanSessionStore uses threading.Lock for all operations
    - ScanSessionRecord objects are replaced, never mutated, once stored

Flow (on-demand scan):
    1. Route calls scan_service.submit_single_scan(is_duplex, generate_pdf)
    2. Device lock is taken in the caller's thread (409 if busy)
    3. Session thread runs the scan, stores the finished record, releases the lock
    4. Route polls scan_service.get_record(session_id)

Usage:
    scan_service = ScanService(client, capabilities, scan_config, adf_config)

    session_id = scan_service.submit_single_scan(is_duplex=False, generate_pdf=True)
    record = scan_service.get_record(session_id)

    scan_service.shutdown()
"""

from __future__ import annotations

import threading
import uuid
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Dict, List, Optional

from core.device_client import HPDeviceClient
from core.exceptions import ScanSessionBusyError
from models.device import DeviceCapabilities
from models.event import Event
from models.scan import ScanSessionResult
from models.scan_config import AdfAutoScanConfig, ScanConfig, SingleScanConfig
from models.session_result import ScanSessionRecord, SessionKind
from modules.listening import EventListener
from modules.scan_processing import ScanOrchestrator
from logging_config import get_logger, get_session_logger, set_thread_name


# Module logger
logger = get_logger(__name__)


class ScanSessionStore:
    """
    Thread-safe, bounded history of scan sessions.

    Session threads WRITE records here, the API READS them. Unlike a
    consume-once result store, records stay readable until they fall out
    of the history.
    """

    def __init__(self, max_records: int = 50):
        self._records: "OrderedDict[str, ScanSessionRecord]" = OrderedDict()
        self._max_records = max_records
        self._lock = threading.Lock()

    def put(self, record: ScanSessionRecord) -> None:
        """Store or replace a record; the oldest records are dropped first."""
        with self._lock:
            self._records[record.session_id] = record
            self._records.move_to_end(record.session_id)
            while len(self._records) > self._max_records:
                dropped, _ = self._records.popitem(last=False)
                logger.debug(f"Dropped session {dropped[:8]} from history")

    def get(self, session_id: str) -> Optional[ScanSessionRecord]:
        with self._lock:
            return self._records.get(session_id)

    def recent(self, limit: Optional[int] = None) -> List[ScanSessionRecord]:
        """Most recent first."""
        with self._lock:
            records = list(reversed(self._records.values()))
        return records[:limit] if limit is not None else records

    def clear(self) -> int:
        with self._lock:
            count = len(self._records)
            self._records.clear()
            logger.info(f"Cleared {count} session records from store")
            return count


class ScanService:
    """
    Runs scan sessions one at a time.

    Attributes:
        session_store: ScanSessionStore with the session history
        scan_count: Sequence number of the last session started (0 = none yet)
    """

    def __init__(
        self,
        client: HPDeviceClient,
        capabilities: DeviceCapabilities,
        scan_config: ScanConfig,
        adf_config: AdfAutoScanConfig,
        orchestrator: Optional[ScanOrchestrator] = None,
        max_records: int = 50
    ):
        """
        Initialize the scan service.

        Args:
            client: Device client used by sessions (not by the listener)
            capabilities: Device capabilities read at startup
            scan_config: Folder, resolution and size settings
            adf_config: Feeder auto-scan settings
            orchestrator: Shared orchestrator; by default each session gets
                its own, logging through the session logger
            max_records: Session history size
        """
        self._client = client
        self._capabilities = capabilities
        self._scan_config = scan_config
        self._adf_config = adf_config
        self._orchestrator = orchestrator
        self._session_store = ScanSessionStore(max_records)

        self._device_lock = threading.Lock()
        self._active_session_id: Optional[str] = None

        self._count_lock = threading.Lock()
        self._scan_count = 0

        # Track on-demand session threads for cleanup
        self._active_threads: Dict[str, threading.Thread] = {}
        self._threads_lock = threading.Lock()

        logger.info("ScanService initialized")

    @property
    def session_store(self) -> ScanSessionStore:
        return self._session_store

    @property
    def scan_count(self) -> int:
        return self._scan_count

    @property
    def active_session_id(self) -> Optional[str]:
        """Session currently driving the device, if any."""
        return self._active_session_id

    @property
    def is_busy(self) -> bool:
        return self._device_lock.locked()

    # =========================================================================
    # SYNCHRONOUS SESSIONS (listener threads)
    # =========================================================================

    def run_walkup_session(self, event: Event) -> ScanSessionRecord:
        """
        Run a walk-up session in the calling thread.

        Waits for the device if an on-demand scan is running.

        Raises:
            DeviceRequestError: After the failed session has been recorded
        """
        with self._device_lock:
            return self._run_session(
                SessionKind.WALKUP,
                lambda orchestrator, count: orchestrator.save_scan_from_event(event, count),
            )

    def run_adf_session(self) -> ScanSessionRecord:
        """Run one feeder auto-scan session in the calling thread."""
        with self._device_lock:
            return self._run_session(
                SessionKind.ADF,
                lambda orchestrator, count: orchestrator.scan_from_adf(
                    count, self._adf_config, datetime.now()
                ),
            )

    # =========================================================================
    # ON-DEMAND SESSIONS (API)
    # =========================================================================

    def submit_single_scan(self, is_duplex: bool = False, generate_pdf: bool = True) -> str:
        """
        Start an on-demand flatbed scan in a background thread.

        Returns:
            session_id (UUID string); poll get_record(session_id)

        Raises:
            ScanSessionBusyError: If another session owns the device
        """
        if not self._device_lock.acquire(blocking=False):
            raise ScanSessionBusyError(self._active_session_id)

        session_id = str(uuid.uuid4())
        single_config = SingleScanConfig(is_duplex=is_duplex, generate_pdf=generate_pdf)
        logger.info(f"Submitting single scan {session_id[:8]} (duplex={is_duplex}, pdf={generate_pdf})")

        thread = threading.Thread(
            target=self._single_scan_thread_main,
            args=(session_id, single_config),
            name=f"Scan-{session_id[:8]}",
            daemon=True
        )

        with self._threads_lock:
            self._active_threads[session_id] = thread

        try:
            thread.start()
        except RuntimeError:
            with self._threads_lock:
                self._active_threads.pop(session_id, None)
            self._device_lock.release()
            raise

        return session_id

    def clear_registrations(self) -> int:
        """
        Remove our walk-up scan to computer destinations from the device.

        Runs on the session client while holding the device lock, so it
        never overlaps a scan session. The listener thread keeps its own
        client for the event long poll.

        Returns:
            Number of destinations removed

        Raises:
            ScanSessionBusyError: If a session owns the device
            DeviceRequestError: If the device rejects a request
        """
        if not self._device_lock.acquire(blocking=False):
            raise ScanSessionBusyError(self._active_session_id)
        try:
            return EventListener(self._client, logger).clear_registrations()
        finally:
            self._device_lock.release()

    def get_record(self, session_id: str) -> Optional[ScanSessionRecord]:
        return self._session_store.get(session_id)

    def recent_records(self, limit: Optional[int] = None) -> List[ScanSessionRecord]:
        return self._session_store.recent(limit)

    def is_session_pending(self, session_id: str) -> bool:
        """True while the session's thread is still running."""
        with self._threads_lock:
            thread = self._active_threads.get(session_id)
            return thread is not None and thread.is_alive()

    def shutdown(self, timeout_per_thread: float = 5.0) -> None:
        """
        Wait for on-demand session threads to complete.

        Args:
            timeout_per_thread: Max seconds to wait per thread
        """
        with self._threads_lock:
            active = list(self._active_threads.items())

        if not active:
            logger.info("No active scan threads to wait for")
            return

        logger.info(f"Waiting for {len(active)} scan threads to complete...")

        for session_id, thread in active:
            if thread.is_alive():
                thread.join(timeout=timeout_per_thread)
                if thread.is_alive():
                    logger.warning(f"Scan thread {session_id[:8]} did not complete in time")

        logger.info("Scan service shutdown complete")

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _single_scan_thread_main(self, session_id: str, single_config: SingleScanConfig) -> None:
        """Session thread body; the device lock is already held."""
        set_thread_name(f"Scan-{session_id[:8]}")
        try:
            self._run_session(
                SessionKind.SINGLE,
                lambda orchestrator, count: orchestrator.single_scan(
                    count, single_config, datetime.now()
                ),
                session_id=session_id,
            )
        except Exception as e:
            # Already recorded as failed; nobody is waiting on this thread
            logger.debug(f"Single scan {session_id[:8]} ended with {type(e).__name__}")
        finally:
            self._device_lock.release()
            with self._threads_lock:
                self._active_threads.pop(session_id, None)

    def _run_session(
        self,
        kind: SessionKind,
        scan: Callable[[ScanOrchestrator, int], Optional[ScanSessionResult]],
        session_id: Optional[str] = None
    ) -> ScanSessionRecord:
        """
        Run one session while holding the device lock.

        Records the session as running, then completed, aborted or failed.
        """
        session_id = session_id or str(uuid.uuid4())
        scan_count = self._next_scan_count()
        session_logger = get_session_logger(session_id)

        record = ScanSessionRecord.create_running(session_id, kind, scan_count)
        self._session_store.put(record)
        self._active_session_id = session_id

        session_logger.info(f"{kind.value} session #{scan_count} starting")

        try:
            orchestrator = self._orchestrator or ScanOrchestrator(
                self._client,
                self._capabilities,
                self._scan_config,
                logger=session_logger,
            )
            result = scan(orchestrator, scan_count)

            if result is None:
                record = record.create_aborted("Session ended before a scan job was submitted.")
            else:
                record = record.create_completed(result)

            session_logger.info(f"Session finished: status={record.status.value}")
            return record

        except Exception as e:
            session_logger.error(f"Session failed: {e}")
            record = record.create_failed(str(e))
            raise

        finally:
            self._session_store.put(record)
            self._active_session_id = None

    def _next_scan_count(self) -> int:
        with self._count_lock:
            self._scan_count += 1
            return self._scan_count
