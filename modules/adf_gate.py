"""
Document feeder ready gate.

Blocks until paper has been sitting in the feeder for a while. Users often
load a stack in several goes and the feeder reports "loaded" on the first
sheet, so a load only counts once it survived the whole start delay.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.device_client import HPDeviceClient
from core.polling import delay, poll_until
from models.device import ScanStatus
from logging_config import get_logger

DEBOUNCE_POLL_INTERVAL_MS = 500

logger = get_logger(__name__)


def wait_adf_loaded(
    client: HPDeviceClient,
    polling_interval_ms: int,
    start_scan_delay_ms: int,
    log: Optional[logging.Logger] = None
) -> ScanStatus:
    """
    Wait until the feeder is loaded and stays loaded.

    Args:
        client: Device client
        polling_interval_ms: Poll interval while the feeder is empty
        start_scan_delay_ms: How long the paper must stay loaded
        log: Logger (module logger by default)

    Returns:
        The last scanner status observed (feeder loaded)
    """
    log = log or logger

    while True:
        status = poll_until(
            client.get_scan_status,
            lambda s: s.is_loaded,
            interval_ms=polling_interval_ms,
        )
        log.info("ADF load detected")

        waited = 0
        while status.is_loaded and waited < start_scan_delay_ms:
            delay(DEBOUNCE_POLL_INTERVAL_MS)
            status = client.get_scan_status()
            waited += DEBOUNCE_POLL_INTERVAL_MS

        if status.is_loaded:
            log.info("ADF still loaded, proceeding")
            return status

        log.info("ADF not loaded anymore, waiting...")
