"""
Event listener for walk-up scans.

Watches the device event table for scan events addressed to our
destination and interprets the panel interaction event ("host selected",
"scan requested", ...). Also owns destination registration, which is what
makes this computer show up at the device panel in the first place.

All waits here block the calling thread. wait_for_scan_event() has no
timeout: it returns only once a user acts at the panel.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.device_client import HPDeviceClient
from core.polling import poll_until
from models.device import DeviceCapabilities
from models.event import Event, EventKind, WalkupScanToCompEvent
from logging_config import get_logger

# Seconds the device holds an event-table request open before answering 304
EVENT_LONG_POLL_TIMEOUT = 1200

SCAN_REQUEST_MAX_ATTEMPTS = 50
PANEL_POLL_INTERVAL_MS = 1000


class EventListener:
    """
    Long-polls device events and classifies panel interactions.

    Attributes:
        client: Device client used for every request (not shared across threads)
    """

    def __init__(self, client: HPDeviceClient, logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or get_logger(__name__)

    # =========================================================================
    # EVENT TABLE
    # =========================================================================

    def wait_for_scan_event(self, destination_uri: str, after_etag: Optional[str] = None) -> Event:
        """
        Block until a scan event for the destination shows up.

        The first fetch only establishes the etag baseline (events already
        in the table are not considered). Every following fetch is a device
        long poll resuming from the last etag.

        Args:
            destination_uri: Our destination; matched as a substring of the
                event's destination URI
            after_etag: Resume point, e.g. the aging stamp of the previous event

        Returns:
            The first matching scan event
        """
        self.logger.info("Start listening for new scan event")

        table = self.client.get_events(after_etag or "")
        etag = table.etag

        while True:
            table = self.client.get_events(etag, EVENT_LONG_POLL_TIMEOUT)
            etag = table.etag

            event = table.find_scan_event(destination_uri)
            if event is not None:
                self.logger.info(f"Scan event received for {destination_uri}")
                return event

    # =========================================================================
    # PANEL INTERACTION
    # =========================================================================

    def wait_scan_request(self, comp_event_uri: str) -> bool:
        """
        Wait for the user to press scan after selecting this computer.

        Returns:
            True to proceed with the scan (also when the user is still on
            "host selected" after the attempt budget), False when the user
            finished or the device sent something we do not understand
        """

        def log_waiting(attempt: int, _event: WalkupScanToCompEvent) -> None:
            self.logger.info(f"Waiting user input: {attempt}/{SCAN_REQUEST_MAX_ATTEMPTS}")

        comp_event = poll_until(
            lambda: self.client.get_walkup_scan_to_comp_event(comp_event_uri),
            lambda e: e.kind is not EventKind.HOST_SELECTED,
            interval_ms=PANEL_POLL_INTERVAL_MS,
            max_attempts=SCAN_REQUEST_MAX_ATTEMPTS,
            on_retry=log_waiting,
        )

        kind = comp_event.kind
        if kind in (EventKind.SCAN_REQUESTED, EventKind.SCAN_NEW_PAGE_REQUESTED):
            return True
        if kind is EventKind.SCAN_PAGES_COMPLETE:
            self.logger.info("No more page to scan, scan is finished")
            return False
        if kind is EventKind.HOST_SELECTED:
            # TODO: report the exhausted budget as its own outcome so callers can tell it from a real request
            self.logger.warning(
                f"No scan request after {SCAN_REQUEST_MAX_ATTEMPTS} attempts, proceeding anyway"
            )
            return True

        self.logger.warning(f"Unknown event type: {comp_event.event_type}")
        return False

    def wait_scan_new_page_request(self, comp_event_uri: str) -> bool:
        """
        Wait for the user to either ask for another page or finish.

        Polls once per second for as long as the panel still reports
        "scan requested".

        Returns:
            True when another page was requested, False otherwise
        """
        comp_event = poll_until(
            lambda: self.client.get_walkup_scan_to_comp_event(comp_event_uri),
            lambda e: e.kind is not EventKind.SCAN_REQUESTED,
            interval_ms=PANEL_POLL_INTERVAL_MS,
            delay_first=True,
        )

        kind = comp_event.kind
        if kind is EventKind.SCAN_NEW_PAGE_REQUESTED:
            return True
        if kind is not EventKind.SCAN_PAGES_COMPLETE:
            self.logger.warning(f"Unknown event type: {comp_event.event_type}")
        return False

    # =========================================================================
    # DESTINATION REGISTRATION
    # =========================================================================

    def register_destination(self, capabilities: DeviceCapabilities, label: str) -> str:
        """
        Make sure a destination named label exists at the device.

        An existing destination with that name is reused. Devices that
        support walk-up scan to computer get that flavour; older devices
        get a plain walk-up scan destination.

        Returns:
            Resource URI of the destination
        """
        if capabilities.use_walkup_scan_to_comp:
            destinations = self.client.get_walkup_scan_to_comp_destinations()
            register = self.client.register_walkup_scan_to_comp_destination
        else:
            destinations = self.client.get_walkup_scan_destinations()
            register = self.client.register_walkup_scan_destination

        self.logger.info(
            f"Host destinations fetched: {', '.join(d.name or '?' for d in destinations)}"
        )

        existing = next((d for d in destinations if d.name == label), None)
        if existing is not None and existing.resource_uri:
            self.logger.info(f"Re-using existing destination: {label} - {existing.resource_uri}")
            return existing.resource_uri

        resource_uri = register(label, label)
        self.logger.info(f"New destination registered: {label} - {resource_uri}")
        return resource_uri

    def wait_scan_event(self, capabilities: DeviceCapabilities, label: str) -> Event:
        """Register our destination, then block until the user scans to it."""
        resource_uri = self.register_destination(capabilities, label)
        self.logger.info(f"Waiting scan event for: {resource_uri}")
        return self.wait_for_scan_event(resource_uri)

    def clear_registrations(self) -> int:
        """
        Remove every walk-up scan to computer destination from the device.

        Returns:
            Number of destinations removed
        """
        destinations = self.client.get_walkup_scan_to_comp_destinations()
        for destination in destinations:
            self.logger.info(f"Removing: {destination.name}")
            self.client.remove_destination(destination)
        return len(destinations)
