"""
HTTP client for the device's walk-up scan resources.

This module wraps the XML-over-HTTP control interface of HP multi-function
devices (the LEDM resources under /EventMgmt, /WalkupScan, /WalkupScanToComp
and /Scan). Every method is exactly one request/response round trip.

NO RETRIES:
    Nothing here retries. A network failure or an HTTP status >= 400 raises
    DeviceRequestError; an unparseable body raises DeviceResponseError. The
    scanning logic lets both propagate to the service layer.

THREAD SAFETY:
    A requests.Session is not safe to share between threads. Each thread
    that talks to the device (listener, on-demand scan) should use its
    own HPDeviceClient, or callers must serialize access.

Usage:
    client = HPDeviceClient("192.168.1.53")

    caps = client.get_device_capabilities()
    job_url = client.post_job(settings)
    job = client.get_job(job_url)
    client.download_page(job.binary_url, Path("scans/scan1_page1.jpg"))
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable, Optional, Tuple, TypeVar
from urllib.parse import urljoin

import requests

from models.device import DeviceCapabilities, Destination, ScanStatus
from models.event import EventTable, WalkupScanToCompEvent
from models.job import Job
from models.scan import ScanJobSettings
from logging_config import get_logger

from .exceptions import DeviceRequestError, DeviceResponseError

T = TypeVar("T")

EVENT_TABLE_PATH = "/EventMgmt/EventTable"
WALKUP_SCAN_DESTINATIONS_PATH = "/WalkupScan/WalkupScanDestinations"
WALKUP_SCAN_TO_COMP_DESTINATIONS_PATH = "/WalkupScanToComp/WalkupScanToCompDestinations"
WALKUP_SCAN_TO_COMP_CAPS_PATH = "/WalkupScanToComp/WalkupScanToCompCaps"
SCAN_JOBS_PATH = "/Scan/Jobs"
SCAN_STATUS_PATH = "/Scan/Status"
SCAN_CAPS_PATH = "/Scan/ScanCaps"

DICTIONARY_NAMESPACE = "http://www.hp.com/schemas/imaging/con/dictionaries/1.0/"
WALKUP_SCAN_NAMESPACE = "http://www.hp.com/schemas/imaging/con/rest/walkupscan/2010/09/28"
WALKUP_SCAN_TO_COMP_NAMESPACE = (
    "http://www.hp.com/schemas/imaging/con/rest/walkupscantocomp/2010/09/28"
)

XML_HEADERS = {"Content-Type": "text/xml"}

# Extra seconds on top of the device-side long-poll wait before we give up
# on the socket.
LONG_POLL_GRACE_SECONDS = 60


class HPDeviceClient:
    """
    Typed verbs over the device's HTTP/XML resources.

    Methods map one-to-one to device requests:
    - Events: get_events(), get_walkup_scan_to_comp_event()
    - Destinations: get_destination(), list/register/remove
    - Jobs: post_job(), get_job(), download_page()
    - Scanner: get_scan_status(), get_device_capabilities()

    Attributes:
        base_url: http://<device ip>
    """

    def __init__(
        self,
        device_ip: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the device client.

        Args:
            device_ip: Device address (host or host:port)
            timeout: Seconds to wait for a regular (non long-poll) response
            session: Optional requests.Session (created if not provided)
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If device_ip is empty
        """
        if not device_ip:
            raise ValueError("device_ip is required - configure DEVICE_IP")

        self._base_url = device_ip if device_ip.startswith("http") else f"http://{device_ip}"
        self._timeout = timeout
        self._session = session or requests.Session()
        self._logger = logger or get_logger(__name__)

        self._logger.debug(f"HPDeviceClient initialized for {self._base_url}")

    @property
    def base_url(self) -> str:
        return self._base_url

    # =========================================================================
    # EVENTS
    # =========================================================================

    def get_events(self, etag: str = "", timeout: Optional[int] = None) -> EventTable:
        """
        Fetch the event table.

        With an etag the device answers only once the table differs from
        that etag (or the long-poll timeout elapses, in which case it
        answers 304).

        Args:
            etag: Freshness token of the last table we saw ("" for current)
            timeout: Device-side long-poll wait, passed through as ?timeout=

        Returns:
            EventTable with the etag to use for the next poll
        """
        params = {"timeout": timeout} if timeout is not None else None
        headers = {"If-None-Match": etag} if etag else None
        read_timeout = self._timeout + timeout + LONG_POLL_GRACE_SECONDS if timeout else self._timeout

        response = self._request(
            "GET",
            EVENT_TABLE_PATH,
            operation="get_events",
            params=params,
            headers=headers,
            timeout=read_timeout,
            allowed_status=(304,),
        )

        if response.status_code == 304:
            return EventTable(etag=etag)

        new_etag = response.headers.get("ETag", etag)
        return self._parse(
            lambda: EventTable.from_xml(response.content, new_etag),
            "get_events",
            response.url,
        )

    def get_walkup_scan_to_comp_event(self, comp_event_uri: str) -> WalkupScanToCompEvent:
        """Fetch what the user is currently doing at the panel."""
        response = self._request("GET", comp_event_uri, operation="get_walkup_scan_to_comp_event")
        return self._parse(
            lambda: WalkupScanToCompEvent.from_xml(response.content),
            "get_walkup_scan_to_comp_event",
            response.url,
        )

    # =========================================================================
    # DESTINATIONS
    # =========================================================================

    def get_destination(self, destination_uri: str) -> Destination:
        """Fetch a destination, including the shortcut the user picked."""
        response = self._request("GET", destination_uri, operation="get_destination")
        return self._parse(
            lambda: Destination.from_xml(response.content),
            "get_destination",
            response.url,
        )

    def get_walkup_scan_destinations(self) -> Tuple[Destination, ...]:
        return self._get_destinations(WALKUP_SCAN_DESTINATIONS_PATH)

    def get_walkup_scan_to_comp_destinations(self) -> Tuple[Destination, ...]:
        return self._get_destinations(WALKUP_SCAN_TO_COMP_DESTINATIONS_PATH)

    def register_walkup_scan_destination(self, name: str, hostname: str) -> str:
        """Register a plain walk-up scan destination, returning its resource URI."""
        body = self._destination_xml(
            "WalkupScanDestination", WALKUP_SCAN_NAMESPACE, name, hostname
        )
        return self._post_for_location(
            WALKUP_SCAN_DESTINATIONS_PATH, body, "register_walkup_scan_destination"
        )

    def register_walkup_scan_to_comp_destination(self, name: str, hostname: str) -> str:
        """Register a walk-up scan to computer destination, returning its resource URI."""
        body = self._destination_xml(
            "WalkupScanToCompDestination", WALKUP_SCAN_TO_COMP_NAMESPACE, name, hostname
        )
        return self._post_for_location(
            WALKUP_SCAN_TO_COMP_DESTINATIONS_PATH, body, "register_walkup_scan_to_comp_destination"
        )

    def remove_destination(self, destination: Destination) -> None:
        if not destination.resource_uri:
            raise ValueError(f"Destination {destination.name!r} has no resource URI")
        self._request("DELETE", destination.resource_uri, operation="remove_destination")
        self._logger.info(f"Destination removed: {destination.name}")

    # =========================================================================
    # JOBS
    # =========================================================================

    def post_job(self, settings: ScanJobSettings) -> str:
        """
        Submit a scan job.

        Returns:
            Job URL taken from the Location header
        """
        job_url = self._post_for_location(SCAN_JOBS_PATH, settings.to_xml(), "post_job")
        self._logger.info(f"Scan job submitted: {job_url}")
        return job_url

    def get_job(self, job_url: str) -> Job:
        response = self._request("GET", job_url, operation="get_job")
        job = self._parse(lambda: Job.from_xml(response.content), "get_job", response.url)
        self._logger.debug(
            f"Job state: {job.raw_job_state}, page state: {job.raw_page_state}, "
            f"page: {job.current_page_number}"
        )
        return job

    def download_page(self, binary_url: str, destination_path: Path) -> Path:
        """
        Stream a page image to disk.

        Args:
            binary_url: Page resource from the job snapshot
            destination_path: File to write (parent folder must exist)

        Returns:
            The path written
        """
        response = self._request("GET", binary_url, operation="download_page", stream=True)
        destination_path = Path(destination_path)
        try:
            with open(destination_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=65536):
                    if chunk:
                        f.write(chunk)
        except requests.RequestException as e:
            raise DeviceRequestError("download_page", response.url, reason=str(e)) from e
        finally:
            response.close()
        return destination_path

    # =========================================================================
    # SCANNER
    # =========================================================================

    def get_scan_status(self) -> ScanStatus:
        response = self._request("GET", SCAN_STATUS_PATH, operation="get_scan_status")
        return self._parse(
            lambda: ScanStatus.from_xml(response.content),
            "get_scan_status",
            response.url,
        )

    def get_device_capabilities(self) -> DeviceCapabilities:
        """
        Read scan limits and walk-up scan to computer support.

        A device without /WalkupScanToComp answers 404 there; that device
        only supports plain walk-up scan destinations.
        """
        scan_caps = self._request("GET", SCAN_CAPS_PATH, operation="get_scan_caps")
        walkup_caps = self._request(
            "GET",
            WALKUP_SCAN_TO_COMP_CAPS_PATH,
            operation="get_walkup_scan_to_comp_caps",
            allowed_status=(404,),
        )
        walkup_content = walkup_caps.content if walkup_caps.status_code != 404 else None

        capabilities = self._parse(
            lambda: DeviceCapabilities.from_xml(scan_caps.content, walkup_content),
            "get_device_capabilities",
            scan_caps.url,
        )
        self._logger.info(
            f"Device capabilities: walkup-to-comp={capabilities.use_walkup_scan_to_comp}, "
            f"multi-item platen={capabilities.supports_multi_item_scan_from_platen}"
        )
        return capabilities

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _url(self, path_or_url: str) -> str:
        if path_or_url.startswith("http://") or path_or_url.startswith("https://"):
            return path_or_url
        return urljoin(self._base_url + "/", path_or_url.lstrip("/"))

    def _request(
        self,
        method: str,
        path_or_url: str,
        operation: str,
        allowed_status: Tuple[int, ...] = (),
        timeout: Optional[float] = None,
        **kwargs
    ) -> requests.Response:
        """
        Perform one request.

        Raises:
            DeviceRequestError: On network failure or unexpected status
        """
        url = self._url(path_or_url)
        try:
            response = self._session.request(
                method, url, timeout=timeout or self._timeout, **kwargs
            )
        except requests.RequestException as e:
            self._logger.error(f"{operation} failed: {e}")
            raise DeviceRequestError(operation, url, reason=str(e)) from e

        if response.status_code >= 400 and response.status_code not in allowed_status:
            self._logger.error(f"{operation} failed: HTTP {response.status_code} for {url}")
            raise DeviceRequestError(operation, url, status_code=response.status_code)

        return response

    def _parse(self, parse: Callable[[], T], operation: str, url: str) -> T:
        try:
            return parse()
        except ET.ParseError as e:
            self._logger.error(f"{operation}: invalid XML from device: {e}")
            raise DeviceResponseError(operation, url, f"invalid XML: {e}") from e

    def _get_destinations(self, path: str) -> Tuple[Destination, ...]:
        response = self._request("GET", path, operation="get_destinations")
        return self._parse(
            lambda: Destination.list_from_xml(response.content),
            "get_destinations",
            response.url,
        )

    def _post_for_location(self, path: str, body: str, operation: str) -> str:
        response = self._request(
            "POST", path, operation=operation, data=body.encode("utf-8"), headers=XML_HEADERS
        )
        location = response.headers.get("Location")
        if not location:
            raise DeviceResponseError(operation, response.url, "no Location header")
        return location

    @staticmethod
    def _destination_xml(root_tag: str, namespace: str, name: str, hostname: str) -> str:
        root = ET.Element(root_tag, {"xmlns": namespace, "xmlns:dd": DICTIONARY_NAMESPACE})
        ET.SubElement(root, "dd:Hostname").text = hostname
        ET.SubElement(root, "dd:Name").text = name
        ET.SubElement(root, "dd:LinkType").text = "Network"
        return '<?xml version="1.0" encoding="UTF-8"?>' + ET.tostring(root, encoding="unicode")
