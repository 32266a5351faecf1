"""
Device event models.

The device publishes an event table that we long-poll with an etag, plus
a single "walk-up scan to computer" event resource describing what the
user is doing at the panel. Both are parsed into frozen snapshots; a new
fetch always yields a new object.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .xml_helpers import child_text

DESTINATION_RESOURCE_TYPES = (
    "wus:WalkupScanToCompDestination",
    "wus:WalkupScanDestination",
)
COMP_EVENT_RESOURCE_TYPE = "wus:WalkupScanToCompEvent"
SCAN_EVENT_CATEGORY = "ScanEvent"


class EventKind(Enum):
    """
    What the user did at the panel, as reported by the comp event resource.

    Anything the firmware sends that we do not know maps to UNKNOWN; callers
    log it and never raise.
    """

    HOST_SELECTED = "HostSelected"
    """User picked this computer, has not pressed scan yet."""

    SCAN_REQUESTED = "ScanRequested"
    """User pressed scan."""

    SCAN_NEW_PAGE_REQUESTED = "ScanNewPageRequested"
    """User put another page on the glass and asked for it to be scanned."""

    SCAN_PAGES_COMPLETE = "ScanPagesComplete"
    """User declared the multi-page scan finished."""

    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "EventKind":
        for kind in cls:
            if kind is not cls.UNKNOWN and kind.value == raw:
                return kind
        return cls.UNKNOWN


@dataclass(frozen=True)
class Event:
    """One entry of the device event table."""

    category: Optional[str]
    """UnqualifiedEventCategory, e.g. 'ScanEvent'."""

    aging_stamp: Optional[str] = None
    """Freshness token; used as the etag baseline to resume polling."""

    destination_uri: Optional[str] = None
    """Destination resource the event is tied to, if any."""

    comp_event_uri: Optional[str] = None
    """Walk-up scan to computer event resource, if any."""

    @property
    def is_scan_event(self) -> bool:
        return self.category == SCAN_EVENT_CATEGORY

    @classmethod
    def from_element(cls, element: ET.Element) -> "Event":
        destination_uri = None
        comp_event_uri = None
        for payload in element.findall("{*}Payload"):
            resource_type = child_text(payload, "{*}ResourceType")
            resource_uri = child_text(payload, "{*}ResourceURI")
            if resource_type in DESTINATION_RESOURCE_TYPES:
                destination_uri = resource_uri
            elif resource_type == COMP_EVENT_RESOURCE_TYPE:
                comp_event_uri = resource_uri

        return cls(
            category=child_text(element, "{*}UnqualifiedEventCategory"),
            aging_stamp=child_text(element, "{*}AgingStamp"),
            destination_uri=destination_uri,
            comp_event_uri=comp_event_uri,
        )


@dataclass(frozen=True)
class EventTable:
    """A snapshot of the event table plus the etag it was served with."""

    etag: str
    events: Tuple[Event, ...] = field(default_factory=tuple)

    @classmethod
    def from_xml(cls, content: bytes, etag: str) -> "EventTable":
        root = ET.fromstring(content)
        events: List[Event] = [Event.from_element(e) for e in root.findall("{*}Event")]
        return cls(etag=etag, events=tuple(events))

    def find_scan_event(self, destination_uri: str) -> Optional[Event]:
        """First scan event whose destination contains the given URI."""
        for event in self.events:
            if (
                event.is_scan_event
                and event.destination_uri
                and destination_uri in event.destination_uri
            ):
                return event
        return None


@dataclass(frozen=True)
class WalkupScanToCompEvent:
    """The panel interaction state for walk-up scan to computer."""

    event_type: Optional[str]
    """Raw event type string as sent by the device (kept for logging)."""

    @property
    def kind(self) -> EventKind:
        return EventKind.parse(self.event_type)

    @classmethod
    def from_xml(cls, content: bytes) -> "WalkupScanToCompEvent":
        root = ET.fromstring(content)
        return cls(event_type=child_text(root, ".//{*}WalkupScanToCompEventType"))
