"""
Device-side models: destinations, scanner status and capabilities.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .xml_helpers import child_bool, child_int, child_text


class InputSource(Enum):
    """Where the paper is: on the glass or in the document feeder."""

    PLATEN = "Platen"
    ADF = "Adf"


class Shortcut(Enum):
    """
    The action the user chose at the panel.

    PDF-producing shortcuts collect pages in the temp folder and assemble
    them afterwards; the others write JPEGs straight to the final folder.
    """

    SAVE_PDF = "SavePDF"
    EMAIL_PDF = "EmailPDF"
    SAVE_DOCUMENT = "SaveDocument1"
    SAVE_JPEG = "SaveJPEG"
    SAVE_PHOTO = "SavePhoto1"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "Shortcut":
        for shortcut in cls:
            if shortcut is not cls.UNKNOWN and shortcut.value == raw:
                return shortcut
        return cls.UNKNOWN

    @property
    def produces_pdf(self) -> bool:
        return self in (Shortcut.SAVE_PDF, Shortcut.EMAIL_PDF, Shortcut.SAVE_DOCUMENT)


@dataclass(frozen=True)
class Destination:
    """
    A registered destination as the device currently sees it.

    raw_shortcut stays None until the user has picked an action at the
    panel, which can lag behind the scan event itself.
    """

    name: Optional[str]
    resource_uri: Optional[str] = None
    raw_shortcut: Optional[str] = None
    scan_plex_mode: Optional[str] = None

    @property
    def shortcut(self) -> Optional[Shortcut]:
        if self.raw_shortcut is None:
            return None
        return Shortcut.parse(self.raw_shortcut)

    @property
    def is_duplex(self) -> bool:
        return self.scan_plex_mode is not None and self.scan_plex_mode != "Simplex"

    @classmethod
    def from_element(cls, element: ET.Element) -> "Destination":
        return cls(
            name=child_text(element, "{*}Name"),
            resource_uri=child_text(element, "{*}ResourceURI"),
            raw_shortcut=child_text(element, ".//{*}Shortcut"),
            scan_plex_mode=child_text(element, ".//{*}ScanPlexMode"),
        )

    @classmethod
    def from_xml(cls, content: bytes) -> "Destination":
        return cls.from_element(ET.fromstring(content))

    @classmethod
    def list_from_xml(cls, content: bytes) -> Tuple["Destination", ...]:
        """Parse a destination collection (either walk-up flavour)."""
        root = ET.fromstring(content)
        return tuple(
            cls.from_element(child)
            for child in root
            if child.tag.endswith("WalkupScanToCompDestination")
            or child.tag.endswith("WalkupScanDestination")
        )


@dataclass(frozen=True)
class ScanStatus:
    """Scanner state and feeder state."""

    scanner_state: Optional[str]
    adf_state: Optional[str] = None

    @property
    def is_idle(self) -> bool:
        return self.scanner_state == "Idle"

    @property
    def is_loaded(self) -> bool:
        return self.adf_state == "Loaded"

    @property
    def input_source(self) -> InputSource:
        """Paper in the feeder means the feeder is used, otherwise the glass."""
        return InputSource.ADF if self.is_loaded else InputSource.PLATEN

    @classmethod
    def from_xml(cls, content: bytes) -> "ScanStatus":
        root = ET.fromstring(content)
        return cls(
            scanner_state=child_text(root, "{*}ScannerState"),
            adf_state=child_text(root, "{*}AdfState"),
        )


@dataclass(frozen=True)
class DeviceCapabilities:
    """
    Scan limits advertised by the device, in device units (1/300 inch).

    None means the device did not advertise the value; no clamping happens
    for that dimension.
    """

    platen_max_width: Optional[int] = None
    platen_max_height: Optional[int] = None
    adf_max_width: Optional[int] = None
    adf_max_height: Optional[int] = None
    adf_duplex_max_width: Optional[int] = None
    adf_duplex_max_height: Optional[int] = None
    supports_multi_item_scan_from_platen: bool = False
    use_walkup_scan_to_comp: bool = False

    def max_scan_size(
        self, input_source: InputSource, is_duplex: bool
    ) -> Tuple[Optional[int], Optional[int]]:
        """(max width, max height) for the input source and plex mode."""
        if input_source is InputSource.ADF:
            if is_duplex:
                return self.adf_duplex_max_width, self.adf_duplex_max_height
            return self.adf_max_width, self.adf_max_height
        return self.platen_max_width, self.platen_max_height

    @classmethod
    def from_xml(
        cls, scan_caps: bytes, walkup_caps: Optional[bytes] = None
    ) -> "DeviceCapabilities":
        """
        Build capabilities from /Scan/ScanCaps and, when the device has one,
        /WalkupScanToComp/WalkupScanToCompCaps.
        """
        root = ET.fromstring(scan_caps)
        platen = root.find("{*}Platen/{*}InputSourceCaps")
        adf = root.find("{*}Adf/{*}InputSourceCaps")
        adf_duplex = root.find("{*}Adf/{*}DuplexInputSourceCaps")

        supports_multi_item = False
        if walkup_caps is not None:
            walkup_root = ET.fromstring(walkup_caps)
            supports_multi_item = child_bool(walkup_root, ".//{*}SupportsMultiItemScanFromPlaten")

        return cls(
            platen_max_width=child_int(platen, "{*}MaxWidth"),
            platen_max_height=child_int(platen, "{*}MaxHeight"),
            adf_max_width=child_int(adf, "{*}MaxWidth"),
            adf_max_height=child_int(adf, "{*}MaxHeight"),
            adf_duplex_max_width=child_int(adf_duplex, "{*}MaxWidth"),
            adf_duplex_max_height=child_int(adf_duplex, "{*}MaxHeight"),
            supports_multi_item_scan_from_platen=supports_multi_item,
            use_walkup_scan_to_comp=walkup_caps is not None,
        )

    def to_dict(self) -> dict:
        return {
            "platen_max_width": self.platen_max_width,
            "platen_max_height": self.platen_max_height,
            "adf_max_width": self.adf_max_width,
            "adf_max_height": self.adf_max_height,
            "adf_duplex_max_width": self.adf_duplex_max_width,
            "adf_duplex_max_height": self.adf_duplex_max_height,
            "supports_multi_item_scan_from_platen": self.supports_multi_item_scan_from_platen,
            "use_walkup_scan_to_comp": self.use_walkup_scan_to_comp,
        }
