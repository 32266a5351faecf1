"""
Scan data models.

These models describe what we ask the device for (ScanJobSettings) and
what we get back (ScanPage, collected in ScanContent). A ScanSessionResult
is the hand-off from the scanning logic to post-processing.

Thread Safety:
    - ScanJobSettings and ScanPage are frozen
    - ScanContent is mutated only by the session that owns it (append-only)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple
from xml.sax.saxutils import escape

from .device import InputSource

SCAN_SETTINGS_NAMESPACE = "http://www.hp.com/schemas/imaging/con/cnx/scan/2008/08/19"


class ContentType(Enum):
    """Tells the device how to tune the scan."""

    DOCUMENT = "Document"
    PHOTO = "Photo"


@dataclass(frozen=True)
class ScanJobSettings:
    """
    One job submission.

    Built once per session; continuation jobs reuse the same object.
    """

    input_source: InputSource
    content_type: ContentType
    resolution: int
    width: Optional[int]
    height: Optional[int]
    is_duplex: bool = False

    def to_xml(self) -> str:
        """Serialize as the ScanSettings document posted to /Scan/Jobs."""
        parts = [
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>',
            f'<ScanSettings xmlns="{SCAN_SETTINGS_NAMESPACE}">',
            f"<XResolution>{self.resolution}</XResolution>",
            f"<YResolution>{self.resolution}</YResolution>",
            "<XStart>0</XStart>",
            "<YStart>0</YStart>",
        ]
        if self.width is not None:
            parts.append(f"<Width>{self.width}</Width>")
        if self.height is not None:
            parts.append(f"<Height>{self.height}</Height>")
        parts.extend([
            "<Format>Jpeg</Format>",
            "<CompressionQFactor>0</CompressionQFactor>",
            "<ColorSpace>Color</ColorSpace>",
            "<BitDepth>8</BitDepth>",
            f"<InputSource>{escape(self.input_source.value)}</InputSource>",
            "<GrayRendering>NTSC</GrayRendering>",
            "<ToneMap>",
            "<Gamma>1000</Gamma>",
            "<Brightness>1000</Brightness>",
            "<Contrast>1000</Contrast>",
            "<Highlite>179</Highlite>",
            "<Shadow>25</Shadow>",
            "<Threshold>0</Threshold>",
            "</ToneMap>",
            "<SharpeningLevel>0</SharpeningLevel>",
            "<NoiseRemoval>0</NoiseRemoval>",
            f"<ContentType>{escape(self.content_type.value)}</ContentType>",
        ])
        if self.input_source is InputSource.ADF and self.is_duplex:
            parts.append("<AdfOptions><AdfOption>Duplex</AdfOption></AdfOptions>")
        parts.append("</ScanSettings>")
        return "".join(parts)


@dataclass(frozen=True)
class ScanPage:
    """One downloaded page."""

    path: Path
    page_number: int
    """1-based position within the logical scan (not the device's page number)."""

    width: int
    height: int
    x_resolution: int
    y_resolution: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": str(self.path),
            "page_number": self.page_number,
            "width": self.width,
            "height": self.height,
            "x_resolution": self.x_resolution,
            "y_resolution": self.y_resolution,
        }


class ScanContent:
    """
    Ordered, append-only page list for one scan session.

    Order equals download order. Pages are never removed: cancelling a
    later job does not retract earlier pages.
    """

    def __init__(self) -> None:
        self._pages: List[ScanPage] = []

    def add(self, page: ScanPage) -> None:
        self._pages.append(page)

    @property
    def pages(self) -> Tuple[ScanPage, ...]:
        return tuple(self._pages)

    @property
    def next_page_number(self) -> int:
        return len(self._pages) + 1

    def __len__(self) -> int:
        return len(self._pages)

    def __iter__(self) -> Iterator[ScanPage]:
        return iter(tuple(self._pages))


@dataclass
class ScanSessionResult:
    """
    Everything post-processing needs about one finished scan session.
    """

    folder: Path
    """Final output folder."""

    temp_folder: Path
    """Per-page folder used when the pages are assembled into a PDF."""

    scan_count: int
    date: datetime
    to_pdf: bool
    content: ScanContent = field(default_factory=ScanContent)

    output_files: List[Path] = field(default_factory=list)
    """Filled in by post-processing."""

    @property
    def page_count(self) -> int:
        return len(self.content)

    @property
    def pages_folder(self) -> Path:
        """Where the pages of this session were downloaded."""
        return self.temp_folder if self.to_pdf else self.folder
