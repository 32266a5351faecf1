"""
Scan configuration values.

Built once from the Flask config mapping (see config.py) and passed by
value into the scanning logic, so a running session never sees a config
change halfway through.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class ScanConfig:
    """Settings shared by every kind of scan session."""

    resolution: int
    width: Optional[int]
    height: Optional[int]
    directory: Path
    temp_directory: Path
    file_pattern: Optional[str] = None

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "ScanConfig":
        return cls(
            resolution=int(config.get("SCAN_RESOLUTION", 200)),
            width=config.get("SCAN_WIDTH"),
            height=config.get("SCAN_HEIGHT"),
            directory=Path(config["SCAN_DIRECTORY"]),
            temp_directory=Path(config["SCAN_TEMP_DIRECTORY"]),
            file_pattern=config.get("SCAN_FILE_PATTERN") or None,
        )


@dataclass(frozen=True)
class SingleScanConfig:
    """Options of an on-demand flatbed scan."""

    is_duplex: bool = False
    generate_pdf: bool = True


@dataclass(frozen=True)
class AdfAutoScanConfig:
    """Options of the unattended feeder auto-scan mode."""

    is_duplex: bool = False
    generate_pdf: bool = True
    polling_interval_ms: int = 1000
    start_scan_delay_ms: int = 5000

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "AdfAutoScanConfig":
        return cls(
            is_duplex=bool(config.get("ADF_DUPLEX", False)),
            generate_pdf=bool(config.get("ADF_GENERATE_PDF", True)),
            polling_interval_ms=int(config.get("ADF_POLLING_INTERVAL_MS", 1000)),
            start_scan_delay_ms=int(config.get("ADF_START_SCAN_DELAY_MS", 5000)),
        )
