"""File naming for downloaded pages and assembled scans."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

from werkzeug.utils import secure_filename


def _base_name(scan_count: int, file_pattern: Optional[str], date: datetime) -> str:
    if file_pattern:
        name = secure_filename(date.strftime(file_pattern))
        if name:
            return name
    return f"scan{scan_count}"


def _free_path(folder: Path, stem: str, extension: str) -> Path:
    candidate = folder / f"{stem}.{extension}"
    suffix = 1
    while candidate.exists():
        candidate = folder / f"{stem}_{suffix}.{extension}"
        suffix += 1
    return candidate


def get_file_for_page(
    folder: Path,
    scan_count: int,
    page_number: int,
    file_pattern: Optional[str],
    extension: str,
    date: datetime
) -> Path:
    """
    Path of one downloaded page.

    Without a pattern: folder/scan<count>_page<n>.<ext>.
    With a pattern (strftime syntax): folder/<formatted date>_page<n>.<ext>.

    Never returns an existing file. When an earlier session left a page
    under the same name (same pattern output, or a scan counter restarted
    with the process), a numeric suffix is added: _page<n>_1, _page<n>_2.
    """
    base = _base_name(scan_count, file_pattern, date)
    return _free_path(Path(folder), f"{base}_page{page_number}", extension)


def get_file_for_scan(
    folder: Path,
    scan_count: int,
    file_pattern: Optional[str],
    extension: str,
    date: datetime
) -> Path:
    """
    Path of an assembled scan document.

    Never returns an existing file: a numeric suffix (_1, _2, ...) is added
    until the name is free.
    """
    base = _base_name(scan_count, file_pattern, date)
    return _free_path(Path(folder), base, extension)
