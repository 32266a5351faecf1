"""
Post-processing of finished scan sessions.

Image sessions already wrote their pages into the final folder. PDF
sessions downloaded their pages into the temp folder; those pages are
rendered to single-page PDFs with Pillow, merged with pypdf into one
document in the final folder, and then removed.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional

from PIL import Image
from pypdf import PdfReader, PdfWriter

from models.scan import ScanPage, ScanSessionResult
from models.scan_config import ScanConfig
from logging_config import get_logger

from .path_helper import get_file_for_scan

logger = get_logger(__name__)


def render_page_pdf(page: ScanPage) -> PdfReader:
    """Render one scanned page as a single-page PDF at its scan resolution."""
    buffer = io.BytesIO()
    with Image.open(page.path) as image:
        rgb = image.convert("RGB") if image.mode != "RGB" else image
        rgb.save(buffer, "PDF", resolution=float(page.x_resolution or 200))
    buffer.seek(0)
    return PdfReader(buffer)


def merge_pages_to_pdf(result: ScanSessionResult, scan_config: ScanConfig) -> Path:
    """
    Assemble the session's pages into one PDF in the final folder.

    Returns:
        Path of the written document
    """
    writer = PdfWriter()
    for page in result.content:
        for pdf_page in render_page_pdf(page).pages:
            writer.add_page(pdf_page)

    output = get_file_for_scan(
        result.folder, result.scan_count, scan_config.file_pattern, "pdf", result.date
    )
    with open(output, "wb") as f:
        writer.write(f)

    page_count = len(PdfReader(str(output)).pages)
    logger.info(f"The following file has been written: {output} ({page_count} page(s))")
    return output


def remove_page_files(result: ScanSessionResult) -> None:
    for page in result.content:
        try:
            Path(page.path).unlink()
        except FileNotFoundError:
            logger.debug(f"Temp page already gone: {page.path}")


def post_process(
    result: ScanSessionResult,
    scan_config: ScanConfig,
    log: Optional[logging.Logger] = None
) -> ScanSessionResult:
    """
    Produce the session's output files.

    Args:
        result: Finished session (pages in download order)
        scan_config: Folder and file-name settings

    Returns:
        The same result with output_files filled in
    """
    log = log or logger

    if result.page_count == 0:
        log.info("No page scanned, nothing to post-process")
        return result

    if result.to_pdf:
        output = merge_pages_to_pdf(result, scan_config)
        remove_page_files(result)
        result.output_files = [output]
    else:
        result.output_files = [Path(page.path) for page in result.content]
        log.info(f"{result.page_count} image(s) written to {result.folder}")

    return result
