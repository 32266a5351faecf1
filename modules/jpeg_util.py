"""
JPEG height repair for feeder scans.

Feeder scans are streamed before the device knows how long the sheet is.
The frame header then carries a placeholder height and the real one is
sent in a DNL (define number of lines) marker after the scan data. Most
readers ignore DNL, so the real height is copied back into the frame
header.
"""

from __future__ import annotations

from typing import Optional, Tuple

SOI = 0xD8
SOS = 0xDA
TEM = 0x01
RST_MARKERS = range(0xD0, 0xD8)

# SOF0..SOF15 except DHT (C4), JPG (C8) and DAC (CC)
SOF_MARKERS = frozenset(range(0xC0, 0xD0)) - {0xC4, 0xC8, 0xCC}

DNL_SEGMENT = b"\xff\xdc\x00\x04"


def _find_frame_height_offset(buffer: bytearray) -> Optional[Tuple[int, int]]:
    """
    Walk the header segments up to the start of scan.

    Returns:
        (offset of the frame header's height field, offset of the scan data)
        or None if the buffer is not a JPEG we can walk
    """
    if len(buffer) < 4 or buffer[0] != 0xFF or buffer[1] != SOI:
        return None

    height_offset = None
    pos = 2
    while pos + 4 <= len(buffer):
        if buffer[pos] != 0xFF:
            return None
        marker = buffer[pos + 1]

        if marker == 0xFF:
            pos += 1
            continue
        if marker == TEM or marker in RST_MARKERS:
            pos += 2
            continue

        length = (buffer[pos + 2] << 8) | buffer[pos + 3]
        if marker in SOF_MARKERS:
            height_offset = pos + 5
        if marker == SOS:
            if height_offset is None:
                return None
            return height_offset, pos + 2 + length
        pos += 2 + length

    return None


def fix_size_with_dnl(buffer: bytearray) -> Optional[int]:
    """
    Patch the frame header height from the DNL marker, in place.

    Args:
        buffer: Whole JPEG file content

    Returns:
        The height written into the frame header, or None when no DNL
        marker with a usable height was found
    """
    offsets = _find_frame_height_offset(buffer)
    if offsets is None:
        return None
    height_offset, scan_offset = offsets

    dnl = buffer.find(DNL_SEGMENT, scan_offset)
    if dnl < 0 or dnl + 6 > len(buffer):
        return None

    height = (buffer[dnl + 4] << 8) | buffer[dnl + 5]
    if height == 0:
        return None

    buffer[height_offset] = (height >> 8) & 0xFF
    buffer[height_offset + 1] = height & 0xFF
    return height
